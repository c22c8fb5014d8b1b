"""
Audit logging service for quote and customer actions.
"""
from floowly.models.audit_log import AuditLog, AuditAction
from flask import request, g, has_request_context
import json
import logging

logger = logging.getLogger(__name__)


def log_action(
    session,
    action: AuditAction,
    resource_type: str = None,
    resource_id: int = None,
    details: dict = None,
    tenant_id: int = None,
    user_id: int = None
):
    """
    Add an audit entry to the session (caller commits).

    tenant_id and user_id default to the request context (g.tenant_id, g.user).
    Failures are logged and swallowed: auditing never blocks a business write.
    """
    try:
        in_request = has_request_context()
        if user_id is None and in_request and g.get('user') is not None:
            user_id = g.user.id
        if tenant_id is None and in_request:
            tenant_id = g.get('tenant_id')

        if not user_id or not tenant_id:
            logger.debug(f"Skipping audit {action.value}: no user or tenant in context")
            return

        details_json = json.dumps(details, default=str) if details else None

        session.add(AuditLog(
            tenant_id=tenant_id,
            user_id=user_id,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            details=details_json,
            ip_address=request.remote_addr if in_request else None,
            user_agent=request.headers.get('User-Agent', '')[:255] if in_request else None
        ))

        logger.info(f"Audit: {action.value} by user {user_id} on {resource_type} {resource_id}")

    except Exception as e:
        logger.error(f"Failed to create audit log: {e}")


def get_audit_logs(
    session,
    tenant_id: int,
    limit: int = 100,
    offset: int = 0,
    action_filter: AuditAction = None,
    resource_type_filter: str = None,
    resource_id_filter: int = None
):
    """Audit entries for a tenant, newest first."""
    query = session.query(AuditLog).filter(AuditLog.tenant_id == tenant_id)

    if action_filter:
        query = query.filter(AuditLog.action == action_filter)
    if resource_type_filter:
        query = query.filter(AuditLog.resource_type == resource_type_filter)
    if resource_id_filter:
        query = query.filter(AuditLog.resource_id == resource_id_filter)

    return query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).limit(limit).offset(offset).all()
