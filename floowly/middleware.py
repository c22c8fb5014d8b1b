"""Middleware for authentication and tenant context."""
from functools import wraps
from flask import session, g, current_app
from floowly.database import get_session
from floowly.exceptions import SaasError, UnauthorizedError
from floowly.models import AppUser, UserTenant, Tenant


def load_user_and_tenant():
    """
    Load current user and tenant into g (Flask's per-request global).

    The session provider stores user_id and tenant_id in the signed session
    cookie; this only resolves them. Sets g.user, g.tenant_id and g.user_role.
    """
    g.user = None
    g.tenant_id = None
    g.user_role = None

    user_id = session.get('user_id')
    if not user_id:
        return

    try:
        db_session = get_session()
        user = db_session.query(AppUser).filter_by(id=user_id, active=True).first()
        if not user:
            return
        g.user = user

        tenant_id = session.get('tenant_id')
        if not tenant_id:
            return

        # Verify user has access to this tenant
        user_tenant = db_session.query(UserTenant).filter_by(
            user_id=user.id,
            tenant_id=tenant_id,
            active=True
        ).first()
        if not user_tenant:
            session.pop('tenant_id', None)
            return

        tenant = db_session.query(Tenant).filter_by(id=tenant_id).first()
        if not tenant or not tenant.active or tenant.is_suspended:
            return

        g.tenant_id = tenant.id
        g.user_role = user_tenant.role
    except Exception as e:
        # Context loading must not crash the request; routes will answer 401/403
        current_app.logger.error(f"Error in load_user_and_tenant: {e}")


def require_login(f):
    """Decorator: reject the request with 401 unless a user is loaded."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if g.get('user') is None:
            raise SaasError('Authentication required', status_code=401)
        return f(*args, **kwargs)
    return decorated_function


def require_tenant(f):
    """
    Decorator: reject the request with 403 unless a company is selected.

    Must be used AFTER require_login.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if g.get('tenant_id') is None:
            raise UnauthorizedError('No company selected')
        return f(*args, **kwargs)
    return decorated_function
