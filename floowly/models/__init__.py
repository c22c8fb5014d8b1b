"""Models package - exports all SQLAlchemy models."""
# SaaS Core Models
from floowly.models.app_user import AppUser
from floowly.models.tenant import Tenant
from floowly.models.user_tenant import UserTenant, UserRole

# Business Models
from floowly.models.customer import Customer, CustomerStatus
from floowly.models.quote import Quote
from floowly.models.quote_line import QuoteLine
from floowly.models.job import Job, JobStatus
from floowly.models.audit_log import AuditLog, AuditAction

__all__ = [
    # SaaS Core
    'Tenant', 'AppUser', 'UserTenant', 'UserRole',
    # Business
    'Customer', 'CustomerStatus',
    'Quote', 'QuoteLine',
    'Job', 'JobStatus',
    'AuditLog', 'AuditAction',
]
