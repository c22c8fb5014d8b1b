"""Customer service: tenant-scoped customer management."""
import re
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import or_, func
from sqlalchemy.orm import Session

from floowly.exceptions import BusinessLogicError, NotFoundError, ValidationError
from floowly.models import Customer, CustomerStatus, Quote, Job, AuditAction
from floowly.services.audit_service import log_action
from floowly.services.quote_calculator import round2, ZERO

EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')
CUSTOMER_STATUSES = tuple(s.value for s in CustomerStatus)
_OPTIONAL_FIELDS = ('company', 'email', 'phone', 'address', 'notes')


def _clean_str(value: Any, field: str) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f'{field} must be a string', field=field)
    return value.strip() or None


def _validate_customer_name(session: Session, tenant_id: int, name: Optional[str],
                            exclude_id: Optional[int] = None) -> None:
    """Name is required, at least 2 characters and unique per tenant (case-insensitive)."""
    if not name or len(name) < 2:
        raise ValidationError('Customer name must be at least 2 characters', field='name')

    query = session.query(Customer).filter(
        Customer.tenant_id == tenant_id,
        func.lower(Customer.name) == name.lower()
    )
    if exclude_id:
        query = query.filter(Customer.id != exclude_id)

    if query.first():
        raise BusinessLogicError(f"A customer named '{name}' already exists", status_code=409)


def _clean_customer_data(data: Any, partial: bool = False) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')

    cleaned: Dict[str, Any] = {}
    if not partial or 'name' in data:
        cleaned['name'] = _clean_str(data.get('name'), 'name')

    for field in _OPTIONAL_FIELDS:
        if field in data:
            cleaned[field] = _clean_str(data[field], field)

    if cleaned.get('email') and not EMAIL_PATTERN.match(cleaned['email']):
        raise ValidationError('Invalid email address', field='email')

    if 'status' in data:
        if data['status'] not in CUSTOMER_STATUSES:
            raise ValidationError(f"Status must be one of: {', '.join(CUSTOMER_STATUSES)}", field='status')
        cleaned['status'] = data['status']

    return cleaned


def list_customers(session: Session, tenant_id: int, search: Optional[str] = None) -> List[Customer]:
    """Customers of a tenant ordered by name, optionally filtered by a search term."""
    query = session.query(Customer).filter(Customer.tenant_id == tenant_id)

    if search:
        pattern = f'%{search.strip().lower()}%'
        query = query.filter(or_(
            func.lower(Customer.name).like(pattern),
            func.lower(Customer.company).like(pattern),
            func.lower(Customer.email).like(pattern),
            func.lower(Customer.phone).like(pattern)
        ))

    return query.order_by(Customer.name).all()


def get_customer(session: Session, tenant_id: int, customer_id: int) -> Customer:
    customer = session.query(Customer).filter(
        Customer.id == customer_id,
        Customer.tenant_id == tenant_id
    ).first()
    if not customer:
        raise NotFoundError(f'Customer {customer_id} not found')
    return customer


def create_customer(session: Session, tenant_id: int, data: Dict[str, Any],
                    user_id: Optional[int] = None) -> Customer:
    cleaned = _clean_customer_data(data)
    _validate_customer_name(session, tenant_id, cleaned['name'])

    try:
        customer = Customer(tenant_id=tenant_id, **cleaned)
        session.add(customer)
        session.flush()
        log_action(session, AuditAction.CUSTOMER_CREATED, 'customer', customer.id,
                   details={'name': customer.name}, tenant_id=tenant_id, user_id=user_id)
        session.commit()
        return customer
    except Exception:
        session.rollback()
        raise


def update_customer(session: Session, tenant_id: int, customer_id: int, data: Dict[str, Any],
                    user_id: Optional[int] = None) -> Customer:
    cleaned = _clean_customer_data(data, partial=True)
    customer = get_customer(session, tenant_id, customer_id)
    if 'name' in cleaned:
        _validate_customer_name(session, tenant_id, cleaned['name'], exclude_id=customer.id)

    try:
        for field, value in cleaned.items():
            setattr(customer, field, value)
        log_action(session, AuditAction.CUSTOMER_UPDATED, 'customer', customer.id,
                   details={'fields': sorted(cleaned.keys())}, tenant_id=tenant_id, user_id=user_id)
        session.commit()
        return customer
    except Exception:
        session.rollback()
        raise


def delete_customer(session: Session, tenant_id: int, customer_id: int,
                    user_id: Optional[int] = None) -> None:
    """Delete a customer that has no quotes and no jobs."""
    customer = get_customer(session, tenant_id, customer_id)

    quote_count = session.query(Quote).filter(
        Quote.tenant_id == tenant_id,
        Quote.customer_id == customer.id
    ).count()
    if quote_count:
        raise BusinessLogicError(
            f'Customer has {quote_count} quote(s) and cannot be deleted', status_code=409
        )

    job_count = session.query(Job).filter(
        Job.tenant_id == tenant_id,
        Job.customer_id == customer.id
    ).count()
    if job_count:
        raise BusinessLogicError(
            f'Customer has {job_count} job(s) and cannot be deleted', status_code=409
        )

    try:
        log_action(session, AuditAction.CUSTOMER_DELETED, 'customer', customer.id,
                   details={'name': customer.name}, tenant_id=tenant_id, user_id=user_id)
        session.delete(customer)
        session.commit()
    except Exception:
        session.rollback()
        raise


def get_customer_stats(session: Session, tenant_id: int) -> Dict[str, Any]:
    """Customer counts per status plus quote/job counts and revenue booked in jobs."""
    rows = session.query(Customer.status, func.count(Customer.id)).filter(
        Customer.tenant_id == tenant_id
    ).group_by(Customer.status).all()
    counts = dict(rows)

    revenue = session.query(func.sum(Job.quoted_price)).filter(Job.tenant_id == tenant_id).scalar()

    return {
        'total': sum(counts.values()),
        'active': counts.get(CustomerStatus.ACTIVE.value, 0),
        'inactive': counts.get(CustomerStatus.INACTIVE.value, 0),
        'prospects': counts.get(CustomerStatus.PROSPECT.value, 0),
        'total_quotes': session.query(Quote).filter(Quote.tenant_id == tenant_id).count(),
        'total_jobs': session.query(Job).filter(Job.tenant_id == tenant_id).count(),
        'total_revenue': round2(Decimal(str(revenue))) if revenue is not None else ZERO,
    }
