"""Job service: tenant-scoped scheduling of work on the calendar."""
import logging
import re
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

from flask import current_app, has_app_context
from sqlalchemy import or_, func
from sqlalchemy.orm import Session, joinedload

from floowly.exceptions import NotFoundError, ValidationError
from floowly.models import Job, JobStatus, Customer, Quote, AuditAction
from floowly.models.job import DEFAULT_JOB_TIMEZONE
from floowly.services.audit_service import log_action
from floowly.services.cache_service import get_cache
from floowly.services.quote_calculator import round2, ZERO
from floowly.services.quote_validation import optional_decimal, parse_datetime, parse_id, clean_text

logger = logging.getLogger(__name__)

STATS_CACHE_MODULE = 'jobs'
STATS_CACHE_KEY = 'stats'

JOB_STATUSES = tuple(s.value for s in JobStatus)
TIME_PATTERN = re.compile(r'^([01]\d|2[0-3]):[0-5]\d$')

_TEXT_FIELDS = ('description', 'notes')
_TIME_FIELDS = ('start_time', 'end_time')


def parse_date(value: Any, field: str) -> Optional[date]:
    """Calendar day from 'YYYY-MM-DD' or a full ISO 8601 datetime."""
    parsed = parse_datetime(value, field)
    return parsed.date() if parsed is not None else None


def _clean_time(value: Any, field: str) -> Optional[str]:
    if value is None or value == '':
        return None
    if not isinstance(value, str) or not TIME_PATTERN.match(value.strip()):
        raise ValidationError(f'{field} must be a time in HH:MM format', field=field)
    return value.strip()


def _clean_job_data(data: Any, partial: bool = False) -> Dict[str, Any]:
    """
    Validate a job create/update payload.

    On create title, customer_id, start_date and end_date are required; on
    update only supplied keys are checked and returned.
    """
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')

    cleaned: Dict[str, Any] = {}

    if not partial or 'title' in data:
        title = data.get('title')
        if not isinstance(title, str) or not title.strip():
            raise ValidationError('Job title is required', field='title')
        cleaned['title'] = title.strip()

    if not partial or 'customer_id' in data:
        cleaned['customer_id'] = parse_id(data.get('customer_id'), 'customer_id')

    if 'quote_id' in data:
        value = data['quote_id']
        cleaned['quote_id'] = None if value in (None, '') else parse_id(value, 'quote_id')

    for field in ('start_date', 'end_date'):
        if not partial or field in data:
            parsed = parse_date(data.get(field), field)
            if parsed is None:
                label = field.replace('_', ' ').capitalize()
                raise ValidationError(f'{label} is required', field=field)
            cleaned[field] = parsed

    for field in _TIME_FIELDS:
        if field in data:
            cleaned[field] = _clean_time(data[field], field)

    for field in _TEXT_FIELDS:
        if field in data:
            cleaned[field] = clean_text(data, field)

    if 'hours' in data:
        cleaned['hours'] = optional_decimal(data, 'hours')
    if 'material_cost' in data:
        cleaned['material_cost'] = optional_decimal(data, 'material_cost')
    if 'quoted_price' in data:
        cleaned['quoted_price'] = optional_decimal(data, 'quoted_price', places=2)

    if 'status' in data:
        if data['status'] not in JOB_STATUSES:
            raise ValidationError(f"Status must be one of: {', '.join(JOB_STATUSES)}", field='status')
        cleaned['status'] = data['status']

    if 'timezone' in data:
        timezone = data['timezone']
        if timezone is None or timezone == '':
            cleaned['timezone'] = DEFAULT_JOB_TIMEZONE
        elif not isinstance(timezone, str) or len(timezone.strip()) > 64:
            raise ValidationError('timezone must be an IANA zone name', field='timezone')
        else:
            cleaned['timezone'] = timezone.strip()

    return cleaned


def _check_schedule(job: Job) -> None:
    """End must not come before start, once updates have been merged in."""
    if job.end_date < job.start_date:
        raise ValidationError('End date cannot be before start date', field='end_date')
    if job.end_date == job.start_date and job.start_time and job.end_time and job.end_time < job.start_time:
        raise ValidationError('End time cannot be before start time', field='end_time')


def _check_references(session: Session, tenant_id: int, cleaned: Dict[str, Any]) -> None:
    if 'customer_id' in cleaned:
        customer = session.query(Customer).filter(
            Customer.id == cleaned['customer_id'],
            Customer.tenant_id == tenant_id
        ).first()
        if not customer:
            raise NotFoundError(f"Customer {cleaned['customer_id']} not found")

    if cleaned.get('quote_id') is not None:
        quote = session.query(Quote).filter(
            Quote.id == cleaned['quote_id'],
            Quote.tenant_id == tenant_id
        ).first()
        if not quote:
            raise NotFoundError(f"Quote {cleaned['quote_id']} not found")


def _invalidate_stats(tenant_id: int) -> None:
    get_cache().invalidate_module(tenant_id, STATS_CACHE_MODULE)


def list_jobs(session: Session, tenant_id: int, search: Optional[str] = None,
              status: Optional[str] = None, customer_id: Optional[int] = None,
              start_date: Optional[date] = None, end_date: Optional[date] = None) -> List[Job]:
    """
    Jobs of a tenant in calendar order.

    start_date/end_date select jobs lying entirely inside the window.
    """
    query = session.query(Job).options(
        joinedload(Job.customer),
        joinedload(Job.quote)
    ).filter(Job.tenant_id == tenant_id)

    if search:
        pattern = f'%{search.strip().lower()}%'
        query = query.filter(or_(
            func.lower(Job.title).like(pattern),
            func.lower(Job.description).like(pattern)
        ))

    if status:
        if status not in JOB_STATUSES:
            raise ValidationError(f"Status must be one of: {', '.join(JOB_STATUSES)}", field='status')
        query = query.filter(Job.status == status)

    if customer_id:
        query = query.filter(Job.customer_id == customer_id)

    if start_date:
        query = query.filter(Job.start_date >= start_date)
    if end_date:
        query = query.filter(Job.end_date <= end_date)

    return query.order_by(Job.start_date, Job.id).all()


def get_job(session: Session, tenant_id: int, job_id: int) -> Job:
    """Fetch one job of the tenant or raise NotFoundError."""
    job = session.query(Job).filter(
        Job.id == job_id,
        Job.tenant_id == tenant_id
    ).first()
    if not job:
        raise NotFoundError(f'Job {job_id} not found')
    return job


def create_job(session: Session, tenant_id: int, data: Dict[str, Any],
               user_id: Optional[int] = None) -> Job:
    """
    Book a job for a customer of the tenant.

    Raises:
        ValidationError: invalid payload or end before start
        NotFoundError: customer or quote does not belong to the tenant
    """
    cleaned = _clean_job_data(data)
    _check_references(session, tenant_id, cleaned)

    job = Job(tenant_id=tenant_id, status=JobStatus.PENDING.value, timezone=DEFAULT_JOB_TIMEZONE)
    for field, value in cleaned.items():
        setattr(job, field, value)
    _check_schedule(job)

    try:
        session.add(job)
        session.flush()
        log_action(
            session, AuditAction.JOB_CREATED, 'job', job.id,
            details={'title': job.title, 'start_date': job.start_date.isoformat(), 'status': job.status},
            tenant_id=tenant_id, user_id=user_id
        )
        session.commit()
    except Exception:
        session.rollback()
        raise

    _invalidate_stats(tenant_id)
    logger.info(f"Job {job.id} booked for tenant {tenant_id} on {job.start_date}")
    return job


def update_job(session: Session, tenant_id: int, job_id: int, data: Dict[str, Any],
               user_id: Optional[int] = None) -> Job:
    """Partially update a job; the merged schedule is checked again."""
    cleaned = _clean_job_data(data, partial=True)
    job = get_job(session, tenant_id, job_id)
    _check_references(session, tenant_id, cleaned)

    try:
        for field, value in cleaned.items():
            setattr(job, field, value)
        _check_schedule(job)

        log_action(
            session, AuditAction.JOB_UPDATED, 'job', job.id,
            details={'fields': sorted(cleaned.keys())}, tenant_id=tenant_id, user_id=user_id
        )
        session.commit()
    except Exception:
        session.rollback()
        raise

    _invalidate_stats(tenant_id)
    return job


def delete_job(session: Session, tenant_id: int, job_id: int, user_id: Optional[int] = None) -> None:
    job = get_job(session, tenant_id, job_id)

    try:
        log_action(
            session, AuditAction.JOB_DELETED, 'job', job.id,
            details={'title': job.title, 'status': job.status},
            tenant_id=tenant_id, user_id=user_id
        )
        session.delete(job)
        session.commit()
    except Exception:
        session.rollback()
        raise

    _invalidate_stats(tenant_id)


def _load_job_stats(session: Session, tenant_id: int) -> Dict[str, Any]:
    rows = session.query(
        Job.status, func.count(Job.id), func.sum(Job.quoted_price)
    ).filter(Job.tenant_id == tenant_id).group_by(Job.status).all()

    stats: Dict[str, Any] = {status: 0 for status in JOB_STATUSES}
    total_value = ZERO
    completed_value = ZERO
    for status, count, value in rows:
        value = Decimal(str(value)) if value is not None else ZERO
        stats[status] = count
        total_value += value
        if status == JobStatus.COMPLETED.value:
            completed_value += value

    stats.update({
        'total': sum(stats[status] for status in JOB_STATUSES),
        'total_value': round2(total_value),
        'completed_value': round2(completed_value),
    })
    return stats


def get_job_stats(session: Session, tenant_id: int) -> Dict[str, Any]:
    """Job counts per status, total booked value and completed value (sums of quoted_price)."""
    ttl = current_app.config.get('CACHE_STATS_TTL', 60) if has_app_context() else 60
    return get_cache().memoize(
        tenant_id, STATS_CACHE_MODULE, STATS_CACHE_KEY,
        lambda: _load_job_stats(session, tenant_id),
        ttl=ttl
    )
