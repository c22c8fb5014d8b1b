"""Quote service: tenant-scoped persistence of quotes and their line items.

Writes follow last-write-wins semantics; there is no version check between a
read and the following update of the same quote.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from flask import current_app, has_app_context
from sqlalchemy import or_, func
from sqlalchemy.orm import Session, joinedload, selectinload

from floowly.exceptions import NotFoundError
from floowly.metrics import quote_transitions_total
from floowly.models import Quote, QuoteLine, Customer, Job, AuditAction
from floowly.services.audit_service import log_action
from floowly.services.cache_service import get_cache
from floowly.services.quote_calculator import (
    compute_item_totals, compute_quote_totals, compute_profit_estimate, round2, ZERO
)
from floowly.services.quote_lifecycle import QuoteStatus, QUOTE_STATUSES, parse_status, transition
from floowly.services.quote_validation import validate_quote_payload

logger = logging.getLogger(__name__)

STATS_CACHE_MODULE = 'quotes'
STATS_CACHE_KEY = 'stats'

_TEXT_FIELDS = ('title', 'description', 'notes', 'terms')
_COST_FIELDS = ('hours', 'material_cost', 'markup_percentage', 'expires_at')


def generate_quote_number(session: Session, tenant_id: int, now: Optional[datetime] = None) -> str:
    """
    Per-day quote number, e.g. Q20260315-004.

    The suffix continues from the highest one used that day; counting rows
    would repeat a number once an earlier quote of the day is deleted.
    """
    now = now or datetime.now()
    prefix = f"Q{now.strftime('%Y%m%d')}-"
    numbers = session.query(Quote.quote_number).filter(
        Quote.tenant_id == tenant_id,
        Quote.quote_number.like(f'{prefix}%')
    ).all()

    highest = 0
    for (number,) in numbers:
        suffix = number[len(prefix):]
        if suffix.isdigit():
            highest = max(highest, int(suffix))
    return f"{prefix}{str(highest + 1).zfill(3)}"


def _build_lines(items: List[Dict[str, Any]]) -> List[QuoteLine]:
    """QuoteLine rows for validated item inputs, derived amounts recomputed."""
    lines = []
    for position, item in enumerate(items):
        totals = compute_item_totals(item['quantity'], item['unit_price'], item['tax_rate'])
        lines.append(QuoteLine(
            position=position,
            name=item['name'],
            description=item['description'],
            quantity=item['quantity'],
            unit_price=item['unit_price'],
            tax_rate=item['tax_rate'],
            subtotal=totals.subtotal,
            tax_amount=totals.tax_amount,
            total=totals.total
        ))
    return lines


def _recalculate(quote: Quote) -> None:
    """Refresh quote totals and profit estimate from its line items."""
    totals = compute_quote_totals(quote.items)
    quote.subtotal = totals.subtotal
    quote.tax_amount = totals.tax_amount
    quote.total = totals.total
    quote.profit_estimate = compute_profit_estimate(
        totals.subtotal, quote.material_cost, quote.markup_percentage
    )


def _apply_transition(quote: Quote, target: QuoteStatus, now: Optional[datetime] = None) -> str:
    """Run the lifecycle transition and copy its result onto the row. Returns the previous status."""
    previous = quote.status
    updated = transition(quote.to_dict(), target, now=now)
    quote.status = updated['status']
    quote.sent_at = updated['sent_at']
    quote_transitions_total.labels(status=updated['status']).inc()
    return previous


def _get_customer(session: Session, tenant_id: int, customer_id: int) -> Customer:
    customer = session.query(Customer).filter(
        Customer.id == customer_id,
        Customer.tenant_id == tenant_id
    ).first()
    if not customer:
        raise NotFoundError(f'Customer {customer_id} not found')
    return customer


def _invalidate_stats(tenant_id: int) -> None:
    get_cache().invalidate_module(tenant_id, STATS_CACHE_MODULE)


def list_quotes(session: Session, tenant_id: int, search: Optional[str] = None,
                status: Optional[str] = None, customer_id: Optional[int] = None) -> List[Quote]:
    """Quotes of a tenant, newest first, with optional filters."""
    query = session.query(Quote).options(
        joinedload(Quote.customer),
        selectinload(Quote.items)
    ).filter(Quote.tenant_id == tenant_id)

    if search:
        pattern = f'%{search.strip().lower()}%'
        query = query.filter(or_(
            func.lower(Quote.title).like(pattern),
            func.lower(Quote.description).like(pattern),
            func.lower(Quote.quote_number).like(pattern)
        ))

    if status:
        query = query.filter(Quote.status == parse_status(status).value)

    if customer_id:
        query = query.filter(Quote.customer_id == customer_id)

    return query.order_by(Quote.created_at.desc(), Quote.id.desc()).all()


def get_quote(session: Session, tenant_id: int, quote_id: int) -> Quote:
    """Fetch one quote of the tenant or raise NotFoundError."""
    quote = session.query(Quote).filter(
        Quote.id == quote_id,
        Quote.tenant_id == tenant_id
    ).first()
    if not quote:
        raise NotFoundError(f'Quote {quote_id} not found')
    return quote


def create_quote(session: Session, tenant_id: int, data: Dict[str, Any],
                 user_id: Optional[int] = None, now: Optional[datetime] = None) -> Quote:
    """
    Create a quote with its line items.

    The quote starts in `draft` unless data carries another status, in which
    case the lifecycle transition is applied (stamping sent_at for `sent`).

    Raises:
        ValidationError: invalid payload
        InvalidStatusError: unknown status
        NotFoundError: customer does not belong to the tenant
    """
    cleaned = validate_quote_payload(data)
    target = parse_status(cleaned.get('status', QuoteStatus.DRAFT.value))
    _get_customer(session, tenant_id, cleaned['customer_id'])

    try:
        quote = Quote(
            tenant_id=tenant_id,
            customer_id=cleaned['customer_id'],
            quote_number=generate_quote_number(session, tenant_id, now),
            status=QuoteStatus.DRAFT.value,
            **{field: cleaned.get(field) for field in _TEXT_FIELDS + _COST_FIELDS}
        )
        quote.items = _build_lines(cleaned['items'])
        _recalculate(quote)

        if target is not QuoteStatus.DRAFT:
            _apply_transition(quote, target, now)

        session.add(quote)
        session.flush()

        log_action(
            session, AuditAction.QUOTE_CREATED, 'quote', quote.id,
            details={'quote_number': quote.quote_number, 'total': quote.total, 'status': quote.status},
            tenant_id=tenant_id, user_id=user_id
        )
        session.commit()
    except Exception:
        session.rollback()
        raise

    _invalidate_stats(tenant_id)
    logger.info(f"Quote {quote.quote_number} created for tenant {tenant_id} (total={quote.total})")
    return quote


def update_quote(session: Session, tenant_id: int, quote_id: int, data: Dict[str, Any],
                 user_id: Optional[int] = None, now: Optional[datetime] = None) -> Quote:
    """
    Partially update a quote.

    Items, when present, replace the existing items. Totals and profit
    estimate are recomputed on every update. A status key goes through the
    lifecycle transition.
    """
    cleaned = validate_quote_payload(data, partial=True)
    target = parse_status(cleaned['status']) if 'status' in cleaned else None
    quote = get_quote(session, tenant_id, quote_id)
    if 'customer_id' in cleaned:
        _get_customer(session, tenant_id, cleaned['customer_id'])

    try:
        for field in ('customer_id',) + _TEXT_FIELDS + _COST_FIELDS:
            if field in cleaned:
                setattr(quote, field, cleaned[field])

        if 'items' in cleaned:
            quote.items = _build_lines(cleaned['items'])

        _recalculate(quote)

        details = {'fields': sorted(cleaned.keys())}
        if target is not None:
            details['previous_status'] = _apply_transition(quote, target, now)

        log_action(
            session, AuditAction.QUOTE_UPDATED, 'quote', quote.id,
            details=details, tenant_id=tenant_id, user_id=user_id
        )
        session.commit()
    except Exception:
        session.rollback()
        raise

    _invalidate_stats(tenant_id)
    return quote


def change_status(session: Session, tenant_id: int, quote_id: int, status: Any,
                  user_id: Optional[int] = None, now: Optional[datetime] = None) -> Quote:
    """Transition a quote to status (any known status is reachable from any other)."""
    target = parse_status(status)
    quote = get_quote(session, tenant_id, quote_id)

    try:
        previous = _apply_transition(quote, target, now)
        log_action(
            session, AuditAction.QUOTE_STATUS_CHANGED, 'quote', quote.id,
            details={'from': previous, 'to': quote.status},
            tenant_id=tenant_id, user_id=user_id
        )
        session.commit()
    except Exception:
        session.rollback()
        raise

    _invalidate_stats(tenant_id)
    logger.info(f"Quote {quote.id} status {previous} -> {quote.status}")
    return quote


def delete_quote(session: Session, tenant_id: int, quote_id: int, user_id: Optional[int] = None) -> None:
    """Delete a quote and its items, whatever its status. Jobs booked from it are kept, unlinked."""
    quote = get_quote(session, tenant_id, quote_id)

    try:
        log_action(
            session, AuditAction.QUOTE_DELETED, 'quote', quote.id,
            details={'quote_number': quote.quote_number, 'status': quote.status},
            tenant_id=tenant_id, user_id=user_id
        )
        session.query(Job).filter(
            Job.tenant_id == tenant_id,
            Job.quote_id == quote.id
        ).update({Job.quote_id: None}, synchronize_session='fetch')
        session.delete(quote)
        session.commit()
    except Exception:
        session.rollback()
        raise

    _invalidate_stats(tenant_id)


def _load_quote_stats(session: Session, tenant_id: int) -> Dict[str, Any]:
    rows = session.query(
        Quote.status, func.count(Quote.id), func.sum(Quote.total)
    ).filter(Quote.tenant_id == tenant_id).group_by(Quote.status).all()

    stats: Dict[str, Any] = {status: 0 for status in QUOTE_STATUSES}
    total_value = ZERO
    accepted_value = ZERO
    for status, count, value in rows:
        value = Decimal(str(value)) if value is not None else ZERO
        stats[status] = count
        total_value += value
        if status == QuoteStatus.ACCEPTED.value:
            accepted_value += value

    total = sum(stats[status] for status in QUOTE_STATUSES)
    conversion = Decimal(stats[QuoteStatus.ACCEPTED.value]) * 100 / total if total else ZERO

    stats.update({
        'total': total,
        'total_value': round2(total_value),
        'accepted_value': round2(accepted_value),
        'conversion_rate': round2(conversion),
    })
    return stats


def get_quote_stats(session: Session, tenant_id: int) -> Dict[str, Any]:
    """
    Quote counts per status, total and accepted value, conversion rate (%).

    Served from the tenant cache when available; every quote write invalidates it.
    """
    ttl = current_app.config.get('CACHE_STATS_TTL', 60) if has_app_context() else 60
    return get_cache().memoize(
        tenant_id, STATS_CACHE_MODULE, STATS_CACHE_KEY,
        lambda: _load_quote_stats(session, tenant_id),
        ttl=ttl
    )
