"""
Quote lifecycle: status values and transitions.

Any known status may move to any other known status (including itself).
Targeting `sent` stamps `sent_at` with the transition time, replacing any
earlier value, so re-sending a quote refreshes the timestamp.
"""
import enum
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from floowly.exceptions import InvalidStatusError


class QuoteStatus(enum.Enum):
    """Quote status enum."""
    DRAFT = 'draft'
    SENT = 'sent'
    ACCEPTED = 'accepted'
    REJECTED = 'rejected'
    EXPIRED = 'expired'


QUOTE_STATUSES = tuple(s.value for s in QuoteStatus)


def is_valid_status(value: Any) -> bool:
    """Check whether value names one of the quote statuses."""
    if isinstance(value, QuoteStatus):
        return True
    return isinstance(value, str) and value in QUOTE_STATUSES


def parse_status(value: Union[str, QuoteStatus]) -> QuoteStatus:
    """Return the QuoteStatus for value or raise InvalidStatusError."""
    if not is_valid_status(value):
        raise InvalidStatusError(value)
    return value if isinstance(value, QuoteStatus) else QuoteStatus(value)


def transition(quote: Dict[str, Any],
               target_status: Union[str, QuoteStatus],
               now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Move a quote to target_status.

    Args:
        quote: Quote-shaped mapping (see Quote.to_dict). Never mutated.
        target_status: one of QUOTE_STATUSES or a QuoteStatus member
        now: transition time, defaults to the current UTC time

    Returns:
        A new mapping with `status` replaced and, when the target is `sent`,
        `sent_at` set to `now`. Every other key is copied unchanged.

    Raises:
        InvalidStatusError: target_status is not a known status
    """
    status = parse_status(target_status)

    updated = dict(quote)
    updated['status'] = status.value
    if status is QuoteStatus.SENT:
        updated['sent_at'] = now or datetime.now(timezone.utc)
    return updated
