"""Input validation for quotes and their line items.

Validation runs before any calculation. Bad values are rejected with a
ValidationError naming the offending field; nothing is clamped or coerced.
"""
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from floowly.exceptions import ValidationError

MAX_TAX_RATE = Decimal('100')
MAX_MARKUP_PERCENTAGE = Decimal('1000')

# Scale of the numeric input columns (quantity, unit_price, tax_rate, cost helpers)
INPUT_DECIMAL_PLACES = 6


def parse_decimal(value: Any, field: str, places: int = INPUT_DECIMAL_PLACES) -> Decimal:
    """
    Parse a JSON number (or numeric string) into a finite Decimal.

    Values with more than `places` decimals are rejected so that what is
    stored is exactly what the derived amounts were computed from.
    """
    if value is None or isinstance(value, bool) or value == '':
        raise ValidationError(f'{field} must be a number', field=field)
    try:
        number = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(f'{field} must be a number', field=field)
    if not number.is_finite():
        raise ValidationError(f'{field} must be a number', field=field)
    if number != 0 and number.normalize().as_tuple().exponent < -places:
        raise ValidationError(f'{field} allows at most {places} decimals', field=field)
    return number


def optional_decimal(data: Dict[str, Any], field: str,
                     minimum: Decimal = Decimal('0'),
                     maximum: Optional[Decimal] = None,
                     places: int = INPUT_DECIMAL_PLACES) -> Optional[Decimal]:
    """Non-negative (by default) optional number; None and '' clear the field."""
    value = data.get(field)
    if value is None or value == '':
        return None
    number = parse_decimal(value, field, places)
    if number < minimum:
        raise ValidationError(f'{field} cannot be negative', field=field)
    if maximum is not None and number > maximum:
        raise ValidationError(f'{field} must be between {minimum} and {maximum}', field=field)
    return number


def parse_id(value: Any, field: str) -> int:
    """Positive integer id from an int or a string of digits; 1.5 or True are rejected."""
    if isinstance(value, bool) or value in (None, ''):
        raise ValidationError(f'{field} is required', field=field)
    if isinstance(value, int):
        number = value
    elif isinstance(value, float) and value.is_integer():
        number = int(value)
    elif isinstance(value, str) and value.strip().isdigit():
        number = int(value.strip())
    else:
        raise ValidationError(f'{field} must be an integer', field=field)
    if number <= 0:
        raise ValidationError(f'{field} must be an integer', field=field)
    return number


def parse_datetime(value: Any, field: str) -> Optional[datetime]:
    """Parse an ISO 8601 date or datetime string."""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise ValidationError(f'{field} must be an ISO 8601 date', field=field)
    try:
        # fromisoformat() only accepts a trailing Z from 3.11 on
        return datetime.fromisoformat(value.strip().replace('Z', '+00:00'))
    except ValueError:
        raise ValidationError(f'{field} must be an ISO 8601 date', field=field)


def clean_text(data: Dict[str, Any], field: str) -> Optional[str]:
    value = data[field]
    if value is not None and not isinstance(value, str):
        raise ValidationError(f'{field} must be a string', field=field)
    return value.strip() if value and value.strip() else None


def validate_line_item(data: Any, index: int = 0) -> Dict[str, Any]:
    """
    Validate one line item and return its cleaned inputs.

    Rules:
    - name: non-empty string
    - quantity: number > 0
    - unit_price: number >= 0
    - tax_rate: number in [0, 100]
    - at most INPUT_DECIMAL_PLACES decimals for each number

    Derived fields (subtotal, tax_amount, total) are dropped.

    Raises:
        ValidationError: with field set to e.g. 'items[2].quantity'
    """
    prefix = f'items[{index}]'
    if not isinstance(data, dict):
        raise ValidationError(f'{prefix} must be an object', field=prefix)

    name = data.get('name')
    if not isinstance(name, str) or not name.strip():
        raise ValidationError('Item name is required', field=f'{prefix}.name')

    quantity = parse_decimal(data.get('quantity'), f'{prefix}.quantity')
    if quantity <= 0:
        raise ValidationError('Quantity must be greater than 0', field=f'{prefix}.quantity')

    unit_price = parse_decimal(data.get('unit_price'), f'{prefix}.unit_price')
    if unit_price < 0:
        raise ValidationError('Unit price cannot be negative', field=f'{prefix}.unit_price')

    tax_rate = parse_decimal(data.get('tax_rate', 0), f'{prefix}.tax_rate')
    if tax_rate < 0 or tax_rate > MAX_TAX_RATE:
        raise ValidationError('Tax rate must be between 0 and 100', field=f'{prefix}.tax_rate')

    description = data.get('description')
    return {
        'name': name.strip(),
        'description': description.strip() if isinstance(description, str) and description.strip() else None,
        'quantity': quantity,
        'unit_price': unit_price,
        'tax_rate': tax_rate,
    }


def validate_items(items: Any) -> List[Dict[str, Any]]:
    """Validate a list of line items, preserving order. An empty list is valid."""
    if not isinstance(items, list):
        raise ValidationError('items must be a list', field='items')
    return [validate_line_item(item, index) for index, item in enumerate(items)]


def validate_quote_payload(data: Any, partial: bool = False) -> Dict[str, Any]:
    """
    Validate a quote create/update payload.

    Args:
        data: decoded JSON body
        partial: when True (updates) only keys present in data are checked
            and returned; when False title and customer_id are required and
            a missing items list means no items.

    Returns:
        Dict with cleaned values, only for keys that were supplied
        (plus required ones on create).
    """
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')

    cleaned: Dict[str, Any] = {}

    if not partial or 'title' in data:
        title = data.get('title')
        if not isinstance(title, str) or not title.strip():
            raise ValidationError('Quote title is required', field='title')
        cleaned['title'] = title.strip()

    if not partial or 'customer_id' in data:
        cleaned['customer_id'] = parse_id(data.get('customer_id'), 'customer_id')

    if 'items' in data and (partial or data['items'] is not None):
        cleaned['items'] = validate_items(data['items'])
    elif not partial:
        cleaned['items'] = []

    for field in ('description', 'notes', 'terms'):
        if field in data:
            cleaned[field] = clean_text(data, field)

    if 'hours' in data:
        cleaned['hours'] = optional_decimal(data, 'hours')
    if 'material_cost' in data:
        cleaned['material_cost'] = optional_decimal(data, 'material_cost')
    if 'markup_percentage' in data:
        cleaned['markup_percentage'] = optional_decimal(data, 'markup_percentage', maximum=MAX_MARKUP_PERCENTAGE)
    if 'expires_at' in data:
        cleaned['expires_at'] = parse_datetime(data['expires_at'], 'expires_at')

    # Checked against the known statuses by the lifecycle transition
    if 'status' in data and data['status'] is not None:
        cleaned['status'] = data['status']

    return cleaned
