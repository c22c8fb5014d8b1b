"""
Quote calculator: monetary totals for quote line items and whole quotes.

Every function here is pure. Amounts are handled as Decimal and rounded to
two decimals half away from zero at each step:

    subtotal   = round2(quantity * unit_price)
    tax_amount = round2(subtotal * tax_rate / 100)
    total      = round2(subtotal + tax_amount)

Quote totals are sums of the already-rounded item values, each sum rounded
again. Input validation happens earlier (see quote_validation).
"""
from collections import namedtuple
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Iterable, Optional, Union

Number = Union[int, float, str, Decimal]

CENT = Decimal('0.01')
HUNDRED = Decimal('100')
ZERO = Decimal('0.00')

LineTotals = namedtuple('LineTotals', ['subtotal', 'tax_amount', 'total'])


def to_decimal(value: Number) -> Decimal:
    """Convert a number to Decimal through its string form (no binary float noise)."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round2(value: Number) -> Decimal:
    """Round to 2 decimal places, half away from zero."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def compute_item_totals(quantity: Number, unit_price: Number, tax_rate: Number) -> LineTotals:
    """
    Compute subtotal, tax and total for one line item.

    The subtotal is rounded before the tax is derived from it, and the tax is
    rounded before the total is summed.
    """
    subtotal = round2(to_decimal(quantity) * to_decimal(unit_price))
    tax_amount = round2(subtotal * to_decimal(tax_rate) / HUNDRED)
    total = round2(subtotal + tax_amount)
    return LineTotals(subtotal, tax_amount, total)


def _field(item: Any, name: str) -> Decimal:
    if isinstance(item, dict):
        value = item[name]
    else:
        value = getattr(item, name)
    return to_decimal(value)


def compute_quote_totals(items: Iterable[Any]) -> LineTotals:
    """
    Aggregate per-item totals into quote totals.

    Accepts LineTotals, mappings or objects (e.g. QuoteLine rows) exposing
    subtotal, tax_amount and total. An empty sequence yields zeros.
    """
    subtotal = tax_amount = total = ZERO
    for item in items:
        subtotal += _field(item, 'subtotal')
        tax_amount += _field(item, 'tax_amount')
        total += _field(item, 'total')
    return LineTotals(round2(subtotal), round2(tax_amount), round2(total))


def compute_profit_estimate(subtotal: Number,
                            material_cost: Optional[Number],
                            markup_percentage: Optional[Number]) -> Optional[Decimal]:
    """(subtotal + material_cost) * markup_percentage / 100, or None if either input is missing."""
    if material_cost is None or markup_percentage is None:
        return None
    base = to_decimal(subtotal) + to_decimal(material_cost)
    return round2(base * to_decimal(markup_percentage) / HUNDRED)
