"""
Unit tests for quote money calculations.
"""

from decimal import Decimal

from floowly.services.quote_calculator import (
    compute_item_totals,
    compute_quote_totals,
    compute_profit_estimate,
    round2,
    LineTotals
)


class TestRound2:
    """Tests for two-decimal rounding."""

    def test_rounds_half_away_from_zero(self):
        assert round2('0.125') == Decimal('0.13')
        assert round2('0.135') == Decimal('0.14')
        assert round2('-0.125') == Decimal('-0.13')

    def test_floats_are_read_through_their_string_form(self):
        """2.675 is 2.67499... in binary; the string form rounds up."""
        assert round2(2.675) == Decimal('2.68')

    def test_integers_gain_two_decimals(self):
        assert round2(25000) == Decimal('25000.00')
        assert str(round2(7)) == '7.00'


class TestComputeItemTotals:
    """Tests for per-item subtotal, tax and total."""

    def test_simple_item(self):
        totals = compute_item_totals(1, 20000, 25)

        assert totals == LineTotals(Decimal('20000.00'), Decimal('5000.00'), Decimal('25000.00'))

    def test_subtotal_is_rounded_before_tax(self):
        """100.005 rounds to 100.01 first; tax is then 25.0025 -> 25.00."""
        totals = compute_item_totals(3, '33.335', 25)

        assert totals.subtotal == Decimal('100.01')
        assert totals.tax_amount == Decimal('25.00')
        assert totals.total == Decimal('125.01')

    def test_tax_is_rounded_before_total(self):
        totals = compute_item_totals(1, '9.99', 25)

        assert totals.subtotal == Decimal('9.99')
        assert totals.tax_amount == Decimal('2.50')
        assert totals.total == Decimal('12.49')

    def test_fractional_quantity(self):
        totals = compute_item_totals('2.5', '19.99', 12)

        assert totals.subtotal == Decimal('49.98')
        assert totals.tax_amount == Decimal('6.00')
        assert totals.total == Decimal('55.98')

    def test_zero_tax_and_zero_price(self):
        assert compute_item_totals(4, '12.50', 0) == LineTotals(Decimal('50.00'), Decimal('0.00'), Decimal('50.00'))
        assert compute_item_totals(4, 0, 25) == LineTotals(Decimal('0.00'), Decimal('0.00'), Decimal('0.00'))

    def test_float_inputs_have_no_binary_noise(self):
        totals = compute_item_totals(3, 0.1, 0)

        assert totals.subtotal == Decimal('0.30')

    def test_total_is_subtotal_plus_tax(self):
        for quantity, price, rate in [(1, '0.01', 25), (7, '13.37', '12.5'), ('0.333', '99.99', 6)]:
            totals = compute_item_totals(quantity, price, rate)
            assert totals.total == totals.subtotal + totals.tax_amount

    def test_is_deterministic(self):
        assert compute_item_totals('1.5', '33.33', 25) == compute_item_totals('1.5', '33.33', 25)


class TestComputeQuoteTotals:
    """Tests for aggregating item totals into quote totals."""

    def test_empty_items_give_zeros(self):
        totals = compute_quote_totals([])

        assert totals == LineTotals(Decimal('0.00'), Decimal('0.00'), Decimal('0.00'))

    def test_sums_demo_wrap_items(self):
        items = [compute_item_totals(1, 20000, 25), compute_item_totals(1, 5000, 25)]

        totals = compute_quote_totals(items)

        assert totals.subtotal == Decimal('25000.00')
        assert totals.tax_amount == Decimal('6250.00')
        assert totals.total == Decimal('31250.00')

    def test_sums_rounded_parts_not_raw_products(self):
        """Two items of 10.005 give 10.01 + 10.01 = 20.02 (raw sum would round to 20.01)."""
        items = [compute_item_totals(1, '10.005', 0), compute_item_totals(1, '10.005', 0)]

        assert compute_quote_totals(items).subtotal == Decimal('20.02')

    def test_accepts_mappings_and_objects(self):
        class Row:
            subtotal = Decimal('10.00')
            tax_amount = Decimal('2.50')
            total = Decimal('12.50')

        mapping = {'subtotal': '5.00', 'tax_amount': '0', 'total': '5.00'}

        totals = compute_quote_totals([Row(), mapping])

        assert totals == LineTotals(Decimal('15.00'), Decimal('2.50'), Decimal('17.50'))

    def test_accepts_a_generator(self):
        totals = compute_quote_totals(compute_item_totals(1, price, 25) for price in (100, 200))

        assert totals.total == Decimal('375.00')


class TestComputeProfitEstimate:
    """Tests for the markup-based profit estimate."""

    def test_demo_wrap_profit(self):
        assert compute_profit_estimate(Decimal('25000.00'), 15000, 50) == Decimal('20000.00')

    def test_rounds_to_two_decimals(self):
        assert compute_profit_estimate('10.00', '0.01', '33.3') == Decimal('3.33')

    def test_missing_inputs_give_none(self):
        assert compute_profit_estimate(100, None, 50) is None
        assert compute_profit_estimate(100, 20, None) is None

    def test_zero_markup(self):
        assert compute_profit_estimate(100, 20, 0) == Decimal('0.00')
