"""
Unit tests for job payload validation.
"""

import pytest
from datetime import date
from decimal import Decimal

from floowly.exceptions import ValidationError
from floowly.models import Job
from floowly.services.job_service import _clean_job_data, _check_schedule, parse_date


def payload(**overrides):
    data = {
        'customer_id': 1,
        'title': 'BMW X5 Full Wrap',
        'start_date': '2026-03-22',
        'end_date': '2026-03-27',
    }
    data.update(overrides)
    return data


class TestParseDate:
    """Tests for calendar day parsing."""

    def test_plain_date_and_datetime(self):
        assert parse_date('2026-03-22', 'start_date') == date(2026, 3, 22)
        assert parse_date('2026-03-22T09:00:00Z', 'start_date') == date(2026, 3, 22)

    def test_empty_is_none(self):
        assert parse_date('', 'start_date') is None

    def test_garbage(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_date('soon', 'start_date')
        assert exc_info.value.field == 'start_date'


class TestCleanJobData:
    """Tests for job create/update payloads."""

    def test_create_payload(self):
        cleaned = _clean_job_data(payload(
            title='  Wrap  ', start_time='09:00', end_time='17:00',
            hours=40, material_cost='15000', quoted_price=31250.5,
            status='confirmed', notes='  ', quote_id='3'
        ))

        assert cleaned['title'] == 'Wrap'
        assert cleaned['start_date'] == date(2026, 3, 22)
        assert cleaned['end_date'] == date(2026, 3, 27)
        assert cleaned['start_time'] == '09:00'
        assert cleaned['hours'] == Decimal('40')
        assert cleaned['quoted_price'] == Decimal('31250.5')
        assert cleaned['status'] == 'confirmed'
        assert cleaned['notes'] is None
        assert cleaned['quote_id'] == 3

    @pytest.mark.parametrize('missing', ['customer_id', 'title', 'start_date', 'end_date'])
    def test_create_requires_fields(self, missing):
        data = payload()
        del data[missing]

        with pytest.raises(ValidationError) as exc_info:
            _clean_job_data(data)
        assert exc_info.value.field == missing

    def test_partial_only_returns_supplied_keys(self):
        assert _clean_job_data({'notes': 'Bring ladder'}, partial=True) == {'notes': 'Bring ladder'}

    @pytest.mark.parametrize('value', ['9:00', '24:00', '12:60', 900])
    def test_times_must_be_hh_mm(self, value):
        with pytest.raises(ValidationError) as exc_info:
            _clean_job_data(payload(start_time=value))
        assert exc_info.value.field == 'start_time'

    def test_unknown_status(self):
        with pytest.raises(ValidationError) as exc_info:
            _clean_job_data(payload(status='done'))
        assert exc_info.value.field == 'status'

    @pytest.mark.parametrize('field', ['hours', 'material_cost', 'quoted_price'])
    def test_amounts_cannot_be_negative(self, field):
        with pytest.raises(ValidationError) as exc_info:
            _clean_job_data(payload(**{field: -1}))
        assert exc_info.value.field == field

    def test_quoted_price_allows_cents_only(self):
        with pytest.raises(ValidationError) as exc_info:
            _clean_job_data(payload(quoted_price='100.005'))
        assert exc_info.value.field == 'quoted_price'

    def test_fractional_customer_id(self):
        with pytest.raises(ValidationError) as exc_info:
            _clean_job_data(payload(customer_id=1.5))
        assert exc_info.value.field == 'customer_id'

    def test_quote_link_can_be_cleared(self):
        assert _clean_job_data({'quote_id': None}, partial=True) == {'quote_id': None}

    def test_empty_timezone_falls_back_to_default(self):
        assert _clean_job_data({'timezone': ''}, partial=True) == {'timezone': 'Europe/Stockholm'}


class TestCheckSchedule:
    """End must not precede start."""

    def test_end_before_start(self):
        job = Job(start_date=date(2026, 3, 27), end_date=date(2026, 3, 22))

        with pytest.raises(ValidationError) as exc_info:
            _check_schedule(job)
        assert exc_info.value.field == 'end_date'

    def test_same_day_end_time_before_start_time(self):
        job = Job(start_date=date(2026, 3, 22), end_date=date(2026, 3, 22), start_time='17:00', end_time='09:00')

        with pytest.raises(ValidationError) as exc_info:
            _check_schedule(job)
        assert exc_info.value.field == 'end_time'

    def test_overnight_across_days_is_allowed(self):
        _check_schedule(Job(start_date=date(2026, 3, 22), end_date=date(2026, 3, 23), start_time='17:00', end_time='09:00'))
