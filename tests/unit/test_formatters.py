"""
Unit tests for formatting helpers.
"""

import pytest
from datetime import date, datetime
from decimal import Decimal

from medisale.utils.formatters import plain_amount, money_dt, date_fr, datetime_iso


@pytest.mark.parametrize('value, expected', [
    (Decimal('450.00'), '450'),
    (Decimal('150.50'), '150.5'),
    (Decimal('0.05'), '0.05'),
    (1200, '1200'),
    ('300', '300'),
    (None, '0'),
])
def test_plain_amount(value, expected):
    assert plain_amount(value) == expected


def test_money_dt():
    assert money_dt(Decimal('450.00')) == '450 DT'
    assert money_dt(80, currency='TND') == '80 TND'


@pytest.mark.parametrize('value, expected', [
    (date(2026, 12, 31), '31/12/2026'),
    (datetime(2026, 3, 5, 10, 15), '05/03/2026'),
    ('2026-12-31', '31/12/2026'),
    ('bientôt', 'bientôt'),
    (None, ''),
])
def test_date_fr(value, expected):
    assert date_fr(value) == expected


def test_datetime_iso():
    assert datetime_iso(datetime(2026, 3, 15, 10, 15)) == '2026-03-15T10:15:00'
    assert datetime_iso(None) is None
