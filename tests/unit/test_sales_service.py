"""
Unit tests for store error classification.
"""

import pytest
from sqlalchemy.exc import IntegrityError

from medisale.services.sales_service import classify_integrity_error


class _PgError(Exception):
    def __init__(self, message, pgcode):
        super().__init__(message)
        self.pgcode = pgcode


def _integrity(orig):
    return IntegrityError('INSERT INTO sale ...', {}, orig)


@pytest.mark.parametrize('message,category', [
    ('UNIQUE constraint failed: sale.invoice_number', 'duplicate'),
    ('FOREIGN KEY constraint failed', 'invalid_reference'),
    ('NOT NULL constraint failed: sale.processed_by_id', 'missing_fields'),
    ('CHECK constraint failed: ck_sale_amounts', 'unknown'),
])
def test_classify_by_message(message, category):
    error = classify_integrity_error(_integrity(Exception(message)))

    assert error.category == category
    assert message in error.to_dict(include_detail=True)['detail']


@pytest.mark.parametrize('pgcode,category', [
    ('23505', 'duplicate'),
    ('23503', 'invalid_reference'),
    ('23502', 'missing_fields'),
])
def test_classify_by_sqlstate(pgcode, category):
    error = classify_integrity_error(_integrity(_PgError('constraint violated', pgcode)))

    assert error.category == category
