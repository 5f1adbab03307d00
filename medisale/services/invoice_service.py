"""
Invoice number allocation for sales.

Numbers encode the creation second (YYYYMMDD-HHMMSS). A zero-padded suffix
(-001, -002, ...) is appended only when that value is already taken, so ids
stay short and sortable. Must run inside the sale's unit of work.
"""
import logging
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.exc import IntegrityError

from medisale.exceptions import IdentifierExhaustedError
from medisale.models import Sale

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 100
SUFFIX_WIDTH = 3


def format_invoice_number(moment: datetime, attempt: int = 0) -> str:
    """Candidate number for the given attempt (0 = no suffix)."""
    base = moment.strftime('%Y%m%d-%H%M%S')
    if attempt == 0:
        return base
    return f'{base}-{attempt:0{SUFFIX_WIDTH}d}'


def invoice_number_exists(session, invoice_number: str) -> bool:
    """Check for an existing sale with this number in the current transaction."""
    return session.query(Sale.id).filter(
        Sale.invoice_number == invoice_number
    ).first() is not None


def _is_invoice_collision(error: IntegrityError) -> bool:
    """True when the violation is the unique index on sale.invoice_number."""
    orig = getattr(error, 'orig', None)
    code = getattr(orig, 'pgcode', None) or getattr(orig, 'sqlstate', None)
    message = str(orig if orig is not None else error).lower()

    is_unique = code == '23505' or 'unique' in message or 'duplicate' in message
    return is_unique and 'invoice_number' in message


def insert_sale_with_invoice_number(
    session,
    build_sale: Callable[[str], Sale],
    moment: datetime,
    max_attempts: Optional[int] = None
) -> Sale:
    """
    Insert a sale under the first free invoice number.

    Each candidate is checked against the store, then inserted inside a
    SAVEPOINT. A uniqueness violation on the invoice number at insert time
    (a concurrent sale took it between check and insert) rolls back only the
    savepoint and moves on to the next suffix.

    Args:
        session: Database session of the enclosing unit of work
        build_sale: Factory returning a new, unsaved Sale for a given number
        moment: Creation timestamp encoded in the number
        max_attempts: Hard cap on candidates (default 100)

    Returns:
        The flushed Sale.

    Raises:
        IdentifierExhaustedError: if every candidate collided.
    """
    max_attempts = max_attempts or MAX_ATTEMPTS

    for attempt in range(max_attempts):
        candidate = format_invoice_number(moment, attempt)

        if invoice_number_exists(session, candidate):
            continue

        sale = build_sale(candidate)
        try:
            with session.begin_nested():
                session.add(sale)
        except IntegrityError as e:
            if not _is_invoice_collision(e):
                raise
            logger.warning(f"Invoice number {candidate} taken at insert, retrying (attempt {attempt + 1})")
            continue

        if attempt:
            logger.info(f"Invoice number {candidate} allocated after {attempt + 1} attempts")
        return sale

    logger.error(f"Could not allocate an invoice number for {moment.isoformat()} after {max_attempts} attempts")
    raise IdentifierExhaustedError(max_attempts)
