"""
Sale transaction service.
Validates a point-of-sale submission and persists sale, items, payment,
CNAM dossiers, inventory effects and patient history in one unit of work.
"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional, Union

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from medisale.database import unit_of_work
from medisale.exceptions import (
    SaleError, ValidationError, DuplicateDataError, InvalidReferenceError,
    MissingFieldsError, TransactionFailedError
)
from medisale.models import Sale, SaleItem
from medisale.schemas.sale import SaleSubmission, ProductItem, parse_sale_submission
from medisale.services.invoice_service import insert_sale_with_invoice_number
from medisale.services.payment_service import allocate_payment
from medisale.services.inventory_service import apply_inventory_effects
from medisale.services.insurance_service import create_dossiers_for_sale
from medisale.services.patient_history_service import record_sale_history

logger = logging.getLogger(__name__)

CENT = Decimal('0.01')

# SQLSTATE codes (PostgreSQL)
UNIQUE_VIOLATION = '23505'
FOREIGN_KEY_VIOLATION = '23503'
NOT_NULL_VIOLATION = '23502'


def create_sale(
    session,
    payload: Union[SaleSubmission, dict, Any],
    actor_id: Optional[int],
    now: Optional[datetime] = None,
    max_attempts: Optional[int] = None,
    total_steps: Optional[int] = None,
    currency: str = 'DT'
) -> Sale:
    """
    Create a sale with full transactional processing.

    The payment row is written before the sale because the sale holds the
    foreign key to it. The invoice number is chosen as part of the sale
    insert itself, so a number is only consumed by a sale that lands.
    All steps share one unit of work and commit or roll back together.

    Args:
        session: Database session
        payload: Raw submission dict or an already validated SaleSubmission
        actor_id: Authenticated staff member (default processor, dossier/history actor)
        now: Creation timestamp, encoded in the invoice number (defaults to now)
        max_attempts: Invoice number attempt cap
        total_steps: Default CNAM step count
        currency: Label used in payment references

    Returns:
        The committed Sale with its items.

    Raises:
        ValidationError: invalid submission, nothing written
        SaleError: any failure inside the unit of work, everything rolled back
    """
    # 1. Validate at the boundary, before any write
    if isinstance(payload, SaleSubmission):
        submission = payload
    else:
        try:
            submission = parse_sale_submission(payload)
        except ValidationError as e:
            logger.warning(f"Sale submission rejected: {e.errors}")
            raise

    processed_by_id = submission.processed_by_id or actor_id
    if processed_by_id is None:
        raise ValidationError(errors=[{'field': 'processedById', 'message': 'Utilisateur responsable requis'}])
    actor_id = actor_id or processed_by_id

    created_at = now or datetime.now()

    # Stored amounts; payment status is judged against these, not the submitted final
    total_amount = Decimal(submission.total_amount).quantize(CENT)
    discount = Decimal(submission.discount or 0).quantize(CENT)
    final_amount = total_amount - discount

    try:
        with unit_of_work(session):
            # 2. Payment and its per-instrument breakdown, flushed first so the
            #    sale can reference it from inside the invoice-number savepoint
            allocation = allocate_payment(
                session, submission.payment, final_amount,
                paid_at=created_at, currency=currency
            )

            # 3. Sale + items under a unique invoice number
            sale = insert_sale_with_invoice_number(
                session,
                lambda invoice_number: _build_sale(
                    invoice_number, submission, processed_by_id, created_at,
                    total_amount, discount,
                    allocation.payment.id if allocation else None
                ),
                created_at,
                max_attempts
            )

            # 4. Stock decrements and device hand-over
            apply_inventory_effects(session, sale)

            # 5. CNAM dossiers for insurance instruments
            create_dossiers_for_sale(session, sale, allocation, actor_id, total_steps)

            # 6. Patient history
            record_sale_history(session, sale, actor_id)

            session.flush()

    except SaleError as e:
        logger.warning(f"Sale creation aborted ({e.category}): {e.message}")
        raise
    except IntegrityError as e:
        error = classify_integrity_error(e)
        logger.warning(f"Sale creation aborted by the database ({error.category}): {e.orig}")
        raise error from e
    except SQLAlchemyError as e:
        logger.exception("Database error while creating sale")
        raise TransactionFailedError(detail=str(e)) from e
    except Exception as e:
        logger.exception("Unexpected error while creating sale")
        raise TransactionFailedError(detail=str(e)) from e

    logger.info(
        f"Sale {sale.invoice_number} created: {len(sale.items)} item(s), "
        f"final {sale.final_amount}, payment {sale.payment.status.value if sale.payment else 'none'}"
    )
    return sale


def classify_integrity_error(error: IntegrityError) -> SaleError:
    """Map a database constraint violation to a user-facing error category."""
    orig = getattr(error, 'orig', None)
    code = getattr(orig, 'pgcode', None) or getattr(orig, 'sqlstate', None)
    message = str(orig if orig is not None else error)
    lowered = message.lower()

    if code == UNIQUE_VIOLATION or 'unique' in lowered or 'duplicate' in lowered:
        return DuplicateDataError(detail=message)
    if code == FOREIGN_KEY_VIOLATION or 'foreign key' in lowered:
        return InvalidReferenceError(detail=message)
    if code == NOT_NULL_VIOLATION or 'not null' in lowered or 'null value' in lowered:
        return MissingFieldsError(detail=message)
    return TransactionFailedError(detail=message)


# =====================================================
# PRIVATE HELPERS
# =====================================================

def _build_sale(
    invoice_number: str,
    submission: SaleSubmission,
    processed_by_id: int,
    created_at: datetime,
    total_amount: Decimal,
    discount: Decimal,
    payment_id: Optional[int]
) -> Sale:
    """Unsaved Sale with its items for one invoice number candidate."""
    sale = Sale(
        invoice_number=invoice_number,
        sale_date=submission.sale_date or created_at,
        total_amount=total_amount,
        discount=discount,
        final_amount=total_amount - discount,
        status=submission.status,
        notes=submission.notes,
        patient_id=submission.patient_id,
        company_id=submission.company_id,
        processed_by_id=processed_by_id,
        payment_id=payment_id
    )

    for item in submission.items:
        sale.items.append(SaleItem(
            product_id=item.product_id if isinstance(item, ProductItem) else None,
            medical_device_id=None if isinstance(item, ProductItem) else item.medical_device_id,
            quantity=item.quantity,
            unit_price=Decimal(item.unit_price).quantize(CENT),
            discount=Decimal(item.discount).quantize(CENT),
            item_total=Decimal(item.item_total).quantize(CENT),
            serial_number=item.serial_number,
            warranty=item.warranty
        ))

    return sale
