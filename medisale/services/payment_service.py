"""
Payment allocation for sales.

Turns the submitted payment instruments into one Payment (aggregate amount,
PAID/PARTIAL status, primary instrument display fields) and one PaymentDetail
per instrument.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Sequence

from medisale.models import Payment, PaymentDetail, PaymentStatus, PaymentMethod, PaymentClassification
from medisale.schemas.sale import (
    CashPayment, ChequePayment, TransferPayment, InsurancePayment,
    PromissoryNotePayment, DraftPayment
)
from medisale.utils.formatters import money_dt, date_fr

logger = logging.getLogger(__name__)

CENT = Decimal('0.01')


@dataclass
class AllocatedInstrument:
    """A submitted instrument and the detail row created for it."""
    instrument: object
    detail: PaymentDetail
    classification: PaymentClassification


@dataclass
class PaymentAllocation:
    """Result of allocate_payment."""
    payment: Payment
    entries: List[AllocatedInstrument] = field(default_factory=list)
    primary_index: int = 0

    @property
    def primary(self) -> AllocatedInstrument:
        return self.entries[self.primary_index]

    def insurance_entries(self) -> List[AllocatedInstrument]:
        return [e for e in self.entries if e.instrument.method is PaymentMethod.INSURANCE]


def build_payment_reference(instrument, currency: str = 'DT') -> str:
    """
    Human-readable reference for one instrument.

    Examples:
        Espèces: 450 DT
        Chèque N°1234 BankX: 150 DT
        CNAM Dossier N°D-001: 300 DT
    """
    amount = money_dt(instrument.amount, currency)

    if isinstance(instrument, CashPayment):
        return f"Espèces: {amount}"

    if isinstance(instrument, ChequePayment):
        label = ' '.join(part for part in (
            f"N°{instrument.cheque_number}" if instrument.cheque_number else 'N°',
            instrument.bank_name
        ) if part)
        return f"Chèque {label}: {amount}"

    if isinstance(instrument, TransferPayment):
        return f"Virement Réf:{instrument.reference or ''}: {amount}"

    if isinstance(instrument, PromissoryNotePayment):
        return f"Mandat N°{instrument.mondat_number or ''}: {amount}"

    if isinstance(instrument, InsurancePayment):
        number = instrument.resolved_dossier_number or instrument.file_number or ''
        return f"CNAM Dossier N°{number}: {amount}"

    if isinstance(instrument, DraftPayment):
        return f"Traite Échéance:{date_fr(instrument.due_date)}: {amount}"

    return f"{instrument.method.value}: {amount}"


def resolve_classifications(instruments: Sequence) -> List[PaymentClassification]:
    """Explicit classification, else principal for the first and complementary after."""
    resolved = []
    for index, instrument in enumerate(instruments):
        if instrument.classification is not None:
            resolved.append(instrument.classification)
        elif index == 0:
            resolved.append(PaymentClassification.PRINCIPAL)
        else:
            resolved.append(PaymentClassification.COMPLEMENTARY)
    return resolved


def select_primary(classifications: Sequence[PaymentClassification]) -> int:
    """Index of the first principal instrument, or 0."""
    for index, classification in enumerate(classifications):
        if classification is PaymentClassification.PRINCIPAL:
            return index
    return 0


def payment_status_for(amount: Decimal, final_amount: Decimal) -> PaymentStatus:
    """PAID once the aggregate covers the sale's final amount."""
    return PaymentStatus.PAID if amount >= final_amount else PaymentStatus.PARTIAL


def _apply_display_fields(payment: Payment, instrument) -> None:
    """Copy the primary instrument's reference fields onto the payment."""
    payment.method = instrument.method.value
    payment.notes = instrument.notes

    if isinstance(instrument, ChequePayment):
        payment.cheque_number = instrument.cheque_number
        payment.bank_name = instrument.bank_name
    elif isinstance(instrument, TransferPayment):
        payment.reference_number = instrument.reference
    elif isinstance(instrument, PromissoryNotePayment):
        payment.reference_number = instrument.mondat_number
        payment.due_date = instrument.due_date
    elif isinstance(instrument, DraftPayment):
        payment.reference_number = instrument.traite_number
        payment.due_date = instrument.due_date
    elif isinstance(instrument, InsurancePayment):
        payment.cnam_card_number = instrument.file_number or instrument.resolved_dossier_number


def allocate_payment(
    session,
    instruments: Sequence,
    final_amount: Decimal,
    paid_at: Optional[datetime] = None,
    currency: str = 'DT'
) -> Optional[PaymentAllocation]:
    """
    Create the payment and its per-instrument details.

    Args:
        session: Database session of the enclosing unit of work
        instruments: Validated payment instruments, in submission order
        final_amount: Amount the sale requires
        paid_at: Payment timestamp (defaults to now)
        currency: Label used in reference strings

    Returns:
        PaymentAllocation, or None for an unpaid sale (no instruments).
    """
    if not instruments:
        logger.info("No payment instruments submitted, sale left unpaid")
        return None

    amounts = [Decimal(instrument.amount).quantize(CENT) for instrument in instruments]
    total_paid = sum(amounts, Decimal('0.00'))
    classifications = resolve_classifications(instruments)
    primary_index = select_primary(classifications)

    payment = Payment(
        amount=total_paid,
        status=payment_status_for(total_paid, final_amount),
        payment_date=paid_at or datetime.now()
    )
    _apply_display_fields(payment, instruments[primary_index])
    session.add(payment)

    allocation = PaymentAllocation(payment=payment, primary_index=primary_index)
    for instrument, amount, classification in zip(instruments, amounts, classifications):
        detail = PaymentDetail(
            method=instrument.method.value,
            amount=amount,
            classification=classification.value,
            reference=build_payment_reference(instrument, currency),
            method_data=instrument.method_data()
        )
        payment.details.append(detail)
        allocation.entries.append(AllocatedInstrument(instrument, detail, classification))

    session.flush()

    logger.info(
        f"Payment {payment.id} allocated: {total_paid} over {len(instruments)} instrument(s), "
        f"status {payment.status.value}"
    )
    return allocation
