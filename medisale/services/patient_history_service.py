"""Patient history recording for sales."""
import logging
from typing import Optional

from medisale.models import Patient, PatientHistory, ActionType

logger = logging.getLogger(__name__)


def record_sale_history(session, sale, actor_id: int) -> Optional[PatientHistory]:
    """
    Append the SALE entry to the patient's history.

    Company sales have no patient record and get no entry.

    Args:
        session: Database session of the enclosing unit of work
        sale: Flushed Sale with its items
        actor_id: Staff member performing the sale

    Returns:
        The PatientHistory row, or None for a company sale.
    """
    if sale.patient_id is None:
        return None

    patient = session.get(Patient, sale.patient_id)
    doctor = patient.doctor if patient else None

    details = {
        'invoiceNumber': sale.invoice_number,
        'finalAmount': str(sale.final_amount),
        'notes': sale.notes,
        'itemCount': len(sale.items),
    }
    if doctor is not None:
        details['responsibleDoctor'] = {'id': doctor.id, 'name': doctor.full_name}

    entry = PatientHistory(
        patient_id=sale.patient_id,
        action_type=ActionType.SALE,
        performed_by_id=actor_id,
        related_item_id=sale.id,
        related_item_type='sale',
        details=details
    )
    session.add(entry)

    logger.info(f"Patient history SALE recorded for patient {sale.patient_id} (sale {sale.invoice_number})")
    return entry
