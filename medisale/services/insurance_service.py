"""
CNAM insurance dossier management.

Dossiers are opened at sale time for every insurance instrument carrying a
dossier number, then move through the CNAM workflow:

    EN_ATTENTE_APPROBATION -> APPROUVE -> EN_COURS -> TERMINE
    EN_ATTENTE_APPROBATION | APPROUVE -> REFUSE

Every status change appends a DossierStepHistory row; the history is the only
record of who changed what and when.
"""
import logging
from decimal import Decimal
from typing import List, Optional, Tuple

from medisale.database import unit_of_work
from medisale.exceptions import InvalidTransitionError, NotFoundError, ValidationError
from medisale.models import InsuranceDossier, DossierStepHistory, CNAMBondType, CNAMStatus

logger = logging.getLogger(__name__)

DEFAULT_BOND_TYPE = CNAMBondType.AUTRE
DEFAULT_STATUS = CNAMStatus.EN_ATTENTE_APPROBATION
DEFAULT_TOTAL_STEPS = 7
CREATION_NOTE = 'Dossier créé lors de la vente'

ALLOWED_TRANSITIONS = {
    CNAMStatus.EN_ATTENTE_APPROBATION: {CNAMStatus.APPROUVE, CNAMStatus.REFUSE},
    CNAMStatus.APPROUVE: {CNAMStatus.EN_COURS, CNAMStatus.REFUSE},
    CNAMStatus.EN_COURS: {CNAMStatus.TERMINE},
    CNAMStatus.TERMINE: set(),
    CNAMStatus.REFUSE: set(),
}

CENT = Decimal('0.01')


def coerce_bond_type(value) -> CNAMBondType:
    """Known bond type (case-insensitive), else AUTRE."""
    if isinstance(value, CNAMBondType):
        return value
    if isinstance(value, str):
        try:
            return CNAMBondType(value.strip().upper())
        except ValueError:
            pass
    if value not in (None, ''):
        logger.warning(f"Unknown CNAM bond type {value!r}, using {DEFAULT_BOND_TYPE.value}")
    return DEFAULT_BOND_TYPE


def coerce_status(value) -> CNAMStatus:
    """Known dossier status (case-insensitive), else EN_ATTENTE_APPROBATION."""
    if isinstance(value, CNAMStatus):
        return value
    if isinstance(value, str):
        try:
            return CNAMStatus(value.strip().upper())
        except ValueError:
            pass
    if value not in (None, ''):
        logger.warning(f"Unknown CNAM dossier status {value!r}, using {DEFAULT_STATUS.value}")
    return DEFAULT_STATUS


def parse_status(value) -> CNAMStatus:
    """Strict variant used for explicit status changes."""
    if isinstance(value, CNAMStatus):
        return value
    try:
        return CNAMStatus(str(value).strip().upper())
    except ValueError:
        raise ValidationError(
            'Statut de dossier invalide',
            [{'field': 'status', 'message': f'Valeurs possibles: {", ".join(s.value for s in CNAMStatus)}'}]
        )


def compute_claim_amounts(instrument) -> Tuple[Decimal, Decimal, Decimal]:
    """
    Bond amount, device price and complement for an insurance instrument.

    The complement is always recomputed as device price minus bond amount;
    a caller-supplied complement only fills in a missing device price.
    """
    claim = instrument.claim

    bond_amount = claim.bond_amount if claim and claim.bond_amount is not None else instrument.amount
    supplied_complement = claim.complement_amount if claim else None

    if claim and claim.device_price is not None:
        device_price = claim.device_price
    elif supplied_complement is not None:
        device_price = bond_amount + supplied_complement
    else:
        device_price = bond_amount

    bond_amount = Decimal(bond_amount).quantize(CENT)
    device_price = Decimal(device_price).quantize(CENT)
    complement = device_price - bond_amount

    if supplied_complement is not None and abs(Decimal(supplied_complement) - complement) > CENT:
        logger.warning(
            f"Supplied complement {supplied_complement} ignored, recomputed {complement} "
            f"(device {device_price} - bond {bond_amount})"
        )
    if complement < 0:
        logger.warning(f"Negative CNAM complement {complement}: bond {bond_amount} exceeds device price {device_price}")

    return bond_amount, device_price, complement


def append_step_history(
    session,
    dossier: InsuranceDossier,
    actor_id: int,
    notes: Optional[str] = None,
    previous_status: Optional[CNAMStatus] = None
) -> DossierStepHistory:
    """Record the step/status the dossier just moved to."""
    entry = DossierStepHistory(
        step=dossier.current_step,
        status=dossier.status,
        previous_status=previous_status,
        changed_by_id=actor_id,
        notes=notes
    )
    dossier.step_history.append(entry)
    session.add(entry)
    return entry


def create_dossiers_for_sale(
    session,
    sale,
    allocation,
    actor_id: int,
    total_steps: Optional[int] = None
) -> List[InsuranceDossier]:
    """
    Open one CNAM dossier per insurance instrument carrying a dossier number.

    Args:
        session: Database session of the enclosing unit of work
        sale: Flushed Sale (id and patient_id required)
        allocation: PaymentAllocation from the payment allocator, or None
        actor_id: Staff member recorded on the history row
        total_steps: Default step count when the claim does not say

    Returns:
        The created dossiers (possibly empty).
    """
    if allocation is None:
        return []

    dossiers = []
    for entry in allocation.insurance_entries():
        instrument = entry.instrument
        dossier_number = instrument.resolved_dossier_number
        if not dossier_number:
            logger.info(f"Insurance payment on sale {sale.id} has no dossier number, no dossier opened")
            continue

        if sale.patient_id is None:
            raise ValidationError(
                'Un dossier CNAM nécessite un patient',
                [{'field': 'payment', 'message': 'Un dossier CNAM nécessite un patient, pas une société'}]
            )

        claim = instrument.claim
        bond_amount, device_price, complement = compute_claim_amounts(instrument)
        steps = (claim.total_steps if claim and claim.total_steps else None) or total_steps or DEFAULT_TOTAL_STEPS
        current_step = min(claim.current_step if claim and claim.current_step else 1, steps)

        dossier = InsuranceDossier(
            dossier_number=dossier_number,
            bond_type=coerce_bond_type(claim.bond_type if claim else None),
            bond_amount=bond_amount,
            device_price=device_price,
            complement_amount=complement,
            current_step=current_step,
            total_steps=steps,
            status=coerce_status(claim.status if claim else None),
            notes=(claim.notes if claim else None) or instrument.notes,
            sale_id=sale.id,
            patient_id=sale.patient_id,
            payment_detail_id=entry.detail.id
        )
        session.add(dossier)
        append_step_history(session, dossier, actor_id, CREATION_NOTE)
        dossiers.append(dossier)

        logger.info(
            f"CNAM dossier {dossier_number} opened for sale {sale.invoice_number} "
            f"({dossier.bond_type.value}, {dossier.status.value})"
        )

    if dossiers:
        session.flush()
    return dossiers


def can_transition(current: CNAMStatus, new: CNAMStatus) -> bool:
    return new in ALLOWED_TRANSITIONS.get(current, set())


def advance_dossier(
    session,
    dossier_id: int,
    new_status,
    actor_id: int,
    step: Optional[int] = None,
    notes: Optional[str] = None
) -> InsuranceDossier:
    """
    Move a dossier to a new status and append the history row.

    The step defaults to the next one (capped at total_steps); TERMINE jumps
    to the last step and REFUSE keeps the current one.

    Raises:
        NotFoundError: unknown dossier
        ValidationError: unknown status or step out of range
        InvalidTransitionError: transition not allowed from the current status
    """
    target = parse_status(new_status)

    with unit_of_work(session):
        dossier = session.get(InsuranceDossier, dossier_id, with_for_update=True)
        if dossier is None:
            raise NotFoundError('Dossier CNAM introuvable')

        previous = dossier.status
        if not can_transition(previous, target):
            raise InvalidTransitionError(previous.value, target.value)

        if step is not None:
            if not 1 <= step <= dossier.total_steps:
                raise ValidationError(
                    'Étape invalide',
                    [{'field': 'step', 'message': f'Doit être comprise entre 1 et {dossier.total_steps}'}]
                )
            dossier.current_step = step
        elif target is CNAMStatus.TERMINE:
            dossier.current_step = dossier.total_steps
        elif target is not CNAMStatus.REFUSE:
            dossier.current_step = min(dossier.current_step + 1, dossier.total_steps)

        dossier.status = target
        append_step_history(session, dossier, actor_id, notes, previous_status=previous)

    logger.info(f"CNAM dossier {dossier.dossier_number}: {previous.value} -> {target.value} (step {dossier.current_step})")
    return dossier


def get_dossier_history(session, dossier_id: int) -> List[DossierStepHistory]:
    """History rows of a dossier, oldest first."""
    dossier = session.get(InsuranceDossier, dossier_id)
    if dossier is None:
        raise NotFoundError('Dossier CNAM introuvable')

    return session.query(DossierStepHistory).filter(
        DossierStepHistory.dossier_id == dossier_id
    ).order_by(DossierStepHistory.changed_at, DossierStepHistory.id).all()
