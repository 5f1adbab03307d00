"""Sales blueprint: point-of-sale submission and sale read-back."""
from collections import OrderedDict
from decimal import Decimal
from typing import Optional

from flask import Blueprint, request, jsonify, current_app, g
from sqlalchemy.orm import selectinload

from medisale.database import get_session
from medisale.exceptions import NotFoundError, SaleError
from medisale.middleware import require_login
from medisale.models import Sale, PaymentMethod, PaymentClassification
from medisale.services.sales_service import create_sale
from medisale.blueprints.metrics import record_sale_created, record_sale_failed
from medisale.utils.formatters import datetime_iso

sales_bp = Blueprint('sales', __name__, url_prefix='/api/sales')

METHOD_LABELS = {
    PaymentMethod.CASH.value: 'Espèces',
    PaymentMethod.CHEQUE.value: 'Chèque',
    PaymentMethod.BANK_TRANSFER.value: 'Virement',
    PaymentMethod.PROMISSORY_NOTE.value: 'Mandat',
    PaymentMethod.INSURANCE.value: 'CNAM',
    PaymentMethod.DRAFT.value: 'Traite',
}

CLASSIFICATION_LABELS = {
    PaymentClassification.PRINCIPAL.value: 'Principal',
    PaymentClassification.COMPLEMENTARY.value: 'Complément',
}


def _amount(value) -> Optional[float]:
    if value is None:
        return None
    return float(Decimal(value))


def _enum_value(value):
    return getattr(value, 'value', value)


def _serialize_item(item) -> dict:
    return {
        'id': item.id,
        'saleId': item.sale_id,
        'productId': item.product_id,
        'medicalDeviceId': item.medical_device_id,
        'name': item.name,
        'quantity': item.quantity,
        'unitPrice': _amount(item.unit_price),
        'discount': _amount(item.discount),
        'itemTotal': _amount(item.item_total),
        'serialNumber': item.serial_number,
        'warranty': item.warranty,
    }


def _serialize_detail(detail) -> dict:
    return {
        'id': detail.id,
        'method': detail.method,
        'methodLabel': METHOD_LABELS.get(detail.method, detail.method),
        'amount': _amount(detail.amount),
        'classification': detail.classification,
        'classificationLabel': CLASSIFICATION_LABELS.get(detail.classification, detail.classification),
        'reference': detail.reference,
        'metadata': detail.method_data,
    }


def _group_details(details) -> list:
    """Payment details grouped by method, in first-seen order."""
    groups = OrderedDict()
    for detail in details:
        group = groups.get(detail.method)
        if group is None:
            group = groups[detail.method] = {
                'method': detail.method,
                'label': METHOD_LABELS.get(detail.method, detail.method),
                'total': Decimal('0'),
                'details': [],
            }
        group['total'] += Decimal(detail.amount)
        group['details'].append(_serialize_detail(detail))

    result = []
    for group in groups.values():
        group['total'] = _amount(group['total'])
        result.append(group)
    return result


def _serialize_payment(payment) -> Optional[dict]:
    if payment is None:
        return None
    return {
        'id': payment.id,
        'amount': _amount(payment.amount),
        'method': payment.method,
        'methodLabel': METHOD_LABELS.get(payment.method, payment.method),
        'status': _enum_value(payment.status),
        'paymentDate': datetime_iso(payment.payment_date),
        'dueDate': payment.due_date.isoformat() if payment.due_date else None,
        'chequeNumber': payment.cheque_number,
        'bankName': payment.bank_name,
        'referenceNumber': payment.reference_number,
        'cnamCardNumber': payment.cnam_card_number,
        'notes': payment.notes,
        'details': [_serialize_detail(d) for d in payment.details],
        'groupedDetails': _group_details(payment.details),
    }


def serialize_dossier(dossier) -> dict:
    return {
        'id': dossier.id,
        'dossierNumber': dossier.dossier_number,
        'bondType': _enum_value(dossier.bond_type),
        'bondAmount': _amount(dossier.bond_amount),
        'devicePrice': _amount(dossier.device_price),
        'complementAmount': _amount(dossier.complement_amount),
        'currentStep': dossier.current_step,
        'totalSteps': dossier.total_steps,
        'status': _enum_value(dossier.status),
        'notes': dossier.notes,
        'paymentDetailId': dossier.payment_detail_id,
    }


def serialize_sale(sale, with_details: bool = False) -> dict:
    """JSON view of a sale; with_details adds payment and dossiers."""
    data = {
        'id': sale.id,
        'invoiceNumber': sale.invoice_number,
        'saleDate': datetime_iso(sale.sale_date),
        'totalAmount': _amount(sale.total_amount),
        'discount': _amount(sale.discount),
        'finalAmount': _amount(sale.final_amount),
        'status': _enum_value(sale.status),
        'notes': sale.notes,
        'patientId': sale.patient_id,
        'companyId': sale.company_id,
        'clientType': sale.client_type,
        'clientName': sale.client_name,
        'processedById': sale.processed_by_id,
        'paymentId': sale.payment_id,
    }
    if with_details:
        data['items'] = [_serialize_item(i) for i in sale.items]
        data['payment'] = _serialize_payment(sale.payment)
        data['dossiers'] = [serialize_dossier(d) for d in sale.dossiers]
    return data


@sales_bp.route('', methods=['POST'])
@require_login
def create_sale_endpoint():
    """Submit a sale and run the whole transaction."""
    payload = request.get_json(silent=True)
    db_session = get_session()

    try:
        sale = create_sale(
            db_session,
            payload,
            actor_id=g.user_id,
            max_attempts=current_app.config.get('INVOICE_MAX_ATTEMPTS'),
            total_steps=current_app.config.get('CNAM_TOTAL_STEPS'),
            currency=current_app.config.get('CURRENCY_LABEL', 'DT')
        )
    except SaleError as e:
        record_sale_failed(e.category)
        raise

    record_sale_created(sale)

    current_app.logger.info(f"Sale {sale.invoice_number} created by user {g.user_id}")

    return jsonify({
        'message': 'Vente créée avec succès',
        'sale': serialize_sale(sale),
        'saleItems': [_serialize_item(i) for i in sale.items],
    }), 201


@sales_bp.route('/<int:sale_id>', methods=['GET'])
@require_login
def sale_detail(sale_id):
    """Read back one sale with items, grouped payment details and dossiers."""
    db_session = get_session()

    sale = db_session.query(Sale).options(
        selectinload(Sale.items),
        selectinload(Sale.dossiers),
    ).filter(Sale.id == sale_id).first()

    if not sale:
        raise NotFoundError('Vente introuvable')

    return jsonify({'sale': serialize_sale(sale, with_details=True)})
