"""
Unit tests for sale submission validation.
No database needed: validation runs before any write.
"""

import pytest
from decimal import Decimal

from medisale.exceptions import ValidationError
from medisale.models import PaymentClassification, PaymentMethod, SaleStatus
from medisale.schemas.sale import (
    parse_sale_submission, ProductItem, DeviceItem, CashPayment, ChequePayment,
    InsurancePayment, PromissoryNotePayment, DraftPayment, TransferPayment
)


def _payload(**overrides):
    payload = {
        'patientId': 1,
        'items': [{'productId': 7, 'quantity': 1, 'unitPrice': 500, 'itemTotal': 500}],
        'totalAmount': 500,
        'finalAmount': 450,
        'discount': 50,
    }
    payload.update(overrides)
    return payload


def _fields(error):
    return [e['field'] for e in error.errors]


class TestClientReference:
    """Exactly one of patient and company."""

    def test_patient_only_is_valid(self):
        submission = parse_sale_submission(_payload())
        assert submission.patient_id == 1
        assert submission.company_id is None

    def test_company_only_is_valid(self):
        submission = parse_sale_submission(_payload(patientId=None, companyId=3))
        assert submission.company_id == 3

    def test_neither_client_is_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_sale_submission(_payload(patientId=None))

        error = exc_info.value
        assert error.status_code == 400
        assert error.category == 'validation'
        assert 'Un patient ou une société (et un seul) doit être fourni' in [e['message'] for e in error.errors]

    def test_both_clients_are_rejected(self):
        with pytest.raises(ValidationError):
            parse_sale_submission(_payload(companyId=3))

    def test_empty_string_id_counts_as_missing(self):
        submission = parse_sale_submission(_payload(companyId=''))
        assert submission.company_id is None


class TestItems:
    """Item kinds and line totals."""

    def test_empty_items_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_sale_submission(_payload(items=[]))
        assert 'Au moins un article est requis' in [e['message'] for e in exc_info.value.errors]

    def test_product_and_device_items_are_told_apart(self):
        submission = parse_sale_submission(_payload(
            items=[
                {'productId': 7, 'quantity': 2, 'unitPrice': 100, 'itemTotal': 200},
                {'medicalDeviceId': 9, 'quantity': 1, 'unitPrice': 300, 'itemTotal': 300,
                 'serialNumber': 'SN-9', 'warranty': '2 ans'},
            ],
        ))

        product_item, device_item = submission.items
        assert isinstance(product_item, ProductItem)
        assert isinstance(device_item, DeviceItem)
        assert device_item.serial_number == 'SN-9'
        assert submission.product_items == [product_item]
        assert submission.device_items == [device_item]

    def test_item_with_both_references_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_sale_submission(_payload(items=[
                {'productId': 7, 'medicalDeviceId': 9, 'quantity': 1, 'unitPrice': 500, 'itemTotal': 500}
            ]))
        assert any(f.startswith('items.0') for f in _fields(exc_info.value))

    def test_item_without_reference_rejected(self):
        with pytest.raises(ValidationError):
            parse_sale_submission(_payload(items=[{'quantity': 1, 'unitPrice': 500, 'itemTotal': 500}]))

    @pytest.mark.parametrize('quantity', [0, -1])
    def test_non_positive_quantity_rejected(self, quantity):
        with pytest.raises(ValidationError):
            parse_sale_submission(_payload(items=[
                {'productId': 7, 'quantity': quantity, 'unitPrice': 500, 'itemTotal': 0}
            ]))

    def test_item_total_must_match_quantity_price_and_discount(self):
        with pytest.raises(ValidationError):
            parse_sale_submission(_payload(items=[
                {'productId': 7, 'quantity': 2, 'unitPrice': 100, 'itemTotal': 150}
            ]))

    def test_item_discount_is_subtracted(self):
        submission = parse_sale_submission(_payload(items=[
            {'productId': 7, 'quantity': 2, 'unitPrice': 100, 'discount': 20, 'itemTotal': 180}
        ], totalAmount=180, finalAmount=180, discount=0))
        assert submission.items[0].item_total == Decimal('180')

    def test_snake_case_keys_accepted(self):
        submission = parse_sale_submission({
            'patient_id': 1,
            'items': [{'product_id': 7, 'quantity': 1, 'unit_price': 500, 'item_total': 500}],
            'total_amount': 500,
            'final_amount': 500,
        })
        assert submission.items[0].product_id == 7


class TestAmounts:
    """Totals, discount and final amount."""

    def test_missing_total_rejected(self):
        payload = _payload()
        del payload['totalAmount']
        with pytest.raises(ValidationError) as exc_info:
            parse_sale_submission(payload)
        assert 'totalAmount' in _fields(exc_info.value)

    def test_non_numeric_final_rejected(self):
        with pytest.raises(ValidationError):
            parse_sale_submission(_payload(finalAmount='beaucoup'))

    def test_discount_derived_when_omitted(self):
        payload = _payload()
        del payload['discount']
        submission = parse_sale_submission(payload)
        assert submission.discount == Decimal('50')

    def test_inconsistent_discount_rejected(self):
        with pytest.raises(ValidationError):
            parse_sale_submission(_payload(discount=20))

    def test_final_above_total_rejected_when_discount_omitted(self):
        payload = _payload(finalAmount=600)
        del payload['discount']
        with pytest.raises(ValidationError):
            parse_sale_submission(payload)

    def test_amounts_as_strings(self):
        submission = parse_sale_submission(_payload(totalAmount='500.00', finalAmount='450', discount='50'))
        assert submission.final_amount == Decimal('450')

    def test_status_defaults_to_pending_and_is_case_insensitive(self):
        assert parse_sale_submission(_payload()).status is SaleStatus.PENDING
        assert parse_sale_submission(_payload(status='completed')).status is SaleStatus.COMPLETED


class TestPaymentInstruments:
    """Closed set of payment methods."""

    def test_french_and_english_tags(self):
        submission = parse_sale_submission(_payload(payment=[
            {'type': 'especes', 'amount': 100},
            {'type': 'Cheque', 'amount': 100, 'chequeNumber': '1234', 'bankName': 'BIAT'},
            {'type': 'virement', 'amount': 50, 'reference': 'R-9'},
            {'type': 'mandat', 'amount': 50, 'mondatNumber': 'M-1', 'dueDate': '2026-12-31'},
            {'type': 'traite', 'amount': 100, 'traiteNumber': 'T-1', 'dueDate': '2026-12-31'},
            {'type': 'cnam', 'amount': 50, 'dossierNumber': 'D-001'},
        ]))

        kinds = [type(i) for i in submission.payment]
        assert kinds == [CashPayment, ChequePayment, TransferPayment,
                         PromissoryNotePayment, DraftPayment, InsurancePayment]
        assert submission.payment[1].cheque_number == '1234'
        assert submission.payment[3].due_date.isoformat() == '2026-12-31'

    def test_unknown_method_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_sale_submission(_payload(payment=[{'type': 'bitcoin', 'amount': 450}]))
        assert any(f.startswith('payment.0') for f in _fields(exc_info.value))

    def test_zero_amount_rejected(self):
        with pytest.raises(ValidationError):
            parse_sale_submission(_payload(payment=[{'type': 'cash', 'amount': 0}]))

    def test_missing_payment_means_no_instruments(self):
        assert parse_sale_submission(_payload()).payment == []
        assert parse_sale_submission(_payload(payment=None)).payment == []

    def test_legacy_payments_object(self):
        submission = parse_sale_submission(_payload(payment={
            'payments': [{'type': 'cash', 'amount': 200}, {'type': 'cash', 'amount': 250}]
        }))
        assert [i.amount for i in submission.payment] == [Decimal('200'), Decimal('250')]

    def test_single_instrument_object(self):
        submission = parse_sale_submission(_payload(payment={'type': 'cash', 'amount': 450}))
        assert len(submission.payment) == 1

    def test_classification_aliases(self):
        submission = parse_sale_submission(_payload(payment=[
            {'type': 'cash', 'amount': 200, 'classification': 'principale'},
            {'type': 'cash', 'amount': 250, 'classification': 'complement'},
        ]))
        assert submission.payment[0].classification is PaymentClassification.PRINCIPAL
        assert submission.payment[1].classification is PaymentClassification.COMPLEMENTARY

    def test_unknown_classification_rejected(self):
        with pytest.raises(ValidationError):
            parse_sale_submission(_payload(payment=[{'type': 'cash', 'amount': 450, 'classification': 'bonus'}]))

    def test_method_data_keeps_every_submitted_field(self):
        submission = parse_sale_submission(_payload(payment=[
            {'type': 'cheque', 'amount': 450, 'chequeNumber': '1234', 'bankName': 'BIAT', 'memo': 'acompte'}
        ]))
        data = submission.payment[0].method_data()

        assert data['type'] == PaymentMethod.CHEQUE.value
        assert data['chequeNumber'] == '1234'
        assert data['bankName'] == 'BIAT'
        assert data['memo'] == 'acompte'


class TestInsuranceClaim:
    """CNAM claim block on insurance instruments."""

    def test_nested_claim_block(self):
        submission = parse_sale_submission(_payload(payment=[{
            'type': 'insurance',
            'amount': 450,
            'cnamInfo': {'bondType': 'CPAP', 'bondAmount': 450, 'devicePrice': 500, 'dossierNumber': 'D-77'},
        }]))
        instrument = submission.payment[0]

        assert instrument.claim.bond_type == 'CPAP'
        assert instrument.claim.device_price == Decimal('500')
        assert instrument.resolved_dossier_number == 'D-77'

    def test_flat_claim_fields_are_lifted(self):
        submission = parse_sale_submission(_payload(payment=[
            {'type': 'cnam', 'amount': 450, 'dossierNumber': 'D-001', 'bondType': 'masque'}
        ]))
        instrument = submission.payment[0]

        assert instrument.claim.bond_type == 'masque'
        assert instrument.resolved_dossier_number == 'D-001'

    def test_blank_dossier_number_resolves_to_none(self):
        submission = parse_sale_submission(_payload(payment=[
            {'type': 'cnam', 'amount': 450, 'dossierNumber': '   '}
        ]))
        assert submission.payment[0].resolved_dossier_number is None

    def test_company_sale_cannot_open_a_dossier(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_sale_submission(_payload(patientId=None, companyId=3, payment=[
                {'type': 'cnam', 'amount': 450, 'dossierNumber': 'D-001'}
            ]))
        assert 'Un dossier CNAM nécessite un patient, pas une société' in [e['message'] for e in exc_info.value.errors]


def test_non_dict_payload_rejected():
    with pytest.raises(ValidationError) as exc_info:
        parse_sale_submission(None)
    assert exc_info.value.message == 'Aucune donnée de vente fournie'
