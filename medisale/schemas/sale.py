"""
Sale submission schema.

Payloads arrive as loosely typed JSON (camelCase keys, amounts as numbers or
strings, method tags in French or English). They are validated once here into
closed variants, one model per item kind and per payment method, so the
services never re-check shapes.
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Any, ClassVar, List, Literal, Optional, Union

from pydantic import (
    AliasChoices, BaseModel, ConfigDict, Discriminator, Field, Tag,
    ValidationError as PydanticValidationError, field_validator, model_validator
)
from pydantic.alias_generators import to_camel

from medisale.exceptions import ValidationError
from medisale.models.payment import PaymentMethod, PaymentClassification
from medisale.models.sale import SaleStatus

AMOUNT_TOLERANCE = Decimal('0.01')

CLASSIFICATION_ALIASES = {
    'principal': PaymentClassification.PRINCIPAL,
    'principale': PaymentClassification.PRINCIPAL,
    'complementary': PaymentClassification.COMPLEMENTARY,
    'complement': PaymentClassification.COMPLEMENTARY,
    'complementaire': PaymentClassification.COMPLEMENTARY,
}


class _Schema(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra='ignore')


# =====================================================
# ITEMS
# =====================================================

class _ItemBase(_Schema):
    quantity: int = Field(..., gt=0)
    unit_price: Decimal = Field(..., ge=0)
    item_total: Decimal = Field(..., ge=0)
    discount: Decimal = Field(Decimal('0'), ge=0)
    serial_number: Optional[str] = None
    warranty: Optional[str] = None

    @model_validator(mode='after')
    def check_item_total(self):
        expected = self.quantity * self.unit_price - self.discount
        if abs(expected - self.item_total) > AMOUNT_TOLERANCE:
            raise ValueError(
                f'Total article incohérent: attendu {expected}, reçu {self.item_total}'
            )
        return self


class ProductItem(_ItemBase):
    """Consumable product line, decremented from stock."""
    kind: Literal['product'] = 'product'
    product_id: int


class DeviceItem(_ItemBase):
    """Medical device line, the device becomes SOLD."""
    kind: Literal['device'] = 'device'
    medical_device_id: int


def _item_kind(value: Any) -> Optional[str]:
    if isinstance(value, BaseModel):
        return getattr(value, 'kind', None)
    if not isinstance(value, dict):
        return None

    has_product = value.get('productId', value.get('product_id')) not in (None, '')
    has_device = value.get('medicalDeviceId', value.get('medical_device_id')) not in (None, '')
    if has_product == has_device:
        return None
    return 'product' if has_product else 'device'


SaleItemInput = Annotated[
    Union[Annotated[ProductItem, Tag('product')], Annotated[DeviceItem, Tag('device')]],
    Discriminator(
        _item_kind,
        custom_error_type='invalid_article',
        custom_error_message='Chaque article doit référencer soit un produit soit un appareil médical',
    ),
]


# =====================================================
# PAYMENT INSTRUMENTS
# =====================================================

class InsuranceClaim(_Schema):
    """CNAM claim block attached to an insurance instrument (cnamInfo)."""
    bond_type: Optional[str] = None
    bond_amount: Optional[Decimal] = Field(None, ge=0)
    device_price: Optional[Decimal] = Field(None, ge=0)
    complement_amount: Optional[Decimal] = None
    current_step: Optional[int] = Field(None, ge=1)
    total_steps: Optional[int] = Field(None, ge=1)
    status: Optional[str] = None
    dossier_number: Optional[str] = None
    notes: Optional[str] = None


class _InstrumentBase(_Schema):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra='allow')

    method: ClassVar[PaymentMethod]

    amount: Decimal = Field(..., gt=0)
    classification: Optional[PaymentClassification] = None
    notes: Optional[str] = None

    @field_validator('classification', mode='before')
    @classmethod
    def normalize_classification(cls, value):
        if value is None or value == '':
            return None
        if isinstance(value, str):
            normalized = CLASSIFICATION_ALIASES.get(value.strip().lower())
            if normalized is None:
                raise ValueError(f'Classification de paiement inconnue: {value}')
            return normalized
        return value

    def method_data(self) -> dict:
        """Every submitted field, JSON-safe, for the payment detail metadata bag."""
        data = self.model_dump(mode='json', by_alias=True, exclude_none=True)
        data['type'] = self.method.value
        return data


class CashPayment(_InstrumentBase):
    method: ClassVar[PaymentMethod] = PaymentMethod.CASH
    type: Literal['cash', 'especes']


class ChequePayment(_InstrumentBase):
    method: ClassVar[PaymentMethod] = PaymentMethod.CHEQUE
    type: Literal['cheque', 'check']
    cheque_number: Optional[str] = None
    bank_name: Optional[str] = None
    cheque_date: Optional[date] = None


class TransferPayment(_InstrumentBase):
    method: ClassVar[PaymentMethod] = PaymentMethod.BANK_TRANSFER
    type: Literal['bank_transfer', 'virement', 'transfer']
    reference: Optional[str] = None


class InsurancePayment(_InstrumentBase):
    method: ClassVar[PaymentMethod] = PaymentMethod.INSURANCE
    type: Literal['insurance', 'cnam']
    file_number: Optional[str] = None
    dossier_number: Optional[str] = None
    claim: Optional[InsuranceClaim] = Field(
        None, validation_alias=AliasChoices('cnamInfo', 'claim')
    )

    _FLAT_CLAIM_KEYS: ClassVar[tuple] = (
        'bondType', 'bond_type', 'bondAmount', 'bond_amount', 'devicePrice', 'device_price',
        'complementAmount', 'complement_amount', 'currentStep', 'current_step',
        'totalSteps', 'total_steps', 'status',
    )

    @model_validator(mode='before')
    @classmethod
    def lift_flat_claim(cls, data):
        """Accept claim fields set directly on the instrument."""
        if isinstance(data, dict) and 'cnamInfo' not in data and 'claim' not in data:
            flat = {key: data[key] for key in cls._FLAT_CLAIM_KEYS if key in data}
            if flat:
                data = {**data, 'claim': flat}
        return data

    @property
    def resolved_dossier_number(self) -> Optional[str]:
        number = (self.claim.dossier_number if self.claim else None) or self.dossier_number
        if number is None:
            return None
        return number.strip() or None


class PromissoryNotePayment(_InstrumentBase):
    method: ClassVar[PaymentMethod] = PaymentMethod.PROMISSORY_NOTE
    type: Literal['promissory_note', 'mondat', 'mandat']
    mondat_number: Optional[str] = None
    due_date: Optional[date] = None


class DraftPayment(_InstrumentBase):
    method: ClassVar[PaymentMethod] = PaymentMethod.DRAFT
    type: Literal['draft', 'traite']
    traite_number: Optional[str] = None
    due_date: Optional[date] = None


PaymentInstrument = Annotated[
    Union[CashPayment, ChequePayment, TransferPayment, InsurancePayment,
          PromissoryNotePayment, DraftPayment],
    Field(discriminator='type'),
]


# =====================================================
# SUBMISSION
# =====================================================

class SaleSubmission(_Schema):
    """A point-of-sale submission, validated before any write."""
    patient_id: Optional[int] = None
    company_id: Optional[int] = None
    items: List[SaleItemInput]
    total_amount: Decimal
    final_amount: Decimal
    discount: Optional[Decimal] = Field(None, ge=0)
    notes: Optional[str] = None
    processed_by_id: Optional[int] = None
    status: SaleStatus = SaleStatus.PENDING
    sale_date: Optional[datetime] = None
    payment: List[PaymentInstrument] = Field(default_factory=list)

    @field_validator('patient_id', 'company_id', 'processed_by_id', mode='before')
    @classmethod
    def empty_id_as_none(cls, value):
        if value == '':
            return None
        return value

    @field_validator('status', mode='before')
    @classmethod
    def normalize_status(cls, value):
        if value is None or value == '':
            return SaleStatus.PENDING
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @field_validator('payment', mode='before')
    @classmethod
    def normalize_payment(cls, value):
        """Accept a list, a single instrument or the legacy {"payments": [...]} object."""
        if value is None:
            return []
        if isinstance(value, dict):
            value = value['payments'] if isinstance(value.get('payments'), list) else [value]
        if isinstance(value, list):
            normalized = []
            for instrument in value:
                if isinstance(instrument, dict) and isinstance(instrument.get('type'), str):
                    instrument = {**instrument, 'type': instrument['type'].strip().lower()}
                normalized.append(instrument)
            return normalized
        return value

    @field_validator('items')
    @classmethod
    def require_items(cls, value):
        if not value:
            raise ValueError('Au moins un article est requis')
        return value

    @model_validator(mode='after')
    def check_consistency(self):
        if (self.patient_id is None) == (self.company_id is None):
            raise ValueError('Un patient ou une société (et un seul) doit être fourni')

        if self.discount is None:
            derived = self.total_amount - self.final_amount
            if derived < 0:
                raise ValueError('Le montant final ne peut pas dépasser le montant total')
            self.discount = derived
        elif abs(self.total_amount - self.discount - self.final_amount) > AMOUNT_TOLERANCE:
            raise ValueError(
                f'Montant final incohérent: {self.total_amount} - {self.discount} ≠ {self.final_amount}'
            )

        if self.company_id is not None:
            for instrument in self.payment:
                if isinstance(instrument, InsurancePayment) and instrument.resolved_dossier_number:
                    raise ValueError('Un dossier CNAM nécessite un patient, pas une société')
        return self

    @property
    def product_items(self) -> List[ProductItem]:
        return [item for item in self.items if isinstance(item, ProductItem)]

    @property
    def device_items(self) -> List[DeviceItem]:
        return [item for item in self.items if isinstance(item, DeviceItem)]


def _error_message(error: dict) -> str:
    if error.get('type') == 'value_error' and error.get('ctx', {}).get('error') is not None:
        return str(error['ctx']['error'])
    return error.get('msg', '')


def parse_sale_submission(payload: Any) -> SaleSubmission:
    """
    Validate a raw payload into a SaleSubmission.

    Raises:
        ValidationError: with one {field, message} entry per problem.
    """
    if not isinstance(payload, dict):
        raise ValidationError('Aucune donnée de vente fournie',
                              [{'field': '', 'message': 'Corps de requête JSON attendu'}])

    try:
        return SaleSubmission.model_validate(payload)
    except PydanticValidationError as e:
        errors = [
            {
                'field': '.'.join(str(part) for part in error['loc']),
                'message': _error_message(error),
            }
            for error in e.errors()
        ]
        raise ValidationError(errors=errors)
