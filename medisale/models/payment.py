"""Payment models - one payment per sale, one detail per payment instrument."""
from sqlalchemy import Column, String, Text, Numeric, Date, DateTime, Enum, ForeignKey, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from medisale.database import Base, IdType
import enum


class PaymentStatus(enum.Enum):
    """Payment status enum."""
    PENDING = "PENDING"
    PAID = "PAID"
    PARTIAL = "PARTIAL"
    GUARANTEE = "GUARANTEE"
    CANCELLED = "CANCELLED"


class PaymentMethod(str, enum.Enum):
    """Payment instrument kinds stored on payment details."""
    CASH = 'cash'
    CHEQUE = 'cheque'
    BANK_TRANSFER = 'bank_transfer'
    INSURANCE = 'insurance'
    PROMISSORY_NOTE = 'promissory_note'
    DRAFT = 'draft'


class PaymentClassification(str, enum.Enum):
    """Role of an instrument within the payment."""
    PRINCIPAL = 'principal'
    COMPLEMENTARY = 'complementary'


class Payment(Base):
    """
    Payment - aggregate of every instrument used for a sale.

    amount always equals the sum of its details. The primary instrument's
    reference fields are copied here for quick display.
    """

    __tablename__ = 'payment'

    id = Column(IdType, primary_key=True, autoincrement=True)
    amount = Column(Numeric(10, 2), nullable=False)
    method = Column(String(20), nullable=False)
    status = Column(Enum(PaymentStatus, name='payment_status'), nullable=False, default=PaymentStatus.PENDING)
    payment_date = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    due_date = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)

    # Primary instrument display fields
    cheque_number = Column(String(50), nullable=True)
    bank_name = Column(String(100), nullable=True)
    reference_number = Column(String(100), nullable=True)  # Virement / mandat
    cnam_card_number = Column(String(100), nullable=True)  # Dossier CNAM

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    sale = relationship('Sale', back_populates='payment', uselist=False)
    details = relationship('PaymentDetail', back_populates='payment', cascade='all, delete-orphan',
                           order_by='PaymentDetail.id')

    def __repr__(self):
        return f"<Payment(id={self.id}, amount={self.amount}, status={self.status.value})>"


class PaymentDetail(Base):
    """Payment Detail - one instrument (espèces, chèque, CNAM...) within a payment."""

    __tablename__ = 'payment_detail'

    id = Column(IdType, primary_key=True, autoincrement=True)
    payment_id = Column(IdType, ForeignKey('payment.id', ondelete='CASCADE'), nullable=False, index=True)
    method = Column(String(20), nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    classification = Column(String(20), nullable=False, default=PaymentClassification.PRINCIPAL.value)
    reference = Column(String(255), nullable=True)

    # Every method-specific field as submitted, for later reconstruction
    method_data = Column('metadata', JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    payment = relationship('Payment', back_populates='details')

    def __repr__(self):
        return f"<PaymentDetail(id={self.id}, method={self.method}, amount={self.amount})>"
