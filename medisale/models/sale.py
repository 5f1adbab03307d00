"""Sale model."""
from sqlalchemy import Column, String, Text, Numeric, DateTime, Enum, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.sql import func
from medisale.database import Base, IdType
import enum


class SaleStatus(enum.Enum):
    """Sale status enum."""
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class Sale(Base):
    """Sale (vente) - one point-of-sale transaction for a patient or a company."""

    __tablename__ = 'sale'
    __table_args__ = (
        CheckConstraint(
            '(patient_id IS NULL) <> (company_id IS NULL)',
            name='ck_sale_single_client'
        ),
    )

    id = Column(IdType, primary_key=True, autoincrement=True)
    invoice_number = Column(String(32), nullable=False, unique=True, index=True)
    sale_date = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    total_amount = Column(Numeric(10, 2), nullable=False)
    discount = Column(Numeric(10, 2), nullable=False, default=0, server_default='0')
    final_amount = Column(Numeric(10, 2), nullable=False)
    status = Column(Enum(SaleStatus, name='sale_status'), nullable=False, default=SaleStatus.PENDING)
    notes = Column(Text, nullable=True)

    # Exactly one client
    patient_id = Column(IdType, ForeignKey('patient.id'), nullable=True, index=True)
    company_id = Column(IdType, ForeignKey('company.id'), nullable=True, index=True)

    processed_by_id = Column(IdType, ForeignKey('app_user.id'), nullable=False)
    payment_id = Column(IdType, ForeignKey('payment.id'), nullable=True, unique=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    patient = relationship('Patient', back_populates='sales')
    company = relationship('Company', back_populates='sales')
    processed_by = relationship('AppUser')
    payment = relationship('Payment', back_populates='sale')
    items = relationship('SaleItem', back_populates='sale', cascade='all, delete-orphan',
                         order_by='SaleItem.id')
    dossiers = relationship('InsuranceDossier', back_populates='sale', cascade='all, delete-orphan',
                            order_by='InsuranceDossier.id')

    @hybrid_property
    def amount_due(self):
        """Amount still owed: final_amount - paid amount."""
        paid = self.payment.amount if self.payment else 0
        return (self.final_amount or 0) - paid

    @property
    def client_name(self):
        if self.patient:
            return self.patient.full_name
        if self.company:
            return self.company.company_name
        return 'Client inconnu'

    @property
    def client_type(self):
        if self.patient_id:
            return 'PATIENT'
        if self.company_id:
            return 'COMPANY'
        return None

    def __repr__(self):
        return f"<Sale(id={self.id}, invoice={self.invoice_number}, final={self.final_amount}, status={self.status.value})>"
