"""CNAM insurance dossier models."""
from sqlalchemy import Column, String, Text, Integer, Numeric, DateTime, Enum, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from medisale.database import Base, IdType
import enum


class CNAMBondType(enum.Enum):
    """Device category covered by a CNAM bond."""
    MASQUE = "MASQUE"
    CPAP = "CPAP"
    AUTRE = "AUTRE"
    VNI = "VNI"
    CONCENTRATEUR_OXYGENE = "CONCENTRATEUR_OXYGENE"


class CNAMStatus(enum.Enum):
    """Lifecycle of a CNAM reimbursement dossier."""
    EN_ATTENTE_APPROBATION = "EN_ATTENTE_APPROBATION"
    APPROUVE = "APPROUVE"
    EN_COURS = "EN_COURS"
    TERMINE = "TERMINE"
    REFUSE = "REFUSE"


cnam_status_type = Enum(CNAMStatus, name='cnam_status')


class InsuranceDossier(Base):
    """CNAM dossier opened for a sale paid (partly) by the insurance."""

    __tablename__ = 'cnam_dossier'

    id = Column(IdType, primary_key=True, autoincrement=True)
    dossier_number = Column(String(100), nullable=False, index=True)
    bond_type = Column(Enum(CNAMBondType, name='cnam_bond_type'), nullable=False, default=CNAMBondType.AUTRE)
    bond_amount = Column(Numeric(10, 2), nullable=False)
    device_price = Column(Numeric(10, 2), nullable=False)
    complement_amount = Column(Numeric(10, 2), nullable=False, default=0)
    current_step = Column(Integer, nullable=False, default=1)
    total_steps = Column(Integer, nullable=False, default=7)
    status = Column(cnam_status_type, nullable=False, default=CNAMStatus.EN_ATTENTE_APPROBATION)
    notes = Column(Text, nullable=True)

    sale_id = Column(IdType, ForeignKey('sale.id', ondelete='CASCADE'), nullable=False, index=True)
    patient_id = Column(IdType, ForeignKey('patient.id'), nullable=False, index=True)
    payment_detail_id = Column(IdType, ForeignKey('payment_detail.id'), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    sale = relationship('Sale', back_populates='dossiers')
    patient = relationship('Patient')
    payment_detail = relationship('PaymentDetail')
    step_history = relationship('DossierStepHistory', back_populates='dossier', cascade='all, delete-orphan',
                                order_by='DossierStepHistory.id')

    @property
    def is_terminal(self):
        return self.status in (CNAMStatus.TERMINE, CNAMStatus.REFUSE)

    def __repr__(self):
        return f"<InsuranceDossier(id={self.id}, number={self.dossier_number}, status={self.status.value})>"


class DossierStepHistory(Base):
    """Append-only trail of every step/status a dossier moved to."""

    __tablename__ = 'cnam_dossier_step_history'

    id = Column(IdType, primary_key=True, autoincrement=True)
    dossier_id = Column(IdType, ForeignKey('cnam_dossier.id', ondelete='CASCADE'), nullable=False, index=True)
    step = Column(Integer, nullable=False)
    status = Column(cnam_status_type, nullable=False)
    previous_status = Column(cnam_status_type, nullable=True)
    changed_by_id = Column(IdType, ForeignKey('app_user.id'), nullable=False)
    changed_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    notes = Column(Text, nullable=True)

    # Relationships
    dossier = relationship('InsuranceDossier', back_populates='step_history')
    changed_by = relationship('AppUser')

    def __repr__(self):
        return f"<DossierStepHistory(dossier_id={self.dossier_id}, step={self.step}, status={self.status.value})>"
