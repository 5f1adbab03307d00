"""Patient history model - audit trail of actions on a patient record."""
from sqlalchemy import Column, String, DateTime, Enum, ForeignKey, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from medisale.database import Base, IdType
import enum


class ActionType(enum.Enum):
    """Enumeration of patient history actions."""
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    DIAGNOSTIC = "DIAGNOSTIC"
    RENTAL = "RENTAL"
    PAYMENT = "PAYMENT"
    MAINTENANCE = "MAINTENANCE"
    APPOINTMENT = "APPOINTMENT"
    SALE = "SALE"
    TRANSFER = "TRANSFER"


class PatientHistory(Base):
    """
    Patient history entry.
    Append-only: rows are never updated once written.
    """
    __tablename__ = 'patient_history'

    id = Column(IdType, primary_key=True, autoincrement=True)
    patient_id = Column(IdType, ForeignKey('patient.id'), nullable=False, index=True)
    action_type = Column(Enum(ActionType, name='history_action_type'), nullable=False, index=True)
    performed_by_id = Column(IdType, ForeignKey('app_user.id'), nullable=False)
    related_item_id = Column(IdType, nullable=True)
    related_item_type = Column(String(50), nullable=True)  # e.g. 'sale'
    details = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), index=True)

    # Relationships
    patient = relationship('Patient', backref='history')
    performed_by = relationship('AppUser')

    def __repr__(self):
        return f"<PatientHistory {self.action_type.value} on patient {self.patient_id}>"
