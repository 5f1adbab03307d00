"""Patient model."""
from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from medisale.database import Base, IdType


class Patient(Base):
    """Patient (client particulier)."""

    __tablename__ = 'patient'

    id = Column(IdType, primary_key=True, autoincrement=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    telephone = Column(String(50), nullable=True)
    cnam_id = Column(String(50), nullable=True)

    # Responsible clinician, recorded in the patient history of each sale
    doctor_id = Column(IdType, ForeignKey('app_user.id'), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    doctor = relationship('AppUser', foreign_keys=[doctor_id])
    sales = relationship('Sale', back_populates='patient')

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self):
        return f"<Patient(id={self.id}, name='{self.full_name}')>"
