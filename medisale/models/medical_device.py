"""Medical device model."""
from sqlalchemy import Column, String, Numeric, DateTime, Enum, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from medisale.database import Base, IdType
import enum


class DeviceStatus(enum.Enum):
    """Medical device availability."""
    ACTIVE = "ACTIVE"
    MAINTENANCE = "MAINTENANCE"
    RESERVED = "RESERVED"
    RETIRED = "RETIRED"
    SOLD = "SOLD"


class MedicalDevice(Base):
    """Serialized medical device (CPAP, concentrateur...)."""

    __tablename__ = 'medical_device'

    id = Column(IdType, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    type = Column(String(50), nullable=True)
    brand = Column(String(100), nullable=True)
    model = Column(String(100), nullable=True)
    serial_number = Column(String(100), nullable=True, unique=True)
    selling_price = Column(Numeric(10, 2), nullable=True)
    status = Column(Enum(DeviceStatus, name='device_status'), nullable=False, default=DeviceStatus.ACTIVE)

    # Owner once sold
    patient_id = Column(IdType, ForeignKey('patient.id'), nullable=True)
    company_id = Column(IdType, ForeignKey('company.id'), nullable=True)

    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    patient = relationship('Patient')
    company = relationship('Company')

    def __repr__(self):
        return f"<MedicalDevice(id={self.id}, name='{self.name}', status={self.status.value})>"
