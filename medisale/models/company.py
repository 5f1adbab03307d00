"""Company model."""
from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from medisale.database import Base, IdType


class Company(Base):
    """Company (société cliente)."""

    __tablename__ = 'company'

    id = Column(IdType, primary_key=True, autoincrement=True)
    company_name = Column(String(200), nullable=False)
    telephone = Column(String(50), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    sales = relationship('Sale', back_populates='company')

    def __repr__(self):
        return f"<Company(id={self.id}, name='{self.company_name}')>"
