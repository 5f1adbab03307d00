"""Stock models."""
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from medisale.database import Base, IdType


class StockLocation(Base):
    """Stock location (dépôt, véhicule technicien...)."""

    __tablename__ = 'stock_location'

    id = Column(IdType, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False, unique=True)

    def __repr__(self):
        return f"<StockLocation(id={self.id}, name='{self.name}')>"


class Stock(Base):
    """Stock - quantity of one product at one location."""

    __tablename__ = 'stock'
    __table_args__ = (
        CheckConstraint('quantity >= 0', name='ck_stock_quantity_non_negative'),
    )

    id = Column(IdType, primary_key=True, autoincrement=True)
    product_id = Column(IdType, ForeignKey('product.id'), nullable=False, index=True)
    location_id = Column(IdType, ForeignKey('stock_location.id'), nullable=False)
    quantity = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    product = relationship('Product', back_populates='stocks')
    location = relationship('StockLocation')

    def __repr__(self):
        return f"<Stock(id={self.id}, product_id={self.product_id}, quantity={self.quantity})>"
