"""Product model."""
from sqlalchemy import Column, String, Numeric, DateTime, Enum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from medisale.database import Base, IdType
import enum


class ProductType(enum.Enum):
    """Consumable product kinds."""
    ACCESSORY = "ACCESSORY"
    SPARE_PART = "SPARE_PART"
    CONSUMABLE = "CONSUMABLE"


class Product(Base):
    """Consumable product, tracked by stock count."""

    __tablename__ = 'product'

    id = Column(IdType, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    type = Column(Enum(ProductType, name='product_type'), nullable=False, default=ProductType.ACCESSORY)
    brand = Column(String(100), nullable=True)
    model = Column(String(100), nullable=True)
    selling_price = Column(Numeric(10, 2), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    stocks = relationship('Stock', back_populates='product', cascade='all, delete-orphan')

    @property
    def on_hand_qty(self):
        """Total quantity across locations."""
        return sum(stock.quantity for stock in self.stocks)

    def __repr__(self):
        return f"<Product(id={self.id}, name='{self.name}')>"
