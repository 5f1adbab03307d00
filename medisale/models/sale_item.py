"""Sale Item model."""
from sqlalchemy import Column, String, Integer, Numeric, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from medisale.database import Base, IdType


class SaleItem(Base):
    """Sale Item (ligne de vente) - a consumable product or a medical device."""

    __tablename__ = 'sale_item'
    __table_args__ = (
        CheckConstraint(
            '(product_id IS NULL) <> (medical_device_id IS NULL)',
            name='ck_sale_item_single_article'
        ),
        CheckConstraint('quantity > 0', name='ck_sale_item_quantity_positive'),
    )

    id = Column(IdType, primary_key=True, autoincrement=True)
    sale_id = Column(IdType, ForeignKey('sale.id', ondelete='CASCADE'), nullable=False, index=True)
    product_id = Column(IdType, ForeignKey('product.id'), nullable=True)
    medical_device_id = Column(IdType, ForeignKey('medical_device.id'), nullable=True)

    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)
    discount = Column(Numeric(10, 2), nullable=False, default=0, server_default='0')
    item_total = Column(Numeric(10, 2), nullable=False)
    serial_number = Column(String(100), nullable=True)
    warranty = Column(String(255), nullable=True)

    # Relationships
    sale = relationship('Sale', back_populates='items')
    product = relationship('Product')
    medical_device = relationship('MedicalDevice')

    @property
    def name(self):
        if self.product:
            return self.product.name
        if self.medical_device:
            return self.medical_device.name
        return 'Article inconnu'

    def __repr__(self):
        return f"<SaleItem(id={self.id}, sale_id={self.sale_id}, qty={self.quantity}, total={self.item_total})>"
