"""Basket Item model."""
import uuid
from decimal import Decimal
from sqlalchemy import Column, String, Integer, Numeric, Text, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from omahub.database import Base


class BasketItem(Base):
    """Basket Item (product + options + price at the time it was added)."""

    __tablename__ = 'basket_item'
    __table_args__ = (
        CheckConstraint('quantity > 0', name='basket_item_quantity_positive'),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    basket_id = Column(String(36), ForeignKey('basket.id', ondelete='CASCADE'), nullable=False, index=True)
    # SET NULL keeps the row around as an orphan when a product is deleted
    product_id = Column(String(36), ForeignKey('product.id', ondelete='SET NULL'), nullable=True)
    quantity = Column(Integer, nullable=False, default=1)
    size = Column(String(50), nullable=True)
    colour = Column(String(50), nullable=True)
    notes = Column(Text, nullable=True)
    price = Column(Numeric(12, 2), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    basket = relationship('Basket', back_populates='items')
    product = relationship('Product')

    @property
    def unit_price(self):
        """
        Price charged per unit when the basket is turned into orders.

        Current product price wins (sale price first); the price captured at
        add time is only used when the product carries none.
        """
        if self.product is not None and self.product.effective_price is not None:
            return self.product.effective_price
        if self.price is not None:
            return Decimal(str(self.price))
        return Decimal('0')

    @property
    def line_total(self):
        return (self.unit_price * self.quantity).quantize(Decimal('0.01'))

    def __repr__(self):
        return f"<BasketItem(id={self.id}, product_id={self.product_id}, quantity={self.quantity})>"
