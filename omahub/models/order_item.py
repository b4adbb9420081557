"""Order Item model."""
import uuid
from sqlalchemy import Column, String, Integer, Numeric, Text, ForeignKey
from sqlalchemy.orm import relationship
from omahub.database import Base


class OrderItem(Base):
    """Order Item (immutable copy of a basket item)."""

    __tablename__ = 'order_item'

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    order_id = Column(String(36), ForeignKey('customer_order.id', ondelete='CASCADE'), nullable=False, index=True)
    product_id = Column(String(36), ForeignKey('product.id'), nullable=False)
    quantity = Column(Integer, nullable=False)
    price = Column(Numeric(12, 2), nullable=False)
    size = Column(String(50), nullable=True)
    colour = Column(String(50), nullable=True)
    notes = Column(Text, nullable=True)

    # Relationships
    order = relationship('Order', back_populates='items')
    product = relationship('Product')

    def __repr__(self):
        return f"<OrderItem(id={self.id}, product_id={self.product_id}, quantity={self.quantity})>"
