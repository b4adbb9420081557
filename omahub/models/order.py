"""Order model."""
import enum
import uuid
from sqlalchemy import Column, String, Numeric, Text, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from omahub.database import Base


class OrderStatus(str, enum.Enum):
    """Order status."""
    PENDING = 'pending'
    CONFIRMED = 'confirmed'
    IN_PROGRESS = 'in_progress'
    SHIPPED = 'shipped'
    DELIVERED = 'delivered'
    CANCELLED = 'cancelled'


class Order(Base):
    """Order - one per (customer, brand) per basket submission."""

    __tablename__ = 'customer_order'

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey('app_user.id'), nullable=False, index=True)
    brand_id = Column(String(36), ForeignKey('brand.id'), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=OrderStatus.PENDING.value)
    total_amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), nullable=False)

    # Customer contact, denormalized at submission time
    customer_name = Column(String(200), nullable=False)
    customer_email = Column(String(255), nullable=True)
    customer_phone = Column(String(50), nullable=True)
    delivery_address = Column(JSON, nullable=True)
    customer_notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    user = relationship('AppUser')
    brand = relationship('Brand')
    items = relationship('OrderItem', back_populates='order', cascade='all, delete-orphan')

    def __repr__(self):
        return f"<Order(id={self.id}, brand_id={self.brand_id}, total={self.total_amount})>"
