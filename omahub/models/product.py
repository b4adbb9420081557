"""Product model."""
import uuid
from decimal import Decimal
from sqlalchemy import Column, String, Text, Numeric, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from omahub.database import Base


class Product(Base):
    """Product model."""

    __tablename__ = 'product'

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    brand_id = Column(String(36), ForeignKey('brand.id', ondelete='SET NULL'), nullable=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(12, 2), nullable=True)
    sale_price = Column(Numeric(12, 2), nullable=True)
    category = Column(String(100), nullable=True)
    image = Column(String(500), nullable=True)
    in_stock = Column(Boolean, nullable=False, default=True)
    is_custom = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    brand = relationship('Brand', back_populates='products')

    def __repr__(self):
        return f"<Product(id={self.id}, title='{self.title}')>"

    @property
    def effective_price(self):
        """Sale price when one is set, otherwise the list price (None if neither)."""
        if self.sale_price:
            return Decimal(str(self.sale_price))
        if self.price:
            return Decimal(str(self.price))
        return None
