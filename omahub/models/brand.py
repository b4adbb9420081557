"""Brand model."""
import uuid
from sqlalchemy import Column, String, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from omahub.database import Base


class Brand(Base):
    """Designer brand. Owns products and receives order notifications."""

    __tablename__ = 'brand'

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(200), nullable=False)
    user_id = Column(String(36), ForeignKey('app_user.id', ondelete='SET NULL'), nullable=True, index=True)
    currency = Column(String(3), nullable=True)  # ISO 4217 code, e.g. NGN
    location = Column(String(200), nullable=True)
    price_range = Column(String(100), nullable=True)  # e.g. "₦15,000 - ₦120,000"
    description = Column(Text, nullable=True)
    image = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    owner = relationship('AppUser', back_populates='brands')
    products = relationship('Product', back_populates='brand')

    def __repr__(self):
        return f"<Brand(id={self.id}, name='{self.name}')>"
