"""Notification model - brand owner inbox entries."""
import uuid
from sqlalchemy import Column, String, Boolean, Text, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from omahub.database import Base


class Notification(Base):
    """Notification for a user (e.g. a brand owner receiving a new order)."""

    __tablename__ = 'notification'

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey('app_user.id', ondelete='CASCADE'), nullable=False, index=True)
    brand_id = Column(String(36), ForeignKey('brand.id', ondelete='SET NULL'), nullable=True)
    type = Column(String(50), nullable=False)
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    data = Column(JSON, nullable=True)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    user = relationship('AppUser')
    brand = relationship('Brand')

    def __repr__(self):
        return f"<Notification(id={self.id}, type='{self.type}', user_id={self.user_id})>"
