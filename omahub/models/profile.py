"""Profile model - customer contact details copied onto every order."""
from sqlalchemy import Column, String, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from omahub.database import Base


class Profile(Base):
    """Profile (one per user, same primary key)."""

    __tablename__ = 'profile'

    id = Column(String(36), ForeignKey('app_user.id', ondelete='CASCADE'), primary_key=True)
    full_name = Column(String(200), nullable=True)
    phone = Column(String(50), nullable=True)
    address = Column(JSON, nullable=True)  # free-form delivery address
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    user = relationship('AppUser', back_populates='profile')

    def __repr__(self):
        return f"<Profile(id={self.id}, full_name='{self.full_name}')>"
