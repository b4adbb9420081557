"""AppUser model - marketplace accounts (customers and brand owners)."""
import uuid
from sqlalchemy import Column, String, Boolean, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from werkzeug.security import generate_password_hash, check_password_hash
from omahub.database import Base


class AppUser(Base):
    """AppUser model - platform users with email/password authentication."""

    __tablename__ = 'app_user'

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), nullable=False, unique=True)
    password_hash = Column(String(255), nullable=True)
    active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    profile = relationship('Profile', uselist=False, back_populates='user', cascade='all, delete-orphan')
    brands = relationship('Brand', back_populates='owner')

    def set_password(self, password):
        """Set password hash."""
        self.password_hash = generate_password_hash(password, method='scrypt')

    def check_password(self, password):
        """Check password against hash."""
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    @property
    def email_local_part(self):
        """Part of the email before the '@' (used as a fallback display name)."""
        if not self.email:
            return None
        return self.email.split('@')[0] or None

    def __repr__(self):
        return f"<AppUser(id={self.id}, email='{self.email}')>"
