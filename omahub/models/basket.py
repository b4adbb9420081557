"""Basket model - one user's pending selection of products."""
import enum
import uuid
from decimal import Decimal
from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from omahub.database import Base


class BasketStatus(str, enum.Enum):
    """Basket lifecycle. Only OPEN baskets accept items or submissions."""
    OPEN = 'open'
    SUBMITTING = 'submitting'
    SUBMITTED = 'submitted'


class Basket(Base):
    """
    Basket (created implicitly on first add-to-basket).

    The status column is the duplicate-submission guard: a submission claims
    the basket by flipping OPEN -> SUBMITTING with a conditional UPDATE, so a
    second concurrent submission finds nothing to claim.
    """

    __tablename__ = 'basket'

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey('app_user.id', ondelete='CASCADE'), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=BasketStatus.OPEN.value, server_default=BasketStatus.OPEN.value)
    submission_started_at = Column(DateTime(timezone=True), nullable=True)
    submission_token = Column(String(36), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    user = relationship('AppUser')
    items = relationship(
        'BasketItem',
        back_populates='basket',
        cascade='all, delete-orphan',
        passive_deletes=True,
        order_by='BasketItem.created_at'
    )

    @property
    def total_items(self):
        return sum(item.quantity for item in self.items)

    @property
    def total_price(self):
        return sum((item.line_total for item in self.items), Decimal('0.00'))

    def __repr__(self):
        return f"<Basket(id={self.id}, user_id={self.user_id}, status={self.status})>"
