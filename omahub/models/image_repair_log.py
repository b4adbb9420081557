"""
Image repair audit log.
Every change planned by `flask repair-images` is recorded here, dry runs included.
"""
import uuid
from sqlalchemy import Column, String, Boolean, DateTime
from sqlalchemy.sql import func
from omahub.database import Base


class ImageRepairLog(Base):
    """One planned (or applied) image reassignment."""

    __tablename__ = 'image_repair_log'

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    batch_id = Column(String(64), nullable=False, index=True)
    entity_type = Column(String(20), nullable=False)  # 'brand' or 'product'
    entity_id = Column(String(36), nullable=False)
    old_image = Column(String(500), nullable=True)
    new_image = Column(String(500), nullable=False)
    applied = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    def __repr__(self):
        return f"<ImageRepairLog({self.entity_type}:{self.entity_id} -> {self.new_image}, applied={self.applied})>"
