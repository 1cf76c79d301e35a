"""SQLAlchemy database models for tracked addresses."""

from sqlalchemy import Column, Integer, String, DateTime, Index, UniqueConstraint
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class TrackedAddress(Base):
    """A Bitcoin address watched by a user."""
    __tablename__ = 'tracked_addresses'

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(128), nullable=False)
    address = Column(String(90), nullable=False)
    label = Column(String(255))
    created_at = Column(DateTime(timezone=True), default=func.now())
    updated_at = Column(DateTime(timezone=True), default=func.now(), onupdate=func.now())

    # Indexes
    __table_args__ = (
        UniqueConstraint('user_id', 'address', name='uq_tracked_addresses_user_address'),
        Index('idx_tracked_addresses_user', 'user_id'),
    )

    def __repr__(self):
        return f"<TrackedAddress(user_id='{self.user_id}', address='{self.address}')>"
