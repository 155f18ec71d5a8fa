"""
Database Models
===============
UserProfile = who signed up
RefillRecord = immutable history of completed dispenses
VoucherRedemption = points spent on vouchers
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, DateTime, Float, Integer, Uuid, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase


def utcnow():
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class UserProfile(Base):
    """
    One row per registered user, keyed by the auth provider's user id.
    """
    __tablename__ = "user_profiles"

    user_id = Column(String(64), primary_key=True)
    email = Column(String(320), nullable=False)
    phone = Column(String(32), nullable=True)

    # Running total of points spent; checked against earned points on every redemption
    points_redeemed = Column(Integer, nullable=False, default=0, server_default="0")

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)


class RefillRecord(Base):
    """
    The refill ledger - IMMUTABLE history.
    One row per completed dispense. Never updated or deleted.
    """
    __tablename__ = "refill_history"
    __table_args__ = (
        UniqueConstraint("user_id", "idempotency_key", name="uq_refill_idempotency"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(String(64), nullable=False, index=True)
    email = Column(String(320), nullable=True)

    # What was dispensed, where, how it was paid
    brand = Column(String(100), nullable=False)
    volume = Column(Float, nullable=False)
    location = Column(String(16), nullable=False)
    total_price = Column(Float, nullable=False)
    payment_method = Column(String(32), nullable=False)

    # Computed server-side from total_price
    reward_points = Column(Integer, nullable=False, default=0)

    # Set when the client sent an Idempotency-Key header
    idempotency_key = Column(String(128), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "brand": self.brand,
            "volume": self.volume,
            "total_price": self.total_price,
            "location": self.location,
            "payment_method": self.payment_method,
            "reward_points": self.reward_points,
            "created_at": self.created_at.isoformat(),
        }


class VoucherRedemption(Base):
    """
    Append-only record of points spent.
    """
    __tablename__ = "voucher_redemptions"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(String(64), nullable=False, index=True)
    email = Column(String(320), nullable=True)
    voucher_id = Column(String(32), nullable=False)
    points_used = Column(Integer, nullable=False)
    redeemed_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
