from sqlalchemy import Column, String, DateTime, Integer, Enum as SQLEnum, Index, UniqueConstraint, BigInteger
from core.database import Base
from datetime import datetime, timezone
import enum

class ThrottleScope(str, enum.Enum):
    SMS_SEND = "SMS_SEND"
    VERIFY_INIT = "VERIFY_INIT"

class AttemptTracker(Base):
    """One row per (subject, scope). Locked while a throttled action is checked and recorded."""
    __tablename__ = "throttle_trackers"
    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    subject = Column(String(64), nullable=False, index=True)
    scope = Column(SQLEnum(ThrottleScope), nullable=False, index=True)
    attempts_count = Column(Integer, nullable=False, default=0)
    window_started_at = Column(DateTime(timezone=True), nullable=True)
    locked_until = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    last_attempt_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        UniqueConstraint("subject", "scope", name="uq_subject_scope"),
        Index("idx_tracker_locked_until", "locked_until"),
        Index("idx_tracker_last_attempt", "last_attempt_at"),
    )
