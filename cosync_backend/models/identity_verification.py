from datetime import datetime, timezone
from sqlalchemy import Column, String, DateTime, Integer, BigInteger, ForeignKey, Index
from core.database import Base

class IdentityVerification(Base):
    __tablename__ = "identity_verifications"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    user_id = Column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    certify_id = Column(String(64), unique=True, nullable=False)
    outer_order_no = Column(String(64), unique=True, nullable=False)
    # sha256 of the upper-cased national ID, used to bind check-result to init
    id_number_hash = Column(String(64), nullable=False)
    status = Column(String(20), default="PENDING", nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("idx_identity_status", "status"),
    )
