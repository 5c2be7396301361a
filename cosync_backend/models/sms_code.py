from datetime import datetime, timezone
from sqlalchemy import Column, String, DateTime, Boolean, Integer, BigInteger, Index
from core.database import Base

class SmsCode(Base):
    __tablename__ = "sms_codes"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    phone = Column(String(20), nullable=False)
    code = Column(String(8), nullable=False)
    used = Column(Boolean, default=False, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)

    __table_args__ = (
        Index("idx_sms_phone_created", "phone", "created_at"),
    )
