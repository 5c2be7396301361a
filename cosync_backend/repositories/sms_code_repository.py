from datetime import datetime
from typing import Optional
from sqlalchemy import update
from sqlalchemy.orm import Session
from models.sms_code import SmsCode

class SmsCodeRepository:

    @staticmethod
    def create_code(db: Session, phone: str, code: str, expires_at: datetime, created_at: datetime) -> SmsCode:
        record = SmsCode(phone=phone, code=code, used=False, expires_at=expires_at, created_at=created_at)
        db.add(record)
        db.flush()
        return record

    @staticmethod
    def get_latest_by_phone(db: Session, phone: str) -> Optional[SmsCode]:
        return (
            db.query(SmsCode)
            .filter(SmsCode.phone == phone)
            .order_by(SmsCode.created_at.desc(), SmsCode.id.desc())
            .first()
        )

    @staticmethod
    def count_since(db: Session, phone: str, since: datetime) -> int:
        return db.query(SmsCode).filter(SmsCode.phone == phone, SmsCode.created_at >= since).count()

    @staticmethod
    def mark_used(db: Session, code_id: int) -> bool:
        """Conditional consume. False when another request already used the code."""
        result = db.execute(
            update(SmsCode)
            .where(SmsCode.id == code_id, SmsCode.used.is_(False))
            .values(used=True)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @staticmethod
    def delete_created_before(db: Session, cutoff: datetime) -> int:
        return db.query(SmsCode).filter(SmsCode.created_at < cutoff).delete(synchronize_session=False)
