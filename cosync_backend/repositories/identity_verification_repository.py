from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Session
from models.identity_verification import IdentityVerification

class IdentityVerificationRepository:

    @staticmethod
    def create_attempt(db: Session, user_id: int, certify_id: str, outer_order_no: str, id_number_hash: str) -> IdentityVerification:
        attempt = IdentityVerification(
            user_id=user_id,
            certify_id=certify_id,
            outer_order_no=outer_order_no,
            id_number_hash=id_number_hash,
            status="PENDING",
        )
        db.add(attempt)
        db.commit()
        db.refresh(attempt)
        return attempt

    @staticmethod
    def get_by_certify_id(db: Session, certify_id: str) -> Optional[IdentityVerification]:
        return db.query(IdentityVerification).filter(IdentityVerification.certify_id == certify_id).first()

    @staticmethod
    def mark_completed(attempt: IdentityVerification, status: str, now: datetime) -> None:
        attempt.status = status
        attempt.completed_at = now
