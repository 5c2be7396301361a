import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional
from sqlalchemy.orm import Session

from core.config import VERIFY_INIT_MAX_ATTEMPTS, VERIFY_INIT_COOLDOWN_HOURS
from core.exceptions import (
    ConflictError, ExternalServiceError, RateLimitError, ResourceNotFoundError, ValidationError,
)
from models.attempt_tracker import ThrottleScope
from models.user import User
from providers.identity_provider import PASSED, NOT_PASSED
from repositories.attempt_tracker_repository import AttemptTrackerRepository
from repositories.identity_verification_repository import IdentityVerificationRepository
from repositories.user_repository import UserRepository
from utils.id_card import gender_from_id_number, hash_id_number
from utils.timeutil import utcnow, as_utc

logger = logging.getLogger(__name__)


class IdentityVerificationService:

    @staticmethod
    def _register_init_attempt(db: Session, user_id: int, now: datetime) -> None:
        if VERIFY_INIT_MAX_ATTEMPTS <= 0:
            return

        cooldown = timedelta(hours=VERIFY_INIT_COOLDOWN_HOURS)
        try:
            tracker = AttemptTrackerRepository.lock(db, str(user_id), ThrottleScope.VERIFY_INIT)

            window_started = as_utc(tracker.window_started_at)
            if window_started is None or now - window_started >= cooldown:
                AttemptTrackerRepository.reset_attempts(tracker, now)
                window_started = now

            if tracker.attempts_count >= VERIFY_INIT_MAX_ATTEMPTS:
                tracker.locked_until = window_started + cooldown
                db.commit()
                remaining_hrs = round((window_started + cooldown - now).total_seconds() / 3600, 1)
                raise RateLimitError(f"认证次数过多，请{remaining_hrs}小时后再试")

            AttemptTrackerRepository.increment_attempt(tracker, now)
            db.commit()
        except RateLimitError:
            logger.warning(f"Identity verification init throttled for user_id={user_id}")
            raise
        except Exception:
            db.rollback()
            raise

    @staticmethod
    def init_verification(db: Session, user: User, real_name: str, id_number: str, meta_info: str,
                          provider, now: Optional[datetime] = None) -> dict:
        """
        Start a liveness check.

        Returns the provider's certify id and the URL the client opens to run
        the check. Only a hash of the ID number is kept, to bind the later
        result poll to this attempt.
        """
        now = now or utcnow()
        if user.is_verified:
            raise ConflictError("您已完成认证")

        IdentityVerificationService._register_init_attempt(db, user.id, now)

        id_number = id_number.strip().upper()
        outer_order_no = f"V_{user.id}_{int(now.timestamp() * 1000)}_{secrets.token_hex(4)}"
        try:
            result = provider.init_verify(
                outer_order_no=outer_order_no,
                cert_name=real_name.strip(),
                cert_no=id_number,
                meta_info=meta_info,
            )
        except RuntimeError:
            logger.error(f"Identity verification init failed for user_id={user.id}", exc_info=True)
            raise ExternalServiceError("实人认证服务暂时不可用，请稍后重试")

        IdentityVerificationRepository.create_attempt(
            db,
            user_id=user.id,
            certify_id=result["certify_id"],
            outer_order_no=outer_order_no,
            id_number_hash=hash_id_number(id_number),
        )
        logger.info(f"Identity verification started for user_id={user.id} order={outer_order_no}")

        return {
            "certify_id": result["certify_id"],
            "certify_url": result["certify_url"],
        }

    @staticmethod
    def check_result(db: Session, user: User, certify_id: str, id_number: str,
                     provider, now: Optional[datetime] = None) -> dict:
        now = now or utcnow()
        attempt = IdentityVerificationRepository.get_by_certify_id(db, certify_id)
        if not attempt or attempt.user_id != user.id:
            raise ResourceNotFoundError("认证记录不存在")

        if user.is_verified:
            return {"success": True, "gender": user.gender}

        if attempt.id_number_hash != hash_id_number(id_number):
            raise ValidationError("身份证号与发起认证时不一致")

        try:
            result = provider.describe_verify(certify_id)
        except RuntimeError:
            logger.error(f"Identity verification result query failed for user_id={user.id}", exc_info=True)
            raise ExternalServiceError("实人认证服务暂时不可用，请稍后重试")

        passed = result.get("passed")
        if passed == PASSED:
            gender = gender_from_id_number(id_number.strip().upper())
            user.is_verified = True
            user.gender = gender
            user.verified_at = now
            IdentityVerificationRepository.mark_completed(attempt, "VERIFIED", now)
            UserRepository.update_user(db, user)
            logger.info(f"User {user.id} VERIFIED")
            return {"success": True, "gender": gender}

        if passed == NOT_PASSED:
            IdentityVerificationRepository.mark_completed(attempt, "FAILED", now)
            UserRepository.save(db)
            logger.info(f"Identity verification failed for user_id={user.id}")
        return {"success": False}

    @staticmethod
    def get_status(user: User) -> dict:
        return {
            "is_verified": bool(user.is_verified),
            "gender": user.gender or 0,
            "phone": user.phone,
        }
