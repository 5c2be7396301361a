import hmac
import logging
import secrets
import string
from datetime import datetime, timedelta
from typing import Optional
from sqlalchemy.orm import Session

from core.config import (
    SMS_CODE_LENGTH, SMS_CODE_TTL_SECONDS, SMS_MIN_INTERVAL_SECONDS,
    SMS_HOURLY_LIMIT, SMS_HOURLY_WINDOW_SECONDS,
)
from core.exceptions import RateLimitError, NotFoundOrExpiredError, ExternalServiceError
from models.attempt_tracker import ThrottleScope
from models.sms_code import SmsCode
from repositories.attempt_tracker_repository import AttemptTrackerRepository
from repositories.sms_code_repository import SmsCodeRepository
from utils.timeutil import utcnow, as_utc

logger = logging.getLogger(__name__)


def generate_code(length: int = SMS_CODE_LENGTH) -> str:
    return "".join(secrets.choice(string.digits) for _ in range(length))


class SmsCodeService:

    @staticmethod
    def issue_code(db: Session, phone: str, sms_provider, now: Optional[datetime] = None) -> dict:
        """
        Throttle, persist, then deliver.

        The per-phone tracker row stays locked from the window checks until the
        new code is committed, so two concurrent sends cannot both pass.
        A delivery failure leaves the stored code valid.
        """
        now = now or utcnow()
        try:
            tracker = AttemptTrackerRepository.lock(db, phone, ThrottleScope.SMS_SEND)

            recent = SmsCodeRepository.count_since(db, phone, now - timedelta(seconds=SMS_MIN_INTERVAL_SECONDS))
            if recent >= 1:
                raise RateLimitError("发送太频繁，请稍后再试")

            hourly = SmsCodeRepository.count_since(db, phone, now - timedelta(seconds=SMS_HOURLY_WINDOW_SECONDS))
            if hourly >= SMS_HOURLY_LIMIT:
                raise RateLimitError("发送次数过多，请一小时后再试")

            code = generate_code()
            SmsCodeRepository.create_code(
                db,
                phone=phone,
                code=code,
                expires_at=now + timedelta(seconds=SMS_CODE_TTL_SECONDS),
                created_at=now,
            )
            AttemptTrackerRepository.increment_attempt(tracker, now)
            db.commit()
        except RateLimitError:
            db.rollback()
            logger.warning(f"SMS send throttled for {phone}")
            raise
        except Exception:
            db.rollback()
            raise

        logger.info(f"SMS code issued for {phone}, valid {SMS_CODE_TTL_SECONDS}s")

        try:
            sms_provider.send_code(phone, code)
        except RuntimeError as e:
            logger.warning(f"SMS delivery failed for {phone}: {e}")
            raise ExternalServiceError("短信发送失败，请稍后重试")

        return {"success": True, "ttl": SMS_CODE_TTL_SECONDS}

    @staticmethod
    def verify_code(db: Session, phone: str, code: str, now: Optional[datetime] = None) -> SmsCode:
        """Only the latest code for the phone is ever considered."""
        now = now or utcnow()
        record = SmsCodeRepository.get_latest_by_phone(db, phone)

        if not record or record.used:
            raise NotFoundOrExpiredError("验证码无效或已过期")

        if as_utc(record.expires_at) < now:
            raise NotFoundOrExpiredError("验证码已过期，请重新获取")

        if not hmac.compare_digest(record.code.encode("utf-8"), code.encode("utf-8")):
            raise NotFoundOrExpiredError("验证码错误")

        if not SmsCodeRepository.mark_used(db, record.id):
            db.rollback()
            raise NotFoundOrExpiredError("验证码无效或已过期")
        db.commit()

        logger.info(f"SMS code verified for {phone}")
        return record
