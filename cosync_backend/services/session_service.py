import logging
import secrets
from datetime import datetime
from typing import Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.exceptions import ConflictError
from core.security import create_session_token
from models.user import User
from repositories.user_repository import UserRepository
from services.sms_code_service import SmsCodeService
from utils.serializers import to_self_user, display_nickname
from utils.timeutil import utcnow

logger = logging.getLogger(__name__)


class SessionService:

    @staticmethod
    def _insert_phone_user(db: Session, phone: str, open_id: str, now: datetime) -> bool:
        new_user = User(
            open_id=open_id,
            phone=phone,
            nickname=f"用户{phone[-4:]}",
            login_method="phone",
            role="user",
            created_at=now,
            updated_at=now,
            last_signed_in=now,
        )
        try:
            UserRepository.create_user(db, new_user)
        except IntegrityError:
            db.rollback()
            return False
        logger.info(f"Registered new user for phone {phone}")
        return True

    @staticmethod
    def find_or_create_phone_user(db: Session, phone: str, now: Optional[datetime] = None) -> User:
        user = UserRepository.get_by_phone(db, phone)
        if user:
            return user

        now = now or utcnow()
        if not SessionService._insert_phone_user(db, phone, f"phone:{phone}", now):
            user = UserRepository.get_by_phone(db, phone)
            if user:
                # lost a first-login race for the same phone
                return user
            # open id still held by an account that no longer owns this phone
            logger.warning(f"open_id phone:{phone} taken by another account, registering with a suffixed id")
            SessionService._insert_phone_user(db, phone, f"phone:{phone}:{secrets.token_hex(4)}", now)

        user = UserRepository.get_by_phone(db, phone)
        if not user:
            raise ConflictError("该手机号暂时无法登录，请联系客服")
        return user

    @staticmethod
    def login_with_code(db: Session, phone: str, code: str, now: Optional[datetime] = None) -> dict:
        now = now or utcnow()
        SmsCodeService.verify_code(db, phone, code, now=now)

        user = SessionService.find_or_create_phone_user(db, phone, now=now)
        user.last_signed_in = now
        UserRepository.update_user(db, user)

        token = create_session_token(user.open_id, display_nickname(user), now=now)
        logger.info(f"Session issued for user_id={user.id}")
        return {
            "success": True,
            "token": token,
            "user": to_self_user(user),
        }
