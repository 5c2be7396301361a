import logging
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.exceptions import ConflictError, ResourceNotFoundError, ValidationError
from models.user import User
from repositories.user_repository import UserRepository
from services.sms_code_service import SmsCodeService
from utils.serializers import to_public_user, to_self_user
from utils.timeutil import utcnow

logger = logging.getLogger(__name__)


class UserService:

    @staticmethod
    def get_profile(user: User) -> dict:
        # email is shown to its owner here only, never in login or public projections
        profile = to_self_user(user)
        profile["email"] = user.email
        return profile

    @staticmethod
    def get_public_profile(db: Session, user_id: int) -> dict:
        user = UserRepository.get_by_id(db, user_id)
        if not user:
            raise ResourceNotFoundError("用户不存在")
        return to_public_user(user)

    @staticmethod
    def update_profile(db: Session, user: User, update_data) -> dict:
        # gender and verification state are owned by identity verification
        updated_fields = []

        if update_data.nickname is not None:
            user.nickname = update_data.nickname.strip()
            updated_fields.append("nickname")

        if update_data.avatar is not None:
            user.avatar = update_data.avatar
            updated_fields.append("avatar")

        if update_data.bio is not None:
            user.bio = update_data.bio
            updated_fields.append("bio")

        if update_data.email is not None:
            user.email = str(update_data.email).lower()
            updated_fields.append("email")

        if not updated_fields:
            raise ValidationError("没有需要更新的字段")

        user.updated_at = utcnow()
        UserRepository.update_user(db, user)
        logger.info(f"Profile updated for user_id={user.id}: {updated_fields}")
        return {"success": True, "updated_fields": updated_fields}

    @staticmethod
    def bind_phone(db: Session, user: User, phone: str, code: str) -> dict:
        # a bound phone is permanent
        if user.phone and user.phone != phone:
            raise ConflictError("账号已绑定其他手机号，无法更换")

        SmsCodeService.verify_code(db, phone, code)

        existing = UserRepository.get_by_phone(db, phone)
        if existing and existing.id != user.id:
            raise ConflictError("该手机号已被其他账号绑定")
        if existing:
            return {"success": True, "message": "手机号已绑定"}

        user.phone = phone
        try:
            UserRepository.update_user(db, user)
        except IntegrityError:
            db.rollback()
            raise ConflictError("该手机号已被其他账号绑定")

        logger.info(f"Phone bound for user_id={user.id}")
        return {"success": True, "message": "手机号绑定成功"}

    @staticmethod
    def search_users(db: Session, keyword: str, limit: int = 20) -> list:
        keyword = keyword.strip()
        if not keyword:
            raise ValidationError("搜索关键词不能为空")
        return [to_public_user(u) for u in UserRepository.search_by_nickname(db, keyword, limit)]
