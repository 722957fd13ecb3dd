import logging
from sqlalchemy.orm import Session
from typing import Optional

from ..core.security import verify_token
from .user_service import UserService
from ..models.user import User

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(self, db: Session):
        self.db = db
        self.user_service = UserService(db)

    def get_current_user(self, token: str) -> Optional[User]:
        email = verify_token(token)
        if email is None:
            return None
        user = self.user_service.get_user_by_email(email)
        if user is None or not user.is_active:
            logger.info(f"Rejected token for unknown or inactive user {email}")
            return None
        return user
