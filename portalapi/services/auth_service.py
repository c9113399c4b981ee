import logging
from typing import Optional

from sqlalchemy.orm import Session

from portalapi.config import Settings
from portalapi.core.security import decode_access_token
from portalapi.repositories.user_repository import UserRepository
from portalapi.schemas.auth import TokenData
from portalapi.schemas.user import User as UserSchema

logger = logging.getLogger(__name__)


class AuthService:
    """Bearer token handling; login itself lives with the identity provider"""

    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.settings = settings
        self.user_repo = UserRepository(db)

    def verify_token(self, token: str) -> Optional[TokenData]:
        payload = decode_access_token(token)
        if not payload:
            return None

        subject = payload.get("sub")
        try:
            user_id = int(subject)
        except (TypeError, ValueError):
            return None

        return TokenData(user_id=user_id, role=payload.get("role"))

    def get_current_user(self, token: str) -> Optional[UserSchema]:
        token_data = self.verify_token(token)
        if not token_data or not token_data.user_id:
            return None

        user = self.user_repo.get_by_id(token_data.user_id)
        if not user:
            logger.warning(f"Token for unknown user {token_data.user_id}")
            return None
        return user
