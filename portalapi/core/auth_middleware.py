from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from portalapi.config import settings
from portalapi.core.exceptions import AuthenticationError, AuthorizationError
from portalapi.database.session import get_db
from portalapi.models.user import UserRole
from portalapi.schemas.user import User as UserSchema
from portalapi.services.auth_service import AuthService

# JWT Bearer scheme
security = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> UserSchema:
    """Required authentication - a valid bearer token for an existing user"""
    if not credentials:
        raise AuthenticationError("Authentication required")

    auth_service = AuthService(db, settings=settings)
    user = auth_service.get_current_user(credentials.credentials)
    if not user:
        raise AuthenticationError("Invalid or expired token")
    return user


def get_current_active_user(
    current_user: UserSchema = Depends(get_current_user),
) -> UserSchema:
    if not current_user.is_active:
        raise AuthorizationError("Inactive user account")
    return current_user


def require_admin(
    current_user: UserSchema = Depends(get_current_active_user),
) -> UserSchema:
    if not current_user.is_admin:
        raise AuthorizationError("Admin access required")
    return current_user


def require_roles(*roles: UserRole):
    """Dependency factory allowing only the listed roles"""
    allowed = {UserRole(role) for role in roles}

    def _require_roles(
        current_user: UserSchema = Depends(get_current_active_user),
    ) -> UserSchema:
        if current_user.role not in allowed:
            raise AuthorizationError(
                f"Role '{current_user.role.value}' is not allowed here",
                details={"allowed": sorted(role.value for role in allowed)},
            )
        return current_user

    return _require_roles
