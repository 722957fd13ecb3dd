from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..core.database import get_db
from ..core.security import oauth2_scheme
from ..services.auth_service import AuthService
from ..models.user import User


def _forbidden(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


def get_current_active_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db)
) -> User:
    """Bearer token to an active user, 401 otherwise"""
    user = AuthService(db).get_current_user(token)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def get_current_teacher(current_user: User = Depends(get_current_active_user)) -> User:
    # admins can do everything a teacher can
    if current_user.is_teacher or current_user.is_superuser:
        return current_user
    raise _forbidden("Teacher access required")


def get_current_active_superuser(current_user: User = Depends(get_current_active_user)) -> User:
    if current_user.is_superuser:
        return current_user
    raise _forbidden("Admin access required")
