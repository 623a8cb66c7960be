"""Shared API dependencies for authentication and common functionality."""

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.orm import Session

from loop_stage.core.security import decode_access_token
from loop_stage.db.session import get_db
from loop_stage.models import User

# HTTP Bearer scheme for JWT authentication
bearer_scheme = HTTPBearer()

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def get_current_user_id(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(bearer_scheme)],
) -> str:
    """Return the caller's user id from the bearer token.

    The identity provider owns authentication; the id in a valid token is
    trusted as-is.

    Raises:
        HTTPException: If the token is invalid or carries no subject
    """
    try:
        subject = decode_access_token(credentials.credentials)
    except JWTError as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        ) from err
    if subject is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        )
    return subject


# Type alias for caller id dependency
CurrentUserIdDep = Annotated[str, Depends(get_current_user_id)]


def get_current_user(user_id: CurrentUserIdDep, db: SessionDep) -> User:
    """Get the current user's profile.

    Args:
        user_id: Caller id taken from the bearer token
        db: Database session

    Returns:
        User object for the authenticated user

    Raises:
        HTTPException: If the caller has not created a profile yet
    """
    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )
    return user


# Type alias for current user dependency
CurrentUserDep = Annotated[User, Depends(get_current_user)]
