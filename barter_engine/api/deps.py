"""
Dependencies for authentication, database sessions, and external collaborators.
"""
from typing import Generator, Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from barter_engine import database
from barter_engine.errors import LifecycleError
from barter_engine.integrations import (
    BillingService, DatabaseBilling, DatabaseSocialConnect, NotificationSink,
    OutboxNotificationSink, SocialConnectService,
)
from barter_engine.models.db import Brand, Creator, User
from barter_engine.models.db.enums import UserRole
from barter_engine.utils import get_logger

logger = get_logger(__name__)
# Missing credentials are reported as 401 by get_current_user, not 403
security = HTTPBearer(auto_error=False)

def _key_prefix(api_key: str) -> str:
    return api_key[:10] + "..." if len(api_key) > 10 else api_key

def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )

def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.
    Ensures proper session lifecycle management with automatic cleanup.

    Yields:
        Session: SQLAlchemy database session
    """
    db = database.SessionLocal()
    try:
        yield db
    except LifecycleError:
        # Domain errors are expected 4xx outcomes, logged by the exception handler
        db.rollback()
        raise
    except Exception as e:
        logger.error("Database session error", error=str(e), exc_info=True)
        db.rollback()
        raise
    finally:
        db.close()

def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    """
    Extract and validate user from API key.

    Raises:
        HTTPException: 401 if the key is missing, unknown or the user is inactive
    """
    if credentials is None or not credentials.credentials:
        logger.warning("Authentication failed: missing bearer token")
        raise _unauthorized("Not authenticated")

    api_key = credentials.credentials
    user = db.query(User).filter(
        User.api_key == api_key,
        User.is_active == True  # noqa: E712
    ).first()

    if not user:
        logger.warning(
            "Authentication failed: invalid or inactive API key",
            api_key_prefix=_key_prefix(api_key)
        )
        raise _unauthorized("Invalid or inactive API key")

    logger.debug("User authenticated", user_id=user.id, user_role=user.role)
    return user

def require_brand_user(current_user: User = Depends(get_current_user)) -> User:
    """Brand-side endpoints; any other role is treated as unauthenticated."""
    if current_user.role != UserRole.BRAND or current_user.brand_id is None:
        logger.warning(
            "Access denied: brand role required",
            user_id=current_user.id,
            user_role=current_user.role
        )
        raise _unauthorized("Brand credentials required")
    return current_user

def require_creator_user(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role != UserRole.CREATOR or current_user.creator_id is None:
        logger.warning(
            "Access denied: creator role required",
            user_id=current_user.id,
            user_role=current_user.role
        )
        raise _unauthorized("Creator credentials required")
    return current_user

def get_current_brand(
    current_user: User = Depends(require_brand_user),
    db: Session = Depends(get_db)
) -> Brand:
    brand = db.get(Brand, current_user.brand_id)
    if brand is None:
        raise _unauthorized("Brand profile missing")
    return brand

def get_current_creator(
    current_user: User = Depends(require_creator_user),
    db: Session = Depends(get_db)
) -> Creator:
    creator = db.get(Creator, current_user.creator_id)
    if creator is None:
        raise _unauthorized("Creator profile missing")
    return creator

def get_social_connect(db: Session = Depends(get_db)) -> SocialConnectService:
    return DatabaseSocialConnect(db)

def get_billing(db: Session = Depends(get_db)) -> BillingService:
    return DatabaseBilling(db)

def get_notifier() -> NotificationSink:
    return OutboxNotificationSink()

def get_pagination_params(
    limit: int = 50,
    offset: int = 0
) -> dict:
    """
    Validate and return pagination parameters.

    Args:
        limit: Maximum number of items to return (1-500)
        offset: Number of items to skip (>= 0)
    """
    if limit < 1 or limit > 500:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Limit must be between 1 and 500"
        )

    if offset < 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Offset must be >= 0"
        )

    return {"limit": limit, "offset": offset}
