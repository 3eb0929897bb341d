"""
User registration and profile endpoints.
"""
from fastapi import APIRouter, Depends, HTTPException, status, Request
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
import time
from barter_engine.api.deps import get_db, get_current_user
from barter_engine.models.db import Brand, Creator, User
from barter_engine.models.db.enums import UserRole
from barter_engine.models.schemas.users import UserCreate, UserRead, ProfileUpdate
from barter_engine.utils import get_logger, log_business_event, log_performance
from barter_engine.utils.codes import generate_api_key

router = APIRouter()
logger = get_logger(__name__)

_KEY_PREFIXES = {UserRole.BRAND: "brand", UserRole.CREATOR: "creator", UserRole.ADMIN: "admin"}
_BRAND_FIELDS = {"lat", "lng"}
_CREATOR_FIELDS = {
    "full_name", "followers_count", "country", "address1", "address2",
    "city", "province", "zip", "lat", "lng",
}

@router.post(
    "/",
    response_model=UserRead,
    summary="Register user",
    description="Create a brand or creator account with its profile and return the API key"
)
async def create_user(
    user_data: UserCreate,
    request: Request,
    db: Session = Depends(get_db)
) -> UserRead:
    start_time = time.time()
    request_id = request.headers.get("X-Request-ID", "unknown")

    logger.info(
        "User registration started",
        email=user_data.email,
        role=user_data.role.value,
        request_id=request_id
    )

    existing = db.query(User).filter(User.email == user_data.email).first()
    if existing:
        logger.warning(
            "User registration failed: duplicate email",
            email=user_data.email,
            request_id=request_id
        )
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"User with email '{user_data.email}' already exists"
        )

    user = User(
        name=user_data.name,
        email=user_data.email,
        role=user_data.role,
        api_key=generate_api_key(_KEY_PREFIXES[user_data.role]),
    )
    if user_data.brand is not None:
        user.brand = Brand(**user_data.brand.model_dump())
    if user_data.creator is not None:
        user.creator = Creator(**user_data.creator.model_dump(mode="json"))

    db.add(user)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.warning("User registration rejected by constraint", error=str(e.orig), request_id=request_id)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User could not be created; email or profile already in use"
        )
    db.refresh(user)

    log_business_event(
        event_type="user_registered",
        details={"role": user.role.value, "brand_id": user.brand_id, "creator_id": user.creator_id},
        user_id=user.id,
        request_id=request_id
    )
    log_performance(operation="create_user", duration_ms=(time.time() - start_time) * 1000)
    return UserRead.model_validate(user)

@router.get("/me", response_model=UserRead, summary="Current user")
async def read_me(current_user: User = Depends(get_current_user)) -> UserRead:
    return UserRead.model_validate(current_user)

@router.patch(
    "/me/profile",
    response_model=UserRead,
    summary="Update own profile",
    description="Partial update of the caller's brand or creator profile (name, address, location)"
)
async def update_profile(
    profile: ProfileUpdate,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> UserRead:
    request_id = request.headers.get("X-Request-ID", "unknown")
    changes = profile.model_dump(mode="json", exclude_unset=True)

    if "name" in changes:
        if changes["name"] is None:
            changes.pop("name")
        else:
            current_user.name = changes.pop("name")

    if current_user.role == UserRole.BRAND and current_user.brand is not None:
        target = current_user.brand
        allowed = _BRAND_FIELDS
    elif current_user.role == UserRole.CREATOR and current_user.creator is not None:
        target = current_user.creator
        allowed = _CREATOR_FIELDS
    else:
        target, allowed = None, set()

    ignored = sorted(set(changes) - allowed)
    if ignored:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Fields not applicable to a {current_user.role.value} profile: {ignored}"
        )
    for name, value in changes.items():
        if name == "followers_count" and value is None:
            continue
        setattr(target, name, value)

    db.commit()
    db.refresh(current_user)

    logger.info(
        "Profile updated",
        user_id=current_user.id,
        fields=sorted(changes),
        request_id=request_id
    )
    return UserRead.model_validate(current_user)
