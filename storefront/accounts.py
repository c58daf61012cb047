import logging
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from . import models, schemas
from .auth import create_access_token, hash_password, verify_password
from .config import DEFAULTS, ROLES
from .errors import AuthError, ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"


def find_user_by_email(db: Session, email: str) -> Optional[models.User]:
    return db.execute(select(models.User).where(models.User.email == email)).scalar_one_or_none()


def signup(db: Session, data: schemas.SignupRequest) -> models.User:
    if not data.name or not data.email or not data.password:
        raise ValidationError("Name, email and password are required")

    # Anything but an exact known role falls back to the default
    role = data.role if data.role in ROLES else DEFAULTS.role

    if find_user_by_email(db, data.email):
        raise ConflictError("User with this email already exists")

    user = models.User(
        name=data.name,
        email=data.email,
        password_hash=hash_password(data.password),
        role=role,
        phone=data.phone or DEFAULTS.phone,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError as e:
        # lost a race against another signup with the same email
        db.rollback()
        raise ConflictError("User with this email already exists") from e
    db.refresh(user)
    logger.info("user %s signed up with role %s", user.id, user.role)
    return user


def login(db: Session, data: schemas.LoginRequest) -> dict:
    if not data.email or not data.password:
        raise ValidationError("Email and password are required")

    user = find_user_by_email(db, data.email)
    # Same message for unknown email and wrong password
    if not user or not verify_password(data.password, user.password_hash):
        logger.warning("failed login attempt")
        raise AuthError(INVALID_CREDENTIALS)

    token = create_access_token(user.id, user.role)
    return {"token": token, "role": user.role}


def update_profile(db: Session, user_id: int, data: schemas.ProfileUpdate) -> models.User:
    user = db.get(models.User, user_id)
    if not user:
        raise NotFoundError("User not found")

    fields = data.model_dump(exclude_unset=True)
    if fields.get("email") and fields["email"] != user.email:
        other = find_user_by_email(db, fields["email"])
        if other and other.id != user.id:
            raise ConflictError("User with this email already exists")

    for key, value in fields.items():
        if value is not None:
            setattr(user, key, value)
    db.add(user)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise ConflictError("User with this email already exists") from e
    db.refresh(user)
    return user


def list_users(db: Session) -> List[models.User]:
    stmt = (
        select(models.User)
        .options(selectinload(models.User.cart).selectinload(models.CartItem.product))
        .order_by(models.User.id)
    )
    return list(db.execute(stmt).scalars().all())


def get_user(db: Session, user_id: int) -> models.User:
    stmt = (
        select(models.User)
        .where(models.User.id == user_id)
        .options(selectinload(models.User.cart).selectinload(models.CartItem.product))
    )
    user = db.execute(stmt).scalar_one_or_none()
    if not user:
        raise NotFoundError("User not found")
    return user


def user_stats(db: Session) -> schemas.UserStats:
    def count(*criteria) -> int:
        return db.execute(select(func.count(models.User.id)).where(*criteria)).scalar_one()

    has_cart = select(models.CartItem.id).where(models.CartItem.user_id == models.User.id).exists()
    return schemas.UserStats(
        total_users=count(),
        admin_count=count(models.User.role == "admin"),
        regular_users=count(models.User.role == "user"),
        users_with_active_cart=count(has_cart),
    )
