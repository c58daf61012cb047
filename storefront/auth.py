import logging
import os
import time
from typing import NamedTuple, Optional

import jwt
from fastapi import Depends, Request
from passlib.context import CryptContext

from .errors import AuthError, ForbiddenError

logger = logging.getLogger(__name__)

# Use pbkdf2_sha256 as default to avoid bcrypt 72-byte limitation in some envs
pwd_context = CryptContext(schemes=["pbkdf2_sha256", "bcrypt"], deprecated="auto")

SECRET = os.getenv("JWT_SECRET", "dev-secret")
ALGORITHM = "HS256"
EXP_SECONDS = int(os.getenv("TOKEN_TTL_SECONDS", str(60 * 60)))  # 1 hour


class Identity(NamedTuple):
    id: int
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def create_access_token(user_id: int, role: str, expires_delta: Optional[int] = None) -> str:
    now = int(time.time())
    exp = now + (expires_delta or EXP_SECONDS)
    payload = {"id": user_id, "role": role, "iat": now, "exp": exp}
    return jwt.encode(payload, SECRET, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    return jwt.decode(token, SECRET, algorithms=[ALGORITHM])


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def identity_from_header(auth: Optional[str]) -> Identity:
    """Turn an ``Authorization`` header value into an Identity or raise AuthError."""
    parts = auth.split(None, 1) if auth else []
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise AuthError("No token, authorization denied")
    token = parts[1].strip()
    try:
        payload = decode_access_token(token)
    except jwt.ExpiredSignatureError:
        logger.warning("rejected expired token")
        raise AuthError("Token expired")
    except jwt.PyJWTError:
        logger.warning("rejected invalid token")
        raise AuthError("Token is not valid")
    user_id = payload.get("id")
    role = payload.get("role")
    if user_id is None or role is None:
        raise AuthError("Token is not valid")
    return Identity(id=int(user_id), role=str(role))


# -------------------- Gates (FastAPI dependencies) --------------------

async def current_identity(request: Request) -> Identity:
    return identity_from_header(request.headers.get("authorization"))


async def optional_identity(request: Request) -> Optional[Identity]:
    # A header that is present must still be valid
    auth = request.headers.get("authorization")
    if auth is None:
        return None
    return identity_from_header(auth)


async def admin_identity(identity: Identity = Depends(current_identity)) -> Identity:
    if not identity.is_admin:
        raise ForbiddenError("Admin access required")
    return identity
