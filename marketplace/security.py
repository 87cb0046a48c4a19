# marketplace/security.py
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import jwt, JWTError
from passlib.context import CryptContext
from passlib.exc import UnknownHashError

from . import config
from .errors import Forbidden, Unauthorized
from .models import Role, User

logger = logging.getLogger(__name__)

# New hashes use Argon2; bcrypt stays in the context so older hashes still verify.
pwd_context = CryptContext(schemes=["argon2", "bcrypt"], deprecated="auto")

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Principal:
    """Caller identity resolved from a bearer token."""

    id: int
    role: Role


# 🔐 Passwords
def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (UnknownHashError, ValueError):
        # Unrecognised or corrupt hash -> authentication failure, not a 500
        logger.warning("Stored password hash could not be verified")
        return False


# 🔑 Tokens
def create_access_token(user: User, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode = {"sub": str(user.id), "role": Role(user.role).value, "exp": expire}
    return jwt.encode(to_encode, config.SECRET_KEY, algorithm=config.ALGORITHM)


def verify(token: Optional[str], required_role: Optional[Role] = None) -> Principal:
    """Decode a bearer token and check the role claim.

    Raises Unauthorized for a missing, invalid or expired token and Forbidden
    when the token is valid but carries a different role.
    """
    if not token:
        raise Unauthorized("No token provided")
    try:
        payload = jwt.decode(token, config.SECRET_KEY, algorithms=[config.ALGORITHM])
    except JWTError:
        raise Unauthorized("Authorization token invalid")

    try:
        principal = Principal(id=int(payload["sub"]), role=Role(payload["role"]))
    except (KeyError, TypeError, ValueError):
        raise Unauthorized("Authorization token invalid")

    if required_role is not None and principal.role is not required_role:
        logger.info("User %s with role %s denied, %s required", principal.id, principal.role.value, required_role.value)
        raise Forbidden("Access denied")
    return principal


def require_role(required_role: Optional[Role] = None):
    """FastAPI dependency resolving the caller from ``Authorization: Bearer``."""

    async def dependency(
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    ) -> Principal:
        token = credentials.credentials if credentials is not None else None
        return verify(token, required_role)

    return dependency


require_seller = require_role(Role.SELLER)
require_buyer = require_role(Role.BUYER)
