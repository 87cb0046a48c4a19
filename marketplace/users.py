# marketplace/users.py
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from .database import get_session
from .errors import Conflict, NotFound, Unauthorized
from .models import MAX_INT, User
from .schemas import LoginResponse, UserCreate, UserMessage, UserLogin, UserOut
from .security import create_access_token, get_password_hash, verify_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["users"])


# Identity store

async def find_by_email(session: AsyncSession, email: str) -> Optional[User]:
    result = await session.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def find_by_id(session: AsyncSession, user_id: int) -> Optional[User]:
    return await session.get(User, user_id)


async def list_users(session: AsyncSession) -> List[User]:
    result = await session.execute(select(User).order_by(User.id))
    return list(result.scalars().all())


async def create_user(session: AsyncSession, payload: UserCreate) -> User:
    if await find_by_email(session, payload.email):
        raise Conflict("User already exists with this email")

    user = User(
        name=payload.name,
        email=payload.email,
        password_hash=get_password_hash(payload.password),
        role=payload.role,
    )
    session.add(user)
    try:
        await session.commit()
    except IntegrityError:
        # lost a race against a concurrent signup with the same email
        await session.rollback()
        raise Conflict("User already exists with this email")
    await session.refresh(user)
    logger.info("Created %s user %s", user.role.value, user.id)
    return user


async def authenticate(session: AsyncSession, email: str, password: str) -> User:
    user = await find_by_email(session, email)
    if user is None or not verify_password(password, user.password_hash):
        logger.info("Failed login for %s", email)
        raise Unauthorized("Invalid email or password")
    return user


async def delete_user(session: AsyncSession, user_id: int) -> User:
    user = await find_by_id(session, user_id)
    if user is None:
        raise NotFound("User", user_id)
    await session.delete(user)
    await session.commit()
    logger.info("Deleted user %s", user_id)
    return user


# ✅ Routes

@router.get("", response_model=List[UserOut])
async def get_all_users(session: AsyncSession = Depends(get_session)):
    return await list_users(session)


@router.get("/{user_id}", response_model=UserOut)
async def get_user(user_id: int = Path(le=MAX_INT), session: AsyncSession = Depends(get_session)):
    user = await find_by_id(session, user_id)
    if user is None:
        raise NotFound("User", user_id)
    return user


@router.post("", response_model=UserMessage, status_code=status.HTTP_201_CREATED)
async def register_user(payload: UserCreate, session: AsyncSession = Depends(get_session)):
    user = await create_user(session, payload)
    return {"message": "User created successfully", "user": user}


@router.post("/login", response_model=LoginResponse)
async def login_user(payload: UserLogin, session: AsyncSession = Depends(get_session)):
    user = await authenticate(session, payload.email, payload.password)
    return {
        "message": "Login successful",
        "token": create_access_token(user),
        "token_type": "bearer",
        "user": user,
    }


@router.delete("/{user_id}", response_model=UserMessage)
async def remove_user(user_id: int = Path(le=MAX_INT), session: AsyncSession = Depends(get_session)):
    user = await delete_user(session, user_id)
    return {"message": "User deleted successfully", "user": user}
