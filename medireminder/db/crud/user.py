# medireminder/db/crud/user.py
import logging
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from typing import Any, Dict, List, Optional

from medireminder.core.exceptions import Conflict
from medireminder.db.models.user import UserModel
from medireminder.db.session import storage_errors

logger = logging.getLogger(__name__)

UPDATABLE_USER_FIELDS = {"name", "email"}


async def get_users(
    db: AsyncSession,
    skip: int = 0,
    limit: int = 100,
) -> List[UserModel]:
    """
    Get a page of users, newest first.

    Args:
        db: Database session
        skip: Number of records to skip
        limit: Maximum number of records to return

    Returns:
        List of UserModel objects
    """
    query = (
        select(UserModel)
        .order_by(UserModel.created_at.desc(), UserModel.id.desc())
        .offset(skip)
        .limit(limit)
    )
    async with storage_errors(db, "list users"):
        result = await db.execute(query)
        return list(result.scalars().all())


async def get_user(db: AsyncSession, user_id: int) -> Optional[UserModel]:
    """
    Get a user by ID.

    Args:
        db: Database session
        user_id: User ID

    Returns:
        UserModel or None if not found
    """
    async with storage_errors(db, f"load user {user_id}"):
        result = await db.execute(select(UserModel).where(UserModel.id == user_id))
        return result.scalar_one_or_none()


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[UserModel]:
    """Exact, case-sensitive lookup."""
    async with storage_errors(db, "load user by email"):
        result = await db.execute(select(UserModel).where(UserModel.email == email))
        return result.scalar_one_or_none()


async def email_exists(db: AsyncSession, email: str, exclude_id: Optional[int] = None) -> bool:
    query = select(func.count(UserModel.id)).where(UserModel.email == email)
    if exclude_id is not None:
        query = query.where(UserModel.id != exclude_id)
    async with storage_errors(db, "check email"):
        result = await db.execute(query)
        return result.scalar_one() > 0


async def create_user(db: AsyncSession, name: str, email: str, password_hash: str) -> UserModel:
    user = UserModel(name=name, email=email, password_hash=password_hash)
    async with storage_errors(db, "create user"):
        db.add(user)
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            logger.info("CRUD: rejected duplicate email on registration")
            raise Conflict("An account with this email already exists")
        await db.refresh(user)
    logger.info(f"CRUD: created user_id={user.id}")
    return user


async def update_user(db: AsyncSession, user_id: int, changes: Dict[str, Any]) -> Optional[UserModel]:
    """
    Apply a partial update. Only keys present in `changes` are written.

    Returns:
        The refreshed UserModel, or None if the user does not exist
    """
    unknown = set(changes) - UPDATABLE_USER_FIELDS
    if unknown:
        raise ValueError(f"Cannot update user fields: {sorted(unknown)}")

    user = await get_user(db, user_id)
    if not user:
        return None

    async with storage_errors(db, f"update user {user_id}"):
        for field, value in changes.items():
            setattr(user, field, value)
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise Conflict("This email is already registered by another user")
        await db.refresh(user)
    logger.info(f"CRUD: updated user_id={user_id} fields={sorted(changes)}")
    return user
