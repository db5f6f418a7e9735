# medireminder/db/crud/auth.py
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from medireminder.core.auth import decode_access_token, get_password_hash, verify_password
from medireminder.core.exceptions import Conflict, InvalidCredential, Unauthenticated, UnknownSubject
from medireminder.db.crud.user import create_user, email_exists, get_user, get_user_by_email
from medireminder.db.models.user import UserModel
from medireminder.schemas.login_request import LoginRequest
from medireminder.schemas.register_request import RegisterRequest

logger = logging.getLogger(__name__)


async def register_user(db: AsyncSession, data: RegisterRequest) -> UserModel:
    """Hash the password and insert the account. Duplicate email -> Conflict."""
    if await email_exists(db, data.email):
        raise Conflict("An account with this email already exists")
    hashed = get_password_hash(data.password)
    # the unique index still guards the race between the check and the insert
    return await create_user(db, name=data.name, email=data.email, password_hash=hashed)


async def authenticate_user(db: AsyncSession, login_data: LoginRequest) -> UserModel | None:
    user = await get_user_by_email(db, login_data.email)
    if not user:
        return None
    if not verify_password(login_data.password, user.password_hash):
        return None
    return user


async def get_user_from_token(
    db: AsyncSession,
    token: Optional[str],
    secret_key: Optional[str] = None,
    algorithm: Optional[str] = None,
) -> UserModel:
    """Validates token and returns the user it names."""
    if not token:
        raise Unauthenticated("No token provided")

    payload = decode_access_token(token, secret_key=secret_key, algorithm=algorithm)

    try:
        user_id = int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        raise InvalidCredential("Token has no usable subject")

    user = await get_user(db, user_id)
    if not user:
        logger.info(f"Token subject user_id={user_id} no longer exists")
        raise UnknownSubject()

    return user
