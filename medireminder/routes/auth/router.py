from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from medireminder.config.settings import Settings
from medireminder.core.auth import create_token_for_user
from medireminder.core.exceptions import InvalidCredential
from medireminder.core.middleware import get_db, get_settings
from medireminder.db.crud.auth import authenticate_user, register_user
from medireminder.db.models.user import UserModel
from medireminder.schemas.auth_response import AuthResponse
from medireminder.schemas.login_request import LoginRequest
from medireminder.schemas.register_request import RegisterRequest
from medireminder.schemas.shared import UserOut

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["auth"],
)


def _auth_response(user: UserModel, settings: Settings, message: str) -> AuthResponse:
    token = create_token_for_user(
        user,
        expire_minutes=settings.access_token_expire_minutes,
        secret_key=settings.secret_key,
        algorithm=settings.algorithm,
    )
    return AuthResponse(
        message=message,
        token=token,
        expires_in=settings.access_token_expire_minutes * 60,
        user=UserOut.model_validate(user),
    )


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: RegisterRequest,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    new_user = await register_user(db, user_data)
    logger.info(f"Registered user_id={new_user.id}")
    return _auth_response(new_user, settings, "User registered successfully")


@router.post("/login", response_model=AuthResponse)
async def login(
    login_data: LoginRequest,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    user = await authenticate_user(db, login_data)
    if not user:
        raise InvalidCredential("Invalid email or password")
    return _auth_response(user, settings, "Login successful")
