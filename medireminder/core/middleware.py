import logging
import time

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from medireminder.config.settings import Settings
from medireminder.db.crud.auth import get_user_from_token
from medireminder.db.session import get_db_session
from medireminder.core.attachments import AttachmentManager
from medireminder.core.auth import extract_bearer_token
from medireminder.schemas.shared import UserOut

logger = logging.getLogger(__name__)


async def log_requests_middleware(request: Request, call_next):
    """
    Middleware that writes one log line per request with its status and latency.
    Headers and bodies are never logged.
    """
    started = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started) * 1000
    logger.info(
        f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.1f} ms)"
    )
    return response


def get_settings(request: Request) -> Settings:
    """Settings the running application was built with."""
    return request.app.state.settings


# Get a database session dependency
async def get_db(request: Request):
    """Yield an async SQLAlchemy session (dependency)."""
    async for session in get_db_session(request):
        yield session


# FastAPI dependency for protected routes
async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> UserOut:
    """
    Resolve the bearer token to a user and attach the identity to request.state.

    Raises Unauthenticated, InvalidCredential, ExpiredCredential or UnknownSubject.
    """
    # Starlette headers are case-insensitive, so "authorization" matches too
    token = extract_bearer_token(request.headers.get("Authorization"))
    user = await get_user_from_token(
        db, token, secret_key=settings.secret_key, algorithm=settings.algorithm
    )
    identity = UserOut.model_validate(user)
    request.state.user = identity
    return identity


def get_attachments(request: Request) -> AttachmentManager:
    return request.app.state.attachments
