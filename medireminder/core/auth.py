from datetime import datetime, timedelta, timezone
from typing import Optional

from passlib.context import CryptContext
from jose import ExpiredSignatureError, JWTError, jwt

from medireminder.config.settings import settings
from medireminder.core.exceptions import ExpiredCredential, InvalidCredential

# new hashes are written with the $2b$ prefix
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__ident="2b",
)

BEARER_PREFIX = "bearer "


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(
    data: dict,
    expires_delta: Optional[timedelta] = None,
    secret_key: Optional[str] = None,
    algorithm: Optional[str] = None,
) -> str:
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.access_token_expire_minutes)
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(
        to_encode,
        secret_key or settings.secret_key,
        algorithm=algorithm or settings.algorithm,
    )
    return encoded_jwt


def decode_access_token(
    token: str,
    secret_key: Optional[str] = None,
    algorithm: Optional[str] = None,
) -> dict:
    """Verify signature and expiry.

    Raises ExpiredCredential for a well-formed but expired token and
    InvalidCredential for anything else jose rejects.
    """
    try:
        return jwt.decode(
            token,
            secret_key or settings.secret_key,
            algorithms=[algorithm or settings.algorithm],
        )
    except ExpiredSignatureError:
        raise ExpiredCredential()
    except JWTError:
        raise InvalidCredential()


def extract_bearer_token(header_value: Optional[str]) -> Optional[str]:
    """Accepts "Bearer <token>" (any case) or the bare token. Blank means absent."""
    if header_value is None:
        return None
    raw = header_value.strip()
    if raw.lower() == BEARER_PREFIX.strip():
        return None
    if raw.lower().startswith(BEARER_PREFIX):
        raw = raw[len(BEARER_PREFIX):].strip()
    return raw or None


def create_token_for_user(user, expire_minutes: Optional[int] = None, secret_key: Optional[str] = None,
                          algorithm: Optional[str] = None) -> str:
    minutes = expire_minutes or settings.access_token_expire_minutes
    return create_access_token(
        {"sub": str(user.id), "email": user.email},
        timedelta(minutes=minutes),
        secret_key=secret_key,
        algorithm=algorithm,
    )
