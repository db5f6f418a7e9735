from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from medireminder.schemas.shared import UserOut


class AuthResponse(BaseModel):
    model_config = ConfigDict(
        extra='forbid',
    )
    success: bool = True
    message: str
    token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserOut
