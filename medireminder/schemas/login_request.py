from __future__ import annotations
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

from medireminder.schemas.shared import EmailAddress


class LoginRequest(BaseModel):
    model_config = ConfigDict(extra='forbid')

    email: EmailAddress
    # no length rule here: a short wrong password must still be a 401, not a 400
    password: Annotated[str, Field(min_length=1, max_length=128)]
