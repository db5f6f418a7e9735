# medireminder/schemas/register_request.py
from typing import Annotated

from pydantic import BaseModel, Field, StringConstraints

from medireminder.schemas.shared import EmailAddress


class RegisterRequest(BaseModel):
    name: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=255)]
    email: EmailAddress
    password: Annotated[str, Field(min_length=6, max_length=128)]
