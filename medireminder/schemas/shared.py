# medireminder/schemas/shared.py
from datetime import datetime
from typing import Annotated, Optional

from email_validator import EmailNotValidError, validate_email
from pydantic import AfterValidator, BaseModel, ConfigDict, StringConstraints


def _check_email(value: str) -> str:
    # format check only; the address is stored and compared exactly as sent
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError as e:
        raise ValueError(f"value is not a valid email address: {e}") from e
    return value


EmailAddress = Annotated[
    str,
    StringConstraints(strip_whitespace=True, max_length=255),
    AfterValidator(_check_email),
]


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str


class UserDetailOut(UserOut):
    created_at: Optional[datetime] = None


class MessageResponse(BaseModel):
    success: bool = True
    message: str
