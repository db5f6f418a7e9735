# medireminder/schemas/profile.py
from typing import Annotated, List, Optional

from pydantic import BaseModel, ConfigDict, StringConstraints, model_validator

from medireminder.schemas.shared import EmailAddress, UserDetailOut, UserOut


class ProfileUpdateRequest(BaseModel):
    model_config = ConfigDict(extra='forbid')

    name: Optional[Annotated[str, StringConstraints(strip_whitespace=True, max_length=255)]] = None
    email: Optional[EmailAddress] = None

    @model_validator(mode="after")
    def _at_least_one_field(self):
        if not self.name and not self.email:
            raise ValueError("Provide at least one field to update (name or email)")
        return self


class ProfileResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    user: UserOut


class UserListResponse(BaseModel):
    success: bool = True
    users: List[UserDetailOut]
    count: int
