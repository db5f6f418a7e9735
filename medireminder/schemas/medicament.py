# medireminder/schemas/medicament.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class MedicamentOut(BaseModel):
    """A medicament as returned to clients; image_url is always public or null."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    dose: str
    time: str
    image_url: Optional[str] = None
    user_id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class MedicamentResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    medicament: MedicamentOut


class MedicamentListResponse(BaseModel):
    success: bool = True
    medicaments: List[MedicamentOut]
