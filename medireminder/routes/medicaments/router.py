from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from medireminder.core.attachments import AttachmentManager
from medireminder.core.middleware import get_attachments, get_current_user, get_db
from medireminder.routes.medicaments.services import (
    MedicamentInput,
    create_owned_medicament,
    delete_owned_medicament,
    get_owned_medicament,
    list_medicaments,
    medicament_input,
    medicament_out,
    update_owned_medicament,
)
from medireminder.schemas.medicament import MedicamentListResponse, MedicamentResponse
from medireminder.schemas.shared import MessageResponse, UserOut

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/medicaments", tags=["medicaments"])


@router.get("", response_model=MedicamentListResponse)
async def list_medicaments_route(
    db: AsyncSession = Depends(get_db),
    current_user: UserOut = Depends(get_current_user),
    attachments: AttachmentManager = Depends(get_attachments),
):
    """All medicaments of the current user, newest first"""
    medicaments = await list_medicaments(db, current_user.id, attachments)
    return MedicamentListResponse(medicaments=medicaments)


@router.get("/{medicament_id}", response_model=MedicamentResponse)
async def get_medicament_route(
    medicament_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: UserOut = Depends(get_current_user),
    attachments: AttachmentManager = Depends(get_attachments),
):
    medicament = await get_owned_medicament(db, medicament_id, current_user.id)
    return MedicamentResponse(medicament=medicament_out(medicament, attachments))


@router.post("", response_model=MedicamentResponse, status_code=status.HTTP_201_CREATED)
async def create_medicament_route(
    db: AsyncSession = Depends(get_db),
    current_user: UserOut = Depends(get_current_user),
    attachments: AttachmentManager = Depends(get_attachments),
    data: MedicamentInput = Depends(medicament_input),
):
    """Create a medicament. Accepts JSON or multipart with an optional `image` file or `image_url`."""
    medicament = await create_owned_medicament(db, current_user.id, data, attachments)
    return MedicamentResponse(message="Medicament created successfully", medicament=medicament)


@router.put("/{medicament_id}", response_model=MedicamentResponse)
async def update_medicament_route(
    medicament_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: UserOut = Depends(get_current_user),
    attachments: AttachmentManager = Depends(get_attachments),
    data: MedicamentInput = Depends(medicament_input),
):
    """Partial update; a new image replaces (and removes) the previous local file"""
    medicament = await update_owned_medicament(db, medicament_id, current_user.id, data, attachments)
    return MedicamentResponse(message="Medicament updated successfully", medicament=medicament)


@router.delete("/{medicament_id}", response_model=MessageResponse)
async def delete_medicament_route(
    medicament_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: UserOut = Depends(get_current_user),
    attachments: AttachmentManager = Depends(get_attachments),
):
    await delete_owned_medicament(db, medicament_id, current_user.id, attachments)
    return MessageResponse(message="Medicament deleted successfully")
