# medireminder/routes/medicaments/services.py
import json
import logging
from dataclasses import dataclass
from typing import Any, AsyncGenerator, Dict, List, Optional

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import UploadFile

from medireminder.core.attachments import AttachmentManager, ResolvedImage
from medireminder.core.exceptions import InvalidInput, NotFound
from medireminder.db.crud.medicament import (
    create_medicament,
    delete_medicament,
    get_medicament,
    get_medicaments_by_owner,
    update_medicament,
)
from medireminder.db.models.medicament import MedicamentModel
from medireminder.schemas.medicament import MedicamentOut

logger = logging.getLogger(__name__)

FORM_CONTENT_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")
TEXT_FIELDS = ("name", "dose", "time")
TRUTHY = {"1", "true", "yes", "on"}
NOT_FOUND_MESSAGE = "Medicament does not exist or does not belong to the user"


@dataclass
class MedicamentInput:
    """Fields of a create/update request, whether sent as multipart or JSON."""

    name: Optional[str] = None
    dose: Optional[str] = None
    time: Optional[str] = None
    image_url: Optional[str] = None
    remove_image: bool = False
    image: Optional[UploadFile] = None

    def text_changes(self) -> Dict[str, str]:
        return {field: getattr(self, field) for field in TEXT_FIELDS if getattr(self, field)}

    def has_image_intent(self) -> bool:
        return self.image is not None or bool(self.image_url and self.image_url.strip()) or self.remove_image


def _clean_text(value: Any, field: str) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise InvalidInput(f"Field '{field}' must be a string")
    text = str(value).strip()
    return text or None


def _as_flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value or "").strip().lower() in TRUTHY


def _build_input(data: Dict[str, Any], image: Optional[UploadFile]) -> MedicamentInput:
    return MedicamentInput(
        name=_clean_text(data.get("name"), "name"),
        dose=_clean_text(data.get("dose"), "dose"),
        time=_clean_text(data.get("time"), "time"),
        image_url=_clean_text(data.get("image_url"), "image_url"),
        remove_image=_as_flag(data.get("remove_image")),
        image=image,
    )


async def medicament_input(request: Request) -> AsyncGenerator[MedicamentInput, None]:
    """
    Dependency reading a medicament body from multipart/form-data, a urlencoded
    form or JSON. An `image` part without a filename counts as no upload.
    """
    content_type = request.headers.get("content-type", "").lower()

    if content_type.startswith(FORM_CONTENT_TYPES):
        form = await request.form()
        try:
            image = form.get("image")
            if not isinstance(image, UploadFile) or not image.filename:
                image = None
            fields = {key: value for key, value in form.items() if not isinstance(value, UploadFile)}
            yield _build_input(fields, image)
        finally:
            await form.close()
        return

    body = await request.body()
    if not body.strip():
        yield MedicamentInput()
        return
    try:
        data = json.loads(body)
    except ValueError:
        raise InvalidInput("Request body is not valid JSON")
    if not isinstance(data, dict):
        raise InvalidInput("Request body must be a JSON object")
    yield _build_input(data, None)


def medicament_out(medicament: MedicamentModel, attachments: AttachmentManager) -> MedicamentOut:
    """The one place a stored image reference becomes a client-facing URL."""
    return MedicamentOut(
        id=medicament.id,
        name=medicament.name,
        dose=medicament.dose,
        time=medicament.time,
        image_url=attachments.public_url(medicament.image),
        user_id=medicament.user_id,
        created_at=medicament.created_at,
        updated_at=medicament.updated_at,
    )


def _drop_replaced(attachments: AttachmentManager, resolved: ResolvedImage) -> None:
    # the record no longer points at this file; failure to remove it is not the client's problem
    try:
        attachments.delete_artifact(resolved.replaced)
    except OSError:
        logger.exception(f"Could not remove superseded attachment {resolved.replaced}")


async def list_medicaments(
    db: AsyncSession, owner_id: int, attachments: AttachmentManager
) -> List[MedicamentOut]:
    medicaments = await get_medicaments_by_owner(db, owner_id)
    return [medicament_out(m, attachments) for m in medicaments]


async def get_owned_medicament(db: AsyncSession, medicament_id: int, owner_id: int) -> MedicamentModel:
    medicament = await get_medicament(db, medicament_id, owner_id)
    if not medicament:
        raise NotFound(NOT_FOUND_MESSAGE)
    return medicament


async def create_owned_medicament(
    db: AsyncSession,
    owner_id: int,
    data: MedicamentInput,
    attachments: AttachmentManager,
) -> MedicamentOut:
    if not (data.name and data.dose and data.time):
        raise InvalidInput("Name, dose and time are required")

    resolved = await attachments.resolve_for_create(owner_id, data.image, data.image_url)
    try:
        medicament = await create_medicament(
            db,
            owner_id=owner_id,
            name=data.name,
            dose=data.dose,
            time=data.time,
            image=resolved.ref,
        )
    except Exception:
        attachments.discard(resolved)
        raise

    logger.info(f"Medicament {medicament.id} created for user_id={owner_id} (image: {resolved.public_url})")
    return medicament_out(medicament, attachments)


async def update_owned_medicament(
    db: AsyncSession,
    medicament_id: int,
    owner_id: int,
    data: MedicamentInput,
    attachments: AttachmentManager,
) -> MedicamentOut:
    changes: Dict[str, Any] = data.text_changes()
    if not changes and not data.has_image_intent():
        raise InvalidInput("Provide at least one field to update")

    existing = await get_owned_medicament(db, medicament_id, owner_id)

    resolved = await attachments.resolve_for_update(
        existing.image,
        owner_id,
        upload=data.image,
        external_url=data.image_url,
        remove=data.remove_image,
    )
    if resolved.changed:
        changes["image"] = resolved.ref

    try:
        updated = await update_medicament(db, medicament_id, changes)
    except Exception:
        attachments.discard(resolved)
        raise
    if updated is None:
        # deleted by a concurrent request between the ownership check and the write
        attachments.discard(resolved)
        raise NotFound(NOT_FOUND_MESSAGE)

    if resolved.replaced is not None:
        _drop_replaced(attachments, resolved)

    return medicament_out(updated, attachments)


async def delete_owned_medicament(
    db: AsyncSession,
    medicament_id: int,
    owner_id: int,
    attachments: AttachmentManager,
) -> None:
    existing = await get_owned_medicament(db, medicament_id, owner_id)
    image = existing.image

    if not await delete_medicament(db, medicament_id):
        raise NotFound(NOT_FOUND_MESSAGE)

    try:
        attachments.delete_artifact(image)
    except OSError:
        logger.exception(f"Medicament {medicament_id} deleted but its attachment could not be removed")
