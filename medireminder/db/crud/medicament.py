# medireminder/db/crud/medicament.py
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from medireminder.db.models.medicament import MedicamentModel
from medireminder.db.session import storage_errors

logger = logging.getLogger(__name__)

UPDATABLE_MEDICAMENT_FIELDS = {"name", "dose", "time", "image"}


async def get_medicaments_by_owner(db: AsyncSession, owner_id: int) -> List[MedicamentModel]:
    """
    All medicaments owned by a user, newest first.

    Args:
        db (AsyncSession): the database session
        owner_id (int): id of the owning user

    Returns:
        List[MedicamentModel]: possibly empty list
    """
    logger.debug(f"CRUD: fetching medicaments for user_id '{owner_id}'")
    stmt = (
        select(MedicamentModel)
        .where(MedicamentModel.user_id == owner_id)
        .order_by(MedicamentModel.created_at.desc(), MedicamentModel.id.desc())
    )
    async with storage_errors(db, "list medicaments"):
        result = await db.execute(stmt)
        medicaments = list(result.scalars().all())
    logger.info(f"CRUD: found {len(medicaments)} medicaments for user_id '{owner_id}'")
    return medicaments


async def get_medicament(db: AsyncSession, medicament_id: int, owner_id: int) -> Optional[MedicamentModel]:
    """Owner-scoped lookup. A record of another user is reported as absent."""
    stmt = select(MedicamentModel).where(
        MedicamentModel.id == medicament_id,
        MedicamentModel.user_id == owner_id,
    )
    async with storage_errors(db, f"load medicament {medicament_id}"):
        result = await db.execute(stmt)
        return result.scalar_one_or_none()


async def create_medicament(
    db: AsyncSession,
    owner_id: int,
    name: str,
    dose: str,
    time: str,
    image=None,
) -> MedicamentModel:
    medicament = MedicamentModel(name=name, dose=dose, time=time, image=image, user_id=owner_id)
    async with storage_errors(db, "create medicament"):
        db.add(medicament)
        await db.commit()
        await db.refresh(medicament)
    logger.info(f"CRUD: created medicament_id={medicament.id} for user_id={owner_id}")
    return medicament


async def update_medicament(
    db: AsyncSession,
    medicament_id: int,
    changes: Dict[str, Any],
) -> Optional[MedicamentModel]:
    """
    Partial update. A key absent from `changes` keeps its stored value; a key
    present is written as given, so {"image": None} clears the image.

    Returns:
        The refreshed MedicamentModel, or None if no such row exists
    """
    unknown = set(changes) - UPDATABLE_MEDICAMENT_FIELDS
    if unknown:
        raise ValueError(f"Cannot update medicament fields: {sorted(unknown)}")

    async with storage_errors(db, f"update medicament {medicament_id}"):
        if changes:
            result = await db.execute(
                update(MedicamentModel)
                .where(MedicamentModel.id == medicament_id)
                .values({getattr(MedicamentModel, field): value for field, value in changes.items()})
                .execution_options(synchronize_session=False)
            )
            await db.commit()
            if result.rowcount == 0:
                logger.info(f"CRUD: medicament_id={medicament_id} vanished before update")
                return None
        medicament = await db.get(MedicamentModel, medicament_id, populate_existing=True)
        if not medicament:
            return None
    logger.info(f"CRUD: updated medicament_id={medicament_id} fields={sorted(changes)}")
    return medicament


async def delete_medicament(db: AsyncSession, medicament_id: int) -> bool:
    async with storage_errors(db, f"delete medicament {medicament_id}"):
        result = await db.execute(delete(MedicamentModel).where(MedicamentModel.id == medicament_id))
        await db.commit()
    deleted = result.rowcount > 0
    logger.info(f"CRUD: delete medicament_id={medicament_id} -> {deleted}")
    return deleted
