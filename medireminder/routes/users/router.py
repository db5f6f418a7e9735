from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from medireminder.core.exceptions import Conflict, NotFound
from medireminder.core.middleware import get_current_user, get_db
from medireminder.db.crud.user import email_exists, get_users, update_user
from medireminder.schemas.profile import ProfileResponse, ProfileUpdateRequest, UserListResponse
from medireminder.schemas.shared import UserDetailOut, UserOut

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/profile", response_model=ProfileResponse)
async def get_profile(current_user: UserOut = Depends(get_current_user)):
    return ProfileResponse(user=current_user)


@router.put("/profile", response_model=ProfileResponse)
async def update_profile(
    profile: ProfileUpdateRequest,
    db: AsyncSession = Depends(get_db),
    current_user: UserOut = Depends(get_current_user),
):
    changes = {}
    if profile.name:
        changes["name"] = profile.name
    if profile.email:
        if await email_exists(db, profile.email, exclude_id=current_user.id):
            raise Conflict("This email is already registered by another user")
        changes["email"] = profile.email

    updated = await update_user(db, current_user.id, changes)
    if not updated:
        raise NotFound("User not found")
    return ProfileResponse(message="Profile updated successfully", user=UserOut.model_validate(updated))


@router.get("", response_model=UserListResponse)
async def list_users(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    current_user: UserOut = Depends(get_current_user),
):
    users = await get_users(db, skip=skip, limit=limit)
    return UserListResponse(
        users=[UserDetailOut.model_validate(u) for u in users],
        count=len(users),
    )
