from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from karigar.core.deps import get_merchant_session, require_roles
from karigar.core.security import get_password_hash
from karigar.repositories.security import SecurityRepository
from karigar.schemas.auth import UserCreate, UserRead, UserUpdate

router = APIRouter(prefix="/admin/users", tags=["Users"])


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=List[UserRead],
    summary="List users",
    description="List users of the current merchant.",
    dependencies=[Depends(require_roles("admin"))],
)
async def list_users(
    session: AsyncSession = Depends(get_merchant_session),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> List[UserRead]:
    users = await SecurityRepository(session).list_users(limit=limit, offset=offset)
    return [UserRead.model_validate(u) for u in users]


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=UserRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create user",
    description="Create a user with the given roles (admin or worker).",
    dependencies=[Depends(require_roles("admin"))],
)
async def create_user(
    payload: UserCreate,
    session: AsyncSession = Depends(get_merchant_session),
) -> UserRead:
    repo = SecurityRepository(session)
    if await repo.get_user_by_email(payload.email):
        raise HTTPException(status_code=400, detail="User with this email already exists")
    user = await repo.create_user(
        email=payload.email,
        full_name=payload.full_name,
        hashed_password=get_password_hash(payload.password),
        is_active=payload.is_active,
        role_names=list(payload.roles),
    )
    return UserRead.model_validate(user)


# PUBLIC_INTERFACE
@router.get(
    "/{user_id}",
    response_model=UserRead,
    summary="Get user",
    dependencies=[Depends(require_roles("admin"))],
)
async def get_user(
    user_id: UUID = Path(...),
    session: AsyncSession = Depends(get_merchant_session),
) -> UserRead:
    user = await SecurityRepository(session).get_user_by_id(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return UserRead.model_validate(user)


# PUBLIC_INTERFACE
@router.patch(
    "/{user_id}",
    response_model=UserRead,
    summary="Update user",
    description="Update name, password, active flag or roles. Roles, when given, replace the current set.",
    dependencies=[Depends(require_roles("admin"))],
)
async def update_user(
    payload: UserUpdate,
    user_id: UUID = Path(...),
    session: AsyncSession = Depends(get_merchant_session),
) -> UserRead:
    repo = SecurityRepository(session)
    user = await repo.get_user_by_id(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    if payload.roles is not None:
        await repo.set_user_roles(user.id, list(payload.roles))
    updated = await repo.update_user(
        user,
        full_name=payload.full_name,
        hashed_password=get_password_hash(payload.password) if payload.password else None,
        is_active=payload.is_active,
    )
    return UserRead.model_validate(updated)


# PUBLIC_INTERFACE
@router.delete(
    "/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete user",
)
async def delete_user(
    user_id: UUID = Path(...),
    session: AsyncSession = Depends(get_merchant_session),
    current=Depends(require_roles("admin")),
) -> None:
    if user_id == current.id:
        raise HTTPException(status_code=400, detail="You cannot delete your own account")
    await SecurityRepository(session).delete_user(user_id)
