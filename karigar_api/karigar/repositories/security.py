from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from sqlalchemy import delete, func, select

from karigar.db.models.security import Merchant, Role, User, UserRole
from .base import BaseRepository

DEFAULT_ROLES = {
    "admin": "Merchant administrator",
    "worker": "Workshop staff",
}


class SecurityRepository(BaseRepository):
    """Merchants, users and roles."""

    # Merchants
    async def create_merchant(
        self,
        *,
        merchant_id: UUID,
        name: str,
        email: Optional[str] = None,
        phone: Optional[str] = None,
        address: Optional[str] = None,
    ) -> Merchant:
        """Insert a merchant; the session must already be bound to `merchant_id`."""
        merchant = Merchant(id=merchant_id, name=name, email=email, phone=phone, address=address)
        await self.add(merchant)
        await self.flush()
        return merchant

    async def get_merchant(self, merchant_id: UUID) -> Optional[Merchant]:
        return await self.get_by_id(Merchant, merchant_id)

    # Users
    async def get_user_by_email(self, email: str) -> Optional[User]:
        stmt = select(User).where(func.lower(User.email) == email.lower())
        return await self.scalar_one_or_none(stmt)

    async def get_user_by_id(self, user_id: UUID) -> Optional[User]:
        return await self.get_by_id(User, user_id)

    async def count_users(self) -> int:
        result = await self.execute(select(func.count(User.id)))
        return int(result.scalar_one())

    async def list_users(self, limit: int = 100, offset: int = 0) -> List[User]:
        stmt = select(User).order_by(User.created_at.desc()).offset(offset).limit(limit)
        return list(await self.scalars(stmt))

    async def create_user(
        self,
        *,
        email: str,
        full_name: Optional[str],
        hashed_password: str,
        is_active: bool = True,
        role_names: Optional[List[str]] = None,
    ) -> User:
        user = User(
            email=email,
            full_name=full_name,
            hashed_password=hashed_password,
            is_active=is_active,
        )
        await self.add(user)
        await self.flush()
        for name in role_names or []:
            role = await self.ensure_role(name)
            await self.add(UserRole(user_id=user.id, role_id=role.id))
        await self.commit()
        return await self.get_user_by_id(user.id)  # type: ignore

    async def update_user(
        self,
        user: User,
        *,
        full_name: Optional[str] = None,
        hashed_password: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> User:
        if full_name is not None:
            user.full_name = full_name
        if hashed_password is not None:
            user.hashed_password = hashed_password
        if is_active is not None:
            user.is_active = is_active
        await self.commit()
        return await self.get_user_by_id(user.id)  # type: ignore

    async def delete_user(self, user_id: UUID) -> None:
        await self.execute(delete(User).where(User.id == user_id))
        await self.commit()

    # Roles
    async def list_roles(self) -> List[Role]:
        return list(await self.scalars(select(Role).order_by(Role.name)))

    async def get_role_by_name(self, name: str) -> Optional[Role]:
        return await self.scalar_one_or_none(select(Role).where(Role.name == name))

    async def ensure_role(self, name: str) -> Role:
        role = await self.get_role_by_name(name)
        if role:
            return role
        role = Role(name=name, description=DEFAULT_ROLES.get(name))
        await self.add(role)
        await self.flush()
        return role

    async def set_user_roles(self, user_id: UUID, role_names: List[str]) -> None:
        """Replace the user's roles with `role_names`."""
        await self.execute(delete(UserRole).where(UserRole.user_id == user_id))
        for name in role_names:
            role = await self.ensure_role(name)
            await self.add(UserRole(user_id=user_id, role_id=role.id))
        await self.commit()
