from __future__ import annotations

from typing import Optional
from sqlalchemy import Boolean, Text, ForeignKey, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from karigar.db.base import Base, UUIDPkMixin, TimestampMixin, MerchantMixin


class Merchant(UUIDPkMixin, TimestampMixin, Base):
    """A jewelry business; the tenant every other row belongs to."""
    __tablename__ = "merchants"

    name: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class User(UUIDPkMixin, MerchantMixin, TimestampMixin, Base):
    """Back office user of a merchant."""
    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("merchant_id", "email", name="uq_users_merchant_email"),
    )

    email: Mapped[str] = mapped_column(Text, nullable=False)
    full_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    hashed_password: Mapped[str] = mapped_column(Text, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")

    roles: Mapped[list["Role"]] = relationship(
        "Role",
        secondary="user_roles",
        primaryjoin="User.id==UserRole.user_id",
        secondaryjoin="Role.id==UserRole.role_id",
        lazy="selectin",
    )

    @property
    def display_name(self) -> str:
        return self.full_name or self.email


class Role(UUIDPkMixin, MerchantMixin, TimestampMixin, Base):
    """Merchant role: 'admin' or 'worker'."""
    __tablename__ = "roles"
    __table_args__ = (
        UniqueConstraint("merchant_id", "name", name="uq_roles_merchant_name"),
    )

    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class UserRole(UUIDPkMixin, MerchantMixin, TimestampMixin, Base):
    __tablename__ = "user_roles"
    __table_args__ = (
        UniqueConstraint("merchant_id", "user_id", "role_id", name="uq_user_roles_merchant_user_role"),
    )

    user_id: Mapped[UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    role_id: Mapped[UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("roles.id", ondelete="CASCADE"), nullable=False)
