from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

RoleName = Literal["admin", "worker"]


class TokenPair(BaseModel):
    """Access and refresh tokens."""
    token_type: str = Field("bearer", description="Token type, typically 'bearer'")
    access_token: str = Field(..., description="JWT access token")
    refresh_token: str = Field(..., description="JWT refresh token")


class RefreshRequest(BaseModel):
    """Request to refresh an access token."""
    refresh_token: str = Field(..., description="Refresh token")


class MerchantRegisterRequest(BaseModel):
    """Sign-up of a new merchant together with its first admin user."""
    merchant_name: str = Field(..., min_length=1, description="Business name")
    merchant_phone: Optional[str] = Field(None)
    merchant_address: Optional[str] = Field(None)
    email: EmailStr = Field(..., description="Admin email (login name)")
    password: str = Field(..., min_length=6, description="Admin password")
    full_name: Optional[str] = Field(None, description="Admin full name")

    @field_validator("merchant_name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("merchant_name must not be blank")
        return v


class MerchantRead(BaseModel):
    id: UUID = Field(..., description="Merchant ID; send as X-Merchant-ID")
    name: str = Field(...)
    email: Optional[str] = Field(None)
    phone: Optional[str] = Field(None)
    address: Optional[str] = Field(None)

    class Config:
        from_attributes = True


class MerchantRegistered(BaseModel):
    merchant: MerchantRead
    tokens: TokenPair


class Message(BaseModel):
    """Simple message response."""
    message: str = Field(...)


class UserRead(BaseModel):
    """User read model."""
    id: UUID = Field(..., description="User ID")
    email: EmailStr = Field(..., description="User email")
    full_name: Optional[str] = Field(None)
    is_active: bool = Field(..., description="Active flag")
    created_at: datetime = Field(..., description="Created timestamp")
    updated_at: datetime = Field(..., description="Updated timestamp")
    roles: List[str] = Field(default_factory=list, description="Role names assigned to the user")

    @field_validator("roles", mode="before")
    @classmethod
    def _role_names(cls, v):
        return [getattr(r, "name", r) for r in (v or [])]

    class Config:
        from_attributes = True


class UserCreate(BaseModel):
    """Admin create user payload."""
    email: EmailStr = Field(..., description="Email")
    password: str = Field(..., min_length=6, description="Password")
    full_name: Optional[str] = Field(None)
    is_active: bool = Field(default=True)
    roles: List[RoleName] = Field(default_factory=lambda: ["worker"])


class UserUpdate(BaseModel):
    """Admin update user payload."""
    password: Optional[str] = Field(None, min_length=6)
    full_name: Optional[str] = Field(None)
    is_active: Optional[bool] = Field(None)
    roles: Optional[List[RoleName]] = Field(None)
