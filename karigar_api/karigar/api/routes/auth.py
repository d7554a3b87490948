from __future__ import annotations

import logging
from typing import Any, Dict
from uuid import UUID, uuid4

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from karigar.core.deps import get_current_active_user, get_merchant_id, get_merchant_session, get_session_no_merchant
from karigar.core.security import (
    create_access_token,
    create_refresh_token,
    decode_token,
    get_password_hash,
    verify_password,
)
from karigar.db.session import merchant_context
from karigar.repositories.security import DEFAULT_ROLES, SecurityRepository
from karigar.schemas.auth import (
    MerchantRead,
    MerchantRegistered,
    MerchantRegisterRequest,
    Message,
    RefreshRequest,
    TokenPair,
    UserRead,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


def _issue_tokens(user, merchant_id: UUID) -> TokenPair:
    roles = [r.name for r in user.roles]
    access = create_access_token(subject=str(user.id), merchant_id=str(merchant_id), roles=roles)
    refresh = create_refresh_token(subject=str(user.id), merchant_id=str(merchant_id))
    return TokenPair(access_token=access, refresh_token=refresh)


# PUBLIC_INTERFACE
@router.post(
    "/register-merchant",
    response_model=MerchantRegistered,
    status_code=status.HTTP_201_CREATED,
    summary="Register merchant",
    description="Create a new merchant with its roles and first admin user. Returns the merchant id "
    "(to send as X-Merchant-ID) and a token pair for the admin.",
)
async def register_merchant(
    payload: MerchantRegisterRequest,
    session: AsyncSession = Depends(get_session_no_merchant),
) -> MerchantRegistered:
    """Sign up a merchant; every row is written under the new merchant's id."""
    merchant_id = uuid4()
    async with merchant_context(session, merchant_id):
        repo = SecurityRepository(session)
        merchant = await repo.create_merchant(
            merchant_id=merchant_id,
            name=payload.merchant_name,
            email=payload.email,
            phone=payload.merchant_phone,
            address=payload.merchant_address,
        )
        for name in DEFAULT_ROLES:
            await repo.ensure_role(name)
        user = await repo.create_user(
            email=payload.email,
            full_name=payload.full_name,
            hashed_password=get_password_hash(payload.password),
            role_names=["admin"],
        )
        logger.info("Registered merchant %s (%s)", merchant.name, merchant_id)
        return MerchantRegistered(
            merchant=MerchantRead.model_validate(merchant),
            tokens=_issue_tokens(user, merchant_id),
        )


# PUBLIC_INTERFACE
@router.post(
    "/login",
    response_model=TokenPair,
    summary="Login",
    description="Authenticate using OAuth2 password form (username = email) and receive access/refresh tokens.",
)
async def login_for_tokens(
    form_data: OAuth2PasswordRequestForm = Depends(),
    merchant_id: UUID = Depends(get_merchant_id),
    session: AsyncSession = Depends(get_merchant_session),
) -> TokenPair:
    """Authenticate user and issue tokens."""
    repo = SecurityRepository(session)
    user = await repo.get_user_by_email(form_data.username)
    if not user or not verify_password(form_data.password, user.hashed_password):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    if not user.is_active:
        raise HTTPException(status_code=400, detail="User is inactive")
    return _issue_tokens(user, merchant_id)


# PUBLIC_INTERFACE
@router.post(
    "/refresh",
    response_model=TokenPair,
    summary="Refresh access token",
    description="Issue a new token pair from a valid refresh token.",
)
async def refresh_token(
    payload: RefreshRequest,
    merchant_id: UUID = Depends(get_merchant_id),
    session: AsyncSession = Depends(get_merchant_session),
) -> TokenPair:
    """Validate refresh token and issue a new access token pair."""
    try:
        claims: Dict[str, Any] = decode_token(payload.refresh_token)
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid refresh token")

    if claims.get("type") != "refresh":
        raise HTTPException(status_code=401, detail="Invalid token type")
    if str(merchant_id) != str(claims.get("merchant_id")):
        raise HTTPException(status_code=403, detail="Merchant mismatch")

    user = await SecurityRepository(session).get_user_by_id(UUID(claims.get("sub")))
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="User not found or inactive")
    return _issue_tokens(user, merchant_id)


# PUBLIC_INTERFACE
@router.post(
    "/logout",
    response_model=Message,
    summary="Logout",
    description="Stateless logout. Clients should discard tokens. No server state maintained.",
)
async def logout() -> Message:
    """Acknowledge logout in stateless JWT systems."""
    return Message(message="Logged out")


# PUBLIC_INTERFACE
@router.get(
    "/me",
    response_model=UserRead,
    summary="Read current user",
    description="Return the current authenticated user and their roles.",
)
async def read_current_user(user=Depends(get_current_active_user)) -> UserRead:
    return UserRead.model_validate(user)


# PUBLIC_INTERFACE
@router.get(
    "/merchant",
    response_model=MerchantRead,
    summary="Read current merchant",
)
async def read_current_merchant(
    merchant_id: UUID = Depends(get_merchant_id),
    user=Depends(get_current_active_user),
    session: AsyncSession = Depends(get_merchant_session),
) -> MerchantRead:
    merchant = await SecurityRepository(session).get_merchant(merchant_id)
    if merchant is None:
        raise HTTPException(status_code=404, detail="Merchant not found")
    return MerchantRead.model_validate(merchant)
