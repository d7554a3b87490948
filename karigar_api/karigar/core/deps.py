from __future__ import annotations

import logging
from typing import AsyncGenerator
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from karigar.core.security import decode_token
from karigar.db.session import get_async_session, merchant_context
from karigar.repositories.security import SecurityRepository

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")


# PUBLIC_INTERFACE
async def get_merchant_id(
    x_merchant_id: str | None = Header(default=None, alias="X-Merchant-ID"),
) -> UUID:
    """
    Extract and validate the merchant id from the X-Merchant-ID header.

    Raises:
        HTTPException: 400 Bad Request if header missing or not a UUID.
    """
    if not x_merchant_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Merchant-ID header is required.",
        )
    try:
        return UUID(x_merchant_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Merchant-ID header must be a valid UUID string.",
        )


# PUBLIC_INTERFACE
async def get_merchant_session(
    merchant_id: UUID = Depends(get_merchant_id),
    session_dep=Depends(get_async_session),
) -> AsyncGenerator[AsyncSession, None]:
    """
    Yield an AsyncSession with row-level security bound to the request's merchant.

    The `app.merchant_id` GUC is set for the lifetime of the session and reset after use.
    """
    async for session in session_dep:
        async with merchant_context(session, merchant_id):
            yield session


# PUBLIC_INTERFACE
async def get_session_no_merchant(
    session_dep=Depends(get_async_session),
) -> AsyncGenerator[AsyncSession, None]:
    """
    Yield an AsyncSession without merchant context.

    Used by public catalogue routes and merchant registration, which resolve or
    create the merchant themselves before entering merchant_context.
    """
    async for session in session_dep:
        yield session


# PUBLIC_INTERFACE
async def get_current_user(
    merchant_id: UUID = Depends(get_merchant_id),
    token: str = Depends(oauth2_scheme),
    session: AsyncSession = Depends(get_merchant_session),
):
    """
    Resolve the current user from the bearer token.

    The token's merchant claim must match the X-Merchant-ID header.
    """
    try:
        payload = decode_token(token)
    except JWTError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    if payload.get("type") != "access":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token type")

    tok_merchant = payload.get("merchant_id")
    if not tok_merchant or str(tok_merchant) != str(merchant_id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Merchant mismatch")

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    user = await SecurityRepository(session).get_user_by_id(UUID(user_id))
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    return user


# PUBLIC_INTERFACE
async def get_current_active_user(user=Depends(get_current_user)):
    """Ensure user is active."""
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Inactive user")
    return user


# PUBLIC_INTERFACE
def require_roles(*required: str):
    """
    Create a dependency that requires the current user to hold one of the given roles.
    Roles are 'admin' and 'worker'.
    """

    async def _dep(user=Depends(get_current_active_user)):
        role_set = {r.name for r in user.roles}
        if role_set.isdisjoint(required):
            logger.info("User %s denied; roles=%s required=%s", user.id, sorted(role_set), required)
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient role")
        return user

    return _dep
