"""Trader authentication by per-account API key.

Only the SHA-256 hash of a key is stored on the account row, so a request is
matched by hashing the presented key. Trader routes act on the account the key
belongs to and never take an account id from the caller.
"""

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import APIKeyHeader
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tradeledger.database import get_session
from tradeledger.models import Account
from tradeledger.services.accounts import hash_api_key

# API key header scheme
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


async def get_current_account(
    api_key: str | None = Security(api_key_header),
    session: AsyncSession = Depends(get_session),
) -> Account:
    """Resolve the X-API-Key header to the trading account it was issued for.

    Args:
        api_key: Raw key from the X-API-Key header
        session: Database session

    Returns:
        The account whose stored key hash matches

    Raises:
        HTTPException: If API key is missing or invalid
    """
    if not api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing API key",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    key_hash = hash_api_key(api_key)
    result = await session.execute(
        select(Account).where(Account.api_key_hash == key_hash)
    )
    account = result.scalar_one_or_none()

    if not account:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    return account
