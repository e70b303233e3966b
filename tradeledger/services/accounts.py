"""Account provisioning - stand-in for the registration collaborator."""

import hashlib
import secrets
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from tradeledger.config import get_settings
from tradeledger.errors import AccountNotFoundError
from tradeledger.models import Account
from tradeledger.services import ledger


def generate_api_key() -> str:
    """Generate a secure API key for a trader account.

    Returns:
        A URL-safe random string (sk_ prefix + 43 characters)
    """
    return f"sk_{secrets.token_urlsafe(32)}"


def hash_api_key(api_key: str) -> str:
    """Hash an API key for secure storage.

    Args:
        api_key: The plain API key

    Returns:
        SHA-256 hash of the API key (64 hex characters)
    """
    return hashlib.sha256(api_key.encode()).hexdigest()


async def create_account(
    session: AsyncSession, account_id: str, initial_cash: Decimal | None = None
) -> tuple[Account, str]:
    """Create a new trader account.

    Args:
        session: Database session
        account_id: Unique account identifier
        initial_cash: Starting balance (default from settings)

    Returns:
        Tuple of (created account, API key)

    Raises:
        IntegrityError: If account_id already exists
    """
    if initial_cash is None:
        initial_cash = get_settings().initial_cash

    api_key = generate_api_key()
    account = Account(
        id=account_id,
        api_key_hash=hash_api_key(api_key),
        cash_balance=initial_cash,
    )
    session.add(account)
    await session.commit()
    await session.refresh(account)

    return account, api_key


async def delete_account(session: AsyncSession, account_id: str) -> None:
    """Delete an account together with its holdings and ledger entries.

    Raises:
        AccountNotFoundError: If the account does not exist
    """
    account = await ledger.get_account(session, account_id)
    if account is None:
        raise AccountNotFoundError(account_id)

    await session.delete(account)
    await session.commit()
