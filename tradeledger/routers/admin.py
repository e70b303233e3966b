"""Admin API endpoints."""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from tradeledger.database import get_session
from tradeledger.schemas.admin import AccountCreate, AccountResponse
from tradeledger.services import accounts as accounts_service

router = APIRouter()


@router.post(
    "/accounts",
    response_model=AccountResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new trader account",
)
async def create_account(
    data: AccountCreate,
    session: AsyncSession = Depends(get_session),
) -> AccountResponse:
    """Register a new trader account.

    Returns the account details including the API key.
    **Store the API key securely - it cannot be retrieved later.**

    - **account_id**: Unique account identifier
    - **initial_cash**: Starting cash balance (default: 10000.00)
    """
    try:
        account, api_key = await accounts_service.create_account(
            session, data.account_id, data.initial_cash
        )
    except IntegrityError:
        await session.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Account with ID '{data.account_id}' already exists",
        )

    return AccountResponse(
        account_id=account.id,
        cash_balance=account.cash_balance,
        api_key=api_key,
        created_at=account.created_at,
    )
