"""
SQLAlchemy models for the trade ledger.

This module exports all models and the Base class for easy imports:
    from tradeledger.models import Base, Account, Holding, LedgerEntry, TradeSide
"""

from tradeledger.database import Base
from tradeledger.models.account import Account
from tradeledger.models.holding import Holding
from tradeledger.models.ledger_entry import LedgerEntry, TradeSide

__all__ = [
    "Base",
    "Account",
    "Holding",
    "LedgerEntry",
    "TradeSide",
]
