"""Trading ledger and cost-basis accounting engine."""

from tradeledger._version import VERSION

__version__ = VERSION
