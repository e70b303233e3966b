"""Business logic: ledger queries, trade execution, replay and valuation."""
