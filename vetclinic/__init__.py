"""VetClinic back office: FIFO inventory costing, party balances and cash ledger."""

__version__ = "1.0.0"
