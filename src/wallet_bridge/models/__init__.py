"""SQLAlchemy models for the delegation ledger."""

from .ledger import LedgerAccount, LedgerBalance, LedgerTransaction

__all__ = ["LedgerAccount", "LedgerBalance", "LedgerTransaction"]
