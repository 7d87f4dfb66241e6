"""Ledger service layer - FastAPI endpoint serving ``/transactions``."""

from .app import create_ledger_app
from .table import TransactionTable

__all__ = ["TransactionTable", "create_ledger_app"]
