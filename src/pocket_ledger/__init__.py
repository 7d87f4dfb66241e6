"""
Pocket Ledger - Personal finance transaction store.

Keeps an in-memory ledger of named transactions with a cached running
balance, persisted either to a local key-value slot or to a small REST
endpoint that this package also serves.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
