"""
Infrastructure module: Database sessions and request correlation.

Provides:
- Database sessions and transactions (db.py)
- Correlation IDs for logs (correlation.py)
"""

from shared.infrastructure.db import (
    get_engine,
    get_session_factory,
    get_db,
    transaction_scope,
)

__all__ = [
    "get_engine",
    "get_session_factory",
    "get_db",
    "transaction_scope",
]
