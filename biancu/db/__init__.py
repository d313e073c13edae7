"""Persistence layer."""

from .client import (
    DatabaseClient,
    SupabaseDatabaseClient,
    get_database_client,
    initialize_database,
    reset_database_client,
)
from .memory import InMemoryDatabaseClient

__all__ = [
    "DatabaseClient",
    "InMemoryDatabaseClient",
    "SupabaseDatabaseClient",
    "get_database_client",
    "initialize_database",
    "reset_database_client",
]
