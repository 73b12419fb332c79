"""PostgreSQL warehouse access for the labor import pipeline."""

from .connection import DatabaseConnectionPool
from .schema_mgmt import SchemaManager
from .store import PostgresLaborStore

__all__ = [
    "DatabaseConnectionPool",
    "PostgresLaborStore",
    "SchemaManager",
]
