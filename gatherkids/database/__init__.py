"""
gatherkids.database: adapter contract, both backends and the factory.

    from gatherkids.database import create_database_adapter

    adapter = create_database_adapter()
    household = await adapter.create_household({"name": "Smith"})
"""

from gatherkids.database.contract import DatabaseAdapter, TableChange, Unsubscribe
from gatherkids.database.errors import (
    BackendError, BackendUnavailable, ConfigurationError, DataAccessError,
    DuplicateRecordError, NotFoundError, ValidationError,
)
from gatherkids.database.factory import create_database_adapter, create_maintenance_adapter
from gatherkids.database.local_adapter import LocalDatabaseAdapter
from gatherkids.database.remote_adapter import RemoteDatabaseAdapter

__all__ = [
    "BackendError",
    "BackendUnavailable",
    "ConfigurationError",
    "DataAccessError",
    "DatabaseAdapter",
    "DuplicateRecordError",
    "LocalDatabaseAdapter",
    "NotFoundError",
    "RemoteDatabaseAdapter",
    "TableChange",
    "Unsubscribe",
    "ValidationError",
    "create_database_adapter",
    "create_maintenance_adapter",
]
