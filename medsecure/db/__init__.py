"""
Database module - Published keys and uploaded record metadata.

Security Considerations:
- Only public keys are stored; private keys never reach the server
- Record content stays in the upload directory, not the database
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from medsecure.db.base import (
    DuplicateKeyError,
    KeyDirectory,
    RecordStore,
    StorageError,
    Store,
)
from medsecure.db.models import KeyType, MedicalRecord, NewRecord, PublicKeyRecord, Role
from medsecure.db.sqlite_store import SqliteStore

if TYPE_CHECKING:
    from medsecure.core.config import SecureConfig


def open_store(config: "SecureConfig") -> Store:
    """PostgreSQL when a postgres URL is configured, SQLite otherwise."""
    if config.storage.is_postgres:
        from medsecure.db.postgres_store import PostgresStore

        return PostgresStore(config.storage.database_url)
    return SqliteStore(config.sqlite_path)


__all__ = [
    "DuplicateKeyError",
    "KeyDirectory",
    "KeyType",
    "MedicalRecord",
    "NewRecord",
    "PublicKeyRecord",
    "RecordStore",
    "Role",
    "SqliteStore",
    "StorageError",
    "Store",
    "open_store",
]
