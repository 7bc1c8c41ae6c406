"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Ships an in-memory backend and Google Sheets, and is designed to be swappable.
"""

from finguard.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    RecordStoreInterface,
    StorageError,
)
from finguard.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryRecordStore,
)
from finguard.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsRecordStore,
)
from finguard.services.storage.repository import Collection, LedgerRepository

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "RecordStoreInterface",
    # Exceptions
    "ConnectionError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryRecordStore",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsRecordStore",
    # Typed access
    "Collection",
    "LedgerRepository",
]
