from .factory import SQLiteStores, sqlite_store_factory
from .handle import SQLiteReadModelStore, SQLiteSnapshotStore

__all__ = [
    "SQLiteStores",
    "sqlite_store_factory",
    "SQLiteReadModelStore",
    "SQLiteSnapshotStore",
]
