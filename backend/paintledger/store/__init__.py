from .base import RecordStore, StoreError
from .memory import MemoryStore
from .sql import SqlStore

__all__ = ['RecordStore', 'StoreError', 'MemoryStore', 'SqlStore', 'build_store']


def build_store(app) -> RecordStore:
    """Instantiate the record store selected by app.config["RECORD_STORE"]."""
    kind = (app.config.get("RECORD_STORE") or "sql").lower()
    if kind == "memory":
        return MemoryStore()
    if kind == "sql":
        from ..extensions import db
        return SqlStore(db)
    raise ValueError(f"Unknown RECORD_STORE: {kind!r} (expected 'sql' or 'memory')")
