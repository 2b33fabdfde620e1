"""
Key/value storage for the gold journal.
"""

from .models import Base, StorageEntry
from .init_db import init_db, get_db_url
from .persistence import load_value, save_value, delete_value, get_updated_at

__all__ = [
    "Base",
    "StorageEntry",
    "init_db",
    "get_db_url",
    "load_value",
    "save_value",
    "delete_value",
    "get_updated_at",
]
