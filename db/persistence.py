"""
Key/value persistence: JSON documents stored by key.

Provides functions to read, write and delete whole documents. Every
write replaces the stored value; there is no merging.
"""

import json
import logging
from typing import Any, Optional

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from .models import StorageEntry

logger = logging.getLogger(__name__)


def load_value(engine: Engine, key: str, default: Any = None) -> Any:
    """
    Load and decode the JSON document stored under `key`.

    Args:
        engine: SQLAlchemy engine
        key: Storage key
        default: Returned when the key is missing or its JSON is corrupt

    Returns:
        The decoded value or `default`
    """
    with Session(engine) as session:
        entry = session.get(StorageEntry, key)
        if entry is None:
            return default
        raw = entry.value

    try:
        return json.loads(raw)
    except ValueError as e:
        logger.warning(f"Error loading {key} from storage: {e}")
        return default


def save_value(engine: Engine, key: str, value: Any) -> None:
    """Encode `value` as JSON and store it under `key`."""
    payload = json.dumps(value, ensure_ascii=False)
    with Session(engine) as session:
        session.execute(StorageEntry.upsert_stmt(key, payload))
        session.commit()
    logger.debug(f"Saved {key} ({len(payload)} bytes)")


def delete_value(engine: Engine, key: str) -> bool:
    """Delete a key. Returns True if it existed."""
    with Session(engine) as session:
        entry = session.get(StorageEntry, key)
        if entry is None:
            return False
        session.delete(entry)
        session.commit()
    return True


def get_updated_at(engine: Engine, key: str) -> Optional[str]:
    """ISO timestamp of the last write to `key`, or None."""
    with Session(engine) as session:
        entry = session.get(StorageEntry, key)
        if entry is None or entry.updated_at is None:
            return None
        return entry.updated_at.isoformat()
