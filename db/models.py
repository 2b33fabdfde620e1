"""
SQLAlchemy models for the gold journal database.

Tables:
- StorageEntry: Key/value documents (trade list, capital, API key, backups)
"""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String, Text
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StorageEntry(Base):
    """
    One persisted JSON document.

    Each key holds a complete JSON value that is replaced wholesale on
    every write (last write wins).
    """
    __tablename__ = "storage_entries"

    key = Column(String(100), primary_key=True)
    value = Column(Text, nullable=False)  # JSON-encoded document
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<StorageEntry {self.key} ({len(self.value or '')} bytes)>"

    @classmethod
    def upsert_stmt(cls, key: str, value: str):
        """
        Create SQLite INSERT ... ON CONFLICT DO UPDATE statement.

        Args:
            key: Storage key
            value: JSON-encoded document

        Returns:
            SQLAlchemy insert statement with on_conflict_do_update
        """
        from sqlalchemy.dialects.sqlite import insert

        now = _utcnow()
        stmt = insert(cls).values(key=key, value=value, updated_at=now)
        stmt = stmt.on_conflict_do_update(
            index_elements=["key"],
            set_={
                "value": stmt.excluded.value,
                "updated_at": stmt.excluded.updated_at,
            }
        )
        return stmt
