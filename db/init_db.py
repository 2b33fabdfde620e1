"""
Database initialization for the journal store.

Provides functions for:
- Resolving the database URL (argument, environment, default)
- Creating the engine and the storage table
"""

import logging
import os
from pathlib import Path
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from .models import Base

logger = logging.getLogger(__name__)

DEFAULT_DB_URL = "sqlite:///data/gold_journal.db"
DB_URL_ENV = "GOLD_JOURNAL_DB_URL"


def get_db_url(db_url: Optional[str] = None) -> str:
    """
    Get the database URL.

    Priority:
    1. Explicit db_url argument
    2. GOLD_JOURNAL_DB_URL environment variable
    3. Default SQLite file under data/
    """
    if db_url:
        return db_url
    return os.getenv(DB_URL_ENV, DEFAULT_DB_URL)


def sqlite_file(url: str) -> Optional[Path]:
    """Path of a file-backed SQLite database, None for other URLs and :memory:."""
    if not url.startswith("sqlite:///"):
        return None
    path = url[len("sqlite:///"):]
    if not path or path.startswith(":"):
        return None
    return Path(path)


def init_db(db_url: Optional[str] = None) -> Engine:
    """
    Open the journal database, creating the file and table if needed.

    Args:
        db_url: Optional database URL override

    Returns:
        SQLAlchemy Engine instance
    """
    url = get_db_url(db_url)
    db_file = sqlite_file(url)
    if db_file is not None:
        db_file.parent.mkdir(parents=True, exist_ok=True)

    engine = create_engine(url, echo=False)
    Base.metadata.create_all(engine)
    logger.info(f"Journal database ready: {url}")
    return engine


if __name__ == "__main__":
    # python -m db.init_db
    logging.basicConfig(level=logging.INFO)
    init_db()
    print(f"Database initialized: {get_db_url()}")
