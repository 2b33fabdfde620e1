"""
Utility functions for the gold trading journal.

Provides common utilities including:
- Logging setup
- Time helpers
- Configuration loading
"""

import logging
import os
import uuid
from datetime import datetime, timezone
from typing import Optional

import yaml

DEFAULT_CONFIG_PATH = "config/journal.yaml"


def setup_logging(
    level: str = "INFO",
    log_format: Optional[str] = None,
) -> logging.Logger:
    """
    Set up logging configuration.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        log_format: Custom log format string

    Returns:
        Configured root logger
    """
    if log_format is None:
        log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    log_level = os.getenv("LOG_LEVEL", level)
    logging.basicConfig(level=log_level, format=log_format)
    return logging.getLogger("gold-journal")


def load_yaml_config(filepath: str) -> dict:
    """
    Load a YAML configuration file.

    Args:
        filepath: Path to the YAML file

    Returns:
        Parsed configuration dict (empty when the file is empty)
    """
    with open(filepath, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_journal_config(filepath: Optional[str] = None) -> dict:
    """Load the journal config, falling back to an empty dict if the file is missing."""
    path = filepath or DEFAULT_CONFIG_PATH
    if not os.path.exists(path):
        logging.getLogger(__name__).info(f"No config file at {path}, using defaults")
        return {}
    return load_yaml_config(path)


def utc_now() -> datetime:
    """Get current timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def iso_timestamp(dt: Optional[datetime] = None) -> str:
    """Render a datetime as an ISO-8601 string with millisecond precision."""
    dt = dt or utc_now()
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def generate_trade_id() -> str:
    """Generate an opaque unique trade identifier."""
    return uuid.uuid4().hex
