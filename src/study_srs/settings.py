"""Persisted user preferences."""
import logging

from study_srs.db import get_connection

logger = logging.getLogger(__name__)

DEFAULT_REVIEW_LIMIT = 15


def get_setting(db_path: str, key: str, default: str = None) -> str | None:
    conn = get_connection(db_path)
    row = conn.execute("SELECT value FROM user_settings WHERE key = ?", (key,)).fetchone()
    conn.close()
    return row["value"] if row else default


def set_setting(db_path: str, key: str, value: str) -> None:
    conn = get_connection(db_path)
    conn.execute(
        "INSERT INTO user_settings (key, value) VALUES (?, ?) ON CONFLICT(key) DO UPDATE SET value=?",
        (key, value, value),
    )
    conn.commit()
    conn.close()


def get_review_limit(db_path: str) -> int:
    """How many due cards a review session pulls."""
    raw = get_setting(db_path, "review_limit")
    if raw is None:
        return DEFAULT_REVIEW_LIMIT
    try:
        limit = int(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric review_limit %r", raw)
        return DEFAULT_REVIEW_LIMIT
    return limit if limit > 0 else DEFAULT_REVIEW_LIMIT
