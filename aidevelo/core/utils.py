"""
aidevelo/core/utils.py

Shared, minimal helpers used across the storefront API.
- Env parsing for config
- Postgres access via psycopg (v3) or psycopg2, errors surfaced as StorageError
- UTC time helper
"""

from __future__ import annotations

import os
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from aidevelo.core.errors import StorageError


# -----------------------------
# Environment helpers
# -----------------------------

def getenv_str(name: str, default: Optional[str] = None) -> Optional[str]:
    """Get env var as string; returns default if missing/empty."""
    val = os.getenv(name)
    if val is None or str(val).strip() == "":
        return default
    return val


def getenv_bool(name: str, default: bool = False) -> bool:
    """Get env var as boolean with common truthy values."""
    val = os.getenv(name)
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "y", "on"}


def getenv_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except (TypeError, ValueError):
        return default


def getenv_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except (TypeError, ValueError):
        return default


def getenv_list(name: str) -> List[str]:
    """Comma-separated env var as a list of trimmed, non-empty items."""
    raw = os.getenv(name) or ""
    return [p.strip() for p in raw.split(",") if p.strip()]


def mask_db_url(url: str) -> str:
    """Hide credentials in a DB URL for safe logging."""
    if not url or "://" not in url or "@" not in url:
        return url
    scheme, rest = url.split("://", 1)
    _creds, tail = rest.split("@", 1)
    return f"{scheme}://***:***@{tail}"


# -----------------------------
# Time helpers
# -----------------------------

def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# -----------------------------
# Postgres helpers (psycopg / psycopg2)
# -----------------------------

# Try psycopg (v3) first, then fall back to psycopg2
_psycopg = None
_psycopg2 = None
try:  # psycopg v3
    import psycopg  # type: ignore
    _psycopg = psycopg
except ImportError:
    _psycopg = None

if _psycopg is None:
    try:  # psycopg2 fallback
        import psycopg2  # type: ignore
        _psycopg2 = psycopg2
    except ImportError:
        _psycopg2 = None


def _driver_error_types() -> tuple:
    types: List[type] = []
    if _psycopg is not None:
        types.append(_psycopg.Error)
    if _psycopg2 is not None:
        types.append(_psycopg2.Error)
    return tuple(types) or (OSError,)


def get_pg_conn(db_url: Optional[str] = None):
    """
    Return a live Postgres connection using either psycopg (v3) or psycopg2.
    Caller is responsible for closing the connection, or use the context managers below.
    """
    if _psycopg is None and _psycopg2 is None:
        raise StorageError(
            "No Postgres driver found. Install either 'psycopg[binary]' (v3) or 'psycopg2-binary'."
        )
    url = db_url or getenv_str("DB_URL")
    if not url:
        raise StorageError("DB_URL is not set in the environment.")

    try:
        if _psycopg is not None:
            return _psycopg.connect(url)
        return _psycopg2.connect(url)  # type: ignore[union-attr]
    except _driver_error_types() as e:
        raise StorageError(f"connect_failed: {mask_db_url(url)}") from e


@contextmanager
def pg_conn(db_url: Optional[str] = None):
    """Context manager that yields a Postgres connection and ensures it gets closed."""
    conn = get_pg_conn(db_url)
    try:
        yield conn
    finally:
        conn.close()


@contextmanager
def pg_cursor(db_url: Optional[str] = None):
    """
    Context manager that yields a cursor, commits on success and rolls back on error.
    Driver errors are re-raised as StorageError.
    """
    with pg_conn(db_url) as conn:
        cur = conn.cursor()
        try:
            yield cur
            conn.commit()
        except _driver_error_types() as e:
            conn.rollback()
            raise StorageError(f"query_failed: {type(e).__name__}") from e
        finally:
            cur.close()


def rows_to_dicts(cur) -> List[Dict[str, Any]]:
    """
    Convert the current cursor result set to a list of dicts.
    Safe for psycopg (v3) and psycopg2: gracefully handles different .description shapes.
    """
    desc = getattr(cur, "description", None)
    if not desc:
        return []
    columns: List[str] = []
    for idx, col in enumerate(desc):
        # psycopg3 exposes objects with .name; psycopg2 gives a sequence (name at index 0)
        name = getattr(col, "name", None)
        if name:
            columns.append(str(name))
        elif isinstance(col, (list, tuple)) and len(col) > 0:
            columns.append(str(col[0]))
        else:
            columns.append(f"col_{idx}")
    return [dict(zip(columns, row)) for row in cur.fetchall()]
