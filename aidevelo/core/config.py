# aidevelo/core/config.py
"""
Process-wide settings read once from the environment (and a local .env).
"""

from __future__ import annotations

import logging

from dotenv import load_dotenv

from aidevelo.core.utils import getenv_bool, getenv_float, getenv_int, getenv_list, getenv_str

load_dotenv()

# ---- Storage ----
DB_URL = getenv_str("DB_URL", "")
USE_DB = getenv_bool("USE_DB", False) and bool(DB_URL)
# In-memory mode only: create a demo chat agent config at startup.
SEED_DEMO_DATA = getenv_bool("SEED_DEMO_DATA", True)

# ---- Generative collaborator ----
OPENAI_CHAT_MODEL = getenv_str("OPENAI_CHAT_MODEL", getenv_str("OPENAI_MODEL", "gpt-4o-mini"))
OPENAI_TIMEOUT_SECONDS = getenv_float("OPENAI_TIMEOUT_SECONDS", 30.0)
CHAT_HISTORY_LIMIT = getenv_int("CHAT_HISTORY_LIMIT", 10)

# ---- Rate limiting (per client, per operation) ----
SESSION_RATE_LIMIT = getenv_int("SESSION_RATE_LIMIT", 10)
MESSAGE_RATE_LIMIT = getenv_int("MESSAGE_RATE_LIMIT", 60)
RATE_LIMIT_WINDOW_SECONDS = getenv_int("RATE_LIMIT_WINDOW_SECONDS", 60)

# ---- Sessions ----
# 0 disables automatic expiry; sessions then end only through end_session().
SESSION_IDLE_TIMEOUT_MINUTES = getenv_int("SESSION_IDLE_TIMEOUT_MINUTES", 0)

# ---- HTTP ----
CORS_ALLOWED_ORIGINS = getenv_list("CORS_ALLOWED_ORIGINS")

# ---- Logging ----
LOG_LEVEL = getenv_str("LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s [session=%(session_id)s]: %(message)s"


def configure_logging(level: str = LOG_LEVEL) -> None:
    from aidevelo.core.logging_context import SessionIdFilter

    logging.basicConfig(
        level=getattr(logging, (level or "INFO").upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, SessionIdFilter) for f in handler.filters):
            handler.addFilter(SessionIdFilter())
