"""
Centralized configuration for the gatherKids data-access core.
All settings come from environment variables for 12-factor deployment.
"""

import os


def _env_float(name: str, default: float) -> float:
    val = os.environ.get(name)
    if val is None or not val.strip():
        return default
    try:
        return float(val)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    return int(_env_float(name, float(default)))


# ---------------------------------------------------------------------------
# Backend selection
# ---------------------------------------------------------------------------
# "supabase" (or "remote") asks for the hosted store; anything else, including
# the default "demo", keeps everything in the local document store.
DATABASE_MODE = os.environ.get("DATABASE_MODE", "demo").strip().lower()
REMOTE_MODES = {"supabase", "remote"}

# ---------------------------------------------------------------------------
# Remote (Supabase / PostgREST)
# ---------------------------------------------------------------------------
SUPABASE_URL = os.environ.get("SUPABASE_URL", "").strip()
SUPABASE_ANON_KEY = os.environ.get("SUPABASE_ANON_KEY", "").strip()
# Privileged key for maintenance scripts (gatherkids.migrate). Never read by
# create_database_adapter().
SUPABASE_SERVICE_ROLE_KEY = os.environ.get("SUPABASE_SERVICE_ROLE_KEY", "").strip()

REMOTE_TIMEOUT_SECONDS = _env_float("REMOTE_TIMEOUT_SECONDS", 15.0)
REMOTE_MAX_RETRIES = _env_int("REMOTE_MAX_RETRIES", 3)
REMOTE_RETRY_BACKOFF_SECONDS = _env_float("REMOTE_RETRY_BACKOFF_SECONDS", 0.5)
REALTIME_HEARTBEAT_SECONDS = _env_float("REALTIME_HEARTBEAT_SECONDS", 25.0)

# ---------------------------------------------------------------------------
# Local document store
# ---------------------------------------------------------------------------
LOCAL_DATABASE_URL = os.environ.get(
    "LOCAL_DATABASE_URL", "sqlite:///gatherkids_local.db"
).strip()
# In-memory store used when the configured local URL cannot be opened.
LOCAL_FALLBACK_URL = "sqlite://"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").strip().upper()
# Level of the gatherkids.diagnostics logger; never higher than WARNING.
DIAGNOSTICS_LOG_LEVEL = os.environ.get("DIAGNOSTICS_LOG_LEVEL", "WARNING").strip().upper()
# Set to 1 to echo SQL issued against the local document store.
LOG_SQL = os.environ.get("LOG_SQL", "").strip().lower() in {"1", "true", "yes", "on"}
