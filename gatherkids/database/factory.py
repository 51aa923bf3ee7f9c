"""
Adapter factory: picks the backend for this process.

    adapter = create_database_adapter()

Returns a ``RemoteDatabaseAdapter`` when ``DATABASE_MODE`` asks for the
hosted store *and* both Supabase credentials are present; a
``LocalDatabaseAdapter`` otherwise.  It never raises: every fallback is
reported through the diagnostic sink instead.

There is no module-level adapter.  Build one at start-up and
pass it to whatever needs it.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from gatherkids import config
from gatherkids.core.diagnostics import DiagnosticSink, default_sink
from gatherkids.core.utils import Clock
from gatherkids.database.contract import DatabaseAdapter
from gatherkids.database.errors import ConfigurationError
from gatherkids.database.local_adapter import LocalDatabaseAdapter
from gatherkids.database.remote_adapter import RemoteDatabaseAdapter

logger = logging.getLogger(__name__)

CREDENTIALS_MISSING_EVENT = "remote_credentials_missing"
REMOTE_UNAVAILABLE_EVENT = "remote_adapter_unavailable"
LOCAL_UNAVAILABLE_EVENT = "local_store_unavailable"


def _missing_credentials(url: str, key: str, key_name: str) -> List[str]:
    missing = []
    if not url:
        missing.append("SUPABASE_URL")
    if not key:
        missing.append(key_name)
    return missing


def _local_adapter(
    local_url: Optional[str], sink: DiagnosticSink, clock: Optional[Clock]
) -> LocalDatabaseAdapter:
    url = local_url or config.LOCAL_DATABASE_URL
    try:
        adapter = LocalDatabaseAdapter(url, sink=sink, clock=clock)
        adapter.store.open()
    except Exception as exc:
        sink.emit(LOCAL_UNAVAILABLE_EVENT, url=url, error=str(exc), fallback=config.LOCAL_FALLBACK_URL)
        adapter = LocalDatabaseAdapter(config.LOCAL_FALLBACK_URL, sink=sink, clock=clock)
    logger.info("Using local document store (%s)", adapter.store.url)
    return adapter


def create_database_adapter(
    *,
    mode: Optional[str] = None,
    url: Optional[str] = None,
    key: Optional[str] = None,
    local_url: Optional[str] = None,
    sink: Optional[DiagnosticSink] = None,
    clock: Optional[Clock] = None,
) -> DatabaseAdapter:
    """Build the adapter selected by configuration (keywords override it)."""
    sink = sink or default_sink()
    mode = (config.DATABASE_MODE if mode is None else mode).strip().lower()
    url = config.SUPABASE_URL if url is None else url.strip()
    key = config.SUPABASE_ANON_KEY if key is None else key.strip()

    if mode in config.REMOTE_MODES:
        missing = _missing_credentials(url, key, "SUPABASE_ANON_KEY")
        if missing:
            sink.emit(CREDENTIALS_MISSING_EVENT, mode=mode, missing=missing)
        else:
            try:
                adapter = RemoteDatabaseAdapter(url, key, sink=sink, clock=clock)
            except Exception as exc:
                sink.emit(REMOTE_UNAVAILABLE_EVENT, mode=mode, error=str(exc))
            else:
                logger.info("Using remote store at %s", url)
                return adapter

    return _local_adapter(local_url, sink, clock)


def create_maintenance_adapter(
    *,
    url: Optional[str] = None,
    service_key: Optional[str] = None,
    sink: Optional[DiagnosticSink] = None,
    clock: Optional[Clock] = None,
) -> RemoteDatabaseAdapter:
    """Remote adapter authenticated with the service-role key.

    For maintenance scripts only; raises ``ConfigurationError`` instead of
    falling back.
    """
    url = config.SUPABASE_URL if url is None else url.strip()
    service_key = config.SUPABASE_SERVICE_ROLE_KEY if service_key is None else service_key.strip()
    missing = _missing_credentials(url, service_key, "SUPABASE_SERVICE_ROLE_KEY")
    if missing:
        raise ConfigurationError(missing)
    return RemoteDatabaseAdapter(url, service_key, sink=sink, clock=clock)
