"""
Pytest configuration and shared fixtures.

Fixtures available to all tests:
  • sink            - CapturingDiagnosticSink
  • clock           - TickingClock (advances 1 s per reading)
  • local_adapter   - LocalDatabaseAdapter on a private in-memory SQLite store
  • postgrest       - FakePostgrest
  • remote_adapter  - RemoteDatabaseAdapter wired to ``postgrest``, no socket
  • adapter         - parametrized over both of the above
"""

from __future__ import annotations

import os
import sys

import pytest

# Ensure the project root is on the path so gatherkids and tests.fakes resolve.
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from gatherkids.core.diagnostics import CapturingDiagnosticSink  # noqa: E402
from gatherkids.database.local_adapter import LocalDatabaseAdapter  # noqa: E402
from gatherkids.database.realtime import RealtimeClient  # noqa: E402
from gatherkids.database.remote_adapter import RemoteDatabaseAdapter  # noqa: E402
from gatherkids.database.remote_client import PostgrestClient  # noqa: E402
from tests.fakes import FakePostgrest, TickingClock  # noqa: E402

SUPABASE_URL = "https://project.supabase.co"
SUPABASE_KEY = "anon-key"


@pytest.fixture
def sink():
    return CapturingDiagnosticSink()


@pytest.fixture
def clock():
    return TickingClock()


@pytest.fixture
def local_adapter(sink, clock):
    adapter = LocalDatabaseAdapter("sqlite://", sink=sink, clock=clock)
    yield adapter
    adapter.store.dispose()


@pytest.fixture
def postgrest():
    return FakePostgrest()


@pytest.fixture
def postgrest_client(postgrest):
    return PostgrestClient(
        SUPABASE_URL, SUPABASE_KEY,
        max_retries=3, retry_backoff=0, transport=postgrest.transport,
    )


@pytest.fixture
def realtime():
    return RealtimeClient(SUPABASE_URL, SUPABASE_KEY, autoconnect=False)


@pytest.fixture
def remote_adapter(postgrest_client, realtime, sink, clock):
    return RemoteDatabaseAdapter(
        SUPABASE_URL, SUPABASE_KEY,
        client=postgrest_client, realtime=realtime, sink=sink, clock=clock,
    )


@pytest.fixture(params=["local", "remote"])
def adapter(request):
    return request.getfixturevalue(f"{request.param}_adapter")
