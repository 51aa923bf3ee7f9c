"""
Local-store adapter: the contract over the embedded document store.

Used in demo mode and whenever the remote backend is not configured.  Every
operation runs under one ``asyncio.Lock`` (single writer per process); a
``transaction(fn)`` call holds the lock and one SQLAlchemy transaction for the
whole of ``fn`` so everything ``fn`` writes commits or rolls back together.
That guarantee covers this store only and says nothing about the remote one.

SQLite calls are synchronous and run on the event loop thread while the lock
is held; nothing is handed to a worker thread.  The store is a small embedded
file (or memory) database and each call is short, so other coroutines only
wait for the statement in flight.  A ``transaction(fn)`` keeps the lock for as
long as ``fn`` runs, so ``fn`` should not await slow outside work.  Callers
that need the loop free during bulk imports should use the remote backend or
run the import in its own thread with its own adapter.

There is no change source here: ``subscribe_to_table`` hands back an
unsubscribe that does nothing, keeping interface parity with the remote
adapter.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import Any, AsyncIterator, Awaitable, Callable, List, Mapping, Optional, Tuple, TypeVar

from sqlalchemy.orm import Session

from gatherkids.core.diagnostics import DiagnosticSink
from gatherkids.core.utils import Clock, later_timestamp
from gatherkids.database.contract import ChangeCallback, DatabaseAdapter, Unsubscribe
from gatherkids.database.entities import get_spec, matches_search, normalize_filters
from gatherkids.database.errors import NotFoundError
from gatherkids.database.local_store import LocalDocumentStore
from gatherkids.domain.models import DomainModel

logger = logging.getLogger(__name__)

T = TypeVar("T")

# (adapter, session) for the transaction running in the current task, if any.
_ACTIVE_TX: ContextVar[Optional[Tuple["LocalDatabaseAdapter", Session]]] = ContextVar(
    "gatherkids_local_tx", default=None
)


def _noop() -> None:
    return None


class LocalDatabaseAdapter(DatabaseAdapter):
    backend = "local"

    def __init__(
        self,
        url: Optional[str] = None,
        *,
        store: Optional[LocalDocumentStore] = None,
        sink: Optional[DiagnosticSink] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        super().__init__(sink=sink, clock=clock)
        self.store = store or LocalDocumentStore(url)
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def _current_tx(self) -> Optional[Session]:
        active = _ACTIVE_TX.get()
        if active is not None and active[0] is self:
            return active[1]
        return None

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[Session]:
        """Join the running transaction, or run one short transaction."""
        session = self._current_tx()
        if session is not None:
            yield session
            return
        self.store.open()
        async with self._lock:
            with self.store.session() as session, session.begin():
                yield session

    # ------------------------------------------------------------------
    # Primitives
    # ------------------------------------------------------------------

    def _to_domain(self, collection: str, doc: Mapping[str, Any]) -> DomainModel:
        return get_spec(collection).mapper.to_domain(doc, sink=self.sink, clock=self.clock)

    async def get_record(self, collection: str, record_id: str) -> Optional[DomainModel]:
        get_spec(collection)
        async with self._session() as session:
            doc = self.store.get(session, collection, record_id)
        return None if doc is None else self._to_domain(collection, doc)

    async def create_record(self, collection: str, data: Mapping[str, Any]) -> DomainModel:
        spec = get_spec(collection)
        row = spec.mapper.to_backend(self._prepare_create(spec, data))
        async with self._session() as session:
            self.store.insert(session, collection, row[spec.id_field], row)
        return self._to_domain(collection, row)

    async def update_record(
        self, collection: str, record_id: str, patch: Mapping[str, Any]
    ) -> DomainModel:
        spec = get_spec(collection)
        changes = spec.mapper.to_backend_patch(patch, record_id)
        async with self._session() as session:
            doc = self.store.get(session, collection, record_id)
            if doc is None:
                raise NotFoundError(spec.entity, record_id)
            current = self._to_domain(collection, doc)
            merged = {**spec.mapper.to_backend(current), **changes}
            merged["updated_at"] = later_timestamp(self.clock.now_iso(), current.updated_at)
            updated = self._to_domain(collection, merged)
            self.store.replace(session, collection, record_id, spec.mapper.to_backend(updated))
        return updated

    async def delete_record(self, collection: str, record_id: str) -> None:
        get_spec(collection)
        async with self._session() as session:
            removed = self.store.delete(session, collection, record_id)
        if not removed:
            logger.debug("delete %s/%s: already absent", collection, record_id)

    async def list_records(
        self, collection: str, filters: Optional[Mapping[str, Any]] = None
    ) -> List[DomainModel]:
        spec = get_spec(collection)
        query = normalize_filters(spec, filters)
        async with self._session() as session:
            docs = self.store.select(session, collection, query.equals, query.flags)
        records = [self._to_domain(collection, doc) for doc in docs]

        if query.search:
            records = [
                r for r in records
                if matches_search(r.model_dump(), spec.search, query.search)
            ]
        for column, wanted in query.present.items():
            records = [r for r in records if (getattr(r, column) is not None) == wanted]

        end = None if query.limit is None else query.offset + query.limit
        return records[query.offset:end]

    # ------------------------------------------------------------------
    # Cross-cutting
    # ------------------------------------------------------------------

    async def transaction(self, fn: Callable[[], Awaitable[T]]) -> T:
        if self._current_tx() is not None:
            return await fn()
        self.store.open()
        async with self._lock:
            with self.store.session() as session, session.begin():
                token = _ACTIVE_TX.set((self, session))
                try:
                    return await fn()
                finally:
                    _ACTIVE_TX.reset(token)

    async def subscribe_to_table(self, table: str, callback: ChangeCallback) -> Unsubscribe:
        logger.debug("subscribe_to_table(%s): local store has no change feed", table)
        return _noop

    async def aclose(self) -> None:
        self.store.dispose()
