"""
Remote-store adapter: the contract over the hosted relational store.

All reads and writes go through ``PostgrestClient``; row changes arrive over
the shared ``RealtimeClient`` socket.  Every row is passed through the entity
mapper on the way in and out, so callers see the same canonical objects the
local adapter returns.

``transaction(fn)`` is a pass-through: PostgREST offers no multi-request
transaction, so writes made inside ``fn`` are not rolled back when ``fn``
fails.  They are journaled instead, and a failing ``fn`` produces one
``remote_transaction_partial_failure`` diagnostic naming the writes that were
already applied before the original error is re-raised.
"""

from __future__ import annotations

import logging
from contextvars import ContextVar
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Tuple, TypeVar

from gatherkids.core.diagnostics import DiagnosticSink
from gatherkids.core.utils import Clock
from gatherkids.database.contract import ChangeCallback, DatabaseAdapter, TableChange, Unsubscribe
from gatherkids.database.entities import EntitySpec, get_spec, normalize_filters
from gatherkids.database.errors import ConfigurationError, DuplicateRecordError, NotFoundError
from gatherkids.database.realtime import RealtimeClient
from gatherkids.database.remote_client import NoRowFound, PostgrestClient, eq, ilike_any, is_bool
from gatherkids.domain.enums import ChangeType
from gatherkids.domain.models import DomainModel

logger = logging.getLogger(__name__)

T = TypeVar("T")

TX_PARTIAL_FAILURE_EVENT = "remote_transaction_partial_failure"

# Writes applied inside the running transaction(fn), oldest first.
_JOURNAL: ContextVar[Optional[List[Dict[str, str]]]] = ContextVar(
    "gatherkids_remote_tx_journal", default=None
)


def list_params(spec: EntitySpec, filters: Optional[Mapping[str, Any]]) -> List[Tuple[str, str]]:
    """Translate contract list filters into PostgREST query parameters."""
    query = normalize_filters(spec, filters)
    params: List[Tuple[str, str]] = []
    for name, value in query.equals.items():
        params.append((name, eq(value)))
    for name, value in query.flags.items():
        params.append((name, is_bool(value)))
    if query.search:
        params.append(("or", ilike_any(spec.search, query.search)))
    for column, wanted in query.present.items():
        params.append((column, "not.is.null" if wanted else "is.null"))
    params.append(("order", "created_at.asc"))
    if query.limit is not None:
        params.append(("limit", str(query.limit)))
    if query.offset:
        params.append(("offset", str(query.offset)))
    return params


class RemoteDatabaseAdapter(DatabaseAdapter):
    backend = "remote"

    def __init__(
        self,
        url: str,
        key: str,
        *,
        client: Optional[PostgrestClient] = None,
        realtime: Optional[RealtimeClient] = None,
        sink: Optional[DiagnosticSink] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        missing = [name for name, value in (("SUPABASE_URL", url), ("SUPABASE_ANON_KEY", key)) if not value]
        if missing:
            raise ConfigurationError(missing)
        super().__init__(sink=sink, clock=clock)
        self.url = url
        self.client = client or PostgrestClient(url, key)
        self.realtime = realtime or RealtimeClient(url, key)

    def _to_domain(self, spec: EntitySpec, row: Mapping[str, Any]) -> DomainModel:
        return spec.mapper.to_domain(row, sink=self.sink, clock=self.clock)

    @staticmethod
    def _journal(op: str, collection: str, record_id: str) -> None:
        journal = _JOURNAL.get()
        if journal is not None:
            journal.append({"op": op, "collection": collection, "record_id": record_id})

    # ------------------------------------------------------------------
    # Primitives
    # ------------------------------------------------------------------

    async def get_record(self, collection: str, record_id: str) -> Optional[DomainModel]:
        spec = get_spec(collection)
        row = await self.client.select_one(collection, spec.id_field, record_id)
        return None if row is None else self._to_domain(spec, row)

    async def create_record(self, collection: str, data: Mapping[str, Any]) -> DomainModel:
        spec = get_spec(collection)
        row = spec.mapper.to_backend(self._prepare_create(spec, data))
        record_id = row[spec.id_field]
        try:
            created = await self.client.insert(collection, row, record_id)
        except DuplicateRecordError:
            raise DuplicateRecordError(spec.entity, record_id) from None
        self._journal("create", collection, record_id)
        return self._to_domain(spec, created or row)

    async def update_record(
        self, collection: str, record_id: str, patch: Mapping[str, Any]
    ) -> DomainModel:
        spec = get_spec(collection)
        changes = spec.mapper.to_backend_patch(patch, record_id)
        changes["updated_at"] = self.clock.now_iso()
        try:
            row = await self.client.update(collection, spec.id_field, record_id, changes)
        except NoRowFound:
            raise NotFoundError(spec.entity, record_id) from None
        self._journal("update", collection, record_id)
        return self._to_domain(spec, row)

    async def delete_record(self, collection: str, record_id: str) -> None:
        spec = get_spec(collection)
        if await self.client.delete(collection, spec.id_field, record_id):
            self._journal("delete", collection, record_id)
        else:
            logger.debug("delete %s/%s: already absent", collection, record_id)

    async def list_records(
        self, collection: str, filters: Optional[Mapping[str, Any]] = None
    ) -> List[DomainModel]:
        spec = get_spec(collection)
        rows = await self.client.select(collection, list_params(spec, filters))
        return [self._to_domain(spec, row) for row in rows]

    # ------------------------------------------------------------------
    # Cross-cutting
    # ------------------------------------------------------------------

    async def transaction(self, fn: Callable[[], Awaitable[T]]) -> T:
        if _JOURNAL.get() is not None:
            return await fn()
        journal: List[Dict[str, str]] = []
        token = _JOURNAL.set(journal)
        try:
            return await fn()
        except Exception as exc:
            if journal:
                self.sink.emit(
                    TX_PARTIAL_FAILURE_EVENT,
                    error=f"{type(exc).__name__}: {exc}",
                    applied=list(journal),
                )
            raise
        finally:
            _JOURNAL.reset(token)

    async def subscribe_to_table(self, table: str, callback: ChangeCallback) -> Unsubscribe:
        get_spec(table)

        def deliver(name: str, change: ChangeType, record: Dict[str, Any]) -> Any:
            return callback(TableChange(name, change, record))

        return await self.realtime.subscribe(table, deliver)

    async def aclose(self) -> None:
        await self.realtime.close()
        await self.client.close()
