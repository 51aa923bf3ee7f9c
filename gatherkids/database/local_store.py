"""
Embedded, versioned document store backing the local adapter.

Every collection in ``gatherkids.database.entities.ENTITIES`` is one SQLite
table holding the backend row as a JSON document, plus one indexed column per
secondary index (foreign-key-shaped fields and flags) so list filters do not
scan documents.

The store schema carries a version number in ``store_meta``.  Opening an
older store runs the upgrade: missing collections are created, missing index
columns are added and back-filled from the documents, then the new version is
stamped.  A store written by newer code is refused.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Iterable, List, Mapping, Optional

from sqlalchemy import (
    JSON, Boolean, Column, Index, Integer, MetaData, String, Table,
    create_engine, event, inspect, select,
)
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool
from sqlalchemy.sql import text

from gatherkids import config
from gatherkids.database.entities import ENTITIES, EntitySpec
from gatherkids.database.errors import BackendError, DuplicateRecordError

logger = logging.getLogger(__name__)

# Bump whenever a collection or index is added to the catalogue.
SCHEMA_VERSION = 4

_META_VERSION_KEY = "schema_version"


def _index_column(name: str) -> str:
    return f"ix_{name}"


def _index_value(value: Any) -> Any:
    if value is None or isinstance(value, bool):
        return value
    return str(value)


def _is_bool_field(spec: EntitySpec, name: str) -> bool:
    return spec.mapper.model.model_fields[name].annotation is bool


class LocalDocumentStore:
    """SQLite collections reached through SQLAlchemy Core.

    Instantiate once per process.  The engine is created lazily on ``open()``
    so constructing a store never touches the filesystem.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        entities: Mapping[str, EntitySpec] = ENTITIES,
    ) -> None:
        self.url = url or config.LOCAL_DATABASE_URL
        self.entities = dict(entities)
        self.metadata = MetaData()
        self.meta_table = Table(
            "store_meta", self.metadata,
            Column("key", String(64), primary_key=True),
            Column("value", String(255), nullable=False),
        )
        self.tables: Dict[str, Table] = {
            name: self._collection_table(spec) for name, spec in self.entities.items()
        }
        self._engine: Optional[Engine] = None
        self._sessions: Optional[sessionmaker] = None
        self._open_lock = threading.Lock()

    def _collection_table(self, spec: EntitySpec) -> Table:
        columns: List[Any] = [
            Column("seq", Integer, primary_key=True, autoincrement=True),
            Column("id", String(255), nullable=False, unique=True),
            Column("doc", JSON, nullable=False),
        ]
        indices = []
        for name in spec.index_fields:
            col_type = Boolean if _is_bool_field(spec, name) else String(255)
            columns.append(Column(_index_column(name), col_type, nullable=True))
            indices.append(Index(f"ix_{spec.collection}_{name}", _index_column(name)))
        return Table(spec.collection, self.metadata, *columns, *indices)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    def open(self) -> None:
        if self._engine is not None:
            return
        with self._open_lock:
            if self._engine is not None:
                return
            engine = None
            try:
                engine = self._create_engine()
                with engine.begin() as conn:
                    self._migrate(conn)
            except BackendError:
                if engine is not None:
                    engine.dispose()
                raise
            except Exception as exc:
                if engine is not None:
                    engine.dispose()
                raise BackendError(f"Cannot open local store {self.url}: {exc}") from exc
            self._engine = engine
            self._sessions = sessionmaker(bind=engine, autoflush=False)

    def _create_engine(self) -> Engine:
        engine = create_engine(
            self.url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

        @event.listens_for(engine, "connect")
        def _set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA synchronous=NORMAL")
            cursor.execute("PRAGMA busy_timeout=5000")
            cursor.close()

        return engine

    def dispose(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
        self._engine = None
        self._sessions = None

    def session(self) -> Session:
        self.open()
        return self._sessions()

    # ------------------------------------------------------------------
    # Versioning
    # ------------------------------------------------------------------

    def _migrate(self, conn: Connection) -> None:
        self.meta_table.create(conn, checkfirst=True)
        stored = conn.execute(
            select(self.meta_table.c.value).where(self.meta_table.c.key == _META_VERSION_KEY)
        ).scalar()
        version = int(stored) if stored is not None else 0
        if version > SCHEMA_VERSION:
            raise BackendError(
                f"Local store is at schema version {version}; this build supports {SCHEMA_VERSION}",
                code="SCHEMA_TOO_NEW",
            )
        if version == SCHEMA_VERSION:
            return

        logger.info("Upgrading local store %s from schema v%d to v%d", self.url, version, SCHEMA_VERSION)
        existing = set(inspect(conn).get_table_names())
        for name, table in self.tables.items():
            if name not in existing:
                table.create(conn)
            else:
                self._add_missing_indices(conn, self.entities[name], table)

        if stored is None:
            conn.execute(self.meta_table.insert().values(key=_META_VERSION_KEY, value=str(SCHEMA_VERSION)))
        else:
            conn.execute(
                self.meta_table.update()
                .where(self.meta_table.c.key == _META_VERSION_KEY)
                .values(value=str(SCHEMA_VERSION))
            )

    def _add_missing_indices(self, conn: Connection, spec: EntitySpec, table: Table) -> None:
        present = {col["name"] for col in inspect(conn).get_columns(table.name)}
        added = []
        for name in spec.index_fields:
            column = table.c[_index_column(name)]
            if column.name in present:
                continue
            col_type = column.type.compile(dialect=conn.dialect)
            conn.execute(text(f'ALTER TABLE "{table.name}" ADD COLUMN "{column.name}" {col_type}'))
            added.append(name)
        if not added:
            return
        for index in table.indexes:
            index.create(conn, checkfirst=True)
        for row in conn.execute(select(table.c.seq, table.c.doc)).all():
            conn.execute(
                table.update()
                .where(table.c.seq == row.seq)
                .values({_index_column(n): _index_value((row.doc or {}).get(n)) for n in added})
            )
        logger.info("Back-filled index column(s) %s on %s", ", ".join(added), table.name)

    def schema_version(self) -> int:
        self.open()
        with self._engine.connect() as conn:
            stored = conn.execute(
                select(self.meta_table.c.value).where(self.meta_table.c.key == _META_VERSION_KEY)
            ).scalar()
        return int(stored) if stored is not None else 0

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def _table(self, collection: str) -> Table:
        return self.tables[collection]

    def _index_values(self, collection: str, doc: Mapping[str, Any]) -> Dict[str, Any]:
        spec = self.entities[collection]
        return {_index_column(n): _index_value(doc.get(n)) for n in spec.index_fields}

    def get(self, session: Session, collection: str, record_id: str) -> Optional[Dict[str, Any]]:
        table = self._table(collection)
        return session.execute(select(table.c.doc).where(table.c.id == record_id)).scalar()

    def insert(self, session: Session, collection: str, record_id: str, doc: Mapping[str, Any]) -> None:
        table = self._table(collection)
        if self.get(session, collection, record_id) is not None:
            raise DuplicateRecordError(self.entities[collection].entity, record_id)
        session.execute(
            table.insert().values(id=record_id, doc=dict(doc), **self._index_values(collection, doc))
        )

    def replace(self, session: Session, collection: str, record_id: str, doc: Mapping[str, Any]) -> bool:
        table = self._table(collection)
        result = session.execute(
            table.update()
            .where(table.c.id == record_id)
            .values(doc=dict(doc), **self._index_values(collection, doc))
        )
        return result.rowcount > 0

    def delete(self, session: Session, collection: str, record_id: str) -> bool:
        table = self._table(collection)
        result = session.execute(table.delete().where(table.c.id == record_id))
        return result.rowcount > 0

    def select(
        self,
        session: Session,
        collection: str,
        equals: Optional[Mapping[str, Any]] = None,
        flags: Optional[Mapping[str, bool]] = None,
    ) -> List[Dict[str, Any]]:
        """Documents matching the indexed predicates, in insertion order."""
        table = self._table(collection)
        stmt = select(table.c.doc)
        for name, value in (equals or {}).items():
            stmt = stmt.where(table.c[_index_column(name)] == _index_value(value))
        for name, value in (flags or {}).items():
            stmt = stmt.where(table.c[_index_column(name)] == bool(value))
        return list(session.execute(stmt.order_by(table.c.seq)).scalars())

    def iter_documents(self, collection: str) -> Iterable[Dict[str, Any]]:
        with self.session() as session:
            return self.select(session, collection)
