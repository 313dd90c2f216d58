from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
import logging
from pathlib import Path
import sqlite3
import threading
from types import TracebackType
from uuid import uuid4

from certigest.formatting import normalize_cnpj, normalize_cycle

logger = logging.getLogger("certigest.store")


class StoreError(RuntimeError):
    """Raised when the record store is misconfigured or used outside its open/close lifecycle."""


class DuplicateEntityError(StoreError):
    """Raised when an entity with the same CNPJ is already registered."""


@dataclass(frozen=True)
class Entity:
    id: str
    name: str
    cnpj: str
    created_at: str


@dataclass(frozen=True)
class EvidenceRecord:
    id: str
    entity_id: str
    slot_id: str
    cycle: str
    issued_at: str
    file_name: str
    payload: bytes = field(repr=False)

    @property
    def size_bytes(self) -> int:
        return len(self.payload)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_evidence_record(
    *,
    entity_id: str,
    slot_id: str,
    cycle: str,
    file_name: str,
    payload: bytes,
) -> EvidenceRecord:
    return EvidenceRecord(
        id=str(uuid4()),
        entity_id=entity_id,
        slot_id=slot_id,
        cycle=normalize_cycle(cycle),
        issued_at=utc_now_iso(),
        file_name=Path(file_name).name or "upload.bin",
        payload=bytes(payload),
    )


def database_path(database_url: str) -> Path:
    prefix = "sqlite:///"
    if not database_url.startswith(prefix):
        raise StoreError("Only sqlite:/// DATABASE_URL is supported.")
    return Path(database_url[len(prefix) :])


_SCHEMA = """
CREATE TABLE IF NOT EXISTS entities (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    cnpj TEXT NOT NULL UNIQUE,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS evidence_records (
    id TEXT PRIMARY KEY,
    entity_id TEXT NOT NULL,
    slot_id TEXT NOT NULL,
    cycle TEXT NOT NULL,
    issued_at TEXT NOT NULL,
    file_name TEXT NOT NULL,
    payload BLOB NOT NULL,
    FOREIGN KEY(entity_id) REFERENCES entities(id) ON DELETE CASCADE,
    UNIQUE(entity_id, slot_id, cycle)
);

CREATE INDEX IF NOT EXISTS idx_evidence_entity_cycle
    ON evidence_records(entity_id, cycle);
CREATE INDEX IF NOT EXISTS idx_evidence_cycle
    ON evidence_records(cycle);
"""


def _entity_from_row(row: sqlite3.Row) -> Entity:
    return Entity(
        id=str(row["id"]),
        name=str(row["name"]),
        cnpj=str(row["cnpj"]),
        created_at=str(row["created_at"]),
    )


def _record_from_row(row: sqlite3.Row) -> EvidenceRecord:
    return EvidenceRecord(
        id=str(row["id"]),
        entity_id=str(row["entity_id"]),
        slot_id=str(row["slot_id"]),
        cycle=str(row["cycle"]),
        issued_at=str(row["issued_at"]),
        file_name=str(row["file_name"]),
        payload=bytes(row["payload"]),
    )


class RecordStore:
    """SQLite-backed store for entities and their evidence records.

    The store holds a single connection between ``open()`` and ``close()``. Every operation
    runs under one lock, so a read of an entity's records for a cycle is a consistent snapshot
    even while uploads are being written from other threads.
    """

    def __init__(self, database_url: str) -> None:
        self._path = database_path(database_url)
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.RLock()

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def open(self) -> "RecordStore":
        if self._conn is not None:
            return self
        self._path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self._path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        with conn:
            conn.executescript(_SCHEMA)
        self._conn = conn
        logger.info("record_store_opened", extra={"event": "record_store_opened", "path": str(self._path)})
        return self

    def close(self) -> None:
        with self._lock:
            if self._conn is None:
                return
            self._conn.close()
            self._conn = None
        logger.info("record_store_closed", extra={"event": "record_store_closed", "path": str(self._path)})

    def __enter__(self) -> "RecordStore":
        return self.open()

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def _require_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StoreError("Record store is not open.")
        return self._conn

    def ping(self) -> None:
        with self._lock:
            self._require_conn().execute("SELECT 1").fetchone()

    # Entities

    def create_entity(self, *, name: str, cnpj: str) -> Entity:
        entity = Entity(
            id=str(uuid4()),
            name=name.strip(),
            cnpj=normalize_cnpj(cnpj),
            created_at=utc_now_iso(),
        )
        with self._lock:
            conn = self._require_conn()
            try:
                with conn:
                    conn.execute(
                        "INSERT INTO entities (id, name, cnpj, created_at) VALUES (?, ?, ?, ?)",
                        (entity.id, entity.name, entity.cnpj, entity.created_at),
                    )
            except sqlite3.IntegrityError as exc:
                raise DuplicateEntityError("An entity with this CNPJ is already registered.") from exc
        return entity

    def get_entity(self, entity_id: str) -> Entity | None:
        with self._lock:
            row = self._require_conn().execute(
                "SELECT id, name, cnpj, created_at FROM entities WHERE id = ?",
                (entity_id,),
            ).fetchone()
        if row is None:
            return None
        return _entity_from_row(row)

    def list_entities(self) -> list[Entity]:
        with self._lock:
            rows = self._require_conn().execute(
                "SELECT id, name, cnpj, created_at FROM entities ORDER BY name COLLATE NOCASE ASC, created_at ASC"
            ).fetchall()
        return [_entity_from_row(row) for row in rows]

    def delete_entity(self, entity_id: str) -> bool:
        with self._lock:
            conn = self._require_conn()
            with conn:
                removed_records = conn.execute(
                    "DELETE FROM evidence_records WHERE entity_id = ?",
                    (entity_id,),
                ).rowcount
                deleted = conn.execute("DELETE FROM entities WHERE id = ?", (entity_id,)).rowcount
        if deleted:
            logger.info(
                "entity_deleted",
                extra={"event": "entity_deleted", "entity_id": entity_id, "records_removed": removed_records},
            )
        return bool(deleted)

    # Evidence records

    def put_record(self, record: EvidenceRecord) -> EvidenceRecord:
        """Store ``record``, replacing any record with the same (entity, slot, cycle)."""
        with self._lock:
            conn = self._require_conn()
            with conn:
                replaced = conn.execute(
                    "DELETE FROM evidence_records WHERE entity_id = ? AND slot_id = ? AND cycle = ?",
                    (record.entity_id, record.slot_id, record.cycle),
                ).rowcount
                conn.execute(
                    """
                    INSERT INTO evidence_records (
                        id, entity_id, slot_id, cycle, issued_at, file_name, payload
                    ) VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        record.id,
                        record.entity_id,
                        record.slot_id,
                        record.cycle,
                        record.issued_at,
                        record.file_name,
                        sqlite3.Binary(record.payload),
                    ),
                )
        logger.info(
            "evidence_record_stored",
            extra={
                "event": "evidence_record_stored",
                "entity_id": record.entity_id,
                "slot_id": record.slot_id,
                "cycle": record.cycle,
                "size_bytes": record.size_bytes,
                "replaced": bool(replaced),
            },
        )
        return record

    def get_records(self, entity_id: str, cycle: str) -> dict[str, EvidenceRecord]:
        with self._lock:
            rows = self._require_conn().execute(
                """
                SELECT id, entity_id, slot_id, cycle, issued_at, file_name, payload
                FROM evidence_records
                WHERE entity_id = ? AND cycle = ?
                """,
                (entity_id, cycle),
            ).fetchall()
        return {str(row["slot_id"]): _record_from_row(row) for row in rows}

    def get_record(self, entity_id: str, slot_id: str, cycle: str) -> EvidenceRecord | None:
        with self._lock:
            row = self._require_conn().execute(
                """
                SELECT id, entity_id, slot_id, cycle, issued_at, file_name, payload
                FROM evidence_records
                WHERE entity_id = ? AND slot_id = ? AND cycle = ?
                """,
                (entity_id, slot_id, cycle),
            ).fetchone()
        if row is None:
            return None
        return _record_from_row(row)

    def list_cycles(self, entity_id: str) -> list[str]:
        with self._lock:
            rows = self._require_conn().execute(
                "SELECT DISTINCT cycle FROM evidence_records WHERE entity_id = ? ORDER BY cycle DESC",
                (entity_id,),
            ).fetchall()
        return [str(row["cycle"]) for row in rows]

    def count_records_by_entity(self, cycle: str, slot_ids: list[str] | None = None) -> dict[str, int]:
        query = "SELECT entity_id, COUNT(*) AS total FROM evidence_records WHERE cycle = ?"
        params: list[object] = [cycle]
        if slot_ids is not None:
            if not slot_ids:
                return {}
            placeholders = ", ".join("?" for _ in slot_ids)
            query += f" AND slot_id IN ({placeholders})"
            params.extend(slot_ids)
        query += " GROUP BY entity_id"
        with self._lock:
            rows = self._require_conn().execute(query, params).fetchall()
        return {str(row["entity_id"]): int(row["total"]) for row in rows}
