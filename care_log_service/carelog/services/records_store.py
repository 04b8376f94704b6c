# carelog/services/records_store.py
import json
import logging
import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List

from carelog.db.db_config import get_sqlite_connection
from carelog.schemas.models import CareRecord, InvalidInputError, RecordCreate, RecordNotFoundError, RecordUpdate

logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 100
MAX_LIST_LIMIT = 500

_SCHEMA = """
CREATE TABLE IF NOT EXISTS care_records (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    record_type TEXT NOT NULL,
    details TEXT NOT NULL,
    recorded_at TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT
);
CREATE INDEX IF NOT EXISTS idx_care_records_recorded_at ON care_records (recorded_at DESC);
"""


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def _row_to_record(row: sqlite3.Row) -> CareRecord:
    return CareRecord(
        id=row["id"],
        record_type=row["record_type"],
        details=json.loads(row["details"] or "{}"),
        recorded_at=row["recorded_at"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class RecordStore:
    """Finished care records (create / list newest-first / update / delete)."""

    def __init__(self, path: Path | str):
        self.path = Path(path)
        self._conn = get_sqlite_connection(self.path)
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        with self._lock:
            self._conn.executescript(_SCHEMA)
            self._conn.commit()

    def create(self, rec: RecordCreate) -> CareRecord:
        if not (rec.record_type or "").strip():
            raise InvalidInputError("record_type is required.")
        now = _now_iso()
        with self._lock:
            cur = self._conn.execute(
                "INSERT INTO care_records (record_type, details, recorded_at, created_at) VALUES (?, ?, ?, ?)",
                (rec.record_type, json.dumps(rec.details, ensure_ascii=False), rec.recorded_at or now, now),
            )
            self._conn.commit()
            record_id = cur.lastrowid
        logger.info("Stored care record id=%s type=%s", record_id, rec.record_type)
        return self.get(record_id)

    def get(self, record_id: int) -> CareRecord:
        with self._lock:
            row = self._conn.execute("SELECT * FROM care_records WHERE id = ?", (record_id,)).fetchone()
        if row is None:
            raise RecordNotFoundError(record_id)
        return _row_to_record(row)

    def list(self, limit: int = DEFAULT_LIST_LIMIT) -> List[CareRecord]:
        limit = max(1, min(int(limit), MAX_LIST_LIMIT))
        with self._lock:
            rows = self._conn.execute(
                "SELECT * FROM care_records ORDER BY recorded_at DESC, id DESC LIMIT ?",
                (limit,),
            ).fetchall()
        return [_row_to_record(r) for r in rows]

    def update(self, record_id: int, upd: RecordUpdate) -> CareRecord:
        current = self.get(record_id)
        values: Dict[str, Any] = {
            "record_type": upd.record_type or current.record_type,
            "details": json.dumps(
                upd.details if upd.details is not None else current.details,
                ensure_ascii=False,
            ),
            "recorded_at": upd.recorded_at or current.recorded_at,
            "updated_at": _now_iso(),
        }
        with self._lock:
            self._conn.execute(
                "UPDATE care_records SET record_type = ?, details = ?, recorded_at = ?, updated_at = ? WHERE id = ?",
                (values["record_type"], values["details"], values["recorded_at"], values["updated_at"], record_id),
            )
            self._conn.commit()
        logger.info("Updated care record id=%s", record_id)
        return self.get(record_id)

    def delete(self, record_id: int) -> None:
        with self._lock:
            cur = self._conn.execute("DELETE FROM care_records WHERE id = ?", (record_id,))
            self._conn.commit()
        if cur.rowcount == 0:
            raise RecordNotFoundError(record_id)
        logger.info("Deleted care record id=%s", record_id)

    def close(self) -> None:
        self._conn.close()
