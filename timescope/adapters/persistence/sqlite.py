"""SQLite-backed record store.

Instants are stored as fixed-width UTC ISO-8601 text with microseconds so
that SQL ``BETWEEN`` on the text column orders the same way the instants
do. UUIDs, dates, decimals and tuples get their own tags so they load back
as the same type; other values must be JSON-native.
"""

import json
import sqlite3
from contextlib import contextmanager
from datetime import date, datetime, timezone, tzinfo
from decimal import Decimal
from typing import Any, Dict, Iterable, Iterator, Sequence, Tuple
from uuid import UUID

from ...domain.models import CalendarRange, Record
from ...infrastructure.logging import get_logger
from ...ports.persistence import RecordStore

logger = get_logger(__name__)

INSTANT_FORMAT = "%Y-%m-%dT%H:%M:%S.%f"

SCHEMA = """
CREATE TABLE IF NOT EXISTS records (
    identity TEXT PRIMARY KEY,
    kind TEXT NOT NULL,
    position INTEGER NOT NULL
);
CREATE TABLE IF NOT EXISTS attributes (
    identity TEXT NOT NULL REFERENCES records(identity) ON DELETE CASCADE,
    name TEXT NOT NULL,
    tag TEXT NOT NULL,
    value TEXT,
    PRIMARY KEY (identity, name)
);
CREATE INDEX IF NOT EXISTS attributes_instant ON attributes(name, tag, value);
"""


def encode_instant(value: datetime) -> str:
    if value.tzinfo is None:
        raise ValueError(f"Cannot persist naive datetime {value.isoformat()}")
    return value.astimezone(timezone.utc).strftime(INSTANT_FORMAT)


def decode_instant(text: str, tz: tzinfo) -> datetime:
    return datetime.strptime(text, INSTANT_FORMAT).replace(tzinfo=timezone.utc).astimezone(tz)


class UnsupportedAttributeValue(TypeError):
    """Raised when an attribute value has no SQLite encoding."""


JSON_TYPES = (str, int, float, bool, list, dict, type(None))


def _dump_json(value: Any) -> str:
    try:
        return json.dumps(value)
    except TypeError as exc:
        raise UnsupportedAttributeValue(f"Cannot persist {value!r}: {exc}") from exc


def _encode_value(value: Any) -> Tuple[str, str]:
    if isinstance(value, datetime):
        return "instant", encode_instant(value)
    if isinstance(value, date):
        return "date", value.isoformat()
    if isinstance(value, UUID):
        return "uuid", str(value)
    if isinstance(value, Decimal):
        return "decimal", str(value)
    if isinstance(value, tuple):
        return "tuple", _dump_json(list(value))
    if isinstance(value, JSON_TYPES):
        return "json", _dump_json(value)
    raise UnsupportedAttributeValue(f"Cannot persist {type(value).__name__} value {value!r}")


def _decode_value(tag: str, text: str, tz: tzinfo) -> Any:
    if tag == "instant":
        return decode_instant(text, tz)
    if tag == "date":
        return date.fromisoformat(text)
    if tag == "uuid":
        return UUID(text)
    if tag == "decimal":
        return Decimal(text)
    if tag == "tuple":
        return tuple(json.loads(text))
    return json.loads(text)


@contextmanager
def tx(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    try:
        conn.execute("BEGIN IMMEDIATE;")
        yield conn
        if conn.in_transaction:
            conn.commit()
    except Exception:
        if conn.in_transaction:
            conn.rollback()
        raise


class SqliteRecordStore(RecordStore):
    """Persists records in SQLite and answers range queries in SQL."""

    def __init__(self, dsn: str = ":memory:", tz: tzinfo = timezone.utc) -> None:
        self.dsn = dsn
        self.tz = tz
        self._conn = sqlite3.connect(dsn, check_same_thread=False, isolation_level=None)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA foreign_keys=ON;")
        self._conn.executescript(SCHEMA)
        self._position = 0

    def add(self, records: Iterable[Record]) -> None:
        with tx(self._conn) as conn:
            for record in records:
                self._position += 1
                conn.execute(
                    "INSERT INTO records (identity, kind, position) VALUES (?, ?, ?)",
                    (str(record.identity), record.kind, self._position),
                )
                conn.executemany(
                    "INSERT INTO attributes (identity, name, tag, value) VALUES (?, ?, ?, ?)",
                    [(str(record.identity), name, *_encode_value(value)) for name, value in record.attributes.items()],
                )

    def query_range(self, attribute: str, range_: CalendarRange) -> Sequence[Record]:
        rows = self._conn.execute(
            """
            SELECT r.identity, r.kind
            FROM records r
            JOIN attributes a ON a.identity = r.identity
            WHERE a.name = ? AND a.tag = 'instant' AND a.value BETWEEN ? AND ?
            ORDER BY r.position
            """,
            (attribute, encode_instant(range_.start), encode_instant(range_.end)),
        ).fetchall()
        logger.debug("sqlite_range_query", attribute=attribute, matched=len(rows))
        return tuple(self._load(row["identity"], row["kind"]) for row in rows)

    def clear(self) -> None:
        with tx(self._conn) as conn:
            conn.execute("DELETE FROM attributes")
            conn.execute("DELETE FROM records")

    def close(self) -> None:
        self._conn.close()

    def _load(self, identity: str, kind: str) -> Record:
        attributes: Dict[str, Any] = {}
        for row in self._conn.execute(
            "SELECT name, tag, value FROM attributes WHERE identity = ?", (identity,)
        ).fetchall():
            attributes[row["name"]] = _decode_value(row["tag"], row["value"], self.tz)
        return Record(kind=kind, identity=UUID(identity), attributes=attributes)
