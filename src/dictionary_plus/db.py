"""Database connection, DDL, and low-level CRUD for dictionary-plus."""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

from dictionary_plus.exceptions import DatabaseError, EntityNotFoundError

SCHEMA_VERSION = "1.0"

DEFAULT_DB_PATH = Path.home() / ".dictionary_plus.db"

# ---------------------------------------------------------------------------
# Type adapters/converters
# ---------------------------------------------------------------------------

def _adapt_datetime(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def _convert_isodate(data: bytes) -> datetime:
    value = datetime.fromisoformat(data.decode())
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def _convert_json(data: bytes) -> Any:
    return json.loads(data)


def _convert_flag(data: bytes) -> bool:
    return data not in (b"0", b"")


sqlite3.register_adapter(datetime, _adapt_datetime)
sqlite3.register_converter("ISODATE", _convert_isodate)
sqlite3.register_converter("JSON", _convert_json)
sqlite3.register_converter("FLAG", _convert_flag)


# ---------------------------------------------------------------------------
# DDL statements
# ---------------------------------------------------------------------------

_DDL = """
-- Meta table
CREATE TABLE IF NOT EXISTS meta (
    key TEXT NOT NULL,
    value TEXT,
    UNIQUE (key)
);

-- Cached lookups
CREATE TABLE IF NOT EXISTS dictionary_entries (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    term TEXT NOT NULL CHECK( length(term) > 0 ),
    language TEXT NOT NULL DEFAULT 'en',
    lemma TEXT,
    payload JSON,
    part_of_speech TEXT,
    fetched_at ISODATE NOT NULL,
    created_at ISODATE NOT NULL,
    updated_at ISODATE NOT NULL
);
CREATE INDEX IF NOT EXISTS dictionary_entry_term_index
    ON dictionary_entries (term, language);

CREATE TABLE IF NOT EXISTS entry_variants (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    entry_id INTEGER NOT NULL REFERENCES dictionary_entries (id),
    variant TEXT NOT NULL CHECK( length(variant) > 0 ),
    variant_type TEXT,
    created_at ISODATE NOT NULL
);
CREATE INDEX IF NOT EXISTS entry_variant_entry_index ON entry_variants (entry_id);

-- Per-user data
CREATE TABLE IF NOT EXISTS user_word_notes (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    entry_id INTEGER NOT NULL REFERENCES dictionary_entries (id),
    tags TEXT,
    note TEXT,
    example_sentence TEXT,
    is_starred FLAG CHECK( is_starred IN (0, 1) ) DEFAULT 0 NOT NULL,
    familiarity TEXT NOT NULL DEFAULT 'new'
        CHECK( familiarity IN ('new', 'learning', 'familiar', 'mastered') ),
    created_at ISODATE NOT NULL,
    updated_at ISODATE NOT NULL
);
CREATE UNIQUE INDEX IF NOT EXISTS user_word_note_pair_index
    ON user_word_notes (user_id, entry_id);

CREATE TABLE IF NOT EXISTS lookup_history (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT,
    term TEXT NOT NULL CHECK( length(term) > 0 ),
    language TEXT NOT NULL DEFAULT 'en',
    entry_id INTEGER REFERENCES dictionary_entries (id),
    looked_at ISODATE NOT NULL,
    source TEXT,
    context TEXT
);
CREATE INDEX IF NOT EXISTS lookup_history_user_index ON lookup_history (user_id);
"""

# Writable columns per table (``id`` is generated)
TABLES: dict[str, tuple[str, ...]] = {
    "dictionary_entries": (
        "term", "language", "lemma", "payload", "part_of_speech",
        "fetched_at", "created_at", "updated_at",
    ),
    "entry_variants": ("entry_id", "variant", "variant_type", "created_at"),
    "user_word_notes": (
        "user_id", "entry_id", "tags", "note", "example_sentence",
        "is_starred", "familiarity", "created_at", "updated_at",
    ),
    "lookup_history": (
        "user_id", "term", "language", "entry_id", "looked_at",
        "source", "context",
    ),
}

_JSON_COLUMNS = frozenset({("dictionary_entries", "payload")})


def connect(db_path: str | Path = ":memory:") -> sqlite3.Connection:
    """Open a database connection with store PRAGMA settings."""
    db_path_str = str(db_path)
    conn = sqlite3.connect(
        db_path_str,
        detect_types=sqlite3.PARSE_DECLTYPES | sqlite3.PARSE_COLNAMES,
    )
    conn.execute("PRAGMA foreign_keys = ON")
    if db_path_str != ":memory:":
        conn.execute("PRAGMA journal_mode = WAL")
    conn.row_factory = sqlite3.Row
    return conn


def init_db(conn: sqlite3.Connection) -> None:
    """Initialize all tables if they don't exist. Set schema version."""
    conn.executescript(_DDL)
    conn.execute(
        "INSERT OR IGNORE INTO meta (key, value) VALUES ('schema_version', ?)",
        (SCHEMA_VERSION,),
    )
    conn.commit()


def check_schema_version(conn: sqlite3.Connection) -> None:
    """Verify the database schema version is compatible."""
    try:
        row = conn.execute(
            "SELECT value FROM meta WHERE key = 'schema_version'"
        ).fetchone()
    except sqlite3.OperationalError:
        # meta table doesn't exist - uninitialized DB
        return
    if row is None:
        return
    version = row[0]
    if version != SCHEMA_VERSION:
        raise DatabaseError(
            f"Incompatible schema version: {version} "
            f"(expected {SCHEMA_VERSION})"
        )


# ---------------------------------------------------------------------------
# Generic CRUD helpers
# ---------------------------------------------------------------------------

def _columns(table: str, names: Any) -> list[str]:
    try:
        allowed = TABLES[table]
    except KeyError:
        raise DatabaseError(f"Unknown table: {table!r}") from None
    columns = list(names)
    unknown = [c for c in columns if c not in allowed and c != "id"]
    if unknown:
        raise DatabaseError(f"Unknown column(s) for {table}: {unknown}")
    return columns


def _encode(table: str, column: str, value: Any) -> Any:
    if (table, column) in _JSON_COLUMNS:
        return json.dumps(value) if value is not None else None
    if isinstance(value, Enum):
        return value.value
    return value


def _to_dict(row: sqlite3.Row | None) -> dict[str, Any] | None:
    return dict(row) if row is not None else None


def select_by_id(
    conn: sqlite3.Connection, table: str, row_id: int
) -> dict[str, Any] | None:
    """Get a full row by its id, or None."""
    _columns(table, ())
    row = conn.execute(
        f"SELECT * FROM {table} WHERE id = ?", (row_id,)
    ).fetchone()
    return _to_dict(row)


def select_by_filter(
    conn: sqlite3.Connection,
    table: str,
    *,
    limit: int | None = None,
    **criteria: Any,
) -> list[dict[str, Any]]:
    """Get rows matching every criterion (equality), in id order."""
    clauses: list[str] = []
    params: list[Any] = []
    for column in _columns(table, criteria):
        value = criteria[column]
        if value is None:
            clauses.append(f"{column} IS NULL")
        else:
            clauses.append(f"{column} = ?")
            params.append(_encode(table, column, value))

    where = " AND ".join(clauses) if clauses else "1=1"
    sql = f"SELECT * FROM {table} WHERE {where} ORDER BY id ASC"
    if limit is not None:
        sql += " LIMIT ?"
        params.append(limit)
    return [dict(row) for row in conn.execute(sql, params).fetchall()]


def insert_row(
    conn: sqlite3.Connection, table: str, values: dict[str, Any]
) -> dict[str, Any]:
    """Insert a row and return it as stored, generated id included."""
    columns = _columns(table, values)
    placeholders = ", ".join("?" for _ in columns)
    cur = conn.execute(
        f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})",
        [_encode(table, c, values[c]) for c in columns],
    )
    return select_by_id(conn, table, cur.lastrowid)


def update_row(
    conn: sqlite3.Connection,
    table: str,
    row_id: int,
    values: dict[str, Any],
) -> dict[str, Any]:
    """Update a row by id and return it as stored."""
    columns = [c for c in _columns(table, values) if c != "id"]
    if columns:
        assignments = ", ".join(f"{c} = ?" for c in columns)
        conn.execute(
            f"UPDATE {table} SET {assignments} WHERE id = ?",
            [*(_encode(table, c, values[c]) for c in columns), row_id],
        )
    row = select_by_id(conn, table, row_id)
    if row is None:
        raise EntityNotFoundError(f"No row with id={row_id!r} in {table}")
    return row
