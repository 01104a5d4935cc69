"""Identity resolution: does a record for this key already exist?"""

from __future__ import annotations

import sqlite3
from typing import Any

from dictionary_plus import db as _db
from dictionary_plus.exceptions import EntityNotFoundError


def require_entry(conn: sqlite3.Connection, entry_id: int) -> dict[str, Any]:
    """Get an entry row by id, raising if it doesn't exist."""
    row = _db.select_by_id(conn, "dictionary_entries", entry_id)
    if row is None:
        raise EntityNotFoundError(f"Entry not found: {entry_id!r}")
    return row


def resolve_entry(
    conn: sqlite3.Connection, entry_id: int | None
) -> dict[str, Any] | None:
    """Resolve the entry an upsert targets.

    No id means a fresh insert. An id that doesn't resolve is an error,
    never an implicit insert.
    """
    if entry_id is None:
        return None
    return require_entry(conn, entry_id)


def resolve_user_note(
    conn: sqlite3.Connection, entry_id: int, user_id: str
) -> dict[str, Any] | None:
    """Get the user's note for an entry, or None.

    Pairs are unique; should the store hold duplicates the first match wins.
    """
    rows = _db.select_by_filter(
        conn, "user_word_notes", limit=1, entry_id=entry_id, user_id=user_id,
    )
    return rows[0] if rows else None
