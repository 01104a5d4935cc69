"""DictionaryActions: main entry point for the dictionary-plus library."""

from __future__ import annotations

import functools
import json
import logging
import sqlite3
from collections.abc import Callable, Generator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, TypeVar

from dictionary_plus import db as _db
from dictionary_plus import resolver as _resolver
from dictionary_plus.auth import require_user
from dictionary_plus.exceptions import ValidationError
from dictionary_plus.merge import (
    ENTRY_RULES,
    LOOKUP_RULES,
    NOTE_RULES,
    UNSET,
    VARIANT_RULES,
    merge,
)
from dictionary_plus.models import (
    DictionaryEntry,
    EntryVariant,
    Familiarity,
    LookupRecord,
    User,
    UserWordNote,
)

logger = logging.getLogger(__name__)

_F = TypeVar("_F", bound=Callable[..., Any])


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _modifies_db(method: _F) -> _F:
    """Decorator: run a mutation in its own write transaction (unless in batch).

    ``BEGIN IMMEDIATE`` takes the write lock before the identity lookup, so
    resolve-then-write can't interleave with another connection.
    """

    @functools.wraps(method)
    def wrapper(self: DictionaryActions, *args: Any, **kwargs: Any) -> Any:
        if self._in_batch:
            return method(self, *args, **kwargs)
        with self._conn:
            self._conn.execute("BEGIN IMMEDIATE")
            return method(self, *args, **kwargs)

    return wrapper  # type: ignore[return-value]


# ---------------------------------------------------------------------------
# Input shape checks
# ---------------------------------------------------------------------------

def _check_id(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{name} must be an integer, got {value!r}")
    return value


def _check_required_text(value: Any, message: str) -> str:
    if not isinstance(value, str) or not value:
        raise ValidationError(message)
    return value


def _check_optional_text(name: str, value: Any) -> Any:
    if value is UNSET or value is None or isinstance(value, str):
        return value
    raise ValidationError(f"{name} must be a string, got {value!r}")


def _check_language(value: Any) -> Any:
    if value is UNSET:
        return value
    if not isinstance(value, str) or not value:
        raise ValidationError(f"language must be a non-empty string, got {value!r}")
    return value


def _check_payload(value: Any) -> Any:
    if value is UNSET or value is None:
        return value
    try:
        json.dumps(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"payload is not JSON-serializable: {e}") from e
    return value


def _coerce_datetime(name: str, value: Any) -> Any:
    if value is UNSET:
        return value
    if isinstance(value, str):
        text = value[:-1] + "+00:00" if value.endswith("Z") else value
        try:
            value = datetime.fromisoformat(text)
        except ValueError as e:
            raise ValidationError(f"{name} is not an ISO-8601 date: {e}") from e
    if not isinstance(value, datetime):
        raise ValidationError(f"{name} must be a datetime, got {value!r}")
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def _coerce_familiarity(value: Any) -> Any:
    if value is UNSET:
        return value
    try:
        return Familiarity(value).value
    except ValueError:
        allowed = ", ".join(f.value for f in Familiarity)
        raise ValidationError(
            f"Invalid familiarity: {value!r} (expected one of {allowed})"
        ) from None


def _check_flag(name: str, value: Any) -> Any:
    if value is UNSET or isinstance(value, bool):
        return value
    raise ValidationError(f"{name} must be a boolean, got {value!r}")


class DictionaryActions:
    """Record store for cached lookups, variants, user notes and lookup history."""

    def __init__(
        self,
        db_path: str | Path = ":memory:",
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._db_path = str(db_path)
        self._conn = _db.connect(db_path)
        _db.check_schema_version(self._conn)
        _db.init_db(self._conn)
        self._clock = clock or _utcnow
        self._in_batch = False
        self._batch_depth = 0

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    def __enter__(self) -> DictionaryActions:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def _now(self) -> datetime:
        now = self._clock()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return now

    @property
    def connection(self) -> sqlite3.Connection:
        return self._conn

    # ------------------------------------------------------------------
    # Batch context manager
    # ------------------------------------------------------------------

    @contextmanager
    def batch(self) -> Generator[None, None, None]:
        """Group multiple actions into a single transaction."""
        self._batch_depth += 1
        if self._batch_depth == 1:
            self._in_batch = True
            self._conn.execute("BEGIN IMMEDIATE")
        try:
            yield
        except BaseException:
            if self._batch_depth == 1:
                self._conn.rollback()
                self._in_batch = False
            self._batch_depth -= 1
            raise
        else:
            self._batch_depth -= 1
            if self._batch_depth == 0:
                self._conn.commit()
                self._in_batch = False

    # ------------------------------------------------------------------
    # Dictionary entries
    # ------------------------------------------------------------------

    @_modifies_db
    def upsert_entry(
        self,
        term: Any = UNSET,
        *,
        id: int | None = None,
        language: Any = UNSET,
        lemma: Any = UNSET,
        payload: Any = UNSET,
        part_of_speech: Any = UNSET,
        fetched_at: Any = UNSET,
    ) -> DictionaryEntry:
        """Insert an entry, or merge into entry ``id`` when given.

        On update, fields left out keep their stored values; ``fetched_at``
        is restamped unless provided.
        """
        if id is not None:
            _check_id("id", id)
        if term is not UNSET or id is None:
            _check_required_text(term, "Term is required")
        values = {
            "term": term,
            "language": _check_language(language),
            "lemma": _check_optional_text("lemma", lemma),
            "payload": _check_payload(payload),
            "part_of_speech": _check_optional_text("part_of_speech", part_of_speech),
            "fetched_at": _coerce_datetime("fetched_at", fetched_at),
        }

        existing = _resolver.resolve_entry(self._conn, id)
        record = merge(existing, values, ENTRY_RULES, now=self._now())
        if existing is None:
            row = _db.insert_row(self._conn, "dictionary_entries", record)
            logger.debug("Inserted entry %s (%r)", row["id"], row["term"])
        else:
            row = _db.update_row(self._conn, "dictionary_entries", existing["id"], record)
            logger.debug("Updated entry %s", row["id"])
        return self._row_to_entry(row)

    def get_entry(self, entry_id: int) -> DictionaryEntry:
        return self._row_to_entry(_resolver.require_entry(self._conn, entry_id))

    def find_entries(
        self,
        *,
        term: str | None = None,
        language: str | None = None,
    ) -> list[DictionaryEntry]:
        criteria = {}
        if term is not None:
            criteria["term"] = term
        if language is not None:
            criteria["language"] = language
        rows = _db.select_by_filter(self._conn, "dictionary_entries", **criteria)
        return [self._row_to_entry(r) for r in rows]

    def _row_to_entry(self, row: dict[str, Any]) -> DictionaryEntry:
        return DictionaryEntry(
            id=row["id"],
            term=row["term"],
            language=row["language"],
            lemma=row["lemma"],
            payload=row["payload"],
            part_of_speech=row["part_of_speech"],
            fetched_at=row["fetched_at"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    # ------------------------------------------------------------------
    # Variants
    # ------------------------------------------------------------------

    @_modifies_db
    def add_variant(
        self,
        entry_id: int,
        variant: str,
        *,
        variant_type: str | None = None,
    ) -> EntryVariant:
        _check_id("entry_id", entry_id)
        _check_required_text(variant, "Variant is required")
        _check_optional_text("variant_type", variant_type)

        _resolver.require_entry(self._conn, entry_id)
        record = merge(
            None,
            {"entry_id": entry_id, "variant": variant, "variant_type": variant_type},
            VARIANT_RULES,
            now=self._now(),
        )
        row = _db.insert_row(self._conn, "entry_variants", record)
        logger.debug("Added variant %r to entry %s", variant, entry_id)
        return self._row_to_variant(row)

    def list_variants(self, entry_id: int) -> list[EntryVariant]:
        _resolver.require_entry(self._conn, entry_id)
        rows = _db.select_by_filter(self._conn, "entry_variants", entry_id=entry_id)
        return [self._row_to_variant(r) for r in rows]

    def _row_to_variant(self, row: dict[str, Any]) -> EntryVariant:
        return EntryVariant(
            id=row["id"],
            entry_id=row["entry_id"],
            variant=row["variant"],
            variant_type=row["variant_type"],
            created_at=row["created_at"],
        )

    # ------------------------------------------------------------------
    # User notes
    # ------------------------------------------------------------------

    @_modifies_db
    def save_user_note(
        self,
        user: User | None,
        entry_id: int,
        *,
        tags: Any = UNSET,
        note: Any = UNSET,
        example_sentence: Any = UNSET,
        is_starred: Any = UNSET,
        familiarity: Any = UNSET,
    ) -> UserWordNote:
        """Create the caller's note on an entry, or merge into the existing one."""
        _check_id("entry_id", entry_id)
        values = {
            "entry_id": entry_id,
            "tags": _check_optional_text("tags", tags),
            "note": _check_optional_text("note", note),
            "example_sentence": _check_optional_text("example_sentence", example_sentence),
            "is_starred": _check_flag("is_starred", is_starred),
            "familiarity": _coerce_familiarity(familiarity),
        }
        user = require_user(user)
        values["user_id"] = user.id

        _resolver.require_entry(self._conn, entry_id)
        existing = _resolver.resolve_user_note(self._conn, entry_id, user.id)
        record = merge(existing, values, NOTE_RULES, now=self._now())
        if existing is None:
            row = _db.insert_row(self._conn, "user_word_notes", record)
            logger.debug("Inserted note %s for user %s", row["id"], user.id)
        else:
            row = _db.update_row(self._conn, "user_word_notes", existing["id"], record)
            logger.debug("Updated note %s for user %s", row["id"], user.id)
        return self._row_to_note(row)

    def list_user_notes(self, user: User | None) -> list[UserWordNote]:
        user = require_user(user)
        rows = _db.select_by_filter(self._conn, "user_word_notes", user_id=user.id)
        return [self._row_to_note(r) for r in rows]

    def _row_to_note(self, row: dict[str, Any]) -> UserWordNote:
        return UserWordNote(
            id=row["id"],
            entry_id=row["entry_id"],
            user_id=row["user_id"],
            tags=row["tags"],
            note=row["note"],
            example_sentence=row["example_sentence"],
            is_starred=bool(row["is_starred"]),
            familiarity=Familiarity(row["familiarity"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    # ------------------------------------------------------------------
    # Lookup history
    # ------------------------------------------------------------------

    @_modifies_db
    def log_lookup(
        self,
        user: User | None,
        term: str,
        *,
        language: Any = UNSET,
        entry_id: int | None = None,
        source: str | None = None,
        context: str | None = None,
    ) -> LookupRecord:
        _check_required_text(term, "Term is required")
        _check_language(language)
        if entry_id is not None:
            _check_id("entry_id", entry_id)
        _check_optional_text("source", source)
        _check_optional_text("context", context)
        user = require_user(user)

        if entry_id is not None:
            _resolver.require_entry(self._conn, entry_id)
        record = merge(
            None,
            {
                "user_id": user.id,
                "term": term,
                "language": language,
                "entry_id": entry_id,
                "source": source,
                "context": context,
            },
            LOOKUP_RULES,
            now=self._now(),
        )
        row = _db.insert_row(self._conn, "lookup_history", record)
        logger.debug("Logged lookup %r for user %s", term, user.id)
        return self._row_to_lookup(row)

    def list_lookup_history(self, user: User | None) -> list[LookupRecord]:
        user = require_user(user)
        rows = _db.select_by_filter(self._conn, "lookup_history", user_id=user.id)
        return [self._row_to_lookup(r) for r in rows]

    def _row_to_lookup(self, row: dict[str, Any]) -> LookupRecord:
        return LookupRecord(
            id=row["id"],
            user_id=row["user_id"],
            term=row["term"],
            language=row["language"],
            entry_id=row["entry_id"],
            looked_at=row["looked_at"],
            source=row["source"],
            context=row["context"],
        )
