"""Domain model dataclasses and enums for dictionary-plus."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class Familiarity(str, Enum):
    """Learning-progress rating a user attaches to a word."""

    NEW = "new"
    LEARNING = "learning"
    FAMILIAR = "familiar"
    MASTERED = "mastered"


# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class User:
    """An authenticated caller. The id is opaque to this library."""

    id: str


@dataclass(frozen=True, slots=True)
class DictionaryEntry:
    """A cached dictionary lookup result for a term in a language."""

    id: int
    term: str
    language: str
    lemma: str | None
    payload: Any
    part_of_speech: str | None
    fetched_at: datetime
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True, slots=True)
class EntryVariant:
    """An alternate surface form of an entry (plural, past tense, ...)."""

    id: int
    entry_id: int
    variant: str
    variant_type: str | None
    created_at: datetime


@dataclass(frozen=True, slots=True)
class UserWordNote:
    """A user's private annotation on an entry."""

    id: int
    entry_id: int
    user_id: str
    tags: str | None
    note: str | None
    example_sentence: str | None
    is_starred: bool
    familiarity: Familiarity
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True, slots=True)
class LookupRecord:
    """One row of a user's lookup history."""

    id: int
    user_id: str | None
    term: str
    language: str
    entry_id: int | None
    looked_at: datetime
    source: str | None
    context: str | None
