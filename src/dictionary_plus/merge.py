"""Field-level merge of partial input against a prior record.

Every entity kind is written through :func:`merge`. For each field the
explicitly provided value wins, else the prior record's value, else the
default from the kind's :class:`MergeRules`. Timestamps follow the rules'
``created_field`` / ``updated_field`` / ``stamp_fields``.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from dictionary_plus.exceptions import ValidationError
from dictionary_plus.models import Familiarity

# Sentinel for "not provided by the caller"
UNSET: Any = type("_UNSET", (), {"__repr__": lambda self: "UNSET"})()

_TICK = timedelta(microseconds=1)


@dataclass(frozen=True)
class MergeRules:
    """How one entity kind resolves its fields."""

    defaults: Mapping[str, Any]
    created_field: str | None = "created_at"
    updated_field: str | None = None
    stamp_fields: tuple[str, ...] = ()

    @property
    def fields(self) -> frozenset[str]:
        """Fields a caller may provide. Write-tracking stamps are not among them."""
        return frozenset(self.defaults) | frozenset(self.stamp_fields)


ENTRY_RULES = MergeRules(
    defaults={
        "term": None,
        "language": "en",
        "lemma": None,
        "payload": None,
        "part_of_speech": None,
    },
    updated_field="updated_at",
    stamp_fields=("fetched_at",),
)

VARIANT_RULES = MergeRules(
    defaults={"entry_id": None, "variant": None, "variant_type": None},
)

NOTE_RULES = MergeRules(
    defaults={
        "entry_id": None,
        "user_id": None,
        "tags": None,
        "note": None,
        "example_sentence": None,
        "is_starred": False,
        "familiarity": Familiarity.NEW.value,
    },
    updated_field="updated_at",
)

LOOKUP_RULES = MergeRules(
    defaults={
        "user_id": None,
        "term": None,
        "language": "en",
        "entry_id": None,
        "source": None,
        "context": None,
    },
    created_field=None,
    stamp_fields=("looked_at",),
)


def merge(
    existing: Mapping[str, Any] | None,
    values: Mapping[str, Any],
    rules: MergeRules,
    *,
    now: datetime,
) -> dict[str, Any]:
    """Return the full record to persist for ``values`` applied to ``existing``.

    ``values`` holds only what the caller provided; an entry set to
    :data:`UNSET` counts as not provided. ``None`` is a provided value.
    The result never contains ``id``.
    """
    provided = {k: v for k, v in values.items() if v is not UNSET}
    unknown = sorted(set(provided) - rules.fields)
    if unknown:
        raise ValidationError(f"Unknown field(s): {', '.join(unknown)}")

    record: dict[str, Any] = {}
    for field, default in rules.defaults.items():
        if field in provided:
            record[field] = provided[field]
        elif existing is not None:
            record[field] = existing[field]
        else:
            record[field] = default

    for field in rules.stamp_fields:
        record[field] = provided.get(field, now)

    if rules.created_field:
        if existing is not None and existing[rules.created_field] is not None:
            record[rules.created_field] = existing[rules.created_field]
        else:
            record[rules.created_field] = now

    if rules.updated_field:
        previous = existing[rules.updated_field] if existing is not None else None
        record[rules.updated_field] = _advance(now, previous)
        if existing is None and rules.created_field:
            record[rules.created_field] = record[rules.updated_field]

    return record


def _advance(now: datetime, previous: datetime | None) -> datetime:
    # updated timestamps strictly increase even when the clock has not moved
    if previous is not None and now <= previous:
        return previous + _TICK
    return now
