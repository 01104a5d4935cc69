"""
Data classes and constants for the batch action request system.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple


# =============================================================================
# Operation Types
# =============================================================================

class OperationType(str, Enum):
    """Actions a batch request may contain."""
    UPSERT_ENTRY = "upsert_entry"
    ADD_VARIANT = "add_variant"
    SAVE_USER_NOTE = "save_user_note"
    LOG_LOOKUP = "log_lookup"


# Operations that act on the requesting user's data
AUTH_OPERATIONS = frozenset({
    OperationType.SAVE_USER_NOTE.value,
    OperationType.LOG_LOOKUP.value,
})

# Operations whose target entry is given by entry_id or entry_ref
ENTRY_OPERATIONS = frozenset({
    OperationType.ADD_VARIANT.value,
    OperationType.SAVE_USER_NOTE.value,
})


# =============================================================================
# Field Requirements
# =============================================================================

# Required fields for each operation
REQUIRED_FIELDS: Dict[str, List[str]] = {
    OperationType.UPSERT_ENTRY.value: [],
    OperationType.ADD_VARIANT.value: ["variant"],
    OperationType.SAVE_USER_NOTE.value: [],
    OperationType.LOG_LOOKUP.value: ["term"],
}

# Optional fields for each operation
OPTIONAL_FIELDS: Dict[str, List[str]] = {
    OperationType.UPSERT_ENTRY.value: [
        "id", "term", "language", "lemma", "payload", "part_of_speech",
        "fetched_at",
    ],
    OperationType.ADD_VARIANT.value: ["entry_id", "entry_ref", "variant_type"],
    OperationType.SAVE_USER_NOTE.value: [
        "entry_id", "entry_ref", "tags", "note", "example_sentence",
        "is_starred", "familiarity",
    ],
    OperationType.LOG_LOOKUP.value: [
        "language", "entry_id", "entry_ref", "source", "context",
    ],
}

# Accepted YAML types per field; payload takes any value
FIELD_TYPES: Dict[str, Tuple[type, ...]] = {
    "id": (int,),
    "entry_id": (int,),
    "entry_ref": (int,),
    "term": (str,),
    "language": (str,),
    "lemma": (str,),
    "part_of_speech": (str,),
    "fetched_at": (str, date),
    "variant": (str,),
    "variant_type": (str,),
    "tags": (str,),
    "note": (str,),
    "example_sentence": (str,),
    "is_starred": (bool,),
    "familiarity": (str,),
    "source": (str,),
    "context": (str,),
}


# =============================================================================
# Data Classes
# =============================================================================

@dataclass
class Action:
    """Single action in a request."""
    operation: str
    params: Dict[str, Any]
    line_number: Optional[int] = None

    @property
    def entry_id(self) -> Optional[int]:
        """Get the target entry ID if present in params."""
        return self.params.get("entry_id")

    @property
    def entry_ref(self) -> Optional[int]:
        """Get the 1-based number of the earlier action that produced the entry."""
        return self.params.get("entry_ref")


@dataclass
class ActionRequest:
    """Parsed action request from YAML."""
    actions: List[Action]
    user: Optional[str] = None
    name: Optional[str] = None
    source_file: Optional[Path] = None


@dataclass
class RequestError:
    """Validation error for a specific action."""
    index: int
    operation: str
    field: str
    message: str
    line_number: Optional[int] = None


@dataclass
class RequestWarning:
    """Validation warning for a specific action."""
    index: int
    operation: str
    message: str
    line_number: Optional[int] = None


@dataclass
class ValidationResult:
    """Result of validating an action request."""
    is_valid: bool
    errors: List[RequestError] = field(default_factory=list)
    warnings: List[RequestWarning] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def warning_count(self) -> int:
        return len(self.warnings)


@dataclass
class ActionResult:
    """Result of executing a single action."""
    index: int
    operation: str
    success: bool
    message: str
    record_id: Optional[int] = None
    error_code: Optional[str] = None
    error: Optional[str] = None


@dataclass
class BatchResult:
    """Result of executing an action request."""
    total_count: int
    success_count: int
    failure_count: int
    actions: List[ActionResult]
    duration_seconds: float

    @property
    def skipped_count(self) -> int:
        return self.total_count - self.success_count - self.failure_count
