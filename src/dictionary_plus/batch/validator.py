"""
Validation for batch action requests.

Provides both schema validation (required fields, types) and
referential validation (entry IDs exist in the store).
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

from ..exceptions import EntityNotFoundError
from ..models import Familiarity
from .schema import (
    AUTH_OPERATIONS,
    ENTRY_OPERATIONS,
    FIELD_TYPES,
    OPTIONAL_FIELDS,
    REQUIRED_FIELDS,
    Action,
    ActionRequest,
    OperationType,
    RequestError,
    RequestWarning,
    ValidationResult,
)

if TYPE_CHECKING:
    from ..actions import DictionaryActions

logger = logging.getLogger(__name__)

# Fields that may be set to null to clear a stored value
NULLABLE_FIELDS = frozenset({
    "id", "lemma", "payload", "part_of_speech", "variant_type", "tags",
    "note", "example_sentence", "source", "context",
})

_ID_FIELDS = ("id", "entry_id", "entry_ref")


def validate_action_request(
    request: ActionRequest,
    actions: Optional[DictionaryActions] = None,
) -> ValidationResult:
    """Validate an action request.

    Args:
        request: The action request to validate
        actions: If given, verify referenced entry IDs exist in its store

    Returns:
        ValidationResult with errors and warnings
    """
    errors: List[RequestError] = []
    warnings: List[RequestWarning] = []
    seen_terms: Dict[Tuple[str, str], int] = {}

    for i, action in enumerate(request.actions):
        action_errors, action_warnings = _validate_action(
            action, i, request, actions, seen_terms,
        )
        errors.extend(action_errors)
        warnings.extend(action_warnings)

    return ValidationResult(
        is_valid=len(errors) == 0,
        errors=errors,
        warnings=warnings,
    )


def _validate_action(
    action: Action,
    index: int,
    request: ActionRequest,
    actions: Optional[DictionaryActions],
    seen_terms: Dict[Tuple[str, str], int],
) -> Tuple[List[RequestError], List[RequestWarning]]:
    """Validate a single action.

    Returns:
        Tuple of (errors, warnings)
    """
    errors: List[RequestError] = []
    warnings: List[RequestWarning] = []

    def error(field: str, message: str) -> None:
        errors.append(
            RequestError(
                index=index,
                operation=action.operation,
                field=field,
                message=message,
                line_number=action.line_number,
            )
        )

    valid_operations = {op.value for op in OperationType}
    op = action.operation
    if op not in valid_operations:
        error("operation", f"Unknown operation '{op}'. Valid: {', '.join(sorted(valid_operations))}")
        return errors, warnings

    # Required and known fields
    required = REQUIRED_FIELDS[op]
    allowed = set(required) | set(OPTIONAL_FIELDS[op])
    for field in required:
        if action.params.get(field) is None:
            error(field, f"Missing required field '{field}'")
    for field in sorted(set(action.params) - allowed):
        error(field, f"Unknown field '{field}' for {op}")

    # Field types
    for field, value in action.params.items():
        if field not in allowed:
            continue
        if value is None:
            if field not in NULLABLE_FIELDS and field not in required:
                error(field, f"Field '{field}' cannot be null")
            continue
        if field in _ID_FIELDS and isinstance(value, bool):
            error(field, f"Field '{field}' must be an integer")
            continue
        types = FIELD_TYPES.get(field)
        if types and not isinstance(value, types):
            names = " or ".join(t.__name__ for t in types)
            error(field, f"Field '{field}' must be {names}")
        elif field in ("term", "variant", "language") and value == "":
            error(field, f"Field '{field}' cannot be empty")

    familiarity = action.params.get("familiarity")
    if isinstance(familiarity, str) and familiarity not in {f.value for f in Familiarity}:
        allowed_values = ", ".join(f.value for f in Familiarity)
        error("familiarity", f"Invalid familiarity '{familiarity}'. Valid: {allowed_values}")

    if op in AUTH_OPERATIONS and not request.user:
        error("user", f"Operation '{op}' requires a signed-in user (set 'user')")

    # Operation-specific validation
    if op == OperationType.UPSERT_ENTRY.value:
        entry_id = action.params.get("id")
        term = action.params.get("term")
        if entry_id is None and term is None:
            error("term", "Missing required field 'term' (required when 'id' is absent)")
        if entry_id is None and isinstance(term, str):
            key = (term, action.params.get("language") or "en")
            if key in seen_terms:
                warnings.append(
                    RequestWarning(
                        index=index,
                        operation=op,
                        message=(
                            f"Entry '{key[0]}' ({key[1]}) is also created by "
                            f"action #{seen_terms[key] + 1}; both will be stored"
                        ),
                        line_number=action.line_number,
                    )
                )
            else:
                seen_terms[key] = index
        if actions is not None and isinstance(entry_id, int):
            errors.extend(_check_entry_exists(action, index, "id", entry_id, actions))

    else:
        errors.extend(_validate_entry_target(action, index, request, actions))

    return errors, warnings


def _validate_entry_target(
    action: Action,
    index: int,
    request: ActionRequest,
    actions: Optional[DictionaryActions],
) -> List[RequestError]:
    """Validate entry_id / entry_ref on actions that point at an entry."""
    errors: List[RequestError] = []
    entry_id = action.entry_id
    entry_ref = action.entry_ref
    required = action.operation in ENTRY_OPERATIONS

    if entry_id is not None and entry_ref is not None:
        errors.append(
            RequestError(
                index=index,
                operation=action.operation,
                field="entry_ref",
                message="Give either 'entry_id' or 'entry_ref', not both",
                line_number=action.line_number,
            )
        )
    elif required and entry_id is None and entry_ref is None:
        errors.append(
            RequestError(
                index=index,
                operation=action.operation,
                field="entry_id",
                message="Missing required field 'entry_id' (or 'entry_ref')",
                line_number=action.line_number,
            )
        )

    if isinstance(entry_ref, int) and not isinstance(entry_ref, bool):
        if not 1 <= entry_ref <= index:
            message = f"'entry_ref' must name an earlier action (1-{index})" if index else (
                "'entry_ref' must name an earlier action"
            )
            errors.append(
                RequestError(
                    index=index,
                    operation=action.operation,
                    field="entry_ref",
                    message=message,
                    line_number=action.line_number,
                )
            )
        elif request.actions[entry_ref - 1].operation != OperationType.UPSERT_ENTRY.value:
            errors.append(
                RequestError(
                    index=index,
                    operation=action.operation,
                    field="entry_ref",
                    message=f"Action #{entry_ref} is not an upsert_entry",
                    line_number=action.line_number,
                )
            )

    if actions is not None and isinstance(entry_id, int) and not isinstance(entry_id, bool):
        errors.extend(_check_entry_exists(action, index, "entry_id", entry_id, actions))

    return errors


def _check_entry_exists(
    action: Action,
    index: int,
    field: str,
    entry_id: int,
    actions: DictionaryActions,
) -> List[RequestError]:
    """Referential check against the store."""
    try:
        actions.get_entry(entry_id)
    except EntityNotFoundError as e:
        logger.debug("Reference check failed for action #%d: %s", index + 1, e)
        return [
            RequestError(
                index=index,
                operation=action.operation,
                field=field,
                message=f"Entry {entry_id} not found",
                line_number=action.line_number,
            )
        ]
    return []
