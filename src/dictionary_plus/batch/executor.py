"""
Executor for batch action requests.

Applies actions to the store through DictionaryActions.
"""
from __future__ import annotations

import logging
import time
from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from ..exceptions import DictionaryPlusError
from ..models import User
from .schema import (
    Action,
    ActionRequest,
    ActionResult,
    BatchResult,
    OperationType,
)

if TYPE_CHECKING:
    from ..actions import DictionaryActions

logger = logging.getLogger(__name__)


def execute_action_request(
    request: ActionRequest,
    actions: DictionaryActions,
    dry_run: bool = False,
) -> BatchResult:
    """Execute a batch action request.

    Each action runs in its own transaction; a failed action is recorded
    and execution continues. Validate the request first.

    Args:
        request: The action request to execute
        actions: Store the actions are applied to
        dry_run: If True, only simulate execution without making changes

    Returns:
        BatchResult with details of each action
    """
    start_time = time.time()
    results: List[ActionResult] = []
    produced: Dict[int, int] = {}
    user = User(request.user) if request.user else None

    logger.info(
        "%s %d action(s)%s",
        "Simulating" if dry_run else "Applying",
        len(request.actions),
        f" for {request.name!r}" if request.name else "",
    )

    for i, action in enumerate(request.actions):
        if dry_run:
            result = ActionResult(
                index=i,
                operation=action.operation,
                success=True,
                message=f"Would execute {action.operation}",
            )
        else:
            result = _execute_action(action, i, actions, user, produced)
        if result.success and result.record_id is not None \
                and action.operation == OperationType.UPSERT_ENTRY.value:
            produced[i + 1] = result.record_id
        results.append(result)

    success_count = sum(1 for r in results if r.success)
    failure_count = sum(1 for r in results if not r.success)
    duration = time.time() - start_time
    logger.info("Finished: %d succeeded, %d failed", success_count, failure_count)

    return BatchResult(
        total_count=len(results),
        success_count=success_count,
        failure_count=failure_count,
        actions=results,
        duration_seconds=duration,
    )


def _execute_action(
    action: Action,
    index: int,
    actions: DictionaryActions,
    user: Optional[User],
    produced: Dict[int, int],
) -> ActionResult:
    """Execute a single action.

    Returns:
        ActionResult with success/failure status
    """
    op = action.operation
    params = dict(action.params)

    entry_ref = params.pop("entry_ref", None)
    if entry_ref is not None:
        if entry_ref not in produced:
            return ActionResult(
                index=index,
                operation=op,
                success=False,
                message=f"Action #{entry_ref} did not produce an entry",
                error_code="NOT_FOUND",
                error=f"Unresolved entry_ref {entry_ref}",
            )
        params["entry_id"] = produced[entry_ref]

    try:
        if op == OperationType.UPSERT_ENTRY.value:
            if isinstance(params.get("fetched_at"), date):
                params["fetched_at"] = _as_datetime(params["fetched_at"])
            entry = actions.upsert_entry(**params)
            verb = "Updated" if params.get("id") is not None else "Created"
            return _ok(index, op, f"{verb} entry {entry.id} ({entry.term})", entry.id)

        elif op == OperationType.ADD_VARIANT.value:
            variant = actions.add_variant(
                params.pop("entry_id"), params.pop("variant"), **params
            )
            return _ok(
                index, op,
                f"Added variant '{variant.variant}' to entry {variant.entry_id}",
                variant.id,
            )

        elif op == OperationType.SAVE_USER_NOTE.value:
            note = actions.save_user_note(user, params.pop("entry_id"), **params)
            return _ok(index, op, f"Saved note {note.id} on entry {note.entry_id}", note.id)

        elif op == OperationType.LOG_LOOKUP.value:
            record = actions.log_lookup(user, params.pop("term"), **params)
            return _ok(index, op, f"Logged lookup of '{record.term}'", record.id)

        else:
            return ActionResult(
                index=index,
                operation=op,
                success=False,
                message=f"Unknown operation: {op}",
                error=f"Unknown operation: {op}",
            )

    except DictionaryPlusError as e:
        logger.warning("Action #%d (%s) failed: %s", index + 1, op, e)
        return ActionResult(
            index=index,
            operation=op,
            success=False,
            message=f"Error: {e}",
            error_code=e.code,
            error=str(e),
        )
    except Exception as e:
        logger.exception("Error executing action #%d (%s)", index + 1, op)
        return ActionResult(
            index=index,
            operation=op,
            success=False,
            message=f"Error: {e}",
            error=str(e),
        )


def _ok(index: int, operation: str, message: str, record_id: int) -> ActionResult:
    return ActionResult(
        index=index,
        operation=operation,
        success=True,
        message=message,
        record_id=record_id,
    )


def _as_datetime(value: Any) -> datetime:
    # YAML reads bare dates as datetime.date
    if isinstance(value, datetime):
        return value
    return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
