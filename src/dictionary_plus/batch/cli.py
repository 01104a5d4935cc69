"""
Command-line interface for batch action requests.
"""
from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Optional

from ..actions import DictionaryActions
from ..db import DEFAULT_DB_PATH
from ..exceptions import DictionaryPlusError
from ..models import User
from .executor import execute_action_request
from .parser import ParseError, load_action_request
from .schema import ActionRequest, BatchResult, ValidationResult
from .validator import validate_action_request

DB_ENV_VAR = "DICTIONARY_PLUS_DB"


def main(argv: Optional[list] = None) -> int:
    """Main entry point for dictplus-batch CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    return args.func(args)


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="dictplus-batch",
        description="Batch action tool for dictionary-plus databases",
    )
    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s (dictionary-plus)",
    )
    parser.add_argument(
        "--db",
        type=Path,
        help=f"Database file (default: ${DB_ENV_VAR} or {DEFAULT_DB_PATH})",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Log each write",
    )

    subparsers = parser.add_subparsers(title="commands", dest="command")

    # validate command
    validate_parser = subparsers.add_parser(
        "validate",
        help="Validate an action request file",
    )
    validate_parser.add_argument(
        "file",
        type=Path,
        help="YAML file containing action request",
    )
    validate_parser.add_argument(
        "--no-check-refs",
        action="store_true",
        help="Skip referential validation (entry existence checks)",
    )
    validate_parser.set_defaults(func=cmd_validate)

    # apply command
    apply_parser = subparsers.add_parser(
        "apply",
        help="Apply actions from a request file",
    )
    apply_parser.add_argument(
        "file",
        type=Path,
        help="YAML file containing action request",
    )
    apply_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Simulate execution without making changes",
    )
    apply_parser.add_argument(
        "--yes", "-y",
        action="store_true",
        help="Skip confirmation prompt",
    )
    apply_parser.add_argument(
        "--user",
        type=str,
        help="Override user from file",
    )
    apply_parser.set_defaults(func=cmd_apply)

    # notes command
    notes_parser = subparsers.add_parser(
        "notes",
        help="List a user's word notes",
    )
    notes_parser.add_argument("--user", type=str, required=True, help="User ID")
    notes_parser.set_defaults(func=cmd_notes)

    # history command
    history_parser = subparsers.add_parser(
        "history",
        help="List a user's lookup history",
    )
    history_parser.add_argument("--user", type=str, required=True, help="User ID")
    history_parser.set_defaults(func=cmd_history)

    return parser


def resolve_db_path(args: argparse.Namespace) -> Path:
    """--db, else $DICTIONARY_PLUS_DB, else the default path."""
    if args.db is not None:
        return args.db
    env_path = os.environ.get(DB_ENV_VAR)
    if env_path:
        return Path(env_path)
    return DEFAULT_DB_PATH


def _load(path: Path) -> Optional[ActionRequest]:
    try:
        return load_action_request(path)
    except ParseError as e:
        print(f"\n  [PARSE ERROR] {e}")
        if e.line:
            print(f"               Line: {e.line}")
        return None
    except FileNotFoundError as e:
        print(f"\n  [ERROR] {e}")
        return None


def cmd_validate(args: argparse.Namespace) -> int:
    """Handle validate command."""
    print(f"\nValidating {args.file}...")

    request = _load(args.file)
    if request is None:
        return 1

    print(f"  Actions: {len(request.actions)}")
    if request.user:
        print(f"  User: {request.user}")
    if request.name:
        print(f"  Name: {request.name}")

    if args.no_check_refs:
        result = validate_action_request(request)
    else:
        with DictionaryActions(resolve_db_path(args)) as actions:
            result = validate_action_request(request, actions)

    print("\nValidation Results:")
    _print_validation_result(result)

    if result.is_valid:
        print("\nValidation passed!")
        return 0
    print(f"\nFound {result.error_count} error(s), {result.warning_count} warning(s)")
    return 1


def cmd_apply(args: argparse.Namespace) -> int:
    """Handle apply command."""
    print(f"\nLoading {args.file}...")

    request = _load(args.file)
    if request is None:
        return 1

    if args.user:
        request.user = args.user

    db_path = resolve_db_path(args)
    print(f"  Database: {db_path}")
    print(f"  Actions: {len(request.actions)}")
    if request.name:
        print(f"  Name: \"{request.name}\"")

    with DictionaryActions(db_path) as actions:
        print("\nValidating...")
        validation = validate_action_request(request, actions)

        if not validation.is_valid:
            print("\nValidation failed:")
            _print_validation_result(validation)
            print(f"\nFound {validation.error_count} error(s). Fix errors before applying.")
            return 1

        if validation.warning_count > 0:
            print("\nWarnings:")
            _print_validation_result(validation, warnings_only=True)

        if args.dry_run:
            print("\n[DRY RUN] Simulating execution...")
        elif not args.yes:
            response = input(f"\nApply {len(request.actions)} actions to {db_path}? [y/N] ")
            if response.lower() not in ("y", "yes"):
                print("Aborted.")
                return 1

        print(f"\n{'Simulating' if args.dry_run else 'Applying'} actions...")
        result = execute_action_request(request, actions, dry_run=args.dry_run)

    _print_batch_result(result)
    return 1 if result.failure_count > 0 else 0


def cmd_notes(args: argparse.Namespace) -> int:
    """Handle notes command."""
    with DictionaryActions(resolve_db_path(args)) as actions:
        try:
            notes = actions.list_user_notes(User(args.user))
        except DictionaryPlusError as e:
            print(f"[{e.code}] {e}")
            return 1
        entries = {n.entry_id: actions.get_entry(n.entry_id).term for n in notes}

    if not notes:
        print(f"No notes for user {args.user}.")
        return 0

    print(f"\nNotes for {args.user} ({len(notes)}):\n")
    print(f"{'Entry':<20} {'Familiarity':<12} {'Starred':<8} {'Note'}")
    print("-" * 80)
    for note in notes:
        star = "*" if note.is_starred else ""
        print(f"{entries[note.entry_id]:<20} {note.familiarity.value:<12} {star:<8} {note.note or ''}")
    return 0


def cmd_history(args: argparse.Namespace) -> int:
    """Handle history command."""
    with DictionaryActions(resolve_db_path(args)) as actions:
        try:
            history = actions.list_lookup_history(User(args.user))
        except DictionaryPlusError as e:
            print(f"[{e.code}] {e}")
            return 1

    if not history:
        print(f"No lookups for user {args.user}.")
        return 0

    print(f"\nLookups for {args.user} ({len(history)}):\n")
    print(f"{'Date':<12} {'Term':<24} {'Lang':<6} {'Source'}")
    print("-" * 60)
    for record in history:
        day = record.looked_at.date().isoformat()
        print(f"{day:<12} {record.term:<24} {record.language:<6} {record.source or ''}")
    return 0


def _print_validation_result(
    result: ValidationResult,
    errors_only: bool = False,
    warnings_only: bool = False,
) -> None:
    """Print validation errors and warnings."""
    if not warnings_only:
        for error in result.errors:
            line_info = f" (line {error.line_number})" if error.line_number else ""
            print(f"  [ERROR] Action #{error.index + 1} ({error.operation}): {error.message}{line_info}")
            if error.field:
                print(f"          Field: {error.field}")

    if not errors_only:
        for warning in result.warnings:
            line_info = f" (line {warning.line_number})" if warning.line_number else ""
            print(f"  [WARN]  Action #{warning.index + 1} ({warning.operation}): {warning.message}{line_info}")


def _print_batch_result(result: BatchResult) -> None:
    """Print batch execution result."""
    print()
    for action in result.actions:
        idx = action.index + 1
        status = "OK" if action.success else "FAILED"
        print(f"  [{idx}/{result.total_count}] {action.operation}: {status}")
        if action.message:
            print(f"         {action.message}")

    print("\nResults:")
    print(f"  Total:   {result.total_count}")
    print(f"  Success: {result.success_count}")
    print(f"  Failed:  {result.failure_count}")
    print(f"  Time:    {result.duration_seconds:.2f}s")


if __name__ == "__main__":
    sys.exit(main())
