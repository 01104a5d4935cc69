"""
Tests for batch action request functionality.
"""
from datetime import datetime, timezone

import pytest

from dictionary_plus import Familiarity
from dictionary_plus.batch import (
    REQUIRED_FIELDS,
    ActionRequest,
    Action,
    BatchResult,
    OperationType,
    ParseError,
    execute_action_request,
    load_action_request,
    validate_action_request,
)

SEED_YAML = """
user: alice
name: Seed verbs
actions:
  - operation: upsert_entry
    term: run
    part_of_speech: verb
    payload:
      definitions:
        - move fast on foot
  - operation: add_variant
    entry_ref: 1
    variant: ran
    variant_type: past
  - operation: save_user_note
    entry_ref: 1
    is_starred: true
    familiarity: learning
  - operation: log_lookup
    term: run
    entry_ref: 1
    source: batch
"""


def _request(*actions, user="alice"):
    return ActionRequest(
        actions=[Action(operation=op, params=params) for op, params in actions],
        user=user,
    )


class TestParser:
    """Tests for YAML parsing."""

    def test_load_from_file(self, tmp_path):
        """Test loading an action request from a file."""
        yaml_file = tmp_path / "seed.yaml"
        yaml_file.write_text(SEED_YAML)

        request = load_action_request(yaml_file)

        assert request.user == "alice"
        assert request.name == "Seed verbs"
        assert request.source_file == yaml_file
        assert len(request.actions) == 4
        assert request.actions[1].entry_ref == 1
        assert request.actions[0].params["payload"] == {
            "definitions": ["move fast on foot"]
        }

    def test_load_from_path_string(self, tmp_path):
        yaml_file = tmp_path / "seed.yaml"
        yaml_file.write_text(SEED_YAML)
        request = load_action_request(str(yaml_file))
        assert len(request.actions) == 4

    def test_load_from_string(self):
        """Test loading an action request from a YAML string."""
        request = load_action_request(SEED_YAML)
        assert request.user == "alice"
        assert request.actions[0].operation == "upsert_entry"
        assert request.source_file is None

    def test_load_from_dict(self):
        """Test loading an action request from a dictionary."""
        data = {
            "actions": [
                {"operation": "upsert_entry", "term": "run"},
            ],
        }
        request = load_action_request(data)
        assert request.user is None
        assert request.actions[0].params == {"term": "run"}

    def test_parse_error_missing_actions(self):
        with pytest.raises(ParseError, match="Missing required field: 'actions'"):
            load_action_request({"user": "alice"})

    def test_parse_error_actions_not_list(self):
        with pytest.raises(ParseError, match="must be a list"):
            load_action_request({"actions": "upsert_entry"})

    def test_parse_error_empty_actions(self):
        with pytest.raises(ParseError, match="cannot be empty"):
            load_action_request({"actions": []})

    def test_parse_error_missing_operation(self):
        with pytest.raises(ParseError, match="Action #2: Missing required field 'operation'"):
            load_action_request({"actions": [
                {"operation": "upsert_entry", "term": "run"},
                {"term": "walk"},
            ]})

    def test_parse_error_user_not_string(self):
        with pytest.raises(ParseError, match="'user' must be a string"):
            load_action_request({"user": 5, "actions": [{"operation": "log_lookup"}]})

    def test_parse_error_invalid_yaml(self, tmp_path):
        yaml_file = tmp_path / "bad.yaml"
        yaml_file.write_text("actions: [\n  - operation: upsert_entry\n")
        with pytest.raises(ParseError, match="Invalid YAML"):
            load_action_request(yaml_file)

    def test_parse_error_empty_file(self, tmp_path):
        yaml_file = tmp_path / "empty.yaml"
        yaml_file.write_text("")
        with pytest.raises(ParseError, match="Empty YAML file"):
            load_action_request(yaml_file)

    def test_parse_error_root_not_mapping(self):
        with pytest.raises(ParseError, match="root must be a mapping"):
            load_action_request("- one\n- two\n")

    def test_file_not_found(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_action_request(tmp_path / "missing.yaml")


class TestValidation:
    """Tests for request validation."""

    def test_validate_valid_request(self):
        result = validate_action_request(load_action_request(SEED_YAML))
        assert result.is_valid
        assert result.error_count == 0

    def test_validate_unknown_operation(self):
        result = validate_action_request(_request(("delete_entry", {"id": 1})))
        assert not result.is_valid
        assert result.errors[0].field == "operation"
        assert "Unknown operation" in result.errors[0].message

    def test_validate_missing_required_field(self):
        result = validate_action_request(
            _request(("add_variant", {"entry_id": 1}))
        )
        assert not result.is_valid
        assert any(e.field == "variant" for e in result.errors)

    def test_validate_unknown_field(self):
        result = validate_action_request(
            _request(("upsert_entry", {"term": "run", "colour": "red"}))
        )
        assert [e.field for e in result.errors] == ["colour"]

    def test_validate_field_types(self):
        result = validate_action_request(_request(
            ("upsert_entry", {"term": 5}),
            ("save_user_note", {"entry_id": True, "is_starred": "yes"}),
        ))
        fields = {(e.index, e.field) for e in result.errors}
        assert (0, "term") in fields
        assert (1, "entry_id") in fields
        assert (1, "is_starred") in fields

    def test_validate_empty_term(self):
        result = validate_action_request(_request(("upsert_entry", {"term": ""})))
        assert "cannot be empty" in result.errors[0].message

    def test_validate_upsert_needs_id_or_term(self):
        result = validate_action_request(_request(("upsert_entry", {"lemma": "run"})))
        assert not result.is_valid
        assert result.errors[0].field == "term"

    def test_validate_invalid_familiarity(self):
        result = validate_action_request(
            _request(("save_user_note", {"entry_id": 1, "familiarity": "expert"}))
        )
        assert [e.field for e in result.errors] == ["familiarity"]

    def test_validate_null_non_nullable(self):
        result = validate_action_request(
            _request(("save_user_note", {"entry_id": 1, "is_starred": None}))
        )
        assert "cannot be null" in result.errors[0].message

    def test_validate_null_clears(self):
        result = validate_action_request(
            _request(("save_user_note", {"entry_id": 1, "note": None}))
        )
        assert result.is_valid

    def test_validate_user_required(self):
        result = validate_action_request(_request(
            ("upsert_entry", {"term": "run"}),
            ("log_lookup", {"term": "run"}),
            user=None,
        ))
        assert [(e.index, e.field) for e in result.errors] == [(1, "user")]

    def test_validate_entry_target_required(self):
        result = validate_action_request(_request(("add_variant", {"variant": "ran"})))
        assert result.errors[0].field == "entry_id"

    def test_validate_entry_id_and_ref(self):
        result = validate_action_request(_request(
            ("upsert_entry", {"term": "run"}),
            ("add_variant", {"variant": "ran", "entry_id": 1, "entry_ref": 1}),
        ))
        assert "not both" in result.errors[0].message

    def test_validate_forward_ref(self):
        result = validate_action_request(_request(
            ("add_variant", {"variant": "ran", "entry_ref": 2}),
            ("upsert_entry", {"term": "run"}),
        ))
        assert result.errors[0].field == "entry_ref"
        assert "earlier action" in result.errors[0].message

    def test_validate_ref_to_non_entry(self):
        result = validate_action_request(_request(
            ("log_lookup", {"term": "run"}),
            ("add_variant", {"variant": "ran", "entry_ref": 1}),
        ))
        assert "is not an upsert_entry" in result.errors[0].message

    def test_duplicate_term_warns(self):
        result = validate_action_request(_request(
            ("upsert_entry", {"term": "run"}),
            ("upsert_entry", {"term": "run", "language": "en"}),
            ("upsert_entry", {"term": "run", "language": "fr"}),
        ))
        assert result.is_valid
        assert result.warning_count == 1
        assert result.warnings[0].index == 1

    def test_validate_references_against_store(self, actions_with_entry):
        actions, entry = actions_with_entry
        result = validate_action_request(_request(
            ("add_variant", {"variant": "ran", "entry_id": entry.id}),
            ("save_user_note", {"entry_id": 999}),
            ("upsert_entry", {"id": 998, "lemma": "x"}),
        ), actions)
        assert [(e.index, e.message) for e in result.errors] == [
            (1, "Entry 999 not found"),
            (2, "Entry 998 not found"),
        ]

    def test_all_operations_have_field_lists(self):
        for op in OperationType:
            assert op.value in REQUIRED_FIELDS


class TestExecutor:
    """Tests for applying requests to a store."""

    def test_execute_seed(self, actions, alice):
        request = load_action_request(SEED_YAML)
        result = execute_action_request(request, actions)

        assert result.success_count == 4
        assert result.failure_count == 0
        entry_id = result.actions[0].record_id

        entry = actions.get_entry(entry_id)
        assert entry.term == "run"
        assert entry.payload == {"definitions": ["move fast on foot"]}
        assert [v.variant for v in actions.list_variants(entry_id)] == ["ran"]
        notes = actions.list_user_notes(alice)
        assert len(notes) == 1
        assert notes[0].entry_id == entry_id
        assert notes[0].familiarity is Familiarity.LEARNING
        history = actions.list_lookup_history(alice)
        assert history[0].entry_id == entry_id
        assert history[0].source == "batch"

    def test_dry_run(self, actions, row_count):
        result = execute_action_request(
            load_action_request(SEED_YAML), actions, dry_run=True,
        )
        assert result.success_count == 4
        assert result.actions[0].message == "Would execute upsert_entry"
        assert row_count(actions, "dictionary_entries") == 0
        assert row_count(actions, "user_word_notes") == 0

    def test_execute_continues_on_error(self, actions_with_entry, alice):
        actions, entry = actions_with_entry
        request = _request(
            ("add_variant", {"entry_id": 999, "variant": "x"}),
            ("save_user_note", {"entry_id": entry.id, "note": "kept"}),
        )
        result = execute_action_request(request, actions)

        assert result.failure_count == 1
        assert result.success_count == 1
        failed = result.actions[0]
        assert not failed.success
        assert failed.error_code == "NOT_FOUND"
        assert actions.list_user_notes(alice)[0].note == "kept"

    def test_unresolved_ref_fails(self, actions):
        request = _request(
            ("upsert_entry", {"term": ""}),
            ("add_variant", {"entry_ref": 1, "variant": "ran"}),
        )
        result = execute_action_request(request, actions)
        assert result.actions[0].error_code == "VALIDATION"
        assert result.actions[1].error_code == "NOT_FOUND"
        assert "did not produce an entry" in result.actions[1].message

    def test_unauthorized_without_user(self, actions_with_entry):
        actions, entry = actions_with_entry
        request = _request(("save_user_note", {"entry_id": entry.id}), user=None)
        result = execute_action_request(request, actions)
        assert result.actions[0].error_code == "UNAUTHORIZED"

    def test_update_by_id_with_date(self, actions_with_entry):
        actions, entry = actions_with_entry
        request = load_action_request(
            f"actions:\n"
            f"  - operation: upsert_entry\n"
            f"    id: {entry.id}\n"
            f"    lemma: run\n"
            f"    fetched_at: 2023-06-01\n"
        )
        assert validate_action_request(request, actions).is_valid
        result = execute_action_request(request, actions)

        assert result.actions[0].message.startswith("Updated entry")
        updated = actions.get_entry(entry.id)
        assert updated.lemma == "run"
        assert updated.fetched_at == datetime(2023, 6, 1, tzinfo=timezone.utc)


class TestBatchResult:

    def test_skipped_count(self):
        result = BatchResult(
            total_count=5,
            success_count=2,
            failure_count=1,
            actions=[],
            duration_seconds=0.1,
        )
        assert result.skipped_count == 2
