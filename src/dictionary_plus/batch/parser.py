"""
YAML parser for batch action requests.
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from .schema import Action, ActionRequest


class ParseError(Exception):
    """Error parsing an action request file."""

    def __init__(self, message: str, line: Optional[int] = None):
        self.line = line
        super().__init__(message)


def load_action_request(
    source: Union[str, Path, Dict[str, Any]],
) -> ActionRequest:
    """Load an action request from a YAML file or dictionary.

    Args:
        source: Path to YAML file, YAML string, or parsed dictionary

    Returns:
        ActionRequest object

    Raises:
        ParseError: If the file cannot be parsed or is invalid
        FileNotFoundError: If the file does not exist
    """
    source_path: Optional[Path] = None

    if isinstance(source, dict):
        data = source
    elif isinstance(source, Path) or (isinstance(source, str) and _is_file_path(source)):
        source_path = Path(source)
        if not source_path.exists():
            raise FileNotFoundError(f"File not found: {source_path}")
        data = _load_yaml_file(source_path)
    else:
        # Assume it's a YAML string
        data = _load_yaml_string(source)

    return _parse_action_request(data, source_path)


def _is_file_path(s: str) -> bool:
    """Check if a string looks like a file path."""
    if "\n" in s:
        return False
    if "/" in s or "\\" in s:
        return True
    return s.endswith((".yaml", ".yml"))


def _load_yaml_file(path: Path) -> Dict[str, Any]:
    """Load YAML from a file."""
    with open(path, "r", encoding="utf-8") as f:
        return _load_yaml_string(f.read(), empty_message="Empty YAML file")


def _load_yaml_string(s: str, empty_message: str = "Empty YAML content") -> Dict[str, Any]:
    """Load YAML from a string."""
    try:
        data = yaml.safe_load(s)
    except yaml.YAMLError as e:
        mark = getattr(e, "problem_mark", None)
        line_num = mark.line + 1 if mark else None
        raise ParseError(f"Invalid YAML: {e}", line=line_num) from e

    if data is None:
        raise ParseError(empty_message)
    if not isinstance(data, dict):
        raise ParseError("YAML root must be a mapping (dictionary)")

    return data


def _parse_action_request(
    data: Dict[str, Any],
    source_path: Optional[Path] = None,
) -> ActionRequest:
    """Parse a dictionary into an ActionRequest object."""
    user = data.get("user")
    if user is not None and not isinstance(user, str):
        raise ParseError("Field 'user' must be a string")

    name = data.get("name")
    if name is not None and not isinstance(name, str):
        raise ParseError("Field 'name' must be a string")

    actions_data = data.get("actions")
    if actions_data is None:
        raise ParseError("Missing required field: 'actions'")
    if not isinstance(actions_data, list):
        raise ParseError("Field 'actions' must be a list")
    if len(actions_data) == 0:
        raise ParseError("Field 'actions' cannot be empty")

    return ActionRequest(
        actions=_parse_actions(actions_data),
        user=user,
        name=name,
        source_file=source_path,
    )


def _parse_actions(actions_data: List[Any]) -> List[Action]:
    """Parse a list of action dictionaries into Action objects."""
    actions = []

    for i, action_data in enumerate(actions_data):
        if not isinstance(action_data, dict):
            raise ParseError(f"Action #{i + 1} must be a mapping (dictionary)")

        operation = action_data.get("operation")
        if not operation:
            raise ParseError(f"Action #{i + 1}: Missing required field 'operation'")
        if not isinstance(operation, str):
            raise ParseError(f"Action #{i + 1}: Field 'operation' must be a string")

        params = {k: v for k, v in action_data.items() if k != "operation"}
        actions.append(Action(operation=operation, params=params))

    return actions
