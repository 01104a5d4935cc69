"""
Batch action request module for dictionary-plus.

This module applies a list of dictionary actions described in YAML,
for seeding a store or replaying a user's saved words.

Example usage:
    from dictionary_plus import DictionaryActions
    from dictionary_plus.batch import (
        load_action_request,
        validate_action_request,
        execute_action_request,
    )

    request = load_action_request("seed.yaml")

    with DictionaryActions("words.db") as actions:
        validation = validate_action_request(request, actions)
        if not validation.is_valid:
            for error in validation.errors:
                print(f"[{error.index}] {error.operation}: {error.message}")
        else:
            result = execute_action_request(request, actions)
            print(f"Applied {result.success_count}/{result.total_count} actions")
"""

from .schema import (
    # Enums and constants
    OperationType as OperationType,
    AUTH_OPERATIONS as AUTH_OPERATIONS,
    REQUIRED_FIELDS as REQUIRED_FIELDS,
    OPTIONAL_FIELDS as OPTIONAL_FIELDS,
    # Data classes
    Action as Action,
    ActionRequest as ActionRequest,
    RequestError as RequestError,
    RequestWarning as RequestWarning,
    ValidationResult as ValidationResult,
    ActionResult as ActionResult,
    BatchResult as BatchResult,
)

from .parser import (
    load_action_request as load_action_request,
    ParseError as ParseError,
)

from .validator import (
    validate_action_request as validate_action_request,
)

from .executor import (
    execute_action_request as execute_action_request,
)

__all__ = [
    # Enums and constants
    "OperationType",
    "AUTH_OPERATIONS",
    "REQUIRED_FIELDS",
    "OPTIONAL_FIELDS",
    # Data classes
    "Action",
    "ActionRequest",
    "RequestError",
    "RequestWarning",
    "ValidationResult",
    "ActionResult",
    "BatchResult",
    # Functions
    "load_action_request",
    "validate_action_request",
    "execute_action_request",
    # Exceptions
    "ParseError",
]
