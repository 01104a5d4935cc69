"""Custom exception hierarchy for dictionary-plus."""


class DictionaryPlusError(Exception):
    """Base exception for all dictionary-plus errors."""

    code = "ERROR"


class UnauthorizedError(DictionaryPlusError):
    """No authenticated identity for an action that requires one."""

    code = "UNAUTHORIZED"


class EntityNotFoundError(DictionaryPlusError):
    """Referenced entity id does not resolve."""

    code = "NOT_FOUND"


class ValidationError(DictionaryPlusError):
    """Invalid input (empty term, bad familiarity, wrong type)."""

    code = "VALIDATION"


class DatabaseError(DictionaryPlusError):
    """Schema version mismatch, connection failure."""

    code = "DATABASE"
