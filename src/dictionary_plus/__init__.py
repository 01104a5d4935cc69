"""dictionary-plus: personal-dictionary record store."""

__version__ = "0.1.0"

from dictionary_plus.actions import DictionaryActions as DictionaryActions
from dictionary_plus.auth import require_user as require_user
from dictionary_plus.exceptions import (
    DatabaseError as DatabaseError,
    DictionaryPlusError as DictionaryPlusError,
    EntityNotFoundError as EntityNotFoundError,
    UnauthorizedError as UnauthorizedError,
    ValidationError as ValidationError,
)
from dictionary_plus.merge import UNSET as UNSET
from dictionary_plus.models import (
    DictionaryEntry as DictionaryEntry,
    EntryVariant as EntryVariant,
    Familiarity as Familiarity,
    LookupRecord as LookupRecord,
    User as User,
    UserWordNote as UserWordNote,
)

__all__ = [
    "DictionaryActions",
    "require_user",
    # Exceptions
    "DictionaryPlusError",
    "UnauthorizedError",
    "EntityNotFoundError",
    "ValidationError",
    "DatabaseError",
    # Models
    "DictionaryEntry",
    "EntryVariant",
    "UserWordNote",
    "LookupRecord",
    "User",
    "Familiarity",
    "UNSET",
]
