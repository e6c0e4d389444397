"""Exception types raised by the reminder core.

Missing records are never an error: toggle, remove and expiry on an id
that is gone are silent no-ops.
"""

from typing import Iterable, List, Optional


class ReminderError(Exception):
    """Base class for every reminder core error."""


class DraftValidationError(ReminderError):
    """A draft is missing required fields or holds invalid values.

    The draft that raised it is left untouched so the user can correct it.
    """

    def __init__(self, missing_fields: Iterable[str], message: Optional[str] = None):
        self.missing_fields: List[str] = list(missing_fields)
        if message is None:
            message = "Missing or invalid field(s): " + ", ".join(self.missing_fields)
        super().__init__(message)


class PersistenceError(ReminderError):
    """The durable key-value layer failed to read or write."""


class PermissionDeniedError(ReminderError):
    """Location access was refused by the user."""
