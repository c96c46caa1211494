"""Domain errors surfaced to the user interface.

Every one of these returns control to the same form or step; none is
fatal. Transport failures live with the SMS port (TransportError) and
corrupt storage with the storage layer (StorageCorruptError).
"""

from __future__ import annotations


class TaskFlowError(Exception):
    """Base class for recoverable domain errors."""


class ValidationError(TaskFlowError):
    """A required form field is missing or a value is out of range."""


class AuthError(TaskFlowError):
    """Unknown phone number, or a verification code that is wrong or expired."""


class TransitionError(TaskFlowError):
    """A quick status action is not offered for the event's current status."""


class UnsupportedViewError(TaskFlowError):
    """A calendar view mode without a rendering was requested."""
