"""
Service Errors

Exceptions raised by the business logic. Each carries the HTTP status the
JSON layer answers with.
"""


class KitchenLedgerError(Exception):
    """Base class for errors surfaced to the caller."""
    status_code = 400

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(KitchenLedgerError):
    """Raised when required fields are missing or invalid."""
    status_code = 400


class NotFoundError(KitchenLedgerError):
    """Raised when a referenced record does not exist."""
    status_code = 404


class InvalidTransitionError(KitchenLedgerError):
    """Raised when a requisition cannot move to the requested status."""
    status_code = 409


class RecipeLockedError(KitchenLedgerError):
    """Raised on a structural edit of a locked recipe by a non-privileged caller."""
    status_code = 403
