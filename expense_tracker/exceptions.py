"""
Typed errors raised by the expense tracker services.

Every error carries the HTTP status it maps to and a user-facing message, so
route handlers never translate messages by hand:

    ExpenseTrackerError (base)
    +-- ValidationError            400  malformed or missing input
    +-- ReferentialIntegrityError  400  delete blocked by dependent rows
    +-- AuthorizationError         403  role or ownership check failed
    +-- InvalidStateError          403  illegal lifecycle transition
    +-- NotFoundError              404  referenced id does not exist
"""

from typing import Any, List, Optional


class ExpenseTrackerError(Exception):
    status_code = 500

    def __init__(self, message: str, errors: Optional[List[Any]] = None):
        super().__init__(message)
        self.message = message
        self.errors = errors

    def to_dict(self) -> dict:
        body = {"message": self.message}
        if self.errors:
            body["errors"] = self.errors
        return body


class ValidationError(ExpenseTrackerError):
    status_code = 400


class ReferentialIntegrityError(ExpenseTrackerError):
    status_code = 400


class AuthorizationError(ExpenseTrackerError):
    status_code = 403


class InvalidStateError(ExpenseTrackerError):
    status_code = 403


class NotFoundError(ExpenseTrackerError):
    status_code = 404
