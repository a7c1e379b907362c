from typing import Dict

from rest_framework import status


class SettlementError(Exception):
    """Base for every error the settlement services raise.

    Each subclass carries the HTTP status the API layer answers with, and
    `context` holds extra fields merged into the response body.
    """

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.message = message
        self.context: Dict = context

    def as_response_body(self) -> Dict:
        return {"detail": self.message, **self.context}


class ValidationError(SettlementError):
    status_code = status.HTTP_400_BAD_REQUEST


class Forbidden(SettlementError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFound(SettlementError):
    status_code = status.HTTP_404_NOT_FOUND


class InvalidStateTransition(SettlementError):
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, message: str, current_state: str):
        super().__init__(message, current_state=current_state)
        self.current_state = current_state


class IdempotencyConflict(SettlementError):
    status_code = status.HTTP_409_CONFLICT


class GatewayUnresolved(SettlementError):
    """Callback parameters are incomplete; the caller may retry later."""

    status_code = status.HTTP_202_ACCEPTED

    def __init__(self, message: str, missing):
        super().__init__(message, missing=list(missing), resolved=False)
        self.missing = list(missing)
