"""
Error taxonomy shared by every metered action.

Each error keeps two messages apart: ``message`` is the internal diagnostic
that goes to the logs, ``user_message`` is shown to the person using the app.
User messages are literal. They say what happened and what to do next, with
no figures of speech.
"""

import enum
from typing import Any, Dict, Optional

from fastapi import status


class ErrorType(str, enum.Enum):
    NETWORK = "network"
    AUTH = "auth"
    VALIDATION = "validation"
    RATE_LIMIT = "rate_limit"
    PERMISSION = "permission"
    SERVER = "server"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"


DEFAULT_USER_MESSAGES = {
    ErrorType.NETWORK: "The app could not connect to the server. Check your internet connection and try again.",
    ErrorType.AUTH: "You need to sign in to use this feature.",
    ErrorType.VALIDATION: "The information you entered is not valid. Check your input and try again.",
    ErrorType.RATE_LIMIT: "You have used all of your allowed requests for this feature. Try again after the limit resets.",
    ErrorType.PERMISSION: "Your account does not have access to this feature.",
    ErrorType.SERVER: "The server had a problem and could not finish your request. Try again in a few minutes.",
    ErrorType.TIMEOUT: "The request took too long and was stopped. Try again.",
    ErrorType.UNKNOWN: "Something went wrong and your request was not finished. Try again.",
}

# Retrying cannot change the outcome of these
NON_RETRYABLE_TYPES = frozenset({ErrorType.AUTH, ErrorType.PERMISSION, ErrorType.VALIDATION})


class ToneWiseError(Exception):
    """Base class for errors raised by the metering core and its providers"""

    error_type = ErrorType.UNKNOWN
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        user_message: Optional[str] = None,
        reason: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.user_message = user_message or DEFAULT_USER_MESSAGES[self.error_type]
        self.reason = reason
        self.context = context or {}

    @property
    def retryable(self) -> bool:
        return self.error_type not in NON_RETRYABLE_TYPES

    def to_dict(self) -> Dict[str, Any]:
        body = {
            "error": self.message,
            "error_type": self.error_type.value,
            "message": self.user_message,
            "retryable": self.retryable,
        }
        if self.reason:
            body["reason"] = self.reason
        return body


class NetworkError(ToneWiseError):
    error_type = ErrorType.NETWORK
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class AuthenticationError(ToneWiseError):
    error_type = ErrorType.AUTH
    status_code = status.HTTP_401_UNAUTHORIZED


class InputValidationError(ToneWiseError):
    error_type = ErrorType.VALIDATION
    status_code = status.HTTP_400_BAD_REQUEST


class ContentRejectedError(InputValidationError):
    def __init__(self, reason: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(
            "Content moderation failed",
            user_message=(
                "Your text contains words that are not allowed, so it was not processed. "
                "Remove those words and try again."
            ),
            reason=reason,
            context=context,
        )


class RateLimitError(ToneWiseError):
    error_type = ErrorType.RATE_LIMIT
    status_code = status.HTTP_429_TOO_MANY_REQUESTS


class PermissionDeniedError(ToneWiseError):
    error_type = ErrorType.PERMISSION
    status_code = status.HTTP_403_FORBIDDEN


class ServerError(ToneWiseError):
    error_type = ErrorType.SERVER
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class ServiceUnavailableError(ServerError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class MalformedResponseError(ServerError):
    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(
            message,
            user_message="The AI service sent back a result the app could not read. Nothing was saved and this did not count toward your limit. Try again.",
            context=context,
        )


class PersistenceError(ServerError):
    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(
            message,
            user_message="Your result could not be saved. It did not count toward your limit. Try again.",
            context=context,
        )


class RequestTimeoutError(ToneWiseError):
    error_type = ErrorType.TIMEOUT
    status_code = status.HTTP_408_REQUEST_TIMEOUT


class UnknownError(ToneWiseError):
    error_type = ErrorType.UNKNOWN
