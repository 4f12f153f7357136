import pytest

from app.core.errors import (
    AuthenticationError,
    ContentRejectedError,
    ErrorType,
    InputValidationError,
    MalformedResponseError,
    NetworkError,
    PermissionDeniedError,
    PersistenceError,
    RateLimitError,
    RequestTimeoutError,
    ServerError,
    ServiceUnavailableError,
    UnknownError,
)


@pytest.mark.parametrize("error_cls,status_code,error_type,retryable", [
    (NetworkError, 503, ErrorType.NETWORK, True),
    (AuthenticationError, 401, ErrorType.AUTH, False),
    (InputValidationError, 400, ErrorType.VALIDATION, False),
    (RateLimitError, 429, ErrorType.RATE_LIMIT, True),
    (PermissionDeniedError, 403, ErrorType.PERMISSION, False),
    (ServerError, 500, ErrorType.SERVER, True),
    (ServiceUnavailableError, 503, ErrorType.SERVER, True),
    (RequestTimeoutError, 408, ErrorType.TIMEOUT, True),
    (UnknownError, 500, ErrorType.UNKNOWN, True),
])
def test_error_classification(error_cls, status_code, error_type, retryable):
    error = error_cls("internal detail")
    assert error.status_code == status_code
    assert error.error_type == error_type
    assert error.retryable is retryable


def test_user_message_is_separate_from_internal_message():
    error = RequestTimeoutError("OpenAI request timeout after 15.0s")
    assert error.message == "OpenAI request timeout after 15.0s"
    assert error.user_message != error.message
    assert "15.0s" not in error.user_message


def test_to_dict_shape():
    body = RateLimitError("Daily usage limit exceeded", reason="Daily usage limit exceeded").to_dict()
    assert body == {
        "error": "Daily usage limit exceeded",
        "error_type": "rate_limit",
        "message": RateLimitError("x").user_message,
        "retryable": True,
        "reason": "Daily usage limit exceeded",
    }


def test_reason_is_omitted_when_absent():
    assert "reason" not in NetworkError("connection reset").to_dict()


def test_content_rejection_is_a_validation_error():
    error = ContentRejectedError("Contains inappropriate language (profanity)")
    assert isinstance(error, InputValidationError)
    assert error.status_code == 400
    assert error.retryable is False
    assert error.message == "Content moderation failed"
    assert "inappropriate language" in error.to_dict()["reason"]


def test_server_side_failures_say_nothing_was_counted():
    for error in (MalformedResponseError("bad json"), PersistenceError("insert failed")):
        assert error.status_code == 500
        assert "did not count" in error.user_message
