import pytest

from gemini_mcp.domain.exceptions import (
    AuthenticationError,
    UpstreamApiError,
    UpstreamCause,
    UpstreamStatus,
    ValidationError,
)
from gemini_mcp.providers.retry import (
    get_retry_delay,
    handle_gemini_error,
    is_retryable_error,
    with_retry,
)


def upstream(status=None, code=None):
    return UpstreamApiError("boom", UpstreamCause(status=status, code=code))


@pytest.mark.parametrize(
    "attempt, expected",
    [(0, 1000), (1, 2000), (2, 4000), (3, 8000), (4, 16000), (5, 16000), (10, 16000)],
)
def test_backoff_table(attempt, expected):
    assert get_retry_delay(attempt) == expected


def test_backoff_uses_base_delay():
    assert get_retry_delay(0, 250) == 250
    assert get_retry_delay(3, 250) == 2000
    assert get_retry_delay(20, 250) == 16000


@pytest.mark.parametrize(
    "err",
    [
        upstream(status=UpstreamStatus.UNAVAILABLE),
        upstream(status=UpstreamStatus.RESOURCE_EXHAUSTED),
        upstream(status=UpstreamStatus.INTERNAL),
        upstream(code=429),
        upstream(code=503),
    ],
)
def test_retryable_errors(err):
    assert is_retryable_error(err)


@pytest.mark.parametrize(
    "err",
    [
        upstream(status=UpstreamStatus.INVALID_ARGUMENT, code=400),
        upstream(),
        AuthenticationError(),
        ValidationError("bad"),
        ValueError("x"),
    ],
)
def test_non_retryable_errors(err):
    assert not is_retryable_error(err)


def test_with_retry_succeeds_after_two_retryable_failures(recording_sleep):
    calls = []

    def operation():
        calls.append(1)
        if len(calls) < 3:
            raise upstream(status=UpstreamStatus.UNAVAILABLE)
        return "ok"

    assert with_retry(operation, max_attempts=3, base_delay=1000, sleep=recording_sleep) == "ok"
    assert len(calls) == 3
    assert recording_sleep.calls == [1.0, 2.0]


def test_with_retry_does_not_retry_fatal_errors(recording_sleep):
    err = upstream(status=UpstreamStatus.INVALID_ARGUMENT)
    calls = []

    def operation():
        calls.append(1)
        raise err

    with pytest.raises(UpstreamApiError) as exc_info:
        with_retry(operation, max_attempts=5, sleep=recording_sleep)
    assert exc_info.value is err
    assert len(calls) == 1
    assert recording_sleep.calls == []


def test_with_retry_rethrows_last_error_when_exhausted(recording_sleep):
    errors = [upstream(code=503), upstream(code=429), upstream(code=503)]
    calls = []

    def operation():
        calls.append(1)
        raise errors[len(calls) - 1]

    with pytest.raises(UpstreamApiError) as exc_info:
        with_retry(operation, max_attempts=3, base_delay=100, sleep=recording_sleep)
    assert exc_info.value is errors[2]
    assert len(calls) == 3
    assert recording_sleep.calls == [0.1, 0.2]


def test_with_retry_single_attempt(recording_sleep):
    def operation():
        raise upstream(code=503)

    with pytest.raises(UpstreamApiError):
        with_retry(operation, max_attempts=1, sleep=recording_sleep)
    assert recording_sleep.calls == []


def test_handle_gemini_error_uses_upstream_message():
    body = {"error": {"code": 503, "message": "The model is overloaded.", "status": "UNAVAILABLE"}}
    err = handle_gemini_error(body, 503)
    assert err.message == "The model is overloaded."
    assert err.cause.status is UpstreamStatus.UNAVAILABLE
    assert err.cause.code == 503
    assert err.data == body["error"]
    assert is_retryable_error(err)


def test_handle_gemini_error_falls_back_to_status():
    err = handle_gemini_error({"error": {"status": "RESOURCE_EXHAUSTED"}}, 429)
    assert err.message == "Gemini API error: RESOURCE_EXHAUSTED"
    assert err.cause.code == 429


def test_handle_gemini_error_unknown_payload():
    err = handle_gemini_error("<html>bad gateway</html>", 502)
    assert err.message == "Unknown Gemini API error"
    assert err.cause.code == 502
    assert err.data == {"code": 502}
    assert not is_retryable_error(err)
