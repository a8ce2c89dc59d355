import pytest

from zinharo_client.core.outcomes import CoordinatorError, Endpoint, Outcome, classify


@pytest.mark.parametrize(
    ("endpoint", "status_code", "expected"),
    [
        (Endpoint.MIN_VERSION, 200, Outcome.SUCCESS),
        (Endpoint.MIN_VERSION, 403, Outcome.NETWORK_BLOCKED),
        (Endpoint.MIN_VERSION, 429, Outcome.UNKNOWN_STATUS),
        (Endpoint.LOGIN, 403, Outcome.BAD_CREDENTIALS),
        (Endpoint.LOGIN, 429, Outcome.RATELIMITED),
        (Endpoint.LOGIN, 500, Outcome.UNKNOWN_STATUS),
        (Endpoint.SIGNUP, 403, Outcome.USERNAME_TAKEN),
        (Endpoint.SIGNUP, 429, Outcome.RATELIMITED),
        (Endpoint.LEASE, 200, Outcome.SUCCESS),
        (Endpoint.LEASE, 404, Outcome.NO_WORK_AVAILABLE),
        (Endpoint.LEASE, 429, Outcome.RATELIMITED),
        (Endpoint.LEASE, 401, Outcome.UNKNOWN_STATUS),
        (Endpoint.SUBMIT, 404, Outcome.UNKNOWN_STATUS),
        (Endpoint.REPORT, 429, Outcome.RATELIMITED),
        (Endpoint.UPLOAD, 403, Outcome.UNKNOWN_STATUS),
    ],
)
def test_classify_depends_on_endpoint(endpoint: Endpoint, status_code: int, expected: Outcome) -> None:
    assert classify(endpoint, status_code) is expected


@pytest.mark.parametrize("endpoint", list(Endpoint))
def test_missing_response_is_transport_failure(endpoint: Endpoint) -> None:
    assert classify(endpoint, None) is Outcome.TRANSPORT_FAILURE


def test_coordinator_error_message_names_endpoint_and_status() -> None:
    exc = CoordinatorError(Outcome.UNKNOWN_STATUS, endpoint=Endpoint.LEASE, status_code=502, detail="bad gateway")

    assert str(exc) == "lease: unknown_status (status=502): bad gateway"
    assert exc.outcome is Outcome.UNKNOWN_STATUS
