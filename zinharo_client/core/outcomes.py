from __future__ import annotations

from enum import Enum


class Outcome(str, Enum):
    SUCCESS = "success"
    RATELIMITED = "ratelimited"
    BAD_CREDENTIALS = "bad_credentials"
    USERNAME_TAKEN = "username_taken"
    VERSION_TOO_OLD = "version_too_old"
    NETWORK_BLOCKED = "network_blocked"
    NO_WORK_AVAILABLE = "no_work_available"
    TRANSPORT_FAILURE = "transport_failure"
    UNKNOWN_STATUS = "unknown_status"


class Endpoint(str, Enum):
    MIN_VERSION = "min_version"
    LOGIN = "login"
    SIGNUP = "signup"
    LEASE = "lease"
    SUBMIT = "submit"
    REPORT = "report"
    UPLOAD = "upload"


# The same status means different things depending on the endpoint; anything
# not listed here is UNKNOWN_STATUS.
STATUS_OUTCOMES: dict[Endpoint, dict[int, Outcome]] = {
    Endpoint.MIN_VERSION: {200: Outcome.SUCCESS, 403: Outcome.NETWORK_BLOCKED},
    Endpoint.LOGIN: {200: Outcome.SUCCESS, 403: Outcome.BAD_CREDENTIALS, 429: Outcome.RATELIMITED},
    Endpoint.SIGNUP: {200: Outcome.SUCCESS, 403: Outcome.USERNAME_TAKEN, 429: Outcome.RATELIMITED},
    Endpoint.LEASE: {200: Outcome.SUCCESS, 404: Outcome.NO_WORK_AVAILABLE, 429: Outcome.RATELIMITED},
    Endpoint.SUBMIT: {200: Outcome.SUCCESS, 429: Outcome.RATELIMITED},
    Endpoint.REPORT: {200: Outcome.SUCCESS, 429: Outcome.RATELIMITED},
    Endpoint.UPLOAD: {200: Outcome.SUCCESS, 429: Outcome.RATELIMITED},
}


def classify(endpoint: Endpoint, status_code: int | None) -> Outcome:
    """Map a raw response to an outcome; ``None`` means no response arrived."""
    if status_code is None:
        return Outcome.TRANSPORT_FAILURE
    return STATUS_OUTCOMES[endpoint].get(status_code, Outcome.UNKNOWN_STATUS)


class CoordinatorError(Exception):
    def __init__(
        self,
        outcome: Outcome,
        *,
        endpoint: Endpoint,
        status_code: int | None = None,
        detail: str | None = None,
    ) -> None:
        self.outcome = outcome
        self.endpoint = endpoint
        self.status_code = status_code
        self.detail = detail
        message = f"{endpoint.value}: {outcome.value}"
        if status_code is not None:
            message += f" (status={status_code})"
        if detail:
            message += f": {detail}"
        super().__init__(message)


class PayloadDecodeError(ValueError):
    """A 200 response whose body could not be decoded into the expected shape."""

    def __init__(self, endpoint: Endpoint, detail: str, *, job_id: int | None = None) -> None:
        self.endpoint = endpoint
        self.detail = detail
        self.job_id = job_id
        super().__init__(f"{endpoint.value}: malformed payload: {detail}")
