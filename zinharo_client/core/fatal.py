from __future__ import annotations

from enum import Enum

from zinharo_client.core.outcomes import CoordinatorError, Outcome


class FatalReason(str, Enum):
    MISSING_CREDENTIALS = "missing_credentials"
    BAD_CREDENTIALS = "bad_credentials"
    USERNAME_TAKEN = "username_taken"
    VERSION_TOO_OLD = "version_too_old"
    NETWORK_BLOCKED = "network_blocked"
    UNKNOWN_STATUS = "unknown_status"
    MALFORMED_RESPONSE = "malformed_response"
    WORDLIST_UNAVAILABLE = "wordlist_unavailable"
    CRACKER_FAILED = "cracker_failed"


EXIT_CODES: dict[FatalReason, int] = {
    FatalReason.MISSING_CREDENTIALS: 2,
    FatalReason.BAD_CREDENTIALS: 3,
    FatalReason.USERNAME_TAKEN: 4,
    FatalReason.VERSION_TOO_OLD: 5,
    FatalReason.NETWORK_BLOCKED: 6,
    FatalReason.UNKNOWN_STATUS: 7,
    FatalReason.MALFORMED_RESPONSE: 8,
    FatalReason.WORDLIST_UNAVAILABLE: 9,
    FatalReason.CRACKER_FAILED: 10,
}

EXPLANATIONS: dict[FatalReason, str] = {
    FatalReason.MISSING_CREDENTIALS: "Please supply the ZINHARO_USERNAME and ZINHARO_PASSWORD environment variables.",
    FatalReason.BAD_CREDENTIALS: (
        "Username or password invalid. Set ZINHARO_SIGNUP=true to create the account instead."
    ),
    FatalReason.USERNAME_TAKEN: (
        "Signup username is taken. Choose another one, or unset ZINHARO_SIGNUP if it is your account."
    ),
    FatalReason.VERSION_TOO_OLD: "This client is critically out of date, please update.",
    FatalReason.NETWORK_BLOCKED: (
        "You have been blocked from the coordinator by a CDN or firewall. "
        "Make sure you are not routing through Tor."
    ),
    FatalReason.UNKNOWN_STATUS: "The coordinator answered with an unexpected status; the session may have expired.",
    FatalReason.MALFORMED_RESPONSE: "The coordinator sent a response this client could not decode.",
    FatalReason.WORDLIST_UNAVAILABLE: "Could not download or decompress the standard wordlist.",
    FatalReason.CRACKER_FAILED: "aircrack-ng failed to run; check that it is installed and has the rights it needs.",
}

_OUTCOME_REASONS: dict[Outcome, FatalReason] = {
    Outcome.BAD_CREDENTIALS: FatalReason.BAD_CREDENTIALS,
    Outcome.USERNAME_TAKEN: FatalReason.USERNAME_TAKEN,
    Outcome.VERSION_TOO_OLD: FatalReason.VERSION_TOO_OLD,
    Outcome.NETWORK_BLOCKED: FatalReason.NETWORK_BLOCKED,
    Outcome.UNKNOWN_STATUS: FatalReason.UNKNOWN_STATUS,
}


class WorkerFatalError(Exception):
    """Terminal condition; only the process boundary decides how to exit on it."""

    def __init__(self, reason: FatalReason, detail: str | None = None) -> None:
        self.reason = reason
        self.detail = detail
        super().__init__(self.explanation)

    @property
    def exit_code(self) -> int:
        return EXIT_CODES[self.reason]

    @property
    def explanation(self) -> str:
        text = EXPLANATIONS[self.reason]
        if self.detail:
            text = f"{text} ({self.detail})"
        return text

    @classmethod
    def from_coordinator_error(cls, exc: CoordinatorError) -> WorkerFatalError:
        # Retryable outcomes never reach here; treat a stray one as unknown.
        reason = _OUTCOME_REASONS.get(exc.outcome, FatalReason.UNKNOWN_STATUS)
        return cls(reason, str(exc))
