from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
import logging
from typing import TypeVar

from zinharo_client.core.outcomes import CoordinatorError, Outcome

logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]


class Action(str, Enum):
    SUCCEED = "succeed"
    RETRY = "retry"
    WAIT = "wait"
    FATAL = "fatal"


@dataclass(frozen=True, slots=True)
class Cooldowns:
    ratelimited: float
    transport_failure: float
    no_work: float = 0.0


@dataclass(frozen=True, slots=True)
class Decision:
    action: Action
    delay_seconds: float = 0.0

    @property
    def reinvokes(self) -> bool:
        return self.action in {Action.RETRY, Action.WAIT}


@dataclass(frozen=True, slots=True)
class WorkerCooldowns:
    login: Cooldowns
    signup: Cooldowns
    lease: Cooldowns
    submit: Cooldowns
    report: Cooldowns
    unsuccessful_job: float = 30.0


FATAL_OUTCOMES = frozenset(
    {
        Outcome.BAD_CREDENTIALS,
        Outcome.USERNAME_TAKEN,
        Outcome.VERSION_TOO_OLD,
        Outcome.NETWORK_BLOCKED,
        Outcome.UNKNOWN_STATUS,
    }
)


def decide(outcome: Outcome, cooldowns: Cooldowns) -> Decision:
    if outcome is Outcome.SUCCESS:
        return Decision(Action.SUCCEED)
    if outcome is Outcome.RATELIMITED:
        return Decision(Action.RETRY, cooldowns.ratelimited)
    if outcome is Outcome.TRANSPORT_FAILURE:
        return Decision(Action.RETRY, cooldowns.transport_failure)
    if outcome is Outcome.NO_WORK_AVAILABLE:
        return Decision(Action.WAIT, cooldowns.no_work)
    return Decision(Action.FATAL)


async def retry_call(
    operation: str,
    call: Callable[[], Awaitable[T]],
    cooldowns: Cooldowns,
    *,
    sleep: Sleep = asyncio.sleep,
) -> T:
    """Invoke ``call`` until it succeeds or fails with a fatal outcome.

    There is no attempt limit; every re-attempt is preceded by the cooldown
    the policy assigns to the outcome.
    """
    while True:
        try:
            return await call()
        except CoordinatorError as exc:
            decision = decide(exc.outcome, cooldowns)
            if not decision.reinvokes:
                raise
            if decision.action is Action.WAIT:
                logger.info("%s: no work available, asking again in %.0fs", operation, decision.delay_seconds)
            else:
                logger.warning("%s failed: %s; retrying in %.0fs", operation, exc, decision.delay_seconds)
        await sleep(decision.delay_seconds)
