from __future__ import annotations

import asyncio
from enum import Enum
import logging
from typing import Protocol

from opentelemetry import trace

from zinharo_client.core.fatal import FatalReason, WorkerFatalError
from zinharo_client.core.outcomes import CoordinatorError, Outcome, PayloadDecodeError
from zinharo_client.core.retry import Sleep, WorkerCooldowns, retry_call
from zinharo_client.jobs.aircrack import CrackerFailedError, CrackResult, UnprocessableCaptureError
from zinharo_client.schemas.coordinator import QueuedJob
from zinharo_client.services.coordinator_client import CoordinatorClient, Session

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

NOT_CRACKED_REASON = "Could not crack using standardised wordlist"
UNDECODABLE_LEASE_REASON = "Could not decode leased job payload"


class Cracker(Protocol):
    async def crack(self, job: QueuedJob) -> CrackResult: ...


class WorkerState(str, Enum):
    BOOTSTRAPPING = "bootstrapping"
    AUTHENTICATED = "authenticated"
    POLLING = "polling"
    EXECUTING = "executing"
    SUBMITTING = "submitting"
    REPORTING = "reporting"
    FATAL = "fatal"


class WorkerLoop:
    """Lease, crack and submit-or-report, one job at a time, forever.

    Every lease ends in exactly one submit or report call before the next
    lease is requested. The only way out of the loop is a
    :class:`WorkerFatalError`.
    """

    def __init__(
        self,
        client: CoordinatorClient,
        cracker: Cracker,
        *,
        username: str,
        password: str,
        cooldowns: WorkerCooldowns,
        allow_signup: bool = False,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.client = client
        self.cracker = cracker
        self.username = username
        self.password = password
        self.cooldowns = cooldowns
        self.allow_signup = allow_signup
        self.sleep = sleep
        self.state = WorkerState.BOOTSTRAPPING

    async def run(self) -> None:
        session = await self.bootstrap()
        await self.serve(session)

    async def bootstrap(self) -> Session:
        self._transition(WorkerState.BOOTSTRAPPING)
        try:
            session = await retry_call(
                "login",
                lambda: self.client.login(self.username, self.password),
                self.cooldowns.login,
                sleep=self.sleep,
            )
        except CoordinatorError as exc:
            if exc.outcome is not Outcome.BAD_CREDENTIALS or not self.allow_signup:
                raise self._fatal(WorkerFatalError.from_coordinator_error(exc)) from exc
            logger.warning("login rejected for user=%s; signup is enabled, creating the account", self.username)
            session = await self._signup()
        except PayloadDecodeError as exc:
            raise self._fatal(WorkerFatalError(FatalReason.MALFORMED_RESPONSE, str(exc))) from exc

        self._transition(WorkerState.AUTHENTICATED)
        return session

    async def serve(self, session: Session) -> None:
        while True:
            with tracer.start_as_current_span("worker.poll_cycle"):
                job = await self.lease(session)
                submitted = job is not None and await self.process_job(session, job)
            if not submitted:
                # Give the coordinator a chance to queue something else.
                await self.sleep(self.cooldowns.unsuccessful_job)

    async def lease(self, session: Session) -> QueuedJob | None:
        """Lease one job; ``None`` means the lease was undecodable and has been reported."""
        self._transition(WorkerState.POLLING)
        try:
            job = await retry_call(
                "lease",
                lambda: self.client.lease_job(session),
                self.cooldowns.lease,
                sleep=self.sleep,
            )
        except CoordinatorError as exc:
            raise self._fatal(WorkerFatalError.from_coordinator_error(exc)) from exc
        except PayloadDecodeError as exc:
            if exc.job_id is None:
                raise self._fatal(WorkerFatalError(FatalReason.MALFORMED_RESPONSE, str(exc))) from exc
            logger.error("leased job id=%s could not be decoded: %s", exc.job_id, exc.detail)
            await self._report(session, exc.job_id, UNDECODABLE_LEASE_REASON)
            return None

        logger.info("fetched job id=%s created=%s, cracking", job.id, job.created.isoformat())
        return job

    async def process_job(self, session: Session, job: QueuedJob) -> bool:
        """Run the cracker on ``job`` and close the lease; True when a password was submitted."""
        with tracer.start_as_current_span("worker.process_job") as job_span:
            job_span.set_attribute("job.id", job.id)
            self._transition(WorkerState.EXECUTING)
            try:
                result = await self.cracker.crack(job)
            except UnprocessableCaptureError as exc:
                logger.error("job id=%s cannot be processed: %s; reporting", job.id, exc.reason)
                await self._report(session, job.id, exc.reason)
                return False
            except CrackerFailedError as exc:
                raise self._fatal(WorkerFatalError(FatalReason.CRACKER_FAILED, str(exc))) from exc

            job_span.set_attribute("job.cracked", result.found)
            if result.password is None:
                logger.info("no password found for job id=%s, reporting", job.id)
                await self._report(session, job.id, NOT_CRACKED_REASON)
                return False

            logger.info("found password for job id=%s, uploading", job.id)
            return await self._submit(session, job, result.password)

    async def _signup(self) -> Session:
        try:
            return await retry_call(
                "signup",
                lambda: self.client.signup(self.username, self.password),
                self.cooldowns.signup,
                sleep=self.sleep,
            )
        except CoordinatorError as exc:
            raise self._fatal(WorkerFatalError.from_coordinator_error(exc)) from exc
        except PayloadDecodeError as exc:
            raise self._fatal(WorkerFatalError(FatalReason.MALFORMED_RESPONSE, str(exc))) from exc

    async def _submit(self, session: Session, job: QueuedJob, password: str) -> bool:
        self._transition(WorkerState.SUBMITTING)
        try:
            await retry_call(
                "submit",
                lambda: self.client.submit_result(session, job, password),
                self.cooldowns.submit,
                sleep=self.sleep,
            )
        except CoordinatorError as exc:
            logger.error(
                "could not submit job id=%s (%s); recovered password was %r, continuing with a new job",
                job.id,
                exc,
                password,
            )
            return False
        logger.info("submitted job id=%s", job.id)
        return True

    async def _report(self, session: Session, job_id: int, reason: str) -> None:
        self._transition(WorkerState.REPORTING)
        try:
            await retry_call(
                "report",
                lambda: self.client.file_report(session, job_id, reason),
                self.cooldowns.report,
                sleep=self.sleep,
            )
        except CoordinatorError as exc:
            logger.warning("could not report job id=%s (%s), continuing anyway", job_id, exc)
            return
        logger.info("reported job id=%s", job_id)

    def _transition(self, state: WorkerState) -> None:
        if state is not self.state:
            logger.debug("worker state %s -> %s", self.state.value, state.value)
        self.state = state

    def _fatal(self, error: WorkerFatalError) -> WorkerFatalError:
        self._transition(WorkerState.FATAL)
        return error
