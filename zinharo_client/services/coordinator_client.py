from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from zinharo_client.core.outcomes import CoordinatorError, Endpoint, Outcome, PayloadDecodeError, classify
from zinharo_client.core.version import PROTOCOL_VERSION, Version
from zinharo_client.schemas.coordinator import (
    CaptureHash,
    CredentialsRequest,
    Envelope,
    HashBody,
    LeaseBody,
    MinVersionBody,
    QueuedJob,
    ReportRequest,
    SubmitRequest,
    TokenBody,
    UploadRequest,
    encode_cap,
)

logger = logging.getLogger(__name__)

BodyT = TypeVar("BodyT", bound=BaseModel)


@dataclass(frozen=True, slots=True)
class Session:
    """Authenticated identity produced by login or signup."""

    token: str = field(repr=False)
    http: httpx.AsyncClient = field(repr=False)

    @property
    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}


class CoordinatorClient:
    """Request/response contracts for the coordinator API.

    Every failed call raises :class:`CoordinatorError` carrying the outcome
    classified for that endpoint; retrying is left to the caller.
    """

    def __init__(self, http: httpx.AsyncClient, *, client_version: Version = PROTOCOL_VERSION) -> None:
        self.http = http
        self.client_version = client_version

    async def check_min_version(self) -> Version:
        response = await self._send(Endpoint.MIN_VERSION, "GET", "min_version/")
        body = _decode(Endpoint.MIN_VERSION, response, MinVersionBody)
        try:
            minimum = Version.parse(body.min_version)
        except ValueError as exc:
            raise PayloadDecodeError(Endpoint.MIN_VERSION, str(exc)) from exc

        if not self.client_version.satisfies(minimum):
            raise CoordinatorError(
                Outcome.VERSION_TOO_OLD,
                endpoint=Endpoint.MIN_VERSION,
                detail=f"client={self.client_version} required={minimum}",
            )
        return minimum

    async def login(self, username: str, password: str) -> Session:
        await self.check_min_version()
        response = await self._send(
            Endpoint.LOGIN,
            "GET",
            "auth/",
            params={"username": username, "password": password},
        )
        token = _decode(Endpoint.LOGIN, response, TokenBody).token
        logger.info("logged in as user=%s", username)
        return Session(token=token, http=self.http)

    async def signup(self, username: str, password: str) -> Session:
        await self.check_min_version()
        payload = CredentialsRequest(username=username, password=password)
        response = await self._send(Endpoint.SIGNUP, "POST", "auth/", json=payload.model_dump())
        token = _decode(Endpoint.SIGNUP, response, TokenBody).token
        logger.info("signed up as user=%s", username)
        return Session(token=token, http=self.http)

    async def lease_job(self, session: Session) -> QueuedJob:
        response = await self._send(Endpoint.LEASE, "GET", "job/", session=session)
        return _decode(Endpoint.LEASE, response, LeaseBody).queued

    async def submit_result(self, session: Session, job: QueuedJob, password: str) -> None:
        payload = SubmitRequest(id=job.id, password=password)
        await self._send(Endpoint.SUBMIT, "POST", "job/", session=session, json=payload.model_dump())

    async def file_report(self, session: Session, job: QueuedJob | int, info: str | None = None) -> None:
        # An int is accepted for leases whose payload could not be decoded.
        job_id = job if isinstance(job, int) else job.id
        payload = ReportRequest(hash_id=job_id, info=info)
        await self._send(Endpoint.REPORT, "POST", "report/", session=session, json=payload.model_dump())

    async def upload_capture(self, session: Session, cap: bytes) -> CaptureHash:
        payload = UploadRequest(cap=encode_cap(cap))
        response = await self._send(Endpoint.UPLOAD, "POST", "hash/", session=session, json=payload.model_dump())
        return _decode(Endpoint.UPLOAD, response, HashBody).hash

    async def _send(
        self,
        endpoint: Endpoint,
        method: str,
        path: str,
        *,
        session: Session | None = None,
        params: dict[str, str] | None = None,
        json: dict[str, Any] | None = None,
    ) -> httpx.Response:
        http = session.http if session is not None else self.http
        headers = session.headers if session is not None else None
        try:
            response = await http.request(method, path, params=params, json=json, headers=headers)
        except httpx.RequestError as exc:
            # Includes bodies that fail content decoding, not only connection errors.
            raise CoordinatorError(
                classify(endpoint, None),
                endpoint=endpoint,
                detail=f"{type(exc).__name__}: {exc}",
            ) from exc

        outcome = classify(endpoint, response.status_code)
        if outcome is not Outcome.SUCCESS:
            raise CoordinatorError(outcome, endpoint=endpoint, status_code=response.status_code)
        return response


def _decode(endpoint: Endpoint, response: httpx.Response, body_model: type[BodyT]) -> BodyT:
    try:
        raw = response.json()
    except ValueError as exc:
        raise PayloadDecodeError(endpoint, f"response is not JSON: {exc}") from exc

    try:
        return Envelope[body_model].model_validate(raw).body
    except ValidationError as exc:
        raise PayloadDecodeError(endpoint, str(exc), job_id=_queued_job_id(raw)) from exc


def _queued_job_id(raw: Any) -> int | None:
    if not isinstance(raw, dict):
        return None
    body = raw.get("body")
    queued = body.get("queued") if isinstance(body, dict) else None
    job_id = queued.get("id") if isinstance(queued, dict) else None
    if isinstance(job_id, int) and not isinstance(job_id, bool):
        return job_id
    return None
