from __future__ import annotations

import base64
from datetime import datetime, timezone
from pathlib import Path
from typing import Annotated, Any, Generic, TypeVar

from pydantic import AfterValidator, AwareDatetime, BaseModel, BeforeValidator, Field, field_validator, model_validator

BodyT = TypeVar("BodyT")


def encode_cap(cap: bytes) -> str:
    return base64.b64encode(cap).decode("ascii")


def decode_cap(value: Any) -> Any:
    if isinstance(value, str):
        return base64.b64decode(value, validate=True)
    return value


def parse_timestamp(value: Any) -> Any:
    # Lax datetime parsing would also take epoch numbers and numeric strings.
    if isinstance(value, str):
        return datetime.fromisoformat(value)
    if isinstance(value, datetime):
        return value
    raise ValueError("timestamp must be an RFC 3339 string")


def as_utc(value: datetime) -> datetime:
    return value.astimezone(timezone.utc)


# RFC 3339 instant with an explicit offset, normalised to UTC.
Timestamp = Annotated[AwareDatetime, BeforeValidator(parse_timestamp), AfterValidator(as_utc)]


class Envelope(BaseModel, Generic[BodyT]):
    status: str
    body: BodyT


class MinVersionBody(BaseModel):
    min_version: str


class TokenBody(BaseModel):
    token: str


class CredentialsRequest(BaseModel):
    username: str
    password: str


class SubmitRequest(BaseModel):
    id: int
    password: str


class ReportRequest(BaseModel):
    hash_id: int
    info: str | None = None


class UploadRequest(BaseModel):
    cap: str


class QueuedJob(BaseModel):
    id: int
    cap: bytes
    created: Timestamp

    @field_validator("cap", mode="before")
    @classmethod
    def parse_cap(cls, value: Any) -> Any:
        return decode_cap(value)

    def dump_cap(self, path: Path) -> None:
        path.write_bytes(self.cap)


class LeaseBody(BaseModel):
    queued: QueuedJob


class CompletedJob(BaseModel):
    id: int
    password: str
    client_id: int
    hash_id: int | None = None
    created: Timestamp


class Report(BaseModel):
    id: int
    info: str | None = None
    client_id: int
    hash_id: int | None = None
    created: Timestamp


class CaptureHash(BaseModel):
    id: int
    cap: bytes
    created: Timestamp
    jobs: list[CompletedJob] = Field(default_factory=list)
    reports: list[Report] = Field(default_factory=list)

    @field_validator("cap", mode="before")
    @classmethod
    def parse_cap(cls, value: Any) -> Any:
        return decode_cap(value)

    @model_validator(mode="after")
    def link_history(self) -> CaptureHash:
        # Nested records arrive without their hash id.
        for record in (*self.jobs, *self.reports):
            if record.hash_id is None:
                record.hash_id = self.id
        return self


class HashBody(BaseModel):
    hash: CaptureHash
