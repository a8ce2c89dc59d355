from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError
import pytest

from zinharo_client.schemas.coordinator import CaptureHash, Envelope, LeaseBody, QueuedJob, ReportRequest, encode_cap


@pytest.mark.parametrize("cap", [b"", b"\x04\x05\x2b\x4b\x86", bytes(range(256))])
def test_cap_survives_base64_transit(cap: bytes) -> None:
    job = QueuedJob.model_validate({"id": 1, "cap": encode_cap(cap), "created": "2020-05-01T10:00:00Z"})
    assert job.cap == cap


def test_invalid_base64_is_rejected() -> None:
    with pytest.raises(ValidationError):
        QueuedJob.model_validate({"id": 1, "cap": "not base64!", "created": "2020-05-01T10:00:00Z"})


def test_timestamps_are_normalized_to_utc() -> None:
    job = QueuedJob.model_validate({"id": 1, "cap": "", "created": "2020-05-01T12:30:00+02:00"})

    assert job.created == datetime(2020, 5, 1, 10, 30, tzinfo=timezone.utc)
    assert job.created.utcoffset().total_seconds() == 0


@pytest.mark.parametrize(
    "created",
    ["yesterday", "2021-01-01T00:00:00", "2021-01-01", 1609459200, "1609459200", None],
)
def test_timestamps_without_an_explicit_offset_are_rejected(created: object) -> None:
    with pytest.raises(ValidationError):
        QueuedJob.model_validate({"id": 1, "cap": "", "created": created})


def test_envelope_only_decodes_body() -> None:
    payload = {
        "status": "success",
        "body": {"queued": {"cap": "AQID", "id": 7, "created": "2021-01-01T00:00:00Z"}},
        "extra": "ignored",
    }

    body = Envelope[LeaseBody].model_validate(payload).body

    assert body.queued.id == 7
    assert body.queued.cap == b"\x01\x02\x03"


def test_capture_hash_links_history_to_hash_id() -> None:
    captured = CaptureHash.model_validate(
        {
            "id": 42,
            "cap": "AQID",
            "created": "2021-01-01T00:00:00Z",
            "jobs": [{"id": 1, "password": "hunter22", "client_id": 3, "created": "2021-01-02T00:00:00Z"}],
            "reports": [{"id": 2, "info": None, "client_id": 4, "created": "2021-01-03T00:00:00+01:00"}],
        }
    )

    assert captured.jobs[0].hash_id == 42
    assert captured.reports[0].hash_id == 42
    assert captured.reports[0].info is None
    assert captured.reports[0].created == datetime(2021, 1, 2, 23, 0, tzinfo=timezone.utc)


def test_report_request_sends_null_for_missing_reason() -> None:
    assert ReportRequest(hash_id=5).model_dump() == {"hash_id": 5, "info": None}
    assert ReportRequest(hash_id=5, info="").model_dump() == {"hash_id": 5, "info": ""}


def test_dump_cap_writes_raw_bytes(tmp_path: Path) -> None:
    job = QueuedJob(id=3, cap=b"\x00\xffcap", created=datetime(2020, 1, 1, tzinfo=timezone.utc))
    target = tmp_path / "job.cap"

    job.dump_cap(target)

    assert target.read_bytes() == b"\x00\xffcap"
