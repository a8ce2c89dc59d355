from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pytest

from zinharo_client.jobs import aircrack
from zinharo_client.jobs.aircrack import AircrackCracker, CrackerFailedError, UnprocessableCaptureError
from zinharo_client.schemas.coordinator import QueuedJob

JOB = QueuedJob(id=21, cap=b"\xd4\xc3\xb2\xa1capture", created=datetime(2021, 1, 1, tzinfo=timezone.utc))


class FakeProcess:
    def __init__(self, returncode: int, stderr: bytes = b"") -> None:
        self.returncode = returncode
        self._stderr = stderr

    async def communicate(self) -> tuple[bytes, bytes]:
        return b"", self._stderr


def _fake_aircrack(monkeypatch, *, returncode: int = 0, password: bytes | None = None, stderr: bytes = b""):
    captured: dict[str, Any] = {}

    async def fake_create_subprocess_exec(*cmd: str, **kwargs: Any) -> FakeProcess:
        captured["cmd"] = list(cmd)
        captured["kwargs"] = kwargs
        captured["cap"] = Path(cmd[1]).read_bytes()
        if password is not None:
            Path(cmd[cmd.index("-l") + 1]).write_bytes(password)
        return FakeProcess(returncode, stderr)

    monkeypatch.setattr(aircrack.asyncio, "create_subprocess_exec", fake_create_subprocess_exec)
    return captured


def _cracker(tmp_path: Path) -> AircrackCracker:
    return AircrackCracker(wordlist_path=tmp_path / "wordlist.txt", work_dir=tmp_path / "work")


def test_crack_returns_password_from_output_file(monkeypatch, tmp_path: Path) -> None:
    captured = _fake_aircrack(monkeypatch, password=b"englandismycity")
    cracker = _cracker(tmp_path)

    result = asyncio.run(cracker.crack(JOB))

    assert result.found
    assert result.password == "englandismycity"
    assert captured["cap"] == JOB.cap
    assert captured["cmd"] == [
        "aircrack-ng",
        str(tmp_path / "work" / "inprogress.cap"),
        "-w",
        str(tmp_path / "wordlist.txt"),
        "-l",
        str(tmp_path / "work" / "out.txt"),
    ]
    assert captured["kwargs"]["stdin"] == asyncio.subprocess.DEVNULL


def test_crack_without_output_file_is_not_found(monkeypatch, tmp_path: Path) -> None:
    _fake_aircrack(monkeypatch)

    result = asyncio.run(_cracker(tmp_path).crack(JOB))

    assert not result.found
    assert result.password is None


def test_stale_output_from_previous_job_is_discarded(monkeypatch, tmp_path: Path) -> None:
    _fake_aircrack(monkeypatch)
    cracker = _cracker(tmp_path)
    cracker.work_dir.mkdir(parents=True)
    cracker.output_path.write_text("previous-password")

    result = asyncio.run(cracker.crack(JOB))

    assert result.password is None


def test_uncleanable_output_path_is_a_cracker_failure(monkeypatch, tmp_path: Path) -> None:
    captured = _fake_aircrack(monkeypatch, password=b"never written")
    cracker = _cracker(tmp_path)
    cracker.output_path.mkdir(parents=True)

    with pytest.raises(CrackerFailedError, match="stale output"):
        asyncio.run(cracker.crack(JOB))

    assert "cmd" not in captured


def test_nonzero_exit_is_a_cracker_failure(monkeypatch, tmp_path: Path) -> None:
    _fake_aircrack(monkeypatch, returncode=1, stderr=b"Unsupported file format")

    with pytest.raises(CrackerFailedError, match="Unsupported file format"):
        asyncio.run(_cracker(tmp_path).crack(JOB))


def test_missing_executable_is_a_cracker_failure(tmp_path: Path) -> None:
    cracker = AircrackCracker(
        wordlist_path=tmp_path / "wordlist.txt",
        work_dir=tmp_path,
        executable=str(tmp_path / "no-such-aircrack"),
    )

    with pytest.raises(CrackerFailedError):
        asyncio.run(cracker.crack(JOB))


def test_non_utf8_password_is_unprocessable(monkeypatch, tmp_path: Path) -> None:
    _fake_aircrack(monkeypatch, password=b"\xff\xfe\xfa")

    with pytest.raises(UnprocessableCaptureError) as excinfo:
        asyncio.run(_cracker(tmp_path).crack(JOB))

    assert excinfo.value.reason == "Cracked password was not valid UTF-8"


def test_unwritable_work_dir_is_unprocessable(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("a file where the work dir should be")
    cracker = AircrackCracker(wordlist_path=tmp_path / "wordlist.txt", work_dir=blocker)

    with pytest.raises(UnprocessableCaptureError) as excinfo:
        asyncio.run(cracker.crack(JOB))

    assert excinfo.value.reason == "Could not save to file, possibly invalid cap"
