from __future__ import annotations

import asyncio
from dataclasses import dataclass
import logging
from pathlib import Path

from zinharo_client.schemas.coordinator import QueuedJob

logger = logging.getLogger(__name__)

CAPTURE_FILENAME = "inprogress.cap"
OUTPUT_FILENAME = "out.txt"


@dataclass(frozen=True, slots=True)
class CrackResult:
    password: str | None

    @property
    def found(self) -> bool:
        return self.password is not None


class CrackerFailedError(RuntimeError):
    """aircrack-ng could not run or exited abnormally."""


class UnprocessableCaptureError(RuntimeError):
    """The lease cannot be worked on; ``reason`` is sent with the report."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


class AircrackCracker:
    def __init__(
        self,
        *,
        wordlist_path: Path,
        work_dir: Path,
        executable: str = "aircrack-ng",
    ) -> None:
        self.wordlist_path = wordlist_path
        self.work_dir = work_dir
        self.executable = executable

    @property
    def capture_path(self) -> Path:
        return self.work_dir / CAPTURE_FILENAME

    @property
    def output_path(self) -> Path:
        return self.work_dir / OUTPUT_FILENAME

    async def crack(self, job: QueuedJob) -> CrackResult:
        try:
            self.work_dir.mkdir(parents=True, exist_ok=True)
            job.dump_cap(self.capture_path)
        except OSError as exc:
            logger.error("could not save job id=%s to %s: %s", job.id, self.capture_path, exc)
            raise UnprocessableCaptureError("Could not save to file, possibly invalid cap") from exc

        # aircrack-ng only writes the file on success; a leftover would look like a hit.
        try:
            self.output_path.unlink(missing_ok=True)
        except OSError as exc:
            raise CrackerFailedError(f"could not clear stale output {self.output_path}: {exc}") from exc

        cmd = self._build_command()
        logger.debug("running %s", " ".join(cmd))
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise CrackerFailedError(f"could not start {self.executable}: {exc}") from exc

        _, stderr = await proc.communicate()
        if proc.returncode != 0:
            message = stderr.decode("utf-8", errors="replace").strip()
            raise CrackerFailedError(f"{self.executable} exited with code {proc.returncode}: {message}")

        if not self.output_path.exists():
            return CrackResult(password=None)

        try:
            password = self.output_path.read_bytes().decode("utf-8")
        except UnicodeDecodeError as exc:
            raise UnprocessableCaptureError("Cracked password was not valid UTF-8") from exc
        except OSError as exc:
            raise CrackerFailedError(f"could not read {self.output_path}: {exc}") from exc
        return CrackResult(password=password)

    def _build_command(self) -> list[str]:
        return [
            self.executable,
            str(self.capture_path),
            "-w",
            str(self.wordlist_path),
            "-l",
            str(self.output_path),
        ]
