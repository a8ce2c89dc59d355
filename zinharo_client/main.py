from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path

import httpx

from zinharo_client.core.config import Settings, get_settings
from zinharo_client.core.fatal import FatalReason, WorkerFatalError
from zinharo_client.core.outcomes import CoordinatorError, PayloadDecodeError
from zinharo_client.core.retry import retry_call
from zinharo_client.core.telemetry import configure_logging, setup_telemetry, shutdown_telemetry
from zinharo_client.jobs.aircrack import AircrackCracker
from zinharo_client.services.coordinator_client import CoordinatorClient
from zinharo_client.services.wordlist import WordlistUnavailableError, ensure_wordlist
from zinharo_client.worker import WorkerLoop

logger = logging.getLogger(__name__)


def build_http_client(settings: Settings) -> httpx.AsyncClient:
    return httpx.AsyncClient(base_url=settings.api_base_url, timeout=settings.request_timeout_seconds)


def _require_credentials(settings: Settings) -> tuple[str, str]:
    if not settings.username or not settings.password:
        raise WorkerFatalError(FatalReason.MISSING_CREDENTIALS)
    return settings.username, settings.password


async def run_worker(settings: Settings | None = None, *, http: httpx.AsyncClient | None = None) -> int:
    settings = settings or get_settings()
    configure_logging(settings)
    telemetry_runtime = setup_telemetry(settings)
    try:
        username, password = _require_credentials(settings)
        async with http or build_http_client(settings) as client_http:
            worker = WorkerLoop(
                CoordinatorClient(client_http),
                AircrackCracker(
                    wordlist_path=settings.wordlist_path,
                    work_dir=settings.work_dir,
                    executable=settings.aircrack_path,
                ),
                username=username,
                password=password,
                cooldowns=settings.worker_cooldowns(),
                allow_signup=settings.signup,
            )
            session = await worker.bootstrap()
            try:
                await ensure_wordlist(settings.wordlist_path, settings.wordlist_url, http=client_http)
            except WordlistUnavailableError as exc:
                raise WorkerFatalError(FatalReason.WORDLIST_UNAVAILABLE, str(exc)) from exc

            logger.info("client launched successfully")
            await worker.serve(session)
    except WorkerFatalError as exc:
        logger.error("fatal (%s): %s", exc.reason.value, exc.explanation)
        return exc.exit_code
    finally:
        shutdown_telemetry(telemetry_runtime)
    return 0


async def upload_capture_file(
    capture_path: Path,
    settings: Settings | None = None,
    *,
    http: httpx.AsyncClient | None = None,
) -> int:
    settings = settings or get_settings()
    configure_logging(settings)
    try:
        cap = capture_path.read_bytes()
    except OSError as exc:
        logger.error("could not read capture %s: %s", capture_path, exc)
        return 1

    try:
        username, password = _require_credentials(settings)
        async with http or build_http_client(settings) as client_http:
            client = CoordinatorClient(client_http)
            cooldowns = settings.worker_cooldowns()
            session = await retry_call("login", lambda: client.login(username, password), cooldowns.login)
            uploaded = await retry_call("upload", lambda: client.upload_capture(session, cap), cooldowns.submit)
    except WorkerFatalError as exc:
        logger.error("fatal (%s): %s", exc.reason.value, exc.explanation)
        return exc.exit_code
    except CoordinatorError as exc:
        fatal = WorkerFatalError.from_coordinator_error(exc)
        logger.error("fatal (%s): %s", fatal.reason.value, fatal.explanation)
        return fatal.exit_code
    except PayloadDecodeError as exc:
        fatal = WorkerFatalError(FatalReason.MALFORMED_RESPONSE, str(exc))
        logger.error("fatal (%s): %s", fatal.reason.value, fatal.explanation)
        return fatal.exit_code

    print(
        f"hash #{uploaded.id} created {uploaded.created.isoformat()}: "
        f"{len(uploaded.jobs)} job(s), {len(uploaded.reports)} report(s)"
    )
    for job in uploaded.jobs:
        print(f"  job #{job.id} by client #{job.client_id}: {job.password}")
    for report in uploaded.reports:
        print(f"  report #{report.id} by client #{report.client_id}: {report.info or '(no reason given)'}")
    return 0


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Distributed WPA cracking client for a zinharo coordinator.")
    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("run", help="Lease, crack and submit jobs until a fatal error (default)")
    upload_parser = subparsers.add_parser("upload", help="Upload a .cap file and print its job/report history")
    upload_parser.add_argument("capture", type=Path, help="Path to the capture file")
    args = parser.parse_args(argv)

    if args.command == "upload":
        raise SystemExit(asyncio.run(upload_capture_file(args.capture)))
    raise SystemExit(asyncio.run(run_worker()))


if __name__ == "__main__":
    main()
