#!/usr/bin/env python3
"""In-memory coordinator for running the client locally without the real service."""

from __future__ import annotations

import argparse
import base64
from dataclasses import dataclass, field
from datetime import datetime, timezone
import json
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
import secrets
import threading
from urllib.parse import parse_qs, urlparse


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class CoordinatorState:
    min_version: str = "0.0.1"
    users: dict[str, str] = field(default_factory=dict)
    tokens: dict[str, int] = field(default_factory=dict)
    hashes: dict[int, dict[str, object]] = field(default_factory=dict)
    queue: list[int] = field(default_factory=list)
    lock: threading.Lock = field(default_factory=threading.Lock)

    def add_user(self, username: str, password: str) -> None:
        with self.lock:
            self.users[username] = password

    def add_hash(self, cap: bytes) -> int:
        with self.lock:
            hash_id = len(self.hashes) + 1
            self.hashes[hash_id] = {
                "id": hash_id,
                "cap": base64.b64encode(cap).decode("ascii"),
                "created": _now(),
                "jobs": [],
                "reports": [],
            }
            self.queue.append(hash_id)
            return hash_id

    def issue_token(self, username: str) -> str:
        token = secrets.token_hex(16)
        self.tokens[token] = list(self.users).index(username) + 1
        return token


class MockCoordinatorHandler(BaseHTTPRequestHandler):
    server_version = "MockCoordinator/1.0"

    @property
    def state(self) -> CoordinatorState:
        return self.server.state  # type: ignore[attr-defined]

    def do_GET(self) -> None:  # noqa: N802 - stdlib handler signature
        parsed = urlparse(self.path)
        if parsed.path == "/min_version/":
            self._write_body(HTTPStatus.OK, {"min_version": self.state.min_version})
            return

        if parsed.path == "/auth/":
            query = parse_qs(parsed.query)
            username = query.get("username", [""])[0]
            password = query.get("password", [""])[0]
            with self.state.lock:
                if self.state.users.get(username) != password or not username:
                    self._write_error(HTTPStatus.FORBIDDEN, "bad credentials")
                    return
                token = self.state.issue_token(username)
            self._write_body(HTTPStatus.OK, {"token": token})
            return

        if parsed.path == "/job/":
            if self._client_id() is None:
                self._write_error(HTTPStatus.UNAUTHORIZED, "invalid token")
                return
            with self.state.lock:
                if not self.state.queue:
                    self._write_error(HTTPStatus.NOT_FOUND, "no jobs available")
                    return
                entry = self.state.hashes[self.state.queue.pop(0)]
            queued = {"id": entry["id"], "cap": entry["cap"], "created": entry["created"]}
            self._write_body(HTTPStatus.OK, {"queued": queued})
            return

        self._write_error(HTTPStatus.NOT_FOUND, "not found")

    def do_POST(self) -> None:  # noqa: N802 - stdlib handler signature
        payload = self._read_json()
        if payload is None:
            self._write_error(HTTPStatus.BAD_REQUEST, "body must be a JSON object")
            return

        if self.path == "/auth/":
            username = str(payload.get("username", ""))
            with self.state.lock:
                if not username or username in self.state.users:
                    self._write_error(HTTPStatus.FORBIDDEN, "username taken")
                    return
                self.state.users[username] = str(payload.get("password", ""))
                token = self.state.issue_token(username)
            self._write_body(HTTPStatus.OK, {"token": token})
            return

        client_id = self._client_id()
        if client_id is None:
            self._write_error(HTTPStatus.UNAUTHORIZED, "invalid token")
            return

        if self.path == "/job/":
            self._append_history(payload.get("id"), "jobs", {"password": payload.get("password"), "client_id": client_id})
            return
        if self.path == "/report/":
            self._append_history(payload.get("hash_id"), "reports", {"info": payload.get("info"), "client_id": client_id})
            return
        if self.path == "/hash/":
            try:
                cap = base64.b64decode(str(payload.get("cap", "")), validate=True)
            except ValueError:
                self._write_error(HTTPStatus.BAD_REQUEST, "cap must be base64")
                return
            hash_id = self.state.add_hash(cap)
            with self.state.lock:
                entry = dict(self.state.hashes[hash_id])
            self._write_body(HTTPStatus.OK, {"hash": entry})
            return

        self._write_error(HTTPStatus.NOT_FOUND, "not found")

    def log_message(self, _: str, *args: object) -> None:
        # Keep logs terse for test runs.
        if args:
            print("mock-coordinator:", *args)

    def _append_history(self, hash_id: object, kind: str, record: dict[str, object]) -> None:
        with self.state.lock:
            entry = self.state.hashes.get(hash_id) if isinstance(hash_id, int) else None
            if entry is None:
                self._write_error(HTTPStatus.NOT_FOUND, "unknown hash")
                return
            history = entry[kind]
            assert isinstance(history, list)
            history.append({"id": len(history) + 1, "created": _now(), **record})
        self._write_json(HTTPStatus.OK, {"status": "success"})

    def _client_id(self) -> int | None:
        authorization = self.headers.get("Authorization", "")
        if not authorization.lower().startswith("bearer "):
            return None
        token = authorization.split(" ", maxsplit=1)[1].strip()
        with self.state.lock:
            return self.state.tokens.get(token)

    def _read_json(self) -> dict[str, object] | None:
        length = int(self.headers.get("Content-Length", "0"))
        try:
            decoded = json.loads(self.rfile.read(length) or b"{}")
        except json.JSONDecodeError:
            return None
        return decoded if isinstance(decoded, dict) else None

    def _write_body(self, status: HTTPStatus, body: dict[str, object]) -> None:
        self._write_json(status, {"status": "success", "body": body})

    def _write_error(self, status: HTTPStatus, detail: str) -> None:
        self._write_json(status, {"status": "error", "body": {"detail": detail}})

    def _write_json(self, status: HTTPStatus, payload: dict[str, object]) -> None:
        raw = json.dumps(payload).encode("utf-8")
        self.send_response(status.value)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(raw)))
        self.end_headers()
        self.wfile.write(raw)


def build_server(host: str, port: int, state: CoordinatorState) -> ThreadingHTTPServer:
    server = ThreadingHTTPServer((host, port), MockCoordinatorHandler)
    server.state = state  # type: ignore[attr-defined]
    return server


def main() -> None:
    parser = argparse.ArgumentParser(description="Mock zinharo coordinator with an in-memory job queue.")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8082)
    parser.add_argument("--min-version", default="0.0.1")
    parser.add_argument("--user", action="append", default=[], help="username:password, repeatable")
    parser.add_argument("--cap", action="append", default=[], help="capture file to queue, repeatable")
    args = parser.parse_args()

    state = CoordinatorState(min_version=args.min_version)
    for credential in args.user:
        username, _, password = credential.partition(":")
        state.add_user(username, password)
    for cap_path in args.cap:
        with open(cap_path, "rb") as handle:
            state.add_hash(handle.read())

    server = build_server(args.host, args.port, state)
    print(f"mock-coordinator listening on http://{args.host}:{args.port}", flush=True)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        server.server_close()


if __name__ == "__main__":
    main()
