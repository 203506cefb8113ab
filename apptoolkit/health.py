"""Liveness and readiness endpoints driven by registered health checks."""

from __future__ import annotations

import threading
from collections.abc import Callable, MutableMapping
from http import HTTPStatus
from typing import Any

Check = Callable[[], Any]
ContextCheck = Callable[[Any], Any]

_NOT_FOUND_BODY = b"404 page not found\n"


def _normalise_path(path: str) -> str:
    if not path:
        raise ValueError("health check path must not be empty")
    return path if path.startswith("/") else "/" + path


class _ChecksRegistry:
    """Shared storage, locking and check evaluation."""

    def __init__(self, health_path: str, ready_path: str, *, fail_fast: bool = False) -> None:
        self.liveness_path = _normalise_path(health_path)
        self.readiness_path = _normalise_path(ready_path)
        # When true, the first failing check ends the stage.
        self.fail_fast = fail_fast
        self._lock = threading.Lock()
        self._liveness: dict[str, Any] = {}
        self._readiness: dict[str, Any] = {}

    def _store(self, registry: dict[str, Any], name: str, check: Any) -> None:
        with self._lock:
            registry[name] = check

    def _checks_for(self, path: str) -> dict[str, Any] | None:
        routes = {self.readiness_path: self._readiness, self.liveness_path: self._liveness}
        return routes.get(path)

    def _run(self, method: str, checks: dict[str, Any], invoke: Callable[[Any], Any]) -> int:
        if method != "GET":
            return HTTPStatus.METHOD_NOT_ALLOWED
        with self._lock:
            snapshot = list(checks.values())
        status = HTTPStatus.OK
        for check in snapshot:
            if check is None:
                continue
            try:
                invoke(check)
            except Exception:
                status = HTTPStatus.SERVICE_UNAVAILABLE
                if self.fail_fast:
                    return status
        return status

    @staticmethod
    def _respond(status_code: int, start_response: Callable[..., Any]) -> list[bytes]:
        status = HTTPStatus(status_code)
        if status == HTTPStatus.NOT_FOUND:
            body = _NOT_FOUND_BODY
        elif status == HTTPStatus.METHOD_NOT_ALLOWED:
            body = f"{status.phrase}\n".encode()
        else:
            body = b""
        headers = [("Content-Length", str(len(body)))]
        if body:
            headers += [
                ("Content-Type", "text/plain; charset=utf-8"),
                ("X-Content-Type-Options", "nosniff"),
            ]
        start_response(f"{status.value} {status.phrase}", headers)
        return [body]


class ChecksHandler(_ChecksRegistry):
    """Health endpoints whose checks take no arguments and raise on failure."""

    def add_liveness(self, name: str, check: Check | None) -> None:
        """Register (or replace) a liveness check under ``name``."""
        self._store(self._liveness, name, check)

    def add_readiness(self, name: str, check: Check | None) -> None:
        """Register (or replace) a readiness check under ``name``."""
        self._store(self._readiness, name, check)

    def handle(self, method: str, path: str) -> int:
        """Return the HTTP status code for a request of ``method`` on ``path``."""
        checks = self._checks_for(path)
        if checks is None:
            return HTTPStatus.NOT_FOUND
        return self._run(method, checks, lambda check: check())

    def _endpoint(self, path: str) -> Callable[[str], int]:
        def endpoint(method: str) -> int:
            return self.handle(method, path)

        return endpoint

    def register_handler(self, routes: MutableMapping[str, Callable[[str], int]]) -> None:
        """Add the readiness and liveness endpoints to a path-to-endpoint mapping."""
        routes[self.readiness_path] = self._endpoint(self.readiness_path)
        routes[self.liveness_path] = self._endpoint(self.liveness_path)

    def __call__(self, environ: dict[str, Any], start_response: Callable[..., Any]) -> list[bytes]:
        """Serve the endpoints as a WSGI application."""
        method = environ.get("REQUEST_METHOD", "GET")
        path = environ.get("PATH_INFO") or "/"
        return self._respond(self.handle(method, path), start_response)


class ContextChecksHandler(_ChecksRegistry):
    """Health endpoints whose checks receive the request context."""

    def add_liveness(self, name: str, check: ContextCheck | None) -> None:
        """Register (or replace) a liveness check under ``name``."""
        self._store(self._liveness, name, check)

    def add_readiness(self, name: str, check: ContextCheck | None) -> None:
        """Register (or replace) a readiness check under ``name``."""
        self._store(self._readiness, name, check)

    def handle(self, method: str, path: str, context: Any) -> int:
        """Return the HTTP status code, passing ``context`` to every check."""
        checks = self._checks_for(path)
        if checks is None:
            return HTTPStatus.NOT_FOUND
        return self._run(method, checks, lambda check: check(context))

    def _endpoint(self, path: str) -> Callable[[str, Any], int]:
        def endpoint(method: str, context: Any) -> int:
            return self.handle(method, path, context)

        return endpoint

    def register_handler(self, routes: MutableMapping[str, Callable[[str, Any], int]]) -> None:
        """Add the readiness and liveness endpoints to a path-to-endpoint mapping."""
        routes[self.readiness_path] = self._endpoint(self.readiness_path)
        routes[self.liveness_path] = self._endpoint(self.liveness_path)

    def __call__(self, environ: dict[str, Any], start_response: Callable[..., Any]) -> list[bytes]:
        """Serve the endpoints as a WSGI application; the environ is the check context."""
        method = environ.get("REQUEST_METHOD", "GET")
        path = environ.get("PATH_INFO") or "/"
        return self._respond(self.handle(method, path, environ), start_response)