"""Ready-made health checks: DNS resolution and HTTP GET."""

from __future__ import annotations

import concurrent.futures
import socket
import urllib.error
import urllib.request
from collections.abc import Callable


class CheckError(Exception):
    """Raised by a health check that fails."""


def dns_probe_check(host: str, timeout: float) -> Callable[[], None]:
    """Return a check that fails unless ``host`` resolves within ``timeout`` seconds."""

    def check() -> None:
        pool = concurrent.futures.ThreadPoolExecutor(max_workers=1)
        try:
            future = pool.submit(socket.getaddrinfo, host, None)
            try:
                addrs = future.result(timeout=timeout)
            except concurrent.futures.TimeoutError as exc:
                raise CheckError(f"lookup {host}: i/o timeout") from exc
            except (OSError, UnicodeError) as exc:
                raise CheckError(f"lookup {host}: {exc}") from exc
        finally:
            pool.shutdown(wait=False)
        if not addrs:
            raise CheckError("could not resolve host")

    return check


class _NoRedirect(urllib.request.HTTPRedirectHandler):
    """Stop at the first redirect and hand its response back as an HTTPError."""

    def redirect_request(self, req, fp, code, msg, headers, newurl):
        raise urllib.error.HTTPError(req.full_url, code, msg, headers, fp)


def http_get_check(url: str, timeout: float) -> Callable[[], None]:
    """Return a check that GETs ``url`` and fails unless it answers 200.

    Redirects are never followed; the request times out after ``timeout`` seconds.
    """
    opener = urllib.request.build_opener(_NoRedirect)

    def check() -> None:
        try:
            with opener.open(url, timeout=timeout) as response:
                status, reason = response.status, response.reason
        except urllib.error.HTTPError as exc:
            status, reason = exc.code, exc.reason
            exc.close()
        except (urllib.error.URLError, OSError, ValueError) as exc:
            raise CheckError(f"Get {url!r}: {exc}") from exc
        if status != 200:
            raise CheckError(f"{status}: {status} {reason}")

    return check