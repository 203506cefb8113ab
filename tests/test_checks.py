import http.server
import socket
import threading
from unittest import mock

import pytest

from apptoolkit.checks import CheckError, dns_probe_check, http_get_check


class _Handler(http.server.BaseHTTPRequestHandler):
    def do_GET(self):
        self.server.seen.append(self.path)
        if self.path == "/get":
            self.send_response(200)
            self.end_headers()
            self.wfile.write(b"ok")
        elif self.path.startswith("/relative-redirect"):
            self.send_response(302)
            self.send_header("Location", "/get")
            self.end_headers()
        else:
            self.send_response(404)
            self.end_headers()

    def log_message(self, *args):
        pass


@pytest.fixture
def server():
    srv = http.server.ThreadingHTTPServer(("127.0.0.1", 0), _Handler)
    srv.seen = []
    thread = threading.Thread(target=srv.serve_forever, daemon=True)
    thread.start()
    try:
        yield srv, f"http://127.0.0.1:{srv.server_address[1]}"
    finally:
        srv.shutdown()
        srv.server_close()


def test_http_get_ok(server):
    srv, base = server
    assert http_get_check(base + "/get", 5)() is None
    assert srv.seen == ["/get"]


def test_http_get_redirect_not_followed(server):
    srv, base = server
    with pytest.raises(CheckError, match="302"):
        http_get_check(base + "/relative-redirect/1", 5)()
    assert srv.seen == ["/relative-redirect/1"]


def test_http_get_nonexistent(server):
    _, base = server
    with pytest.raises(CheckError, match="404: 404"):
        http_get_check(base + "/nonexistent", 5)()


def test_http_get_connection_refused():
    sock = socket.socket()
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    with pytest.raises(CheckError):
        http_get_check(f"http://127.0.0.1:{port}/get", 2)()


def test_dns_probe_resolves():
    addr = (socket.AF_INET, socket.SOCK_STREAM, 6, "", ("127.0.0.1", 0))
    with mock.patch("socket.getaddrinfo", return_value=[addr]) as lookup:
        assert dns_probe_check("service.example.com", 5)() is None
    lookup.assert_called_once_with("service.example.com", None)


def test_dns_probe_lookup_error():
    with mock.patch("socket.getaddrinfo", side_effect=socket.gaierror("no such host")):
        with pytest.raises(CheckError, match="never.ever.where.com"):
            dns_probe_check("never.ever.where.com", 5)()


def test_dns_probe_empty_result():
    with mock.patch("socket.getaddrinfo", return_value=[]):
        with pytest.raises(CheckError, match="could not resolve host"):
            dns_probe_check("service.example.com", 5)()


def test_dns_probe_timeout():
    release = threading.Event()

    def slow(*_args):
        release.wait(5)
        return []

    with mock.patch("socket.getaddrinfo", side_effect=slow):
        try:
            with pytest.raises(CheckError, match="timeout"):
                dns_probe_check("service.example.com", 0.05)()
        finally:
            release.set()