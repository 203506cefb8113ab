import socket

import pytest

from apptoolkit.network import PORT_RANGE_MAX, PortError, get_open_port_in_range


@pytest.mark.parametrize(
    "lower,upper,message",
    [
        (-1, 0, "port cannot be less than 0"),
        (PORT_RANGE_MAX + 1, PORT_RANGE_MAX + 10, "port cannot be greater than 65535"),
        (20, 10, "no open port found 0"),
    ],
)
def test_port_errors(lower, upper, message):
    with pytest.raises(PortError) as info:
        get_open_port_in_range(lower, upper)
    assert info.value.message == message
    assert str(info.value) == f"port discovery error: {message}"


@pytest.fixture
def listening_port():
    sock = socket.socket()
    sock.bind(("localhost", 0))
    sock.listen()
    try:
        yield sock.getsockname()[1]
    finally:
        sock.close()


def test_busy_port_is_skipped(listening_port):
    with pytest.raises(PortError, match="no open port found"):
        get_open_port_in_range(listening_port, listening_port)


def test_finds_port_after_busy_one(listening_port):
    if listening_port >= PORT_RANGE_MAX:
        pytest.fail("ephemeral port at top of range")
    port = get_open_port_in_range(listening_port, PORT_RANGE_MAX)
    assert listening_port < port <= PORT_RANGE_MAX