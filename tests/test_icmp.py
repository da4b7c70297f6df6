# © Copyright 2025 Stuart Parmenter
# SPDX-License-Identifier: MIT

import errno
import socket
import struct
from ipaddress import IPv6Address

import pytest

from pingas.output import (
    Icmpv6Transport,
    NullTransport,
    ProbeStatus,
    ProbeTransportFactory,
    TransportOpenError,
    build_echo_request,
)


TARGET = IPv6Address("2001:610:1908:a000:a:14:8000:ffff")


class FakeSocket:
    def __init__(self, error=None):
        self.error = error
        self.sent = []
        self.timeout = "unset"
        self.closed = False
        self.options = {}

    def setsockopt(self, level, name, value):
        self.options[(level, name)] = value

    def settimeout(self, timeout):
        self.timeout = timeout

    def sendto(self, data, addr):
        if self.error is not None:
            raise self.error
        self.sent.append((data, addr))
        return len(data)

    def close(self):
        self.closed = True


def transport_with(sock, **kwargs):
    transport = Icmpv6Transport(socket_factory=lambda sock_type: sock, **kwargs)
    transport.open()
    return transport


def test_echo_request_layout():
    packet = build_echo_request(0x1234, 0x10005, b"hi")

    assert struct.unpack("!BBHHH", packet[:8]) == (128, 0, 0, 0x1234, 0x0005)
    assert packet[8:] == b"hi"


def test_send_probe_targets_the_address():
    sock = FakeSocket()
    transport = transport_with(sock, timeout_s=0.05, payload="pingas")

    outcome = transport.send_probe(TARGET)
    transport.send_probe(TARGET)

    assert outcome.ok
    (first, addr), (second, _) = sock.sent
    assert addr == ("2001:610:1908:a000:a:14:8000:ffff", 0, 0, 0)
    assert first[0] == 128
    assert first[8:] == b"pingas"
    assert struct.unpack("!H", first[6:8])[0] + 1 == struct.unpack("!H", second[6:8])[0]
    assert sock.timeout == 0.05
    assert transport.socket_kind == "raw"


def test_falls_back_to_ping_socket():
    sock = FakeSocket()
    kinds = []

    def factory(sock_type):
        kinds.append(sock_type)
        if sock_type == socket.SOCK_RAW:
            raise PermissionError(errno.EPERM, "Operation not permitted")
        return sock

    transport = Icmpv6Transport(socket_factory=factory)
    transport.open()

    assert kinds == [socket.SOCK_RAW, socket.SOCK_DGRAM]
    assert transport.socket_kind == "ping"
    assert transport.is_open


def test_open_fails_when_no_socket_is_allowed():
    def factory(sock_type):
        raise PermissionError(errno.EPERM, "Operation not permitted")

    with pytest.raises(TransportOpenError, match="CAP_NET_RAW"):
        Icmpv6Transport(socket_factory=factory).open()


@pytest.mark.parametrize(
    ("error", "status", "detail"),
    [
        (TimeoutError("timed out"), ProbeStatus.TIMED_OUT, "send blocked"),
        (BlockingIOError(errno.EAGAIN, "Resource temporarily unavailable"), ProbeStatus.TIMED_OUT, "queue full"),
        (OSError(errno.ENOBUFS, "No buffer space available"), ProbeStatus.ERROR, "packet queue full"),
        (OSError(errno.ENETUNREACH, "Network is unreachable"), ProbeStatus.ERROR, "Network is unreachable"),
    ],
)
def test_send_errors_become_outcomes(error, status, detail):
    transport = transport_with(FakeSocket(error=error))

    outcome = transport.send_probe(TARGET)

    assert outcome.status is status
    assert detail in outcome.detail


def test_send_before_open_is_an_error_outcome():
    outcome = Icmpv6Transport(socket_factory=lambda sock_type: FakeSocket()).send_probe(TARGET)

    assert outcome.status is ProbeStatus.ERROR


def test_close_releases_socket():
    sock = FakeSocket()
    with Icmpv6Transport(socket_factory=lambda sock_type: sock) as transport:
        assert transport.is_open

    assert sock.closed
    assert not transport.is_open


def test_factory_resolves_registered_transports():
    assert {"icmpv6", "null"} <= set(ProbeTransportFactory.list_transports())

    transport = ProbeTransportFactory.create("null", timeout_s=0.1)
    assert isinstance(transport, NullTransport)
    assert transport.send_probe(TARGET).ok
    assert transport.probes_seen == 1

    with pytest.raises(ValueError, match="Unknown probe transport"):
        ProbeTransportFactory.create("carrier-pigeon")
