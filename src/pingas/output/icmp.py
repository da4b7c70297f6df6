# © Copyright 2025 Stuart Parmenter
# SPDX-License-Identifier: MIT

import contextlib
import errno
import logging
import os
import socket
import struct
import threading
from collections.abc import Callable
from ipaddress import IPv6Address

from .protocol import ProbeOutcome, ProbeTransport, ProbeTransportFactory, TransportOpenError


# ICMPv6 echo request header (big-endian):
#   type:     128 (echo request)
#   code:     0
#   checksum: left 0; the kernel fills it in for IPPROTO_ICMPV6 sockets since it
#             covers the IPv6 pseudo-header (source address chosen at routing time)
#   ident:    echo identifier (ping sockets overwrite it with their port)
#   seq:      echo sequence number, wraps at 16 bits
ICMP6_ECHO_HDR = struct.Struct("!BBHHH")
ICMP6_ECHO_REQUEST = 128

SocketFactory = Callable[[int], socket.socket]


def build_echo_request(ident: int, seq: int, payload: bytes = b"") -> bytes:
    """Build an ICMPv6 echo request with a zero checksum."""
    return ICMP6_ECHO_HDR.pack(ICMP6_ECHO_REQUEST, 0, 0, ident & 0xFFFF, seq & 0xFFFF) + payload


def _default_socket_factory(sock_type: int) -> socket.socket:
    return socket.socket(socket.AF_INET6, sock_type, socket.IPPROTO_ICMPV6)


class Icmpv6Transport(ProbeTransport):
    """Sends ICMPv6 echo requests and never reads the replies.

    A raw socket is tried first (needs CAP_NET_RAW); if that is refused the
    unprivileged datagram ping socket is used instead (Linux, gated by
    net.ipv4.ping_group_range).
    """

    name = "icmpv6"

    def __init__(
        self,
        timeout_s: float | None = 0.05,
        payload: bytes | str = b"",
        sndbuf: int = 1 << 20,
        socket_factory: SocketFactory | None = None,
    ):
        super().__init__(timeout_s=timeout_s, payload=payload, sndbuf=sndbuf)
        self.timeout_s = timeout_s
        self.payload = payload.encode() if isinstance(payload, str) else bytes(payload)
        self.sndbuf = int(sndbuf)
        self.ident = os.getpid() & 0xFFFF
        self.sock: socket.socket | None = None
        self.socket_kind = ""

        self._socket_factory = socket_factory or _default_socket_factory
        self._seq = 0
        self._seq_lock = threading.Lock()

    def open(self) -> None:
        """Create the ICMPv6 socket."""
        logger = logging.getLogger("icmp")
        errors = []

        for sock_type, kind in ((socket.SOCK_RAW, "raw"), (socket.SOCK_DGRAM, "ping")):
            try:
                sock = self._socket_factory(sock_type)
            except OSError as e:
                errors.append(f"{kind}: {e}")
                logger.debug(f"{kind} ICMPv6 socket unavailable: {e}")
                continue

            with contextlib.suppress(OSError):
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_SNDBUF, self.sndbuf)
            sock.settimeout(self.timeout_s)

            self.sock = sock
            self.socket_kind = kind
            logger.info(f"opened {kind} ICMPv6 socket (timeout={self.timeout_s}s, payload={len(self.payload)}B)")
            super().open()
            return

        raise TransportOpenError(
            "Cannot open an ICMPv6 socket (run as root, grant CAP_NET_RAW, or widen "
            f"net.ipv4.ping_group_range): {'; '.join(errors)}"
        )

    def close(self) -> None:
        """Close the socket."""
        if self.sock is not None:
            self.sock.close()
            self.sock = None
        super().close()

    def _next_seq(self) -> int:
        with self._seq_lock:
            self._seq = (self._seq + 1) & 0xFFFF
            return self._seq

    def send_probe(self, address: IPv6Address) -> ProbeOutcome:
        """Send one echo request to address."""
        sock = self.sock
        if sock is None:
            return ProbeOutcome.error("transport is not open")

        packet = build_echo_request(self.ident, self._next_seq(), self.payload)
        try:
            sock.sendto(packet, (str(address), 0, 0, 0))
        except TimeoutError:
            return ProbeOutcome.timed_out(f"send blocked for more than {self.timeout_s}s")
        except BlockingIOError:
            return ProbeOutcome.timed_out("send queue full")
        except OSError as e:
            if e.errno == errno.ENOBUFS:
                return ProbeOutcome.error("no buffer space available (packet queue full)")
            return ProbeOutcome.error(e.strerror or repr(e))

        return ProbeOutcome.sent()


ProbeTransportFactory.register(Icmpv6Transport.name, Icmpv6Transport)
