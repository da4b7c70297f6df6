# © Copyright 2025 Stuart Parmenter
# SPDX-License-Identifier: MIT

"""Probe transports that put drawing addresses on the wire."""

# Import specific implementations to register them
from .icmp import Icmpv6Transport, build_echo_request
from .null import NullTransport
from .protocol import (
    ProbeOutcome,
    ProbeStatus,
    ProbeTransport,
    ProbeTransportFactory,
    TransportError,
    TransportOpenError,
)


__all__ = [
    # Implementations
    "Icmpv6Transport",
    "NullTransport",
    # Data structures
    "ProbeOutcome",
    "ProbeStatus",
    # Base protocol
    "ProbeTransport",
    # Factory
    "ProbeTransportFactory",
    "TransportError",
    "TransportOpenError",
    "build_echo_request",
]
