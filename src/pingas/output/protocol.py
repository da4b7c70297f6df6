# © Copyright 2025 Stuart Parmenter
# SPDX-License-Identifier: MIT

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from ipaddress import IPv6Address
from typing import Any, ClassVar


class ProbeStatus(Enum):
    """Result of a single probe attempt."""

    SENT = "sent"
    TIMED_OUT = "timed out"
    ERROR = "error"


@dataclass(frozen=True)
class ProbeOutcome:
    """What the transport reports for one send attempt.

    SENT only means the probe left the local send queue; nothing is ever
    known about delivery.
    """

    status: ProbeStatus
    detail: str | None = None

    @classmethod
    def sent(cls) -> "ProbeOutcome":
        return _SENT

    @classmethod
    def timed_out(cls, detail: str | None = None) -> "ProbeOutcome":
        return cls(ProbeStatus.TIMED_OUT, detail)

    @classmethod
    def error(cls, detail: str) -> "ProbeOutcome":
        return cls(ProbeStatus.ERROR, detail)

    @property
    def ok(self) -> bool:
        return self.status is ProbeStatus.SENT

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status.value}: {self.detail}"
        return self.status.value


_SENT = ProbeOutcome(ProbeStatus.SENT)


class TransportError(Exception):
    """Base exception for probe transport setup failures."""


class TransportOpenError(TransportError):
    """The transport could not acquire its socket (permissions, no IPv6...)."""


class ProbeTransport(ABC):
    """Fire-and-forget probe sender shared by every dispatch worker.

    Implementations must be safe to call from many threads at once.
    """

    name: ClassVar[str] = ""

    def __init__(self, **options: Any):
        self.options = options
        self._open = False

    def open(self) -> None:
        """Acquire any OS resources."""
        self._open = True

    def close(self) -> None:
        """Release OS resources."""
        self._open = False

    @property
    def is_open(self) -> bool:
        return self._open

    @abstractmethod
    def send_probe(self, address: IPv6Address) -> ProbeOutcome:
        """Send one probe to address without waiting for a reply."""

    def __enter__(self) -> "ProbeTransport":
        self.open()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class ProbeTransportFactory:
    """Factory for creating probe transports by name."""

    _transports: ClassVar[dict[str, type[ProbeTransport]]] = {}

    @classmethod
    def register(cls, name: str, transport_class: type[ProbeTransport]) -> None:
        """Register a new transport."""
        cls._transports[name] = transport_class

    @classmethod
    def create(cls, name: str, **options: Any) -> ProbeTransport:
        """Create a transport instance."""
        transport_class = cls._transports.get(name)
        if not transport_class:
            raise ValueError(f"Unknown probe transport: {name}")
        return transport_class(**options)

    @classmethod
    def list_transports(cls) -> list[str]:
        """List available transport names."""
        return sorted(cls._transports)
