# © Copyright 2025 Stuart Parmenter
# SPDX-License-Identifier: MIT

import logging
import threading
from ipaddress import IPv6Address

from .protocol import ProbeOutcome, ProbeTransport, ProbeTransportFactory


class NullTransport(ProbeTransport):
    """Dry-run transport: counts probes instead of sending them."""

    name = "null"

    def __init__(self, **options):
        super().__init__(**options)
        self.probes_seen = 0
        self._lock = threading.Lock()

    def open(self) -> None:
        logging.getLogger("null").info("dry run: probes are counted, not sent")
        super().open()

    def send_probe(self, address: IPv6Address) -> ProbeOutcome:
        with self._lock:
            self.probes_seen += 1
        return ProbeOutcome.sent()


ProbeTransportFactory.register(NullTransport.name, NullTransport)
