# © Copyright 2025 Stuart Parmenter
# SPDX-License-Identifier: MIT

import threading
from ipaddress import IPv6Address

import numpy as np
import pytest

from pingas.config import Config
from pingas.output.protocol import ProbeOutcome, ProbeTransport


class FakeTransport(ProbeTransport):
    """Records every probe; fails the addresses listed in ``fail``."""

    name = "fake"

    def __init__(self, fail=(), raise_on=(), outcome=None):
        super().__init__()
        self.fail = {IPv6Address(a) for a in fail}
        self.raise_on = {IPv6Address(a) for a in raise_on}
        self.outcome = outcome or ProbeOutcome.timed_out("no reply")
        self.calls: list[tuple[str, IPv6Address]] = []
        self._lock = threading.Lock()

    def send_probe(self, address):
        with self._lock:
            self.calls.append((threading.current_thread().name, address))
        if address in self.raise_on:
            raise RuntimeError("socket exploded")
        if address in self.fail:
            return self.outcome
        return ProbeOutcome.sent()

    def addresses(self):
        return [address for _, address in self.calls]

    def addresses_from(self, thread_name):
        return [address for name, address in self.calls if name == thread_name]


@pytest.fixture(autouse=True)
def default_config():
    Config.load(None)
    yield Config()
    Config.load(None)


@pytest.fixture
def fake_transport():
    return FakeTransport()


def make_grid(rows):
    """Build an RGBA grid from nested lists of (r, g, b, a) tuples."""
    return np.array(rows, dtype=np.uint8).reshape(len(rows), len(rows[0]), 4)
