# © Copyright 2025 Stuart Parmenter
# SPDX-License-Identifier: MIT

import logging
import threading
import time
from collections import Counter
from ipaddress import IPv6Address

import pytest

from pingas.addressing import encode, format_address
from pingas.dispatch.scheduler import DispatchOptions, DispatchScheduler
from pingas.dispatch.units import PixelGranularity, WorkUnit
from pingas.output.protocol import ProbeOutcome
from pingas.utils.metrics import ProbeTracker

from .conftest import FakeTransport


def make_units(rows=3, width=4):
    return [
        WorkUnit(index=y, row=y, addresses=tuple(encode(x, y, 1, 2, 3, 255) for x in range(width)))
        for y in range(rows)
    ]


def fast_options(**overrides):
    values = {"interval_s": 0.0, "stagger_ms": 0.0}
    values.update(overrides)
    return DispatchOptions(**values)


def test_repeat_budget_sends_exact_passes(fake_transport):
    units = make_units()
    scheduler = DispatchScheduler(units, fake_transport, fast_options(repeat=3))

    scheduler.run()

    assert scheduler.is_done
    assert [w.passes for w in scheduler.workers] == [3, 3, 3]
    for state in scheduler.workers:
        sent = fake_transport.addresses_from(state.thread.name)
        assert sent == list(state.unit.addresses) * 3
    assert len(fake_transport.calls) == 3 * 3 * 4


def test_each_worker_runs_in_its_own_thread(fake_transport):
    scheduler = DispatchScheduler(make_units(rows=4), fake_transport, fast_options(repeat=1))

    scheduler.run()

    names = {name for name, _ in fake_transport.calls}
    assert names == {"pingas-row-0", "pingas-row-1", "pingas-row-2", "pingas-row-3"}


def test_zero_units_start_zero_workers(fake_transport):
    scheduler = DispatchScheduler([], fake_transport, fast_options())

    assert scheduler.start() == 0
    assert scheduler.join(timeout=0.1)
    assert scheduler.is_done
    assert fake_transport.calls == []


def test_unbounded_worker_keeps_going_until_stopped(fake_transport):
    scheduler = DispatchScheduler(make_units(rows=1), fake_transport, fast_options(interval_s=0.001))
    scheduler.start()

    deadline = time.monotonic() + 5.0
    while scheduler.workers[0].passes < 5 and time.monotonic() < deadline:
        time.sleep(0.01)

    assert not scheduler.join(timeout=0.05)
    assert not scheduler.is_done
    assert scheduler.workers[0].passes >= 5

    assert scheduler.stop(timeout=5.0)
    assert scheduler.is_done


def test_failed_probe_does_not_abort_pass(caplog):
    units = make_units(rows=1, width=4)
    bad = units[0].addresses[1]
    transport = FakeTransport(fail=[bad])
    scheduler = DispatchScheduler(units, transport, fast_options(repeat=2))

    with caplog.at_level(logging.WARNING, logger="dispatch"):
        scheduler.run()

    assert transport.addresses() == list(units[0].addresses) * 2
    assert scheduler.workers[0].failures == 2
    assert scheduler.workers[0].passes == 2
    assert f"row 0 :: {format_address(bad)} timed out: no reply" in caplog.text


def test_transport_exception_is_contained():
    units = make_units(rows=2, width=3)
    boom = units[1].addresses[0]
    transport = FakeTransport(raise_on=[boom])
    tracker = ProbeTracker()
    scheduler = DispatchScheduler(units, transport, fast_options(repeat=1), tracker)

    scheduler.run()

    assert len(transport.calls) == 6
    assert [w.passes for w in scheduler.workers] == [1, 1]
    assert tracker.totals["error"] == 1
    assert tracker.totals["sent"] == 5


def test_failure_pause_delays_the_rest_of_the_pass():
    units = make_units(rows=1, width=3)
    transport = FakeTransport(fail=[units[0].addresses[0]], outcome=ProbeOutcome.error("queue full"))
    scheduler = DispatchScheduler(units, transport, fast_options(repeat=1, failure_pause_s=0.2))

    started = time.monotonic()
    scheduler.run()

    assert time.monotonic() - started >= 0.2
    assert transport.addresses() == list(units[0].addresses)


def test_stop_interrupts_stagger_wait(fake_transport):
    units = [WorkUnit(index=0, row=1000, addresses=(IPv6Address("2001:610:1908:a000::1"),))]
    scheduler = DispatchScheduler(units, fake_transport, fast_options(stagger_ms=60_000))
    scheduler.start()

    assert scheduler.workers[0].stagger_s == 60_000.0
    assert scheduler.stop(timeout=2.0)
    assert fake_transport.calls == []
    assert scheduler.workers[0].passes == 0


def test_stagger_delays_later_rows(fake_transport):
    units = make_units(rows=2, width=1)
    units = [units[0], WorkUnit(index=1, row=20, addresses=units[1].addresses)]
    first_seen = {}
    lock = threading.Lock()

    class TimingTransport(FakeTransport):
        def send_probe(self, address):
            with lock:
                first_seen.setdefault(address, time.monotonic())
            return super().send_probe(address)

    transport = TimingTransport()
    scheduler = DispatchScheduler(units, transport, fast_options(repeat=1, stagger_ms=10.0))
    scheduler.run()

    # row 20 waits 20 * 10ms before its first probe
    assert first_seen[units[1].addresses[0]] - first_seen[units[0].addresses[0]] >= 0.15
    assert scheduler.workers[1].stagger_s == 0.2


def test_pixel_granularity_stagger(fake_transport):
    units = [WorkUnit(index=i, row=0, addresses=(encode(i, 0, 0, 0, 0, 255),), column=i) for i in range(8)]
    options = fast_options(repeat=1, stagger_ms=1.0, granularity=PixelGranularity())
    scheduler = DispatchScheduler(units, fake_transport, options)

    scheduler.run()

    assert [w.stagger_s for w in scheduler.workers] == [0.0] * 4 + [0.001] * 4
    assert Counter(fake_transport.addresses()) == Counter(a for u in units for a in u.addresses)


def test_tracker_counts_passes_and_outcomes():
    units = make_units(rows=2, width=2)
    transport = FakeTransport(fail=[units[0].addresses[0]])
    tracker = ProbeTracker()
    DispatchScheduler(units, transport, fast_options(repeat=2), tracker).run()

    metrics = tracker.get_metrics()
    assert metrics["passes"] == 4
    assert metrics["attempts"] == 8
    assert metrics["timed_out"] == 2
    assert metrics["worst_units"] == [("row 0", 2)]
    assert tracker.get_metrics()["attempts"] == 0
    assert tracker.totals["passes"] == 4


def test_start_twice_is_an_error(fake_transport):
    scheduler = DispatchScheduler(make_units(rows=1), fake_transport, fast_options(repeat=1))
    scheduler.run()

    with pytest.raises(RuntimeError, match="already started"):
        scheduler.start()


def test_pixel_workers_are_named_by_row_and_column(fake_transport):
    units = [WorkUnit(index=i, row=2, addresses=(encode(5 + i, 2, 0, 0, 0, 255),), column=5 + i) for i in range(2)]
    options = fast_options(repeat=1, granularity=PixelGranularity())

    DispatchScheduler(units, fake_transport, options).run()

    assert {name for name, _ in fake_transport.calls} == {"pingas-px-2-5", "pingas-px-2-6"}


def test_too_many_workers_is_logged(fake_transport, caplog):
    scheduler = DispatchScheduler(make_units(rows=2), fake_transport, fast_options(repeat=1, max_workers_warn=1))

    with caplog.at_level(logging.WARNING, logger="dispatch"):
        scheduler.run()

    assert "starting 2 worker threads" in caplog.text


def test_worker_count_at_limit_is_quiet(fake_transport, caplog):
    scheduler = DispatchScheduler(make_units(rows=2), fake_transport, fast_options(repeat=1, max_workers_warn=2))

    with caplog.at_level(logging.WARNING, logger="dispatch"):
        scheduler.run()

    assert "worker threads" not in caplog.text


def test_metrics_are_logged_periodically(fake_transport, caplog):
    units = make_units(rows=1, width=1)
    options = fast_options(interval_s=0.01, repeat=150, metrics_interval_s=0.5)

    with caplog.at_level(logging.INFO, logger="metrics"):
        DispatchScheduler(units, fake_transport, options).run()

    lines = [r.getMessage() for r in caplog.records if r.name == "metrics"]
    assert lines
    assert lines[0].startswith("probes=")
    assert "timeouts=0 errors=0" in lines[0]


def test_no_metrics_thread_when_disabled(fake_transport, caplog):
    scheduler = DispatchScheduler(make_units(rows=1), fake_transport, fast_options(repeat=1))

    with caplog.at_level(logging.INFO, logger="metrics"):
        scheduler.run()

    assert scheduler._reporter is None
    assert not [r for r in caplog.records if r.name == "metrics"]


def test_format_metrics_names_worst_units():
    tracker = ProbeTracker()
    tracker.record_probe(ProbeOutcome.sent(), "row 0")
    tracker.record_probe(ProbeOutcome.timed_out(), "row 3")
    tracker.record_probe(ProbeOutcome.error("queue full"), "row 3")
    tracker.record_probe(ProbeOutcome.error("queue full"), "row 1")
    tracker.record_pass()

    line = tracker.format_metrics(tracker.get_metrics())

    assert line.startswith("probes=4 rate=")
    assert "sent=1 timeouts=1 errors=2 passes=1" in line
    assert line.endswith("worst=[row 3=2, row 1=1]")
