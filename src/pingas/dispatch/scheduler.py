# © Copyright 2025 Stuart Parmenter
# SPDX-License-Identifier: MIT

import logging
import threading
import time
from collections.abc import Iterable
from dataclasses import dataclass, field
from ipaddress import IPv6Address

from ..addressing import format_address
from ..output.protocol import ProbeOutcome, ProbeTransport
from ..utils.metrics import ProbeTracker
from .units import Granularity, RowGranularity, WorkUnit


@dataclass
class DispatchOptions:
    """Scheduling parameters shared by every worker of a run."""

    interval_s: float = 0.05
    repeat: int | None = None  # None = loop until stopped
    stagger_ms: float = 1.0
    failure_pause_s: float = 0.0
    granularity: Granularity = field(default_factory=RowGranularity)
    metrics_interval_s: float | None = None  # None disables periodic metrics logging
    max_workers_warn: int = 4096


@dataclass
class WorkerState:
    """Scheduling state of one worker thread."""

    unit: WorkUnit
    interval_s: float
    stagger_s: float
    repeat: int | None
    passes: int = 0
    failures: int = 0
    done: bool = False
    thread: threading.Thread | None = field(default=None, repr=False)


class DispatchScheduler:
    """Runs one thread per work unit, each re-probing its addresses on a fixed cadence.

    A worker waits out its stagger delay, then alternates between a pass over
    its addresses and a rest of ``interval_s``. Workers share nothing but the
    transport, the tracker and the stop event.
    """

    def __init__(
        self,
        units: Iterable[WorkUnit],
        transport: ProbeTransport,
        options: DispatchOptions | None = None,
        tracker: ProbeTracker | None = None,
    ):
        self.units = list(units)
        self.transport = transport
        self.options = options or DispatchOptions()
        self.tracker = tracker or ProbeTracker()
        self.workers: list[WorkerState] = []

        self._stop_event = threading.Event()
        self._reporter_stop = threading.Event()
        self._reporter: threading.Thread | None = None
        self._started = False

    @property
    def is_done(self) -> bool:
        """True once every started worker has left its loop."""
        return self._started and all(w.done for w in self.workers)

    def start(self) -> int:
        """Spawn all workers. Returns the number of workers started."""
        if self._started:
            raise RuntimeError("scheduler already started")
        self._started = True

        logger = logging.getLogger("dispatch")
        opts = self.options

        for unit in self.units:
            state = WorkerState(
                unit=unit,
                interval_s=opts.interval_s,
                stagger_s=opts.granularity.stagger_s(unit, opts.stagger_ms),
                repeat=opts.repeat,
            )
            name = f"pingas-row-{unit.row}" if unit.column is None else f"pingas-px-{unit.row}-{unit.column}"
            state.thread = threading.Thread(target=self._worker_loop, args=(state,), name=name, daemon=True)
            self.workers.append(state)

        if len(self.workers) > opts.max_workers_warn:
            logger.warning(
                f"starting {len(self.workers)} worker threads; consider row granularity or a smaller image"
            )

        for state in self.workers:
            state.thread.start()  # type: ignore[union-attr]  # assigned above

        if self.workers and opts.metrics_interval_s:
            self._reporter = threading.Thread(target=self._report_loop, name="pingas-metrics", daemon=True)
            self._reporter.start()

        logger.info(
            f"started {len(self.workers)} workers ({opts.granularity.name}) "
            f"interval={opts.interval_s * 1000:.0f}ms repeat={opts.repeat or 'forever'}"
        )
        return len(self.workers)

    def join(self, timeout: float | None = None) -> bool:
        """Wait for workers to finish. Returns True if all of them are done."""
        deadline = None if timeout is None else time.monotonic() + timeout
        for state in self.workers:
            if state.thread is None:
                continue
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            state.thread.join(remaining)
            if state.thread.is_alive():
                return False
        return True

    def stop(self, timeout: float | None = None) -> bool:
        """Signal every worker to finish and wait for them."""
        self._stop_event.set()
        done = self.join(timeout)
        self._stop_reporter()
        return done

    def run(self, poll_s: float = 0.5) -> None:
        """Start workers and block until all are done.

        Unbounded workers never finish on their own; KeyboardInterrupt stops
        them and is re-raised.
        """
        self.start()
        try:
            while not self.join(timeout=poll_s):
                pass
        except KeyboardInterrupt:
            self.stop(timeout=2.0)
            raise
        finally:
            self._stop_reporter()

        totals = self.tracker.totals
        logging.getLogger("dispatch").info(
            f"all workers done: passes={totals['passes']} sent={totals['sent']} "
            f"timeouts={totals['timed_out']} errors={totals['error']}"
        )

    def _send(self, address: IPv6Address) -> ProbeOutcome:
        try:
            return self.transport.send_probe(address)
        except Exception as e:
            return ProbeOutcome.error(f"transport raised {e!r}")

    def _worker_loop(self, state: WorkerState) -> None:
        logger = logging.getLogger("dispatch")
        unit = state.unit
        stop = self._stop_event
        pause_s = self.options.failure_pause_s

        try:
            if state.stagger_s > 0 and stop.wait(state.stagger_s):
                return
            logger.debug(f"{unit.label}: sending {len(unit)} addresses after {state.stagger_s * 1000:.1f}ms")

            while not stop.is_set():
                for address in unit.addresses:
                    outcome = self._send(address)
                    self.tracker.record_probe(outcome, unit.label)
                    if outcome.ok:
                        continue

                    # Some probes fail when the local queue is congested; keep going
                    state.failures += 1
                    logger.warning(f"{unit.label} :: {format_address(address)} {outcome}")
                    if pause_s > 0 and stop.wait(pause_s):
                        return

                state.passes += 1
                self.tracker.record_pass()
                if state.repeat is not None and state.passes >= state.repeat:
                    break
                if stop.wait(state.interval_s):
                    break
        finally:
            state.done = True
            logger.debug(f"{unit.label}: done after {state.passes} passes, {state.failures} failures")

    def _report_loop(self) -> None:
        logger = logging.getLogger("metrics")
        interval = self.options.metrics_interval_s or 1.0
        self.tracker.log_interval_s = interval

        while not self._reporter_stop.wait(min(1.0, interval)):
            if self.tracker.should_log():
                logger.info(self.tracker.format_metrics(self.tracker.get_metrics()))

    def _stop_reporter(self) -> None:
        self._reporter_stop.set()
        if self._reporter is not None:
            self._reporter.join(timeout=2.0)
