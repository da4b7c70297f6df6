# © Copyright 2025 Stuart Parmenter
# SPDX-License-Identifier: MIT

import threading
import time
from collections import Counter
from typing import Any

from ..output.protocol import ProbeOutcome, ProbeStatus


class ProbeTracker:
    """Thread-safe probe counters shared by all dispatch workers.

    Counters accumulate between calls to ``get_metrics``, which reports and
    resets them; ``totals`` never resets.
    """

    def __init__(self, log_interval_s: float = 5.0):
        self.log_interval_s = log_interval_s
        self.last_log = time.perf_counter()
        self._lock = threading.Lock()

        # Interval counters
        self.sent = 0
        self.timed_out = 0
        self.errors = 0
        self.passes = 0
        self.failures_by_unit: Counter[str] = Counter()

        # Run totals
        self.totals: Counter[str] = Counter()

    def record_probe(self, outcome: ProbeOutcome, unit_label: str = "") -> None:
        """Record the outcome of one probe attempt."""
        with self._lock:
            if outcome.status is ProbeStatus.SENT:
                self.sent += 1
            elif outcome.status is ProbeStatus.TIMED_OUT:
                self.timed_out += 1
                self.failures_by_unit[unit_label] += 1
            else:
                self.errors += 1
                self.failures_by_unit[unit_label] += 1
            self.totals[outcome.status.name.lower()] += 1

    def record_pass(self) -> None:
        """Record one completed pass over a work unit."""
        with self._lock:
            self.passes += 1
            self.totals["passes"] += 1

    def should_log(self) -> bool:
        """Check if it's time to log metrics."""
        return time.perf_counter() - self.last_log >= self.log_interval_s

    def get_metrics(self) -> dict[str, Any]:
        """Get the current interval's metrics and reset the interval counters."""
        with self._lock:
            now = time.perf_counter()
            elapsed = now - self.last_log
            attempts = self.sent + self.timed_out + self.errors

            metrics = {
                "elapsed_s": elapsed,
                "attempts": attempts,
                "sent": self.sent,
                "timed_out": self.timed_out,
                "errors": self.errors,
                "passes": self.passes,
                "probe_rate_hz": attempts / elapsed if elapsed > 0 else 0.0,
                "failure_ratio": (self.timed_out + self.errors) / attempts if attempts else 0.0,
                "worst_units": self.failures_by_unit.most_common(3),
            }

            self.sent = 0
            self.timed_out = 0
            self.errors = 0
            self.passes = 0
            self.failures_by_unit.clear()
            self.last_log = now

        return metrics

    def format_metrics(self, metrics: dict[str, Any]) -> str:
        """One-line summary of a metrics dict."""
        line = (
            f"probes={metrics['attempts']} rate={metrics['probe_rate_hz']:.0f}/s "
            f"sent={metrics['sent']} timeouts={metrics['timed_out']} errors={metrics['errors']} "
            f"passes={metrics['passes']}"
        )
        if metrics["worst_units"]:
            worst = ", ".join(f"{label or '?'}={n}" for label, n in metrics["worst_units"])
            line += f" worst=[{worst}]"
        return line
