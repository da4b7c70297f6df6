# © Copyright 2025 Stuart Parmenter
# SPDX-License-Identifier: MIT

"""Work units and the threaded dispatch scheduler."""

from .scheduler import DispatchOptions, DispatchScheduler, WorkerState
from .units import GRANULARITIES, Granularity, PixelGranularity, RowGranularity, WorkUnit, build, get_granularity


__all__ = [
    "GRANULARITIES",
    "DispatchOptions",
    "DispatchScheduler",
    "Granularity",
    "PixelGranularity",
    "RowGranularity",
    "WorkUnit",
    "WorkerState",
    "build",
    "get_granularity",
]
