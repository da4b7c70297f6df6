# © Copyright 2025 Stuart Parmenter
# SPDX-License-Identifier: MIT

"""Utility modules for run option fields and metrics."""

from .fields import DispatchFields, FieldDef, NetworkFields, PlacementFields, RunFields
from .metrics import ProbeTracker


__all__ = [
    "DispatchFields",
    # Fields
    "FieldDef",
    "NetworkFields",
    "PlacementFields",
    # Metrics
    "ProbeTracker",
    "RunFields",
]
