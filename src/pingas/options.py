# © Copyright 2025 Stuart Parmenter
# SPDX-License-Identifier: MIT

import logging
from dataclasses import dataclass, field
from typing import Any

from .config import Config
from .dispatch import DispatchOptions, get_granularity
from .utils.fields import DispatchFields, NetworkFields, PlacementFields, RunFields


@dataclass
class RunOptions:
    """Strongly typed options for one drawing run."""

    # Placement (no defaults)
    image: str
    x: int = field(metadata={"field_def": PlacementFields.X})
    y: int = field(metadata={"field_def": PlacementFields.Y})
    width: int = field(metadata={"field_def": PlacementFields.WIDTH})
    height: int | None = field(metadata={"field_def": PlacementFields.HEIGHT})
    filter: str = field(metadata={"field_def": PlacementFields.FILTER})

    # Dispatch
    rate: float = field(metadata={"field_def": DispatchFields.RATE})
    repeat: int | None = field(metadata={"field_def": DispatchFields.REPEAT})
    granularity: str = field(metadata={"field_def": DispatchFields.GRANULARITY})
    stagger: float = field(metadata={"field_def": DispatchFields.STAGGER})
    failure_pause: float = field(metadata={"field_def": DispatchFields.FAILURE_PAUSE})

    # Network
    transport: str = field(metadata={"field_def": NetworkFields.TRANSPORT})
    timeout: float | None = field(metadata={"field_def": NetworkFields.TIMEOUT})

    @classmethod
    def from_params(cls, params: dict[str, Any], config: Config) -> "RunOptions":
        """Build options from CLI parameters, filling missing values from config.

        Raises:
            ValueError: If any value is out of range or unknown.
        """
        resolved = {k: v for k, v in params.items() if v is not None}
        for name, field_def in RunFields.ALL_FIELDS.items():
            if name not in resolved:
                resolved[name] = field_def.get_default(config)

        RunFields.validate_fields(resolved, config)

        return cls(
            image=str(resolved["image"]),
            x=int(resolved["x"]),
            y=int(resolved["y"]),
            width=int(resolved["width"]),
            height=None if resolved["height"] is None else int(resolved["height"]),
            filter=str(resolved["filter"]).lower(),
            rate=float(resolved["rate"]),
            repeat=None if resolved["repeat"] is None else int(resolved["repeat"]),
            granularity=str(resolved["granularity"]),
            stagger=float(resolved["stagger"]),
            failure_pause=float(resolved["failure_pause"]),
            transport=str(resolved["transport"]),
            timeout=None if resolved["timeout"] is None else float(resolved["timeout"]),
        )

    @property
    def timeout_s(self) -> float:
        """Per-probe send timeout; defaults to the pass interval like the original pinger."""
        ms = self.rate if self.timeout is None else self.timeout
        return ms / 1000.0

    def dispatch_options(self, config: Config) -> DispatchOptions:
        """Resolve the scheduling strategy for this run."""
        metrics_ms = config.get("log.rate_ms") if config.get("log.metrics") else None
        return DispatchOptions(
            interval_s=self.rate / 1000.0,
            repeat=self.repeat,
            stagger_ms=self.stagger,
            failure_pause_s=self.failure_pause / 1000.0,
            granularity=get_granularity(self.granularity),
            metrics_interval_s=metrics_ms / 1000.0 if metrics_ms else None,
            max_workers_warn=int(config.get("dispatch.max_workers_warn")),
        )

    def log_info(self) -> None:
        """Log run configuration info."""
        logging.getLogger("main").debug(
            f"run image={self.image} at=({self.x}, {self.y}) size={self.width}x{self.height or 'auto'} "
            f"filter={self.filter} rate={self.rate}ms repeat={self.repeat} granularity={self.granularity} "
            f"stagger={self.stagger}ms failure_pause={self.failure_pause}ms transport={self.transport} "
            f"timeout={self.timeout_s * 1000:.0f}ms"
        )
