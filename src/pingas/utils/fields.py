# © Copyright 2025 Stuart Parmenter
# SPDX-License-Identifier: MIT

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, ClassVar

from ..media.images import RESAMPLE_METHODS


@dataclass
class FieldDef:
    """Definition of a run option with type, validation, and defaults."""

    name: str
    field_type: type
    validator: Callable[..., bool] | None = None
    default_factory: Callable[..., Any] | None = None
    description: str = ""
    uses_config: bool = False

    def validate(self, value: Any, config=None) -> bool:
        """Validate a field value; validators flagged uses_config also receive the config."""
        if self.validator is None:
            return True
        try:
            if self.uses_config:
                return bool(self.validator(value, config))
            return bool(self.validator(value))
        except (ValueError, TypeError, KeyError):
            return False

    def get_default(self, config=None) -> Any:
        """Get default value for this field."""
        if self.default_factory:
            if config is not None:
                return self.default_factory(config)
            return self.default_factory()
        return None


def _granularity_names() -> tuple[str, ...]:
    from ..dispatch.units import GRANULARITIES

    return tuple(GRANULARITIES)


def _transport_names() -> list[str]:
    from ..output import ProbeTransportFactory

    return ProbeTransportFactory.list_transports()


class PlacementFields:
    """Where and how large the image lands on the canvas."""

    X = FieldDef(
        "x",
        int,
        lambda v, config: 0 <= int(v) <= config.get("canvas.width"),
        description="Canvas x coordinate",
        uses_config=True,
    )
    Y = FieldDef(
        "y",
        int,
        lambda v, config: 0 <= int(v) <= config.get("canvas.height"),
        description="Canvas y coordinate",
        uses_config=True,
    )
    WIDTH = FieldDef(
        "width",
        int,
        lambda v, config: 1 <= int(v) <= config.get("canvas.width"),
        description="Width of the scaled bitmap",
        uses_config=True,
    )
    HEIGHT = FieldDef(
        "height",
        int,
        lambda v, config: v is None or 1 <= int(v) <= config.get("canvas.height"),
        description="Height of the scaled bitmap",
        uses_config=True,
    )
    FILTER = FieldDef(
        "filter",
        str,
        lambda v: str(v).lower() in RESAMPLE_METHODS,
        default_factory=lambda config: config.get("image.method"),
        description="Resampling filter",
    )


class DispatchFields:
    """Scheduling of the per-unit workers."""

    RATE = FieldDef(
        "rate",
        float,
        lambda v: float(v) >= 0,
        default_factory=lambda config: config.get("dispatch.rate_ms"),
        description="Delay in milliseconds between passes",
    )
    REPEAT = FieldDef(
        "repeat",
        int,
        lambda v: v is None or int(v) >= 1,
        default_factory=lambda config: config.get("dispatch.repeat"),
        description="Number of passes per worker",
    )
    GRANULARITY = FieldDef(
        "granularity",
        str,
        lambda v: str(v) in _granularity_names(),
        default_factory=lambda config: config.get("dispatch.granularity"),
        description="Work unit granularity",
    )
    STAGGER = FieldDef(
        "stagger",
        float,
        lambda v: float(v) >= 0,
        default_factory=lambda config: config.get("dispatch.stagger_ms"),
        description="Start delay in milliseconds per stagger slot",
    )
    FAILURE_PAUSE = FieldDef(
        "failure_pause",
        float,
        lambda v: float(v) >= 0,
        default_factory=lambda config: config.get("dispatch.failure_pause_ms"),
        description="Pause in milliseconds after a failed probe",
    )


class NetworkFields:
    """Probe transport selection and tuning."""

    TRANSPORT = FieldDef(
        "transport",
        str,
        lambda v: str(v) in _transport_names(),
        default_factory=lambda config: config.get("net.transport"),
        description="Probe transport",
    )
    TIMEOUT = FieldDef(
        "timeout",
        float,
        lambda v: v is None or float(v) >= 0,
        default_factory=lambda config: config.get("net.timeout_ms"),
        description="Per-probe send timeout in milliseconds",
    )


class RunFields:
    """Registry of every run option."""

    ALL_FIELDS: ClassVar[dict[str, FieldDef]] = {}

    @classmethod
    def _populate_registry(cls) -> None:
        for domain_class in (PlacementFields, DispatchFields, NetworkFields):
            for attr_name in dir(domain_class):
                attr = getattr(domain_class, attr_name)
                if isinstance(attr, FieldDef):
                    cls.ALL_FIELDS[attr.name] = attr

    @classmethod
    def validate_fields(cls, params: dict[str, Any], config) -> None:
        """Validate every known field in params.

        Raises:
            ValueError: Naming the first invalid field.
        """
        for field_name, value in params.items():
            field_def = cls.ALL_FIELDS.get(field_name)
            if field_def is not None and not field_def.validate(value, config):
                raise ValueError(f"Invalid {field_def.description.lower()} ({field_name}): {value}")

    @classmethod
    def get_field_info(cls, field_name: str) -> FieldDef | None:
        """Get field definition by name."""
        return cls.ALL_FIELDS.get(field_name)


RunFields._populate_registry()
