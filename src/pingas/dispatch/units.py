# © Copyright 2025 Stuart Parmenter
# SPDX-License-Identifier: MIT

from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from ipaddress import IPv6Address

from ..media.sampler import SampledRow


@dataclass(frozen=True)
class WorkUnit:
    """Addresses owned by a single dispatch worker."""

    index: int
    row: int
    addresses: tuple[IPv6Address, ...]
    column: int | None = None  # canvas x, set for per-pixel units

    @property
    def label(self) -> str:
        if self.column is None:
            return f"row {self.row}"
        return f"row {self.row} x {self.column}"

    def __len__(self) -> int:
        return len(self.addresses)


class Granularity(ABC):
    """How sampled rows are split into work units and how their starts are spread."""

    name: str = ""

    @abstractmethod
    def split(self, row: SampledRow) -> Iterator[tuple[int | None, tuple[IPv6Address, ...]]]:
        """Yield (column, addresses) for each unit carved out of a row."""

    @abstractmethod
    def stagger_slot(self, unit: WorkUnit) -> int:
        """Start slot of a unit; the initial delay is slot * stagger interval."""

    def stagger_s(self, unit: WorkUnit, stagger_ms: float) -> float:
        return self.stagger_slot(unit) * stagger_ms / 1000.0


class RowGranularity(Granularity):
    """One unit per image row; worker count is bounded by the image height."""

    name = "row"

    def split(self, row):
        yield None, row.addresses

    def stagger_slot(self, unit):
        return unit.row


class PixelGranularity(Granularity):
    """One unit per visible pixel; every four units share a start slot."""

    name = "pixel"
    group = 4

    def split(self, row):
        for pixel in row.pixels:
            yield pixel.x, (pixel.address,)

    def stagger_slot(self, unit):
        return unit.index // self.group


GRANULARITIES: dict[str, Granularity] = {g.name: g for g in (RowGranularity(), PixelGranularity())}


def get_granularity(name: str | Granularity) -> Granularity:
    if isinstance(name, Granularity):
        return name
    try:
        return GRANULARITIES[name]
    except KeyError:
        raise ValueError(f"Unknown granularity: {name} (choose from {', '.join(GRANULARITIES)})") from None


def build(rows: Iterable[SampledRow], granularity: str | Granularity = "row") -> list[WorkUnit]:
    """Turn sampled rows into work units, top-to-bottom and left-to-right.

    Rows without addresses never produce a unit.
    """
    strategy = get_granularity(granularity)
    units: list[WorkUnit] = []

    for row in rows:
        for column, addresses in strategy.split(row):
            if not addresses:
                continue
            units.append(WorkUnit(len(units), row.row, tuple(addresses), column))

    return units
