# © Copyright 2025 Stuart Parmenter
# SPDX-License-Identifier: MIT

from collections.abc import Iterator
from dataclasses import dataclass, field
from ipaddress import IPv6Address

import numpy as np

from ..addressing import Pixel, encode


@dataclass(frozen=True)
class SampledPixel:
    """A visible pixel placed on the canvas."""

    x: int
    y: int
    address: IPv6Address


@dataclass(frozen=True)
class SampledRow:
    """Visible pixels of one image row, left to right."""

    row: int
    pixels: tuple[SampledPixel, ...] = field(default_factory=tuple)

    @property
    def addresses(self) -> tuple[IPv6Address, ...]:
        return tuple(p.address for p in self.pixels)


def _as_grid(grid) -> np.ndarray:
    arr = np.asarray(grid, dtype=np.uint8)
    if arr.ndim != 3 or arr.shape[2] != 4:
        raise ValueError(f"Expected an RGBA grid of shape (rows, columns, 4), got {arr.shape}")
    return arr


def iter_pixels(grid) -> Iterator[Pixel]:
    """Yield every pixel of an RGBA grid in row-major order (local coordinates)."""
    arr = _as_grid(grid)
    for y in range(arr.shape[0]):
        for x in range(arr.shape[1]):
            r, g, b, a = (int(c) for c in arr[y, x])
            yield Pixel(x, y, r, g, b, a)


def count_visible(grid) -> int:
    """Number of pixels with a non-zero alpha channel."""
    return int(np.count_nonzero(_as_grid(grid)[:, :, 3]))


def sample(grid, origin_x: int, origin_y: int) -> list[SampledRow]:
    """Encode every visible pixel of an RGBA grid at a canvas offset.

    Fully transparent pixels are skipped, and rows with nothing left
    are dropped.
    """
    arr = _as_grid(grid)
    rows: list[SampledRow] = []

    for y in range(arr.shape[0]):
        line = arr[y]
        visible = np.flatnonzero(line[:, 3])
        if visible.size == 0:
            continue

        canvas_y = origin_y + y
        pixels = []
        for x in visible.tolist():
            r, g, b, a = line[x].tolist()
            canvas_x = origin_x + x
            pixels.append(SampledPixel(canvas_x, canvas_y, encode(canvas_x, canvas_y, r, g, b, a)))

        rows.append(SampledRow(y, tuple(pixels)))

    return rows
