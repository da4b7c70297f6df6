# © Copyright 2025 Stuart Parmenter
# SPDX-License-Identifier: MIT

"""Pixel <-> IPv6 address packing.

The receiving service listens on a single /64 and decodes every probed address
in it as one pixel. The low 64 bits carry four big-endian 16-bit groups:

    2001:0610:1908:a000 : x : y : (b << 8) | g : (r << 8) | a

The channel placement inside the last two groups is the wire contract and must
match the receiver exactly.
"""

from ipaddress import IPv6Address, IPv6Network
from typing import NamedTuple


PREFIX = 0x2001_0610_1908_A000
NETWORK = IPv6Network((PREFIX << 64, 64))


class Pixel(NamedTuple):
    """One pixel: position plus RGBA color."""

    x: int
    y: int
    r: int
    g: int
    b: int
    a: int


def encode(x: int, y: int, r: int, g: int, b: int, a: int) -> IPv6Address:
    """Pack a canvas position and RGBA color into a drawing address.

    No range checks are done; every input is truncated to its field width.
    """
    x &= 0xFFFF
    y &= 0xFFFF
    bg = ((b & 0xFF) << 8) | (g & 0xFF)
    ra = ((r & 0xFF) << 8) | (a & 0xFF)
    return IPv6Address((PREFIX << 64) | (x << 48) | (y << 32) | (bg << 16) | ra)


def decode(address: IPv6Address | str) -> Pixel:
    """Unpack a drawing address back into a Pixel.

    Raises:
        ValueError: If the address is not inside the drawing network.
    """
    address = IPv6Address(address)
    if address not in NETWORK:
        raise ValueError(f"{address} is outside {NETWORK}")

    low = int(address) & 0xFFFF_FFFF_FFFF_FFFF
    x = (low >> 48) & 0xFFFF
    y = (low >> 32) & 0xFFFF
    bg = (low >> 16) & 0xFFFF
    ra = low & 0xFFFF
    return Pixel(x, y, ra >> 8, bg & 0xFF, bg >> 8, ra & 0xFF)


def format_address(address: IPv6Address) -> str:
    """Render an address with all groups zero-padded (no :: compression)."""
    return address.exploded
