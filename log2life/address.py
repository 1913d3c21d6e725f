#!/usr/bin/env python3
"""
Client Address to Life World Coordinate Mapping

Only the IPv4 part of an address is used: the four low-order bytes of the
packed address, which is the whole address for IPv4 and the mapped tail for
IPv6 (e.g. ``::ffff:10.0.0.1``).

Mapping:
    u1 = byte0 << 8 | byte1   ->  x
    u2 = byte2 << 8 | byte3   ->  y

Each 16-bit value is scaled to the world size and shifted so that (0, 0)
is the middle cell. Addresses that do not parse map to (0, 0).
"""

import ipaddress
from typing import Tuple

from .models import Coordinate


# Largest value of a 16-bit half of the address
HALF_MAX = 0xFFFF


def _scale(value: int, size: int) -> int:
    """Scale a 16-bit value into [-size/2, size/2), truncating."""
    cell = int(value / HALF_MAX * size)
    # A half of 0xffff gives cell == size, one past the last cell; it is
    # the only value moved, to size - 1 (x = size/2 - 1 instead of size/2)
    cell = min(cell, max(size - 1, 0))
    return cell - int(size / 2)


def address_to_xy(addr: str, width: int, height: int) -> Tuple[int, int]:
    """Convert a textual IP address into an (x, y) cell offset."""
    try:
        ip = ipaddress.ip_address(addr.strip())
    except ValueError:
        return 0, 0

    tail = ip.packed[-4:]
    u1 = tail[0] << 8 | tail[1]
    u2 = tail[2] << 8 | tail[3]

    return _scale(u1, width), _scale(u2, height)


def map_to_coordinate(addr: str, width: int, height: int) -> Coordinate:
    """Map a client address to a Coordinate in a width x height world."""
    x, y = address_to_xy(addr, width, height)
    return Coordinate(x=x, y=y)
