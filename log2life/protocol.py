#!/usr/bin/env python3
"""
Life 1.05 Pattern Protocol

This module turns a log payload into an 8x8 Life pattern and serializes it
in the Life 1.05 text format accepted by the Life server.

Fingerprint:
    8 accumulator bytes, all zero to start. Every payload byte except the
    double quote is XORed into the accumulator at the current index, then
    the index advances modulo 8. Quotes neither contribute bits nor advance
    the index.

Pattern Format (Life 1.05):
    #Life 1.05
    #D log2life ouput
    #N
    #P <x> <y>
    ........     <- one line per fingerprint byte, bit 7 first
    ...          '*' = alive (bit set), '.' = dead

The document is sent as UTF-8 text with lines joined by '\\n'.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Union

from .models import Coordinate


# =============================================================================
# Constants
# =============================================================================

# Fingerprint size in bytes, also the pattern width and height in cells
FINGERPRINT_SIZE = 8

# Header lines
LIFE_HEADER = "#Life 1.05"
DESCRIPTION_LINE = "#D log2life ouput"
NAME_LINE = "#N"
POSITION_PREFIX = "#P"
HEADER_LINES = 4

ALIVE = "*"
DEAD = "."

QUOTE = ord('"')

# Content type of the pattern document on the wire
CONTENT_TYPE = "text/plain"


# =============================================================================
# Fingerprint
# =============================================================================

def fold_payload(payload: Union[str, bytes]) -> bytes:
    """XOR-fold a payload into an 8 byte fingerprint."""
    if isinstance(payload, str):
        # surrogateescape restores bytes that were not valid UTF-8 on input
        payload = payload.encode("utf-8", "surrogateescape")

    data = bytearray(FINGERPRINT_SIZE)
    idx = 0
    for b in payload:
        if b == QUOTE:
            continue
        data[idx] ^= b
        idx = (idx + 1) % FINGERPRINT_SIZE

    return bytes(data)


def byte_to_row(value: int) -> str:
    """Render one byte as 8 cells, most significant bit first."""
    return "".join(ALIVE if value & (0x80 >> bit) else DEAD for bit in range(8))


def row_to_byte(row: str) -> int:
    """Inverse of byte_to_row."""
    value = 0
    for cell in row:
        value = (value << 1) | (1 if cell == ALIVE else 0)
    return value


# =============================================================================
# Pattern
# =============================================================================

@dataclass
class Pattern:
    """An 8x8 Life pattern positioned at a world coordinate."""
    position: Coordinate = field(default_factory=Coordinate)
    fingerprint: bytes = bytes(FINGERPRINT_SIZE)

    def __post_init__(self):
        if len(self.fingerprint) != FINGERPRINT_SIZE:
            raise ValueError(
                f"Fingerprint must be {FINGERPRINT_SIZE} bytes, got {len(self.fingerprint)}"
            )

    @property
    def rows(self) -> List[str]:
        return [byte_to_row(b) for b in self.fingerprint]

    def lines(self) -> List[str]:
        """Header lines followed by the 8 cell rows."""
        return [
            LIFE_HEADER,
            DESCRIPTION_LINE,
            NAME_LINE,
            f"{POSITION_PREFIX} {self.position.x} {self.position.y}",
        ] + self.rows

    def encode(self) -> str:
        """Serialize to a Life 1.05 document."""
        return "\n".join(self.lines())

    @classmethod
    def decode(cls, text: str) -> Optional["Pattern"]:
        """Parse a Life 1.05 document written by encode()."""
        lines = text.splitlines()
        if len(lines) != HEADER_LINES + FINGERPRINT_SIZE:
            return None
        if lines[0] != LIFE_HEADER:
            return None

        position = None
        for line in lines[1:HEADER_LINES]:
            if line.startswith(POSITION_PREFIX + " "):
                parts = line.split()
                if len(parts) != 3:
                    return None
                try:
                    position = Coordinate(x=int(parts[1]), y=int(parts[2]))
                except ValueError:
                    return None
        if position is None:
            return None

        rows = lines[HEADER_LINES:]
        for row in rows:
            if len(row) != FINGERPRINT_SIZE or set(row) - {ALIVE, DEAD}:
                return None

        return cls(position=position, fingerprint=bytes(row_to_byte(r) for r in rows))


# =============================================================================
# Helper Functions
# =============================================================================

def make_life105(position: Coordinate, fingerprint: bytes) -> List[str]:
    """Render a fingerprint as the lines of a Life 1.05 pattern."""
    return Pattern(position=position, fingerprint=fingerprint).lines()


def payload_to_pattern(position: Coordinate, payload: Union[str, bytes]) -> Pattern:
    """Fold a payload and place the resulting pattern at position."""
    return Pattern(position=position, fingerprint=fold_payload(payload))
