"""
log2life - Access Log Playback to a Life Server

Turns each web server access log line into an 8x8 Game of Life pattern and
posts it to a Life server, replaying the log at its original pace.

Pipeline:
    log line
        │
        ├── parser     ──► client address, timestamp, request
        ├── address    ──► (x, y) cell from the IPv4 address, (0, 0) = center
        ├── protocol   ──► request XOR-folded into 8 bytes ──► Life 1.05 text
        ├── scheduler  ──► sleep for the timestamp gap / speed
        ▼
    transport (HTTP POST, text/plain) ──► Life server

Usage:
    from log2life import PlaybackController, PlaybackConfig

    config = PlaybackConfig(logfile="access.log", speed=10.0)
    controller = PlaybackController(config)
    controller.on_pattern(lambda record, xy, pattern: print(record.address, xy))
    controller.run()
"""

from .address import address_to_xy, map_to_coordinate
from .controller import PlaybackController
from .models import (
    Coordinate,
    ErrorKind,
    ErrorReport,
    ParsedRecord,
    ParseResult,
    PlaybackConfig,
    PlaybackStats,
    SendResult,
)
from .parser import LineParser, parse_line
from .protocol import Pattern, fold_payload, make_life105, payload_to_pattern
from .scheduler import PlaybackScheduler, next_delay
from .transport import PatternSender, send_pattern

__version__ = "0.1.0"
__all__ = [
    # Controller
    "PlaybackController",
    "PlaybackConfig",
    "PlaybackStats",
    # Data model
    "Coordinate",
    "ParsedRecord",
    "ParseResult",
    "SendResult",
    "ErrorKind",
    "ErrorReport",
    # Components
    "address_to_xy",
    "map_to_coordinate",
    "LineParser",
    "parse_line",
    "Pattern",
    "fold_payload",
    "make_life105",
    "payload_to_pattern",
    "PlaybackScheduler",
    "next_delay",
    "PatternSender",
    "send_pattern",
]
