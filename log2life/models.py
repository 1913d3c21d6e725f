#!/usr/bin/env python3
"""
Data Models for log2life

This module contains the data classes, enums and configuration used by the
line parser, pattern encoder, playback scheduler and transport.
"""

import yaml
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional


# =============================================================================
# Constants
# =============================================================================

# Defaults for the Life world and the remote Life server
DEFAULT_SPEED = 1.0
DEFAULT_COLUMNS = 100
DEFAULT_ROWS = 100
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 3051

# HTTP request timeout (seconds)
DEFAULT_TIMEOUT_SECONDS = 5.0

# Literal input path meaning "read standard input"
STDIN_PATH = "-"

# Maximum handlers per event type (bounded collections)
MAX_EVENT_HANDLERS = 32


# =============================================================================
# Enums
# =============================================================================

class ErrorKind(Enum):
    """Failure categories reported by the playback pipeline."""
    MISSING_ADDRESS = "missing_address"
    TIMESTAMP_PARSE = "timestamp_parse"
    TRANSPORT = "transport"
    STREAM_READ = "stream_read"


# =============================================================================
# Data Classes
# =============================================================================

@dataclass(frozen=True)
class Coordinate:
    """Cell offset in the Life world, (0, 0) is the middle cell."""
    x: int = 0
    y: int = 0


@dataclass
class ParsedRecord:
    """Fields extracted from one access-log line."""
    address: str
    timestamp: Optional[datetime]
    payload: str


@dataclass
class ErrorReport:
    """A recovered (or fatal) failure, tagged with its kind."""
    kind: ErrorKind
    message: str
    line_number: int = 0

    def __str__(self) -> str:
        if self.line_number:
            return f"line {self.line_number}: {self.message}"
        return self.message


@dataclass
class ParseResult:
    """Outcome of parsing one line: either a record or an error."""
    record: Optional[ParsedRecord] = None
    error: Optional[ErrorReport] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.record is not None


@dataclass
class SendResult:
    """Outcome of delivering one pattern to the Life server."""
    ok: bool
    status_code: int = 0
    error: Optional[ErrorReport] = None


@dataclass
class PlaybackStats:
    """Counters for a single playback run."""
    lines_read: int = 0
    records_parsed: int = 0
    parse_errors: int = 0
    patterns_sent: int = 0
    send_errors: int = 0
    total_delay: float = 0.0  # Seconds slept for pacing

    def to_dict(self) -> Dict:
        return {
            "lines_read": self.lines_read,
            "records_parsed": self.records_parsed,
            "parse_errors": self.parse_errors,
            "patterns_sent": self.patterns_sent,
            "send_errors": self.send_errors,
            "total_delay": round(self.total_delay, 6),
        }


@dataclass
class PlaybackConfig:
    """Configuration for a playback run."""
    # Input
    logfile: str = ""
    parse_timestamps: bool = True

    # Playback speed factor, 1.0 == realtime, 0 == no delay
    speed: float = DEFAULT_SPEED

    # Life world size in cells
    columns: int = DEFAULT_COLUMNS
    rows: int = DEFAULT_ROWS

    # Life server
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    timeout: float = DEFAULT_TIMEOUT_SECONDS

    # Console output
    echo_patterns: bool = True
    dry_run: bool = False

    # Logging
    log_level: str = "INFO"
    log_file: str = ""

    @property
    def reads_stdin(self) -> bool:
        return self.logfile == STDIN_PATH

    @property
    def server_url(self) -> str:
        return f"http://{self.host}:{self.port}"

    def validate(self) -> List[str]:
        """Return a list of configuration problems (empty when valid)."""
        problems = []
        if self.columns <= 0:
            problems.append(f"columns must be positive, got {self.columns}")
        if self.rows <= 0:
            problems.append(f"rows must be positive, got {self.rows}")
        if not 0 < self.port <= 65535:
            problems.append(f"port must be in 1..65535, got {self.port}")
        if self.speed < 0:
            problems.append(f"speed must not be negative, got {self.speed}")
        if self.timeout <= 0:
            problems.append(f"timeout must be positive, got {self.timeout}")
        return problems

    @classmethod
    def from_yaml(cls, path: str) -> "PlaybackConfig":
        """Load configuration from YAML file."""
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} must contain a mapping")

        # An empty section ("world:" alone) loads as None
        playback = data.get("playback") or {}
        world = data.get("world") or {}
        server = data.get("server") or {}
        logging_data = data.get("logging") or {}

        return cls(
            logfile=playback.get("logfile", ""),
            parse_timestamps=playback.get("parse_timestamps", True),
            speed=float(playback.get("speed", DEFAULT_SPEED)),
            columns=int(world.get("columns", DEFAULT_COLUMNS)),
            rows=int(world.get("rows", DEFAULT_ROWS)),
            host=server.get("host", DEFAULT_HOST),
            port=int(server.get("port", DEFAULT_PORT)),
            timeout=float(server.get("timeout", DEFAULT_TIMEOUT_SECONDS)),
            echo_patterns=playback.get("echo", True),
            dry_run=playback.get("dry_run", False),
            log_level=logging_data.get("level", "INFO"),
            log_file=logging_data.get("file", "") or "",
        )

    def to_dict(self) -> Dict:
        """Convert config to dictionary."""
        return {
            "playback": {
                "logfile": self.logfile,
                "parse_timestamps": self.parse_timestamps,
                "speed": self.speed,
                "echo": self.echo_patterns,
                "dry_run": self.dry_run,
            },
            "world": {
                "columns": self.columns,
                "rows": self.rows,
            },
            "server": {
                "host": self.host,
                "port": self.port,
                "timeout": self.timeout,
            },
            "logging": {
                "level": self.log_level,
                "file": self.log_file,
            },
        }
