#!/usr/bin/env python3
"""
log2life Playback Controller

Reads access log lines one at a time and, for each line:

    line ──► parse ──► (address, timestamp, payload)
                          │          │          │
                          ▼          │          ▼
                     coordinate      │     fingerprint
                          └──────────┼──────────┘
                                     ▼
                  wait for timestamp gap ──► echo ──► POST to Life server

Lines are handled strictly in input order. A malformed line or a failed
delivery is logged and skipped; only a failure of the input stream itself
ends the run early.
"""

import io
import logging
import sys
from datetime import timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional, TextIO

from .address import map_to_coordinate
from .models import (
    MAX_EVENT_HANDLERS,
    Coordinate,
    ErrorKind,
    ErrorReport,
    ParsedRecord,
    PlaybackConfig,
    PlaybackStats,
)
from .parser import LineParser
from .protocol import Pattern, payload_to_pattern
from .scheduler import PlaybackScheduler
from .transport import PatternSender


class PlaybackController:
    """
    Plays an access log back to a Life server as a stream of patterns.

    The controller owns the per-run state (last timestamp, line counter,
    statistics), so several controllers can run side by side.
    """

    def __init__(
        self,
        config: PlaybackConfig,
        sender: Optional[PatternSender] = None,
        scheduler: Optional[PlaybackScheduler] = None,
        output: Optional[TextIO] = None,
    ):
        """
        Initialize the controller.

        Args:
            config: Playback configuration.
            sender: Transport to use (defaults to an HTTP sender for config).
            scheduler: Pacing scheduler (defaults to one using config.speed).
            output: Where rendered patterns are echoed (defaults to stdout).
        """
        self.config = config
        self._setup_logging()

        self.logger = logging.getLogger("PlaybackController")
        self.running = False

        self.parser = LineParser(parse_timestamps=config.parse_timestamps)
        # Live input on stdin is forwarded as it arrives
        speed = 0.0 if config.reads_stdin else config.speed
        self.scheduler = scheduler or PlaybackScheduler(speed=speed, logger=self.logger)
        self.sender = sender or PatternSender(config.host, config.port, timeout=config.timeout)
        self.output = output
        self.stats = PlaybackStats()

        # Event handlers
        self._pattern_handlers: List[Callable] = []
        self._error_handlers: List[Callable] = []

    def _setup_logging(self):
        """Configure logging."""
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
        if self.config.log_file:
            handlers.append(logging.FileHandler(self.config.log_file))

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            handlers=handlers,
        )

    # -------------------------------------------------------------------------
    # Event Registration
    # -------------------------------------------------------------------------

    def on_pattern(self, handler: Callable[[ParsedRecord, Coordinate, Pattern], None]) -> bool:
        """Register a handler called for every rendered pattern."""
        if len(self._pattern_handlers) >= MAX_EVENT_HANDLERS:
            self.logger.warning("Max pattern handlers reached")
            return False
        self._pattern_handlers.append(handler)
        return True

    def on_error(self, handler: Callable[[ErrorReport], None]) -> bool:
        """Register a handler called for every reported error."""
        if len(self._error_handlers) >= MAX_EVENT_HANDLERS:
            self.logger.warning("Max error handlers reached")
            return False
        self._error_handlers.append(handler)
        return True

    def _report(self, error: ErrorReport):
        if error.kind == ErrorKind.TRANSPORT:
            self.logger.error(f"ERROR: {error}")
        elif error.kind == ErrorKind.STREAM_READ:
            self.logger.critical(f"Input stream failed: {error}")
        else:
            self.logger.warning(str(error))

        for handler in self._error_handlers:
            try:
                handler(error)
            except Exception as e:
                self.logger.error(f"Error handler error: {e}")

    # -------------------------------------------------------------------------
    # Line Processing
    # -------------------------------------------------------------------------

    def process_line(self, line: str) -> bool:
        """
        Parse, pace, render and send a single log line.

        Returns:
            True if the pattern was delivered (or rendered, in dry-run mode).
        """
        self.stats.lines_read += 1

        result = self.parser.parse(line)
        if not result.ok:
            self.stats.parse_errors += 1
            self._report(result.error)
            return False

        record = result.record
        self.stats.records_parsed += 1

        coordinate = map_to_coordinate(record.address, self.config.columns, self.config.rows)
        pattern = payload_to_pattern(coordinate, record.payload)

        delay = self.scheduler.wait(record.timestamp)
        self.stats.total_delay += delay.total_seconds()

        document = pattern.encode()
        if self.config.echo_patterns:
            print(document, file=self.output or sys.stdout)

        for handler in self._pattern_handlers:
            try:
                handler(record, coordinate, pattern)
            except Exception as e:
                self.logger.error(f"Pattern handler error: {e}")

        if self.config.dry_run:
            return True

        sent = self.sender.send(document, line_number=self.parser.line_number)
        if not sent.ok:
            self.stats.send_errors += 1
            self._report(sent.error)
            return False

        self.stats.patterns_sent += 1
        return True

    def play(self, lines: Iterable[str]) -> bool:
        """
        Process every line of an input stream in order.

        Returns:
            False if reading the stream failed, True at end of input.
        """
        self.running = True
        iterator = iter(lines)
        try:
            while self.running:
                try:
                    line = next(iterator)
                except StopIteration:
                    break
                except (OSError, UnicodeDecodeError) as e:
                    self._report(
                        ErrorReport(
                            kind=ErrorKind.STREAM_READ,
                            message=str(e),
                            line_number=self.parser.line_number + 1,
                        )
                    )
                    return False
                self.process_line(line)
        finally:
            self.running = False

        return True

    # -------------------------------------------------------------------------
    # Run
    # -------------------------------------------------------------------------

    def _open_input(self) -> TextIO:
        """Open the configured log file, or wrap stdin for '-'."""
        if self.config.reads_stdin:
            return io.TextIOWrapper(
                sys.stdin.buffer, encoding="utf-8", errors="surrogateescape"
            )
        return open(self.config.logfile, "r", encoding="utf-8", errors="surrogateescape")

    def run(self) -> bool:
        """
        Play back the configured input until end of input.

        Returns:
            True on normal end of input, False if the input could not be
            opened or read.
        """
        try:
            stream = self._open_input()
        except OSError as e:
            self._report(ErrorReport(kind=ErrorKind.STREAM_READ, message=str(e)))
            return False

        self.logger.info(
            f"Playback of {self.config.logfile} to {self.config.server_url} "
            f"(speed={self.config.speed}, world={self.config.columns}x{self.config.rows})"
        )

        try:
            ok = self.play(stream)
        except KeyboardInterrupt:
            self.logger.info("Interrupted by user")
            ok = True
        finally:
            if self.config.reads_stdin:
                # Leave sys.stdin.buffer open for the rest of the process
                stream.detach()
            else:
                stream.close()
            self.shutdown()

        return ok

    def get_stats(self) -> Dict[str, Any]:
        """Get playback statistics."""
        stats = self.stats.to_dict()
        stats["last_timestamp"] = (
            self.scheduler.last_timestamp.isoformat()
            if self.scheduler.last_timestamp
            else None
        )
        return stats

    def shutdown(self):
        """Stop playback and release the transport."""
        self.running = False
        self.sender.close()
        s = self.stats
        self.logger.info(
            f"Playback finished: lines={s.lines_read}, parsed={s.records_parsed}, "
            f"parse_errors={s.parse_errors}, sent={s.patterns_sent}, "
            f"send_errors={s.send_errors}, delay={timedelta(seconds=s.total_delay)}"
        )
