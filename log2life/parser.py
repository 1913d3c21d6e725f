#!/usr/bin/env python3
"""
Access Log Line Parser

Extracts the client address, timestamp and request from a line in the
common/combined access log layout:

    10.0.0.1 - - [20/Nov/2022:02:27:49 +0000] "GET / HTTP/1.1" 200 100
    ^ address     ^ timestamp                  ^ payload (quotes removed)

The line is split on its first three spaces; only the first and the
fourth field are used. Nothing after the quoted request is inspected.
"""

from datetime import datetime
from typing import Optional

from .models import ErrorKind, ErrorReport, ParsedRecord, ParseResult


# Timestamp layout, e.g. 20/Nov/2022:02:27:49 +0000
TIMESTAMP_FORMAT = "%d/%b/%Y:%H:%M:%S %z"

# Placeholder some servers log when the client is unknown
NO_ADDRESS = "-"


def parse_timestamp(text: str) -> Optional[datetime]:
    """Parse a bracketed access log timestamp (without brackets)."""
    try:
        return datetime.strptime(text, TIMESTAMP_FORMAT)
    except ValueError:
        return None


def extract_payload(text: str) -> str:
    """Return the first quoted segment of text, quotes removed.

    Without a complete quoted segment the remaining text is used as is.
    """
    start = text.find('"')
    if start < 0:
        return text.strip()
    end = text.find('"', start + 1)
    if end < 0:
        return text[start + 1:]
    return text[start + 1:end]


def _error(kind: ErrorKind, message: str, line_number: int) -> ParseResult:
    return ParseResult(error=ErrorReport(kind=kind, message=message, line_number=line_number))


def parse_line(line: str, parse_timestamps: bool = True, line_number: int = 0) -> ParseResult:
    """
    Split one log line into a ParsedRecord.

    Args:
        line: Raw log line, without the line terminator.
        parse_timestamps: When False the timestamp is not parsed and the
            record's timestamp is None (live streaming).
        line_number: Position of the line in the input, for error reports.

    Returns:
        ParseResult holding either the record or the error.
    """
    fields = line.split(" ", 3)
    address = fields[0]
    if address == NO_ADDRESS or not address.strip():
        return _error(ErrorKind.MISSING_ADDRESS, "No client IP address", line_number)

    rest = fields[3] if len(fields) == 4 else ""
    stamp_text, sep, request_text = rest.partition("]")
    if not sep:
        if parse_timestamps:
            return _error(
                ErrorKind.TIMESTAMP_PARSE, "No [timestamp] field", line_number
            )
        # No bracketed field, the whole remainder is the request
        request_text, stamp_text = rest, ""

    timestamp = None
    if parse_timestamps:
        if stamp_text.startswith("["):
            stamp_text = stamp_text[1:]
        timestamp = parse_timestamp(stamp_text)
        if timestamp is None:
            return _error(
                ErrorKind.TIMESTAMP_PARSE,
                f"Cannot parse timestamp {stamp_text!r}",
                line_number,
            )

    return ParseResult(
        record=ParsedRecord(
            address=address,
            timestamp=timestamp,
            payload=extract_payload(request_text),
        )
    )


class LineParser:
    """Line parser that numbers the lines it sees."""

    def __init__(self, parse_timestamps: bool = True):
        self.parse_timestamps = parse_timestamps
        self.line_number = 0

    def parse(self, line: str) -> ParseResult:
        self.line_number += 1
        return parse_line(
            line.rstrip("\r\n"),
            parse_timestamps=self.parse_timestamps,
            line_number=self.line_number,
        )
