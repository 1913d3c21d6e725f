import gc
import io

import pytest

from log2life.address import address_to_xy
from log2life.controller import PlaybackController
from log2life.models import ErrorKind, ErrorReport, PlaybackConfig, SendResult
from log2life.protocol import Pattern
from log2life.scheduler import PlaybackScheduler

LINES = [
    '10.0.0.1 - - [20/Nov/2022:02:27:49 +0000] "GET / HTTP/1.1" 200 100',
    '- - - [20/Nov/2022:02:27:50 +0000] "GET /x HTTP/1.1" 200 100',
    '192.168.7.9 - - [not a time] "GET /y HTTP/1.1" 404 10',
    '172.16.0.3 - - [20/Nov/2022:02:27:53 +0000] "POST /api HTTP/1.1" 201 5',
    '8.8.8.8 - - [20/Nov/2022:02:27:55 +0000] "GET /z HTTP/1.1" 200 7',
]


class RecordingSender:
    """Stand-in transport that records documents and fails on request."""

    def __init__(self, fail_on=()):
        self.fail_on = set(fail_on)
        self.sent = []
        self.closed = False

    def send(self, document, line_number=0):
        self.sent.append(document)
        if len(self.sent) in self.fail_on:
            return SendResult(
                ok=False,
                error=ErrorReport(ErrorKind.TRANSPORT, "connection refused", line_number),
            )
        return SendResult(ok=True, status_code=200)

    def close(self):
        self.closed = True


def _independent_pattern_lines(address, payload, width, height):
    """Apply the mapping and fold step by step, without the library code."""
    octets = [int(part) for part in address.split(".")]
    u1 = octets[0] * 256 + octets[1]
    u2 = octets[2] * 256 + octets[3]
    x = int(u1 / 65535 * width) - width // 2
    y = int(u2 / 65535 * height) - height // 2

    data = [0] * 8
    idx = 0
    for b in payload.encode("utf-8"):
        if b == 34:
            continue
        data[idx] ^= b
        idx = (idx + 1) % 8

    rows = []
    for b in data:
        rows.append("".join("*" if (b >> (7 - i)) & 1 else "." for i in range(8)))
    return [f"#P {x} {y}"] + rows


def _controller(sender, slept=None, **config):
    config.setdefault("echo_patterns", False)
    scheduler = PlaybackScheduler(
        speed=config.get("speed", 1.0),
        sleep=(slept.append if slept is not None else (lambda s: None)),
    )
    return PlaybackController(
        PlaybackConfig(**config), sender=sender, scheduler=scheduler, output=io.StringIO()
    )


def test_end_to_end_pattern_matches_independent_computation():
    sender = RecordingSender()
    controller = _controller(sender, columns=100, rows=100)

    assert controller.process_line(LINES[0])

    lines = sender.sent[0].split("\n")
    assert lines[:3] == ["#Life 1.05", "#D log2life ouput", "#N"]
    assert lines[3:] == _independent_pattern_lines("10.0.0.1", '"GET / HTTP/1.1"', 100, 100)
    assert lines[3] == "#P -47 -50"


def test_errors_are_skipped_and_playback_continues():
    sender = RecordingSender(fail_on={1})
    controller = _controller(sender)
    errors = []
    controller.on_error(errors.append)

    assert controller.play(LINES)

    assert [e.kind for e in errors] == [
        ErrorKind.TRANSPORT,
        ErrorKind.MISSING_ADDRESS,
        ErrorKind.TIMESTAMP_PARSE,
    ]
    # The failed first send did not stop the later lines
    assert len(sender.sent) == 3
    stats = controller.get_stats()
    assert stats["lines_read"] == 5
    assert stats["records_parsed"] == 3
    assert stats["parse_errors"] == 2
    assert stats["patterns_sent"] == 2
    assert stats["send_errors"] == 1
    assert stats["last_timestamp"] == "2022-11-20T02:27:55+00:00"


def test_delays_follow_parsed_timestamps():
    slept = []
    controller = _controller(RecordingSender(), slept=slept, speed=2.0)
    controller.play(LINES)
    # Gaps between successfully parsed records: 49 -> 53 -> 55
    assert slept == [2.0, 1.0]
    assert controller.stats.total_delay == 3.0


def test_no_delay_when_speed_is_zero():
    slept = []
    controller = _controller(RecordingSender(), slept=slept, speed=0.0)
    controller.play(LINES)
    assert slept == []


def test_echo_and_pattern_handlers():
    output = io.StringIO()
    controller = PlaybackController(
        PlaybackConfig(echo_patterns=True),
        sender=RecordingSender(),
        scheduler=PlaybackScheduler(sleep=lambda s: None),
        output=output,
    )
    seen = []
    controller.on_pattern(lambda record, xy, pattern: seen.append((record.address, xy, pattern)))
    controller.on_pattern(lambda record, xy, pattern: 1 / 0)

    assert controller.process_line(LINES[0])

    address, xy, pattern = seen[0]
    assert address == "10.0.0.1"
    assert (xy.x, xy.y) == address_to_xy("10.0.0.1", 100, 100)
    assert output.getvalue() == pattern.encode() + "\n"


def test_dry_run_does_not_send():
    sender = RecordingSender()
    controller = _controller(sender, dry_run=True)
    assert controller.play(LINES)
    assert sender.sent == []
    assert controller.stats.patterns_sent == 0


class _BrokenStream:
    def __init__(self, good_lines):
        self._lines = list(good_lines)

    def __iter__(self):
        return self

    def __next__(self):
        if self._lines:
            return self._lines.pop(0)
        raise OSError("read error")


def test_stream_failure_stops_the_run():
    sender = RecordingSender()
    controller = _controller(sender)
    errors = []
    controller.on_error(errors.append)

    assert not controller.play(_BrokenStream(LINES[:1]))
    assert len(sender.sent) == 1
    assert errors[-1].kind == ErrorKind.STREAM_READ


def test_run_reads_file_and_posts_to_server(tmp_path, life_server):
    host, port, received = life_server
    logfile = tmp_path / "access.log"
    logfile.write_text("\n".join(LINES) + "\n", encoding="utf-8")

    config = PlaybackConfig(
        logfile=str(logfile), host=host, port=port, speed=1000.0, echo_patterns=False
    )
    controller = PlaybackController(config, output=io.StringIO())
    assert controller.run()

    assert len(received) == 3
    patterns = [Pattern.decode(body) for _, body in received]
    assert all(p is not None for p in patterns)
    assert controller.stats.total_delay == pytest.approx(0.006)


def test_run_fails_for_missing_file(tmp_path):
    config = PlaybackConfig(logfile=str(tmp_path / "nope.log"), echo_patterns=False)
    controller = PlaybackController(config, sender=RecordingSender())
    assert not controller.run()


class _FakeStdin:
    def __init__(self, data):
        self.buffer = io.BytesIO(data)


STDIN_LINES = (
    '10.0.0.1 - - [20/Nov/2022:02:27:49 +0000] "GET / HTTP/1.1" 200 100\n'
    '10.0.0.2 - - [20/Nov/2022:02:28:49 +0000] "GET /a HTTP/1.1" 200 100\n'
).encode("utf-8")


def test_stdin_input_is_not_paced(monkeypatch):
    monkeypatch.setattr("sys.stdin", _FakeStdin(STDIN_LINES))
    sender = RecordingSender()
    controller = PlaybackController(
        PlaybackConfig(logfile="-", speed=1.0, echo_patterns=False), sender=sender
    )

    assert controller.scheduler.speed == 0.0
    assert controller.run()
    assert len(sender.sent) == 2
    assert controller.stats.total_delay == 0.0


def test_stdin_buffer_stays_open_after_run(monkeypatch):
    fake = _FakeStdin(STDIN_LINES)
    monkeypatch.setattr("sys.stdin", fake)

    first = PlaybackController(PlaybackConfig(logfile="-", echo_patterns=False),
                               sender=RecordingSender())
    assert first.run()
    del first
    gc.collect()
    assert not fake.buffer.closed

    # A second run reads the (now exhausted) stream without failing
    second = PlaybackController(PlaybackConfig(logfile="-", echo_patterns=False),
                                sender=RecordingSender())
    assert second.run()
    assert second.stats.lines_read == 0
