#!/usr/bin/env python3
"""
Command-Line Interface for log2life

Usage:
    log2life access.log                         # Realtime playback of a log file
    log2life --speed 10 access.log              # 10x faster than realtime
    tail -f access.log | log2life -             # Live: forward lines as they arrive
    log2life -c config.yaml access.log          # Settings from a config file
"""

import argparse
import dataclasses
import sys
from typing import List, Optional

from .controller import PlaybackController
from .models import PlaybackConfig


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="log2life",
        description="Play back web server access logs as Life patterns",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  log2life access.log                          # Realtime playback
  log2life --speed 60 access.log               # One minute of log per second
  log2life --columns 200 --rows 150 access.log # Larger Life world
  tail -f access.log | log2life -              # Live, no delays
  log2life --dry-run access.log                # Print patterns only
        """,
    )
    parser.add_argument(
        "logfile",
        nargs="?",
        help="Access log to play back, or '-' for stdin",
    )
    parser.add_argument(
        "-c", "--config",
        default=None,
        help="Path to YAML config file",
    )
    parser.add_argument(
        "--speed",
        type=float,
        default=None,
        help="Playback speed. 1.0 is realtime (default: 1.0)",
    )
    parser.add_argument(
        "--columns", "--width",
        dest="columns",
        type=int,
        default=None,
        help="Width of Life world in cells (default: 100)",
    )
    parser.add_argument(
        "--rows", "--height",
        dest="rows",
        type=int,
        default=None,
        help="Height of Life world in cells (default: 100)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port of the Life server (default: 3051)",
    )
    parser.add_argument(
        "--host",
        default=None,
        help="Host IP of the Life server (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="HTTP request timeout in seconds (default: 5.0)",
    )
    parser.add_argument(
        "--no-timestamps",
        action="store_true",
        help="Do not parse timestamps (accepts lines without [timestamp])",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print patterns without sending them",
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Do not echo patterns to stdout",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--log-file",
        default=None,
        help="Also write log messages to this file",
    )
    return parser


def build_config(args: argparse.Namespace) -> PlaybackConfig:
    """Merge defaults, the optional config file and command-line flags."""
    config = PlaybackConfig.from_yaml(args.config) if args.config else PlaybackConfig()

    overrides = {
        "logfile": args.logfile,
        "speed": args.speed,
        "columns": args.columns,
        "rows": args.rows,
        "port": args.port,
        "host": args.host,
        "timeout": args.timeout,
        "log_level": args.log_level,
        "log_file": args.log_file,
    }
    changes = {key: value for key, value in overrides.items() if value is not None}
    if args.no_timestamps:
        changes["parse_timestamps"] = False
    if args.dry_run:
        changes["dry_run"] = True
    if args.quiet:
        changes["echo_patterns"] = False

    config = dataclasses.replace(config, **changes)

    # When feeding log lines from stdin we don't want to delay
    if config.reads_stdin:
        config = dataclasses.replace(config, speed=0.0)

    return config


def main(argv: Optional[List[str]] = None) -> int:
    """Command-line entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Load config
    try:
        config = build_config(args)
    except FileNotFoundError:
        print(f"Error: Config file not found: {args.config}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        return 1

    if not config.logfile:
        parser.print_usage(sys.stderr)
        print("Error: no logfile given (use '-' for stdin)", file=sys.stderr)
        return 1

    problems = config.validate()
    if problems:
        for problem in problems:
            print(f"Error: {problem}", file=sys.stderr)
        return 1

    if config.reads_stdin:
        print(f"Playback of <stdin> to {config.host}:{config.port} in realtime")
    else:
        print(
            f"Playback of {config.logfile} to {config.host}:{config.port} "
            f"at {config.speed:0.1f}x speed"
        )

    controller = PlaybackController(config)
    if not controller.run():
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
