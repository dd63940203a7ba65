"""Command line entry point: ``tracebox run`` and ``tracebox instrument``."""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path

from .config import ConfigError, TracerConfig, load_config
from .sandbox.process import ProcessSandbox
from .session import TraceSession
from .trace import Event
from .transforms import instrument

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="tracebox", description="Trace the execution of a Python program")
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARN", "ERROR"],
        default="WARN",
        help="Logging level",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run = subparsers.add_parser("run", parents=[common], help="Run PROGRAM and print one JSON event per line")
    run.add_argument("program", type=Path, help="Path to the program source")
    run.add_argument("--config", type=Path, default=None, help="YAML tracer configuration")
    run.add_argument("--log-file", default=None, help="Mirror file for the event stream")
    run.add_argument("--no-log-file", action="store_true", help="Disable the mirror file")
    run.add_argument(
        "--no-instrument",
        action="store_true",
        help="Execute the program text as is, without instrumentation passes",
    )
    run.add_argument(
        "--in-process",
        action="store_true",
        help="Run in this process instead of a forked worker (no hard ceiling)",
    )
    run.add_argument(
        "--validate-events",
        action="store_true",
        help="Validate every event against its JSON schema",
    )

    show = subparsers.add_parser("instrument", parents=[common], help="Print the instrumented program text")
    show.add_argument("program", type=Path, help="Path to the program source")
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> TracerConfig:
    config = load_config(args.config) if args.config is not None else TracerConfig()
    config = config.merged(
        log_file=args.log_file,
        instrument=False if args.no_instrument else None,
        validate_events=True if args.validate_events else None,
    )
    if args.no_log_file:
        config = replace(config, log_file=None)
    return config


def _print_event(event: Event) -> None:
    sys.stdout.write(event.to_json() + "\n")
    sys.stdout.flush()


def _print_line(text: str) -> None:
    sys.stdout.write(text + "\n")
    sys.stdout.flush()


def _run(args: argparse.Namespace) -> int:
    source = args.program.read_text(encoding="utf-8")
    config = build_config(args)
    if args.in_process:
        outcome = TraceSession(config, channel=_print_line).run(source)
        return outcome.exit_code
    result = ProcessSandbox(config).run(source, sink=_print_event)
    return result.exit_code


def _instrument(args: argparse.Namespace) -> int:
    source = args.program.read_text(encoding="utf-8")
    try:
        _print_line(instrument(source))
    except SyntaxError as exc:
        logger.error("cannot instrument %s: %s", args.program, exc)
        return 1
    return 0


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level.upper()))
    try:
        if args.command == "instrument":
            return _instrument(args)
        return _run(args)
    except (ConfigError, OSError) as exc:
        logger.error("%s", exc)
        return 2


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
