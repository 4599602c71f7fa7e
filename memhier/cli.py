"""Command line entry point: simulate a trace against a configuration file."""

from __future__ import annotations

import argparse
import logging
import sys

from .config import DEFAULT_CONFIG_PATH, load_config
from .parsing import ConfigFormatError
from .simulator import Simulator
from .trace import load_trace, read_trace


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="memhier",
        description="Simulate a memory hierarchy over a trace of reads and writes.",
    )
    parser.add_argument(
        "trace",
        nargs="?",
        help="trace file of R:addr / W:addr lines (default: standard input)",
    )
    parser.add_argument(
        "--config",
        default=DEFAULT_CONFIG_PATH,
        help=f"configuration file (default: {DEFAULT_CONFIG_PATH})",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Run the simulator and print its report; return the exit status."""
    logging.basicConfig(level=logging.ERROR)
    args = _parser().parse_args(argv)
    try:
        config = load_config(args.config)
        if args.trace is not None:
            trace = load_trace(args.trace)
        else:
            trace = read_trace(sys.stdin)
        output = Simulator(config).simulate(trace)
    except (OSError, ConfigFormatError) as error:
        print(f"memhier: {error}", file=sys.stderr)
        return 1
    print(output)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())