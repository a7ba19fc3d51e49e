"""Entry point for running the CLI probe as a module."""

import argparse
import asyncio
import sys
from datetime import timedelta

from .config import CLIConfig
from .runner import run_probe


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Fire requests through a conductor client and log lifecycle events",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument("targets", nargs="+", help="URLs to request")
    parser.add_argument(
        "--repeat", type=int, default=1, help="Request each URL this many times (default: 1)"
    )
    parser.add_argument(
        "--capacity", type=int, default=None, help="Max requests in flight (0 = unlimited)"
    )
    parser.add_argument(
        "--strategy",
        choices=("ordered", "stack", "reject"),
        default=None,
        help="Queue strategy when at capacity",
    )
    parser.add_argument(
        "--attempts", type=int, default=None, help="Total attempts per request"
    )
    parser.add_argument(
        "--timeout", type=float, default=None, help="Per-request timeout in seconds"
    )
    parser.add_argument("--key", default=None, help="Coordination key for every request")
    parser.add_argument(
        "--supersede", action="store_true", help="Abort older in-flight requests with the key"
    )
    parser.add_argument(
        "--dedupe", action="store_true", help="Serve requests from an in-flight one with the key"
    )
    parser.add_argument("--method", default="GET", help="HTTP method (default: GET)")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    return parser.parse_args(argv)


def to_cli_config(args: argparse.Namespace) -> CLIConfig:
    return CLIConfig(
        targets=args.targets,
        repeat=args.repeat,
        capacity=args.capacity,
        strategy=args.strategy,
        attempts=args.attempts,
        timeout=timedelta(seconds=args.timeout) if args.timeout is not None else None,
        key=args.key,
        supersede=args.supersede,
        dedupe=args.dedupe,
        method=args.method.upper(),
        debug=args.debug,
    )


def cli_entry() -> None:
    """CLI entry point."""
    config = to_cli_config(parse_args())

    try:
        failures = asyncio.run(run_probe(config))
    except KeyboardInterrupt:
        sys.exit(130)
    sys.exit(1 if failures else 0)


if __name__ == "__main__":
    cli_entry()
