"""Command line entry point.

Usage:
    python -m health_insight serve [--host HOST] [--port PORT] [--log-level LEVEL]
    python -m health_insight config [--json] [--env-file PATH]
"""

import argparse
import logging
import sys

from health_insight.config import print_effective_config, resolve_config
from health_insight.exceptions import ConfigurationError

log = logging.getLogger("health_insight")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m health_insight",
        description="Gemini-backed health insight service",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP service with uvicorn")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    serve.add_argument("--env-file", help="Load variables from this .env file first")

    config = sub.add_parser("config", help="Print the effective configuration")
    config.add_argument(
        "--json",
        action="store_true",
        help="Output as JSON instead of human-readable format",
    )
    config.add_argument("--env-file", help="Load variables from this .env file first")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        resolved = resolve_config(use_env_file=args.env_file)
    except ConfigurationError as e:
        print(f"error: {e}", file=sys.stderr)  # noqa: T201
        return 1

    if args.command == "config":
        print_effective_config(resolved, as_json=args.json)
        return 0

    import uvicorn

    from health_insight.api import create_app

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    log.info("Starting health insight service on %s:%d", args.host, args.port)
    uvicorn.run(
        create_app(resolved.to_frozen()),
        host=args.host,
        port=args.port,
        log_level=args.log_level.lower(),
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
