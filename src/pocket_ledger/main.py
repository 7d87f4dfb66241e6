"""Pocket Ledger main entry point - runs the REST endpoint."""

from __future__ import annotations

import argparse
import os
import sys

import uvicorn

from .service.logging import configure_logging


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the ledger endpoint."""
    parser = argparse.ArgumentParser(
        prog="pocket-ledger",
        description="Pocket Ledger - in-memory transactions REST endpoint",
    )
    parser.add_argument(
        "--host",
        default=os.environ.get("LEDGER_SERVICE_HOST", "0.0.0.0"),
        help="Host to bind to (default: 0.0.0.0)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=int(os.environ.get("LEDGER_SERVICE_PORT", "3001")),
        help="Port to listen on (default: 3001)",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development",
    )
    parser.add_argument(
        "--log-level",
        default="info",
        choices=["debug", "info", "warning", "error", "critical"],
        help="Log level (default: info)",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Force JSON log output (default: auto-detect)",
    )
    parser.add_argument(
        "--empty",
        action="store_true",
        help="Start with no transactions instead of the default records",
    )

    args = parser.parse_args(argv)

    configure_logging(
        level=args.log_level.upper(),
        json_output=args.json_logs if args.json_logs else None,
    )

    # The app factory reads its config from the environment
    os.environ["LEDGER_SERVICE_HOST"] = args.host
    os.environ["LEDGER_SERVICE_PORT"] = str(args.port)
    os.environ["LEDGER_LOG_LEVEL"] = args.log_level.upper()
    if args.empty:
        os.environ["LEDGER_SERVICE_SEED"] = "0"

    try:
        uvicorn.run(
            "pocket_ledger.service.app:create_app_from_env",
            host=args.host,
            port=args.port,
            reload=args.reload,
            log_level=args.log_level,
            factory=True,
        )
        return 0
    except KeyboardInterrupt:
        print("\nShutting down...")
        return 0


if __name__ == "__main__":
    sys.exit(main())
