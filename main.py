#!/usr/bin/env python3
"""
main.py: score one location request against the revenue model
----------------------------------------------------------------
• Loads the model artifact and the tract geometry once
• Runs the request through the simulated HTTP exchange
• Prints the response JSON (exit 0 ok, 1 rejected, 2 startup failure)
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import config
from errors import LoadError
from service import handle_json, load_state


def _read_body(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    return Path(source).read_text(encoding="utf-8")


def main(argv: list[str] | None = None) -> int:
    cli_parser = argparse.ArgumentParser(description="Predict revenue for a store location.")
    cli_parser.add_argument("--request", required=True, help="Request JSON file ('-' for stdin)")
    cli_parser.add_argument("--model", default=None, help=f"Model artifact (default {config.MODEL_PATH})")
    cli_parser.add_argument("--geometry", default=None, help=f"Polygon dataset (default {config.GEOMETRY_PATH})")
    cli_parser.add_argument("--id-column", default=None, help="Identifier column in the polygon attribute table")
    cli_parser.add_argument(
        "--attributes", default=None,
        help="Demographic attributes to interpolate (comma-separated; default: model features that are not request fields)",
    )
    cli_parser.add_argument("--log-level", default="INFO", help="Logging level (default INFO)")
    args = cli_parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    attributes = None
    if args.attributes:
        attributes = [s.strip() for s in args.attributes.split(",") if s.strip()] or None

    try:
        state = load_state(
            args.model, args.geometry, attributes=attributes, id_column=args.id_column
        )
    except LoadError as exc:
        logging.error("Startup failed: %s", exc)
        return 2

    try:
        body = _read_body(args.request)
    except OSError as exc:
        logging.error("Could not read request '%s': %s", args.request, exc)
        return 1

    status, response = handle_json(body, state)
    print(response)
    return 0 if status == 200 else 1


if __name__ == "__main__":
    sys.exit(main())
