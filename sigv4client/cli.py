# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""sigv4client CLI.

Subcommands:

* ``get``: send a signed GET request
* ``post``: send a signed POST request
* ``sign``: print a signed request head without sending it

Configuration is read from ``--config`` or the default XDG path (see
:mod:`sigv4client.config`).  Exit status is 0 for responses below 400,
1 otherwise, and 2 when the request could not be built at all.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from sigv4client.client import AWSClient
from sigv4client.config import ClientConfig, ConfigError
from sigv4client.logging import configure_logging, get_logger
from sigv4client.response import CaptureMask, SignedResponse
from sigv4client.signing import DEFAULT_CONTENT_TYPE


logger = get_logger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sigv4client",
        description="Send AWS SigV4-signed requests.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to config file (default: XDG config location)",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("path", help="Request path, e.g. /items")
    common.add_argument("--query", default="", help="Query string")

    capture = argparse.ArgumentParser(add_help=False)
    capture.add_argument(
        "--headers", action="store_true", help="Print response headers"
    )
    capture.add_argument(
        "--body", action="store_true", help="Always print response body"
    )

    payload = argparse.ArgumentParser(add_help=False)
    source = payload.add_mutually_exclusive_group()
    source.add_argument("--data", default=None, help="Request body")
    source.add_argument(
        "--data-file", type=Path, default=None, help="Read body from file"
    )
    payload.add_argument(
        "--content-type",
        default=DEFAULT_CONTENT_TYPE,
        help=f"Content-Type (default: {DEFAULT_CONTENT_TYPE})",
    )

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser(
        "get", parents=[common, capture], help="Send a signed GET request"
    )
    sub.add_parser(
        "post",
        parents=[common, payload, capture],
        help="Send a signed POST request",
    )
    sign = sub.add_parser(
        "sign",
        parents=[payload],
        help="Print a signed request without sending it",
    )
    sign.add_argument("method", help="HTTP method")
    sign.add_argument("path", help="Request path")
    sign.add_argument("--query", default="", help="Query string")
    return parser


def _read_payload(args: argparse.Namespace) -> bytes:
    if args.data_file is not None:
        return args.data_file.read_bytes()
    if args.data is not None:
        return args.data.encode("utf-8")
    return b""


def _capture_mask(args: argparse.Namespace, base: CaptureMask) -> CaptureMask:
    mask = base
    if args.headers:
        mask |= CaptureMask.HEADERS
    if args.body:
        mask |= CaptureMask.BODY
    return mask


def _print_response(response: SignedResponse) -> None:
    print(f"Status: {response.status}")
    if response.content_type:
        print(f"Content-Type: {response.content_type}")
    if response.headers:
        sys.stdout.write(response.headers)
    if response.body:
        print()
        print(response.text)


def main(argv: list[str] | None = None) -> int:
    """Run the CLI and return the exit status."""
    args = _build_parser().parse_args(argv)
    configure_logging(level=logging.DEBUG if args.verbose else logging.WARNING)

    try:
        config = ClientConfig.from_yaml(args.config)
    except ConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2

    payload = b""
    if args.command != "get":
        try:
            payload = _read_payload(args)
        except OSError as exc:
            print(f"Cannot read request body: {exc}", file=sys.stderr)
            return 2

    client = AWSClient.from_config(config)

    try:
        if args.command == "sign":
            signed = client.create_request(
                args.method,
                args.path,
                payload,
                args.content_type,
                args.query,
            )
            sys.stdout.write(signed.head)
            return 0

        client.set_capture_mask(_capture_mask(args, config.capture_mask))
        if args.command == "get":
            response = client.get(args.path, args.query)
        else:
            response = client.post(
                args.path, payload, args.content_type, args.query
            )
    except ValueError as exc:
        print(f"Invalid request: {exc}", file=sys.stderr)
        return 2

    logger.debug("Request finished with status %d", response.status)
    _print_response(response)
    return 0 if response.ok else 1


def cli() -> None:
    """Console script entry point."""
    sys.exit(main())
