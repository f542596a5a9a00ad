"""
Command line entry point for the Blacklist Alliance client.

Usage:
    # Single phone lookup (Simple API)
    python -m blacklist_alliance lookup 2223334444

    # Standard API lookup with carrier info
    python -m blacklist_alliance lookup 2223334444 --standard --version v3

    # Bulk phone lookup, from arguments or a file (one number per line)
    python -m blacklist_alliance bulk 2223334444 9999999999
    python -m blacklist_alliance bulk --file phones.txt

    # Email bulk check, sending MD5 hashes
    python -m blacklist_alliance email a@example.com b@example.com --hash

    # Connectivity check
    python -m blacklist_alliance ping

Configuration comes from BLACKLIST_ALLIANCE_* environment variables and,
optionally, a YAML file passed with --config (under 'blacklist_alliance:').
"""

import argparse
import asyncio
import json
import logging
import signal
import sys
from typing import Any, List, Optional

from prometheus_client import start_http_server

from blacklist_alliance.client import BlacklistAllianceClient
from blacklist_alliance.common.cancellation import CancellationToken
from blacklist_alliance.common.exceptions import BlacklistAllianceError
from blacklist_alliance.common.logging import get_logger
from blacklist_alliance.config import ClientConfig
from blacklist_alliance.schemas.results import BatchProgress

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="blacklist_alliance",
        description="Query the Blacklist Alliance API",
    )
    parser.add_argument("--config", help="YAML config file (section 'blacklist_alliance:')")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Return canned responses without calling the API",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: WARNING)",
    )
    parser.add_argument(
        "--metrics-port",
        type=int,
        default=None,
        help="Expose Prometheus metrics on this port while running",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    lookup = subparsers.add_parser("lookup", help="Look up a single phone number")
    lookup.add_argument("phone")
    lookup.add_argument("--version", help="API version (v1, v2, v3, v5)")
    lookup.add_argument(
        "--standard",
        action="store_true",
        help="Use the Standard (RESTful) API instead of the Simple API",
    )

    bulk = subparsers.add_parser("bulk", help="Look up many phone numbers")
    bulk.add_argument("phones", nargs="*")
    bulk.add_argument("--file", help="File with one phone number per line")
    bulk.add_argument("--version", help="API version (v1, v2, v3, v5)")
    bulk.add_argument("--standard", action="store_true", help="Use the Standard API")

    email = subparsers.add_parser("email", help="Check email addresses")
    email.add_argument("emails", nargs="*")
    email.add_argument("--file", help="File with one email address per line")
    email.add_argument("--hash", action="store_true", help="Send MD5 hashes")

    subparsers.add_parser("ping", help="Check API connectivity")

    return parser.parse_args(argv)


def _read_items(values: List[str], path: Optional[str]) -> List[str]:
    items = list(values)
    if path:
        with open(path, "r") as f:
            items.extend(line.strip() for line in f if line.strip())
    return items


def _report_progress(progress: BatchProgress) -> None:
    logger.info(
        f"Batch {progress.batch}/{progress.total_batches} done "
        f"({progress.completed}/{progress.total})"
    )


async def run_command(
    args: argparse.Namespace,
    config: ClientConfig,
    cancel_token: CancellationToken,
) -> Any:
    """Run the selected subcommand and return its result."""
    async with BlacklistAllianceClient.from_config(config) as client:
        if args.command == "lookup":
            if args.standard:
                return await client.lookup(
                    args.phone, version=args.version, cancel_token=cancel_token
                )
            return await client.lookup_single(
                args.phone, version=args.version, cancel_token=cancel_token
            )

        if args.command == "bulk":
            phones = _read_items(args.phones, args.file)
            method = client.bulk_lookup if args.standard else client.bulk_lookup_simple
            return await method(
                phones,
                version=args.version,
                on_progress=_report_progress,
                cancel_token=cancel_token,
            )

        if args.command == "email":
            return await client.email_bulk(
                _read_items(args.emails, args.file),
                hash_emails=args.hash,
                on_progress=_report_progress,
                cancel_token=cancel_token,
            )

        return {"reachable": await client.ping()}


def setup_signal_handlers(loop: asyncio.AbstractEventLoop, cancel_token: CancellationToken):
    """Cancel the running operation on SIGINT/SIGTERM.

    Signal handlers are not supported on Windows; KeyboardInterrupt is used
    there instead.
    """

    def handle_signal(sig):
        logger.warning(f"Received signal {sig.name}, cancelling request...")
        cancel_token.cancel(f"signal {sig.name}")

    if sys.platform == "win32":
        return

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, lambda s=sig: handle_signal(s))


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point. Returns the process exit code."""
    global logger
    args = parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger = get_logger(__name__)

    try:
        config = ClientConfig.load_config(args.config)
        if args.dry_run:
            config.dry_run = True
        config.validate()
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        return 1

    if args.metrics_port:
        logger.info(f"Starting metrics server on port {args.metrics_port}")
        start_http_server(args.metrics_port)

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    cancel_token = CancellationToken()
    setup_signal_handlers(loop, cancel_token)

    try:
        result = loop.run_until_complete(run_command(args, config, cancel_token))
    except BlacklistAllianceError as e:
        print(json.dumps({"error": e.to_dict()}, indent=2, default=str), file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received, shutting down...")
        return 1
    finally:
        loop.close()

    if isinstance(result, str):
        print(result)
    else:
        print(json.dumps(result, indent=2, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())
