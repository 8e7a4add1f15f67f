"""
ACME account key manager — CLI entry point.

Usage:
  python main.py --user alice --show                            # Print account summary
  python main.py --user alice --create-keys                     # Load keys, generating them if missing
  python main.py --user alice --create-keys --force             # Always generate a new key pair
  python main.py --user alice --email a@example.com --register  # Register (loads keys first)
"""
from __future__ import annotations

import argparse
import json
import logging
import sys

import structlog

log = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
    )
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


# ── Commands ──────────────────────────────────────────────────────────────────


def ensure_keys(account, force: bool = False) -> None:
    """Load the account's keys, generating a new pair when none exist (or *force*)."""
    if not force and account.load_keys():
        log.info("Using existing account keys for %s", account.username)
        return
    account.create_keys()
    log.info("New account keys written to %s", account.get_storage_path())


def run(args: argparse.Namespace) -> int:
    from account.errors import AccountError
    from account.manager import Account

    account = Account(args.user, email=args.email, acme_server=args.server)

    try:
        if args.create_keys:
            ensure_keys(account, force=args.force)

        if args.register:
            if account.key_pair is None and not account.load_keys():
                log.error("No account keys for %s. Run with --create-keys first.", account.username)
                return 1
            account.register()
            log.info("Registered %s at %s", account.email, account.acme_server)

        if args.show:
            if account.key_pair is None:
                account.load_keys()
            print(json.dumps(account.summary().model_dump(), indent=2))
    except AccountError as exc:
        log.error("%s", exc)
        return 1

    return 0


# ── CLI ───────────────────────────────────────────────────────────────────────


def main(argv: list[str] | None = None) -> None:
    from config import settings

    parser = argparse.ArgumentParser(
        description="ACME account key manager",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py --user alice --create-keys
  python main.py --user alice --email alice@example.com --register
  python main.py --user alice --server https://localhost:14000/dir --create-keys --register --email a@b.c
        """,
    )
    parser.add_argument("--user", required=True, metavar="NAME", help="Account owner (system user name)")
    parser.add_argument("--email", help="Contact e-mail used for registration")
    parser.add_argument(
        "--server",
        metavar="URL",
        help="ACME directory URL (default: the configured CA_PROVIDER directory)",
    )
    parser.add_argument(
        "--create-keys",
        action="store_true",
        help="Load the account key pair, generating one if none is stored",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="With --create-keys: generate a new key pair even if one exists",
    )
    parser.add_argument("--register", action="store_true", help="Register the account at the ACME server")
    parser.add_argument("--show", action="store_true", help="Print a summary of the account (no key material)")

    args = parser.parse_args(argv)
    configure_logging(settings.LOG_LEVEL)

    if not (args.create_keys or args.register or args.show):
        parser.print_help()
        sys.exit(1)

    sys.exit(run(args))


if __name__ == "__main__":
    main()
