"""Command-line entry point for running the Bling to Wix sync outside the web app.

Suitable for cron or a platform scheduler::

    # Run one synchronization and print the JSON report.
    python -m scripts.run_sync run

    # Print the Bling consent URL for the operator.
    python -m scripts.run_sync authorize-url

    # Exchange the code Bling appended to the redirect URI.
    python -m scripts.run_sync exchange --code <code>

Exit codes map the report outcome so schedulers can alert on failures.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
import uuid

from bling_wix_sync.core.config import get_settings
from bling_wix_sync.core.errors import AuthError, ConfigError, SyncInProgressError
from bling_wix_sync.core.logging import configure_logging
from bling_wix_sync.dependencies import (
    get_bling_oauth_client,
    get_bling_token_service,
    get_oauth_state_encoder,
    get_sync_orchestrator,
)
from bling_wix_sync.schemas import SyncOutcome

EXIT_OK = 0
EXIT_PARTIAL = 1
EXIT_FAILED = 2
EXIT_CONFIG_ERROR = 3
EXIT_AUTH_ERROR = 4

_OUTCOME_EXIT_CODES = {
    SyncOutcome.SUCCESS: EXIT_OK,
    SyncOutcome.NOTHING_TO_SYNC: EXIT_OK,
    SyncOutcome.PARTIAL: EXIT_PARTIAL,
    SyncOutcome.FAILED: EXIT_FAILED,
}


def _run_sync() -> int:
    orchestrator = get_sync_orchestrator()
    try:
        report = asyncio.run(orchestrator.run())
    except SyncInProgressError as exc:
        print(str(exc), file=sys.stderr)
        return EXIT_FAILED
    print(report.model_dump_json(indent=2))
    if report.error_type == "config_error":
        return EXIT_CONFIG_ERROR
    return _OUTCOME_EXIT_CODES[report.outcome]


def _print_authorize_url() -> int:
    state = get_oauth_state_encoder().encode({"nonce": uuid.uuid4().hex})
    print(get_bling_oauth_client().build_authorization_url(state=state))
    return EXIT_OK


def _exchange_code(code: str) -> int:
    token_service = get_bling_token_service()
    try:
        pair = asyncio.run(token_service.complete_authorization(code))
    except AuthError as exc:
        print(f"Authorization code exchange failed: {exc}", file=sys.stderr)
        return EXIT_AUTH_ERROR
    print(f"Bling connected; tokens obtained at {pair.obtained_at.isoformat()}")
    return EXIT_OK


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Synchronize Bling stock into Wix and manage the Bling connection."
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("run", help="Run one synchronization and print the report.")
    subparsers.add_parser(
        "authorize-url", help="Print the Bling consent URL for the operator."
    )
    exchange_parser = subparsers.add_parser(
        "exchange", help="Exchange an authorization code for a token pair."
    )
    exchange_parser.add_argument(
        "--code", required=True, help="Authorization code returned by Bling."
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    configure_logging(get_settings().log_level)

    try:
        if args.command == "run":
            return _run_sync()
        if args.command == "authorize-url":
            return _print_authorize_url()
        return _exchange_code(args.code)
    except ConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return EXIT_CONFIG_ERROR


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
