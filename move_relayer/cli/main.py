"""CLI entrypoint for serving the relay API or checking a deployment."""

from __future__ import annotations

import argparse
import sys
from typing import List, Optional

import uvicorn
from dotenv import load_dotenv

from move_relayer.api import create_app
from move_relayer.config import Settings, load_settings
from move_relayer.core.pipeline import RelayContext
from move_relayer.core.utils import configure_logging, format_native, get_logger
from move_relayer.errors import ConfigurationError, RelayError, SubmissionError

LOGGER = get_logger("move_relayer.cli")


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Relay wallet moves as gas-sponsored transactions")
    parser.add_argument("--check", action="store_true", help="Print relayer identity, chain and balance, then exit")
    parser.add_argument("--host", default=None, help="Listen address (overrides HOST)")
    parser.add_argument("--port", default=None, type=int, help="Listen port (overrides PORT)")
    return parser.parse_args(argv)


def _verify_node(context: RelayContext) -> None:
    """Fail on a chain id mismatch; tolerate a node that is merely unreachable."""
    try:
        live_chain_id = context.verify_chain()
    except SubmissionError as exc:
        LOGGER.warning("Could not reach RPC node at startup (%s): %s", exc.kind, exc.message)
        return
    LOGGER.info("Connected to chain %s as %s", live_chain_id, context.relayer.address)


def run_check(context: RelayContext) -> int:
    """Print the deployment's relayer, chain and balance."""
    print(f"Relayer:          {context.relayer.address}")
    print(f"Configured chain: {context.chain.chain_id} ({context.chain.rpc_url})")
    try:
        live_chain_id = context.verify_chain()
        balance = context.client.get_balance(context.relayer.address)
    except RelayError as exc:
        print(f"❌ Error: {exc.message}")
        return 1
    print(f"Node chain:       {live_chain_id}")
    print(f"Balance:          {format_native(balance)} ({balance} wei)")
    return 0


def serve(settings: Settings, context: RelayContext, *, host: str, port: int) -> None:
    _verify_node(context)
    app = create_app(context, settings.server)
    LOGGER.info("Relayer listening on %s:%s as %s", host, port, context.relayer.address)
    uvicorn.run(app, host=host, port=port, log_level=settings.log_level.lower())


def main(argv: Optional[List[str]] = None) -> None:
    args = _parse_args(argv)
    load_dotenv()

    try:
        settings = load_settings()
        configure_logging(settings.log_level)
        LOGGER.info("Configuration: %s", settings.describe())
        context = RelayContext.from_settings(settings)

        if args.check:
            sys.exit(run_check(context))

        serve(
            settings,
            context,
            host=args.host or settings.server.host,
            port=args.port or settings.server.port,
        )
    except ConfigurationError as exc:
        LOGGER.error("Configuration error: %s", exc.message)
        LOGGER.error("Required environment variables:")
        LOGGER.error("  - RELAYER_PK: 0x-prefixed private key of the relayer account")
        LOGGER.error("Optional: RPC_URL, CHAIN_ID, PORT, HOST, CORS_ORIGIN, LOG_LEVEL")
        sys.exit(1)


if __name__ == "__main__":  # pragma: no cover - CLI entry
    main()
