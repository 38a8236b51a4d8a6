"""Command-line entry point.

Usage:
    # Serve the AI proxy route and the dashboard event feed
    python -m finantech serve

    # Write the demonstration data into the data directory
    python -m finantech seed --force

    # Scan payables and receivables for reminders and overdue alerts
    python -m finantech notify

    # Ask the AI proxy for reconciliation pairs and confirm them
    python -m finantech reconcile --company "Filial São Paulo"

    # Ask the AI proxy to analyze the last six months of cash flow
    python -m finantech analyze
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Sequence

import structlog
import uvicorn

from finantech.ai.proxy_client import ProxyClient
from finantech.api import create_app
from finantech.config import configure_logging, get_settings
from finantech.config.seed_loader import load_seed_data
from finantech.events import start_publisher, stop_publisher
from finantech.store import COLLECTIONS, AppState, JsonStore

logger = structlog.get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="finantech",
        description="Finantech financial dashboard backend",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s serve --port 8080        # Serve the proxy on port 8080
  %(prog)s seed --force             # Overwrite stored data with the seed
  %(prog)s notify                   # Create today's notifications
  %(prog)s analyze                  # AI analysis of the recent cash flow
        """,
    )
    parser.add_argument(
        "--data-dir",
        type=str,
        default=None,
        help="Directory holding the stored collections (default: FINANTECH_DATA_DIR)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the HTTP API and the event feed")
    serve.add_argument("--host", type=str, default=None, help="Bind address")
    serve.add_argument("--port", type=int, default=None, help="HTTP port")
    serve.add_argument(
        "--no-events",
        action="store_true",
        help="Do not start the WebSocket event feed",
    )

    seed = subparsers.add_parser("seed", help="Write the demonstration data")
    seed.add_argument(
        "--force",
        action="store_true",
        help="Overwrite collections that already exist",
    )

    subparsers.add_parser("notify", help="Scan for reminders and overdue items")

    reconcile = subparsers.add_parser("reconcile", help="Reconcile with AI suggestions")
    reconcile.add_argument("--company", type=str, default=None, help="Company name")

    analyze = subparsers.add_parser("analyze", help="AI analysis of the recent cash flow")
    analyze.add_argument("--company", type=str, default=None, help="Company name")

    return parser


def seed_store(store: JsonStore, force: bool = False) -> list[str]:
    """Write every seed collection; returns the keys written."""
    seed = load_seed_data()
    written = []
    for name in COLLECTIONS:
        if store.has(name) and not force:
            continue
        store.set(name, seed.get(name, []))
        written.append(name)
    return written


async def serve(state: AppState, host: str, port: int, with_events: bool) -> None:
    """Run uvicorn over the state routes, with the event publisher attached."""
    publisher = None
    if with_events:
        publisher = await start_publisher()
        state.add_listener(publisher.publish)

    state.refresh_notifications()

    app = create_app(state=state, publisher=publisher)
    config = uvicorn.Config(app, host=host, port=port, log_config=None)
    server = uvicorn.Server(config)
    try:
        await server.serve()
    finally:
        if publisher is not None:
            state.remove_listener(publisher.publish)
            await stop_publisher()


async def reconcile(state: AppState, company: str | None) -> int:
    session = state.reconciliation_session(company)
    async with ProxyClient() as advisor:
        suggestions = await session.request_suggestions(advisor)

    for suggestion in suggestions:
        print(f"{suggestion.bank_tx_id} <-> {suggestion.system_tx_id}: {suggestion.reason}")

    session.confirm_suggestions()
    return state.apply_reconciliation(session)


async def analyze(state: AppState, company: str | None) -> str | None:
    """Send the computed cash flow to the proxy; None when there is no activity."""
    company = company or state.selected_company
    flow = state.cash_flow(company)
    if not flow:
        return None

    receivables = [tx for tx in state.receivables if tx.company == company]
    payables = [tx for tx in state.payables if tx.company == company]
    async with ProxyClient() as client:
        return await client.financial_analysis(flow, receivables, payables)


def main(argv: Sequence[str] | None = None) -> int:
    configure_logging()
    args = build_parser().parse_args(argv)
    settings = get_settings()

    store = JsonStore(args.data_dir) if args.data_dir else JsonStore()

    try:
        if args.command == "seed":
            written = seed_store(store, force=args.force)
            logger.info("seed_written", collections=written)
            print(f"{len(written)} coleções gravadas em {store.data_dir}")
            return 0

        state = AppState.load(store)

        if args.command == "notify":
            created = state.refresh_notifications()
            for notification in created:
                print(f"[{notification.company}] {notification.title}: {notification.description}")
            print(f"{len(created)} notificações criadas")
            return 0

        if args.command == "reconcile":
            count = asyncio.run(reconcile(state, args.company))
            print(f"{count} transações foram conciliadas com sucesso!")
            return 0

        if args.command == "analyze":
            text = asyncio.run(analyze(state, args.company))
            print(text if text is not None else "Sem movimentação nos últimos 6 meses.")
            return 0

        asyncio.run(
            serve(
                state,
                host=args.host or settings.api_host,
                port=args.port or settings.api_port,
                with_events=not args.no_events,
            )
        )
        return 0

    except KeyboardInterrupt:
        logger.info("interrupted")
        return 130
    except Exception as e:
        logger.exception("command_failed", command=args.command, error=str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
