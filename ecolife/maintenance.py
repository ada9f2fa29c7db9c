"""Maintenance jobs meant to be run from cron or by hand.

    python -m ecolife.maintenance migrate
    python -m ecolife.maintenance cleanup-tips [--before YYYY-MM-DD]
    python -m ecolife.maintenance sync-bikes [--if-empty] [--retry-delay 60]
    python -m ecolife.maintenance status
"""

import argparse
import datetime as dt
import json
import os
import sys
import time
from typing import Optional, Sequence

from sqlalchemy.engine import Engine

from .bike_sync import BikeNetworkSync
from .config import Settings, settings as default_settings
from .db.migrations import MigrationRunner, table_names
from .eco_tip_service import EcoTipService
from .openai_client import ChatCompletionClient
from .repositories import build_bike_network_repository, build_database_engine, build_eco_tip_repository
from utils.logging_utils import get_tagged_logger, setup_logging

logger = get_tagged_logger(__name__, tag="maintenance")


def _migrate(args, settings: Settings, engine: Engine) -> int:
    runner = MigrationRunner(engine)
    if args.downgrade:
        reverted = runner.downgrade(args.downgrade)
        logger.info(f"Reverted migrations: {', '.join(reverted) or 'none'}")
    else:
        runner.upgrade()
    return 0


def _cleanup_tips(args, settings: Settings, engine: Engine) -> int:
    service = EcoTipService(build_eco_tip_repository(settings, engine=engine), ChatCompletionClient(settings=settings), settings)
    if args.before:
        deleted = service.purge_before(args.before)
    else:
        deleted = service.purge_expired()
    logger.info(f"Eco tip cleanup removed {deleted} entries")
    return 0


def _sync_bikes(args, settings: Settings, engine: Engine) -> int:
    sync = BikeNetworkSync(build_bike_network_repository(settings, engine=engine))
    if args.if_empty and not sync.needs_initial_sync():
        logger.info("Bike networks already present; skipping sync")
        return 0

    report = sync.sync_networks()
    if report.rate_limited and args.retry_delay > 0:
        logger.info(f"Waiting {args.retry_delay}s before retrying {len(report.rate_limited)} rate-limited networks")
        time.sleep(args.retry_delay)
        retry = sync.retry_rate_limited()
        report.networks_processed += retry.networks_processed
        report.networks_failed += retry.networks_failed
        report.rate_limited = retry.rate_limited
        report.stations_created += retry.stations_created
        report.stations_updated += retry.stations_updated
        report.stations_removed += retry.stations_removed

    print(json.dumps(vars(report), indent=2))
    return 1 if report.networks_failed else 0


def _status(args, settings: Settings, engine: Engine) -> int:
    info = MigrationRunner(engine).status()
    info["tables"] = table_names(engine)
    print(json.dumps(info, indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ecolife-maintenance", description=__doc__.splitlines()[0])
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("migrate", help="apply pending schema migrations")
    p.add_argument("--downgrade", type=int, default=0, metavar="STEPS",
                   help="revert the newest STEPS migrations instead")
    p.set_defaults(handler=_migrate)

    p = sub.add_parser("cleanup-tips", help="delete expired eco tip cache entries")
    p.add_argument("--before", type=dt.date.fromisoformat, default=None,
                   help="delete entries dated strictly before this day (default: retention cutoff)")
    p.set_defaults(handler=_cleanup_tips)

    p = sub.add_parser("sync-bikes", help="refresh bike networks and stations from CityBikes")
    p.add_argument("--if-empty", action="store_true", help="only sync when no networks are stored yet")
    p.add_argument("--retry-delay", type=float, default=0,
                   help="seconds to wait before one retry of rate-limited networks (0 disables)")
    p.set_defaults(handler=_sync_bikes)

    p = sub.add_parser("status", help="show migration state and tables")
    p.set_defaults(handler=_status)
    return parser


def main(argv: Optional[Sequence[str]] = None, settings: Settings | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(level=os.getenv("LOG_LEVEL", "INFO"), job_name=args.command, override_existing=True)
    settings = settings or default_settings
    engine = build_database_engine(settings)
    try:
        return args.handler(args, settings, engine)
    finally:
        engine.dispose()


if __name__ == "__main__":
    sys.exit(main())
