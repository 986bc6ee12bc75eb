#!/usr/bin/env python3
"""
KSEF Judging Engine CLI

Usage:
    python -m ksef.cli <command> [options]

Commands:
    init-db     Create database tables
    seed-demo   Seed demo users, projects, panels and score sheets
    rankings    Print the hierarchical ranking report
    promote     Apply promotions for one (level, category) cohort

Environment:
    DATABASE_URL    Database connection string
    LOG_LEVEL       DEBUG|INFO|WARNING|ERROR
"""
import argparse
import asyncio
import json
import logging
import sys
from typing import Optional

from ksef import __version__
from ksef.orm.project import ProjectLevel
from ksef.orm.user import UserRole
from ksef.rbac import ActorContext


def setup_logging(level: str = "INFO") -> None:
    """Configure logging."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def create_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="ksef",
        description="KSEF Judging Engine CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s init-db
  %(prog)s seed-demo
  %(prog)s rankings --level Sub-County --region Nairobi
  %(prog)s promote --level Sub-County --category Physics
        """
    )

    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("init-db", help="Create database tables")
    subparsers.add_parser("seed-demo", help="Seed the demo dataset")

    levels = [level.value for level in ProjectLevel]

    rankings_parser = subparsers.add_parser("rankings", help="Print the ranking report")
    rankings_parser.add_argument("--level", choices=levels, help="Only count projects at this level")
    rankings_parser.add_argument("--region", help="Limit listed entities to a region")
    rankings_parser.add_argument("--county", help="Limit listed entities to a county (needs --region)")

    promote_parser = subparsers.add_parser("promote", help="Apply promotions for a cohort")
    promote_parser.add_argument("--level", choices=levels, required=True)
    promote_parser.add_argument("--category", required=True)

    return parser


def actor_for_scope(region: Optional[str], county: Optional[str]) -> ActorContext:
    """Administrator context whose scope matches the requested filter."""
    if county:
        return ActorContext(id=None, role=UserRole.COUNTY_ADMIN, region=region, county=county)
    if region:
        return ActorContext(id=None, role=UserRole.REGIONAL_ADMIN, region=region)
    return ActorContext.system()


async def _init_db() -> int:
    from ksef.database import init_db, close_db
    await init_db()
    await close_db()
    print("Database tables ready")
    return 0


async def _seed_demo() -> int:
    from ksef.database import AsyncSessionLocal, init_db, close_db
    from ksef.seed.seed_demo import seed_demo

    await init_db()
    async with AsyncSessionLocal() as session:
        summary = await seed_demo(session)
    await close_db()
    print(json.dumps(summary, indent=2))
    return 0


async def _rankings(args) -> int:
    from ksef.database import AsyncSessionLocal, close_db
    from ksef.services.ranking_service import RankingService

    if args.county and not args.region:
        print("Error: --county requires --region")
        return 1
    level = ProjectLevel(args.level) if args.level else None
    async with AsyncSessionLocal() as session:
        report = await RankingService.build_ranking_report(
            session, level, actor_for_scope(args.region, args.county)
        )
    await close_db()
    print(json.dumps(report.model_dump(), indent=2))
    return 0


async def _promote(args) -> int:
    from ksef.database import AsyncSessionLocal, close_db
    from ksef.errors import ServiceError
    from ksef.services.promotion_service import apply_promotions

    try:
        async with AsyncSessionLocal() as session:
            outcome = await apply_promotions(
                session, ProjectLevel(args.level), args.category, ActorContext.system()
            )
    except ServiceError as e:
        print(f"Error: {e.message} ({e.code})")
        return 1
    finally:
        await close_db()
    print(json.dumps(outcome.model_dump(), indent=2))
    return 1 if outcome.pending else 0


def main(args: Optional[list] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    parsed = parser.parse_args(args)

    if not parsed.command:
        parser.print_help()
        return 1

    setup_logging(parsed.log_level)

    if parsed.command == "init-db":
        return asyncio.run(_init_db())
    if parsed.command == "seed-demo":
        return asyncio.run(_seed_demo())
    if parsed.command == "rankings":
        return asyncio.run(_rankings(parsed))
    if parsed.command == "promote":
        return asyncio.run(_promote(parsed))

    print(f"Error: Unknown command {parsed.command}")
    return 1


if __name__ == "__main__":
    sys.exit(main())
