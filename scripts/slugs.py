#!/usr/bin/env python3
"""
Build slugs and backfill missing ones.

Usage:
    python scripts/slugs.py build pet --name Rex --type lost --city "São Paulo" --state SP \\
        --date 2024-05-01 --id a1b2c3d4-5e6f-4a1b-8c2d-3e4f5a6b7c8d
    python scripts/slugs.py backfill pets_lost
    python scripts/slugs.py backfill events --max-attempts 20
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add src to path for imports (before other imports)
_project_root = Path(__file__).parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

from src.slugs import (  # noqa: E402
    TABLE_SLUG_CONFIGS,
    SlugAttributes,
    SlugInputError,
    build_slug,
    create_record_store,
    populate_missing_slugs,
)
from src.utils.config import get_config  # noqa: E402
from src.utils.logging import get_logger  # noqa: E402

logger = get_logger(__name__)


def parse_args():
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Build slugs and backfill records without one",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Print the candidate slug for a lost pet
  %(prog)s build pet --name Rex --type lost --city "São Paulo" --state SP --date 2024-05-01 --id a1b2c3d4

  # Print the candidate slug for an event
  %(prog)s build event --name "Feira de Adoção" --city Recife --state PE --date 2024-06-15 --id 9f8e7d6c

  # Assign slugs to every lost pet missing one
  %(prog)s backfill pets_lost
        """,
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose output",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    build = subparsers.add_parser("build", help="Print the candidate slug for an entity")
    build.add_argument("kind", help="Entity kind: pet, ong, event, partner (evento, parceiro accepted)")
    build.add_argument("--id", required=True, help="Entity id")
    build.add_argument("--name", help="Name or title")
    build.add_argument("--type", help="Pet listing type or species")
    build.add_argument("--city", help="City")
    build.add_argument("--state", help="State")
    build.add_argument("--date", help="ISO date (pet year / event date)")

    backfill = subparsers.add_parser("backfill", help="Assign slugs to records without one")
    backfill.add_argument("table", choices=sorted(TABLE_SLUG_CONFIGS), help="Table to backfill")
    backfill.add_argument(
        "--max-attempts",
        type=int,
        help="Suffixed candidates tried per record (default: from config)",
    )

    return parser.parse_args()


def run_build(args) -> int:
    attrs = SlugAttributes(
        name=args.name,
        type=args.type,
        city=args.city,
        state=args.state,
        date=args.date,
    )
    try:
        slug = build_slug(args.kind, attrs, args.id)
    except SlugInputError as e:
        print(f"❌ {e}")
        return 1

    print(slug)
    return 0


def run_backfill(args) -> int:
    try:
        env_config = get_config()
        records = create_record_store(env_config)
    except ValueError as e:
        print(f"❌ Configuration error: {e}")
        print("\nMake sure .env file exists with required variables:")
        print("  - GCS_BUCKET")
        print("  - SUPABASE_URL")
        print("  - SUPABASE_SERVICE_ROLE_KEY")
        return 1

    print(f"🏷️  Backfilling slugs for {args.table}")

    try:
        report = asyncio.run(
            populate_missing_slugs(
                args.table,
                records=records,
                max_attempts=args.max_attempts or env_config.slug_max_attempts,
                probe_attempts=env_config.slug_probe_attempts,
            )
        )
    except KeyboardInterrupt:
        print("\n⚠️  Backfill cancelled by user")
        return 130
    except Exception as e:
        logger.error(f"Backfill failed: {e}", exc_info=True)
        print(f"❌ Backfill failed: {e}")
        return 1

    print(f"✅ Generated {report.updated} slugs for {args.table}")
    if report.errors:
        print(f"\n❌ {len(report.errors)} record(s) failed:")
        for error in report.errors:
            print(f"  • {error}")
        return 1
    return 0


def main():
    """Main entry point for slug CLI."""
    args = parse_args()

    if args.verbose:
        import logging

        logging.getLogger("src").setLevel(logging.DEBUG)

    if args.command == "build":
        return run_build(args)
    return run_backfill(args)


if __name__ == "__main__":
    sys.exit(main())
