"""Flash offer push database management CLI.

Creates or drops the relational schema for the flash offers domain. A no-op
when the configured provider is the in-memory one.

Usage:
    python src/manage.py setup-db   # Create all tables
    python src/manage.py drop-db    # Drop all tables
"""

import argparse
import sys


def setup_databases():
    from flash_offers.domain import flash_offers
    from flash_offers.utils.db import setup_db

    print("Initializing flash_offers domain...")
    flash_offers.init()
    prepared = setup_db(flash_offers)
    if prepared:
        print(f"  Schema ready on: {', '.join(prepared)}")
    else:
        print("  No relational providers configured; nothing to do.")
    print("Done.")


def drop_databases():
    from flash_offers.domain import flash_offers
    from flash_offers.utils.db import drop_db

    print("Initializing flash_offers domain...")
    flash_offers.init()
    dropped = drop_db(flash_offers)
    if dropped:
        print(f"  Schema dropped on: {', '.join(dropped)}")
    else:
        print("  No relational providers configured; nothing to do.")
    print("Done.")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Flash offer push database management")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")

    args = parser.parse_args(argv)

    if args.command == "setup-db":
        setup_databases()
    elif args.command == "drop-db":
        drop_databases()
    return 0


if __name__ == "__main__":
    sys.exit(main())
