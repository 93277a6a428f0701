"""Voltline Commerce management CLI.

Creates and drops the database schema, and runs the abandoned-cart sweep
for schedulers that prefer a process over an HTTP call.

Usage:
    python src/manage.py setup-db   # Create all tables
    python src/manage.py drop-db    # Drop all tables
    python src/manage.py sweep      # Abandon idle carts and send recovery emails
"""

import argparse
import sys
from datetime import timedelta


def setup_database():
    """Create the database schema for the commerce domain."""
    from commerce.domain import commerce
    from commerce.utils.db import setup_db

    print("Initializing commerce domain...")
    commerce.init()
    print("Creating commerce database schema...")
    setup_db(commerce)
    print("Done.")


def drop_database():
    """Drop the database schema for the commerce domain."""
    from commerce.domain import commerce
    from commerce.utils.db import drop_db

    print("Initializing commerce domain...")
    commerce.init()
    print("Dropping commerce database schema...")
    drop_db(commerce)
    print("Done.")


def sweep(idle_minutes=None):
    """Run one abandoned-checkout sweep and report how many carts it claimed."""
    from commerce.domain import commerce
    from commerce.utils.logging import configure_logging
    from commerce.wiring import build_services

    configure_logging()
    commerce.init()
    with commerce.domain_context():
        services = build_services(commerce)
        threshold = timedelta(minutes=idle_minutes) if idle_minutes else services.idle_threshold
        count = services.lifecycle.sweep_abandoned(idle_threshold=threshold)
    print(f"Abandoned {count} checkout(s).")


def main():
    parser = argparse.ArgumentParser(description="Voltline Commerce management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")

    sweep_parser = subparsers.add_parser("sweep", help="Abandon idle checkouts")
    sweep_parser.add_argument(
        "--idle-minutes",
        type=int,
        help="Idle time before a cart counts as abandoned (default: ABANDONED_IDLE_MINUTES)",
    )

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_database()
    elif args.command == "drop-db":
        drop_database()
    elif args.command == "sweep":
        sweep(args.idle_minutes)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
