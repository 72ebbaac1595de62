"""Storefront database management CLI.

Usage:
    python src/manage.py setup-db   # Create all tables
    python src/manage.py drop-db    # Drop all tables
"""

import argparse
import sys


def _domain():
    from storefront.domain import storefront

    storefront.init()
    return storefront


def setup_databases():
    from storefront.utils.db import setup_db

    print("Initializing storefront domain...")
    domain = _domain()
    touched = setup_db(domain)
    if touched:
        print(f"  Created schema on: {', '.join(touched)}")
    else:
        print("  No relational providers configured; nothing to create.")
    print("Done.")


def drop_databases():
    from storefront.utils.db import drop_db

    print("Initializing storefront domain...")
    domain = _domain()
    touched = drop_db(domain)
    if touched:
        print(f"  Dropped schema on: {', '.join(touched)}")
    else:
        print("  No relational providers configured; nothing to drop.")
    print("Done.")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Storefront database management")
    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("setup-db", help="Create database tables")
    subparsers.add_parser("drop-db", help="Drop database tables")

    args = parser.parse_args(argv)

    if args.command == "setup-db":
        setup_databases()
    elif args.command == "drop-db":
        drop_databases()
    else:
        parser.print_help()
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
