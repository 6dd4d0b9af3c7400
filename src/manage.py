"""Farm Marketplace database management CLI.

Provides commands to create and drop the database schema of the marketplace
domain. Reuses the setup_db/drop_db utilities defined in the domain.

Usage:
    python src/manage.py setup-db   # Create all tables
    python src/manage.py drop-db    # Drop all tables
"""

import argparse
import sys


def setup_database():
    """Create the marketplace database schema."""
    from marketplace.domain import marketplace
    from marketplace.utils.db import setup_db

    print("Initializing marketplace domain...")
    marketplace.init()
    print("Creating marketplace database schema...")
    touched = setup_db(marketplace)
    if touched:
        print(f"  Schema ready on: {', '.join(touched)}.")
    else:
        print("  No relational database configured; nothing to create.")

    print("Done.")


def drop_database():
    """Drop the marketplace database schema."""
    from marketplace.domain import marketplace
    from marketplace.utils.db import drop_db

    print("Initializing marketplace domain...")
    marketplace.init()
    print("Dropping marketplace database schema...")
    touched = drop_db(marketplace)
    if touched:
        print(f"  Schema dropped on: {', '.join(touched)}.")
    else:
        print("  No relational database configured; nothing to drop.")

    print("Done.")


def main():
    parser = argparse.ArgumentParser(description="Farm Marketplace database management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_database()
    elif args.command == "drop-db":
        drop_database()
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
