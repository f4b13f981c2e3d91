"""Storefront maintenance CLI.

Runs the same sweeps as the Celery beat schedule, on demand or from cron.

Usage:
    storefront-cli clean-expired-carts   # Delete stale guest carts
    storefront-cli cleanup-sessions      # Drop expired cart sessions from Redis
    storefront-cli init-db               # Create all tables
"""

import argparse
import sys

from storefront.tasks.expire import run_clean_expired_carts, run_cleanup_expired_sessions


def clean_expired_carts() -> int:
    result = run_clean_expired_carts()
    if result["status"] != "ok":
        print(f"Failed to clean up expired carts: {result['error']}")
        return 1
    print(result["message"])
    return 0


def cleanup_sessions() -> int:
    print("Cleaning up expired cart sessions...")
    result = run_cleanup_expired_sessions()
    if result["status"] != "ok":
        print(f"Failed to clean up cart sessions: {result['error']}")
        return 1
    print("Cart sessions cleaned up successfully.")
    return 0


def init_db() -> int:
    from storefront.data.database import init_db as create_tables

    create_tables()
    print("Done.")
    return 0


COMMANDS = {
    "clean-expired-carts": clean_expired_carts,
    "cleanup-sessions": cleanup_sessions,
    "init-db": init_db,
}


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Storefront cart maintenance")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("clean-expired-carts", help="Clean up expired guest carts")
    subparsers.add_parser("cleanup-sessions", help="Clean up expired cart sessions from Redis")
    subparsers.add_parser("init-db", help="Create all database tables")

    args = parser.parse_args(argv)
    return COMMANDS[args.command]()


if __name__ == "__main__":
    sys.exit(main())
