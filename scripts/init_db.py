"""
Initialize the database with demo directory data.

Usage:
    python scripts/init_db.py --homeowner <user-id> --owner <user-id>

Homeowner ids get favorites and land in the service assistant; owner ids
each get a business and land in the sales assistant. With the static auth
provider, use the user ids from STATIC_AUTH_TOKENS.
"""

import argparse
import sys
from pathlib import Path

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

from loguru import logger

from collective_chat.services.demo_data import populate_database


def main():
    """Main entry point for database initialization."""
    parser = argparse.ArgumentParser(description="Seed demo directory data")
    parser.add_argument("--homeowner", action="append", default=[], help="User id to seed as a homeowner")
    parser.add_argument("--owner", action="append", default=[], help="User id to seed as a business owner")
    parser.add_argument("--businesses", type=int, default=30)
    parser.add_argument("--keep", action="store_true", help="Keep existing data")
    args = parser.parse_args()

    logger.info("=" * 60)
    logger.info("Neighborhood Collective Chat - Database Setup")
    logger.info("=" * 60)

    try:
        populate_database(
            homeowner_ids=args.homeowner,
            owner_ids=args.owner,
            num_businesses=args.businesses,
            reset=not args.keep,
        )
    except Exception as e:
        logger.exception(f"Failed to initialize database: {e}")
        sys.exit(1)

    logger.success("✅ Database initialization complete!")


if __name__ == "__main__":
    main()
