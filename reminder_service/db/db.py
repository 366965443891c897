import argparse

from sqlalchemy import Engine

from .models import Base, UserDevice, UserNotificationTracker
from .session import engine as default_engine

from reminder_service.utils.logging import get_logger

logger = get_logger()

# Tables this service owns; the domain tables belong to the profile and content services
OWNED_TABLES = [UserDevice.__table__, UserNotificationTracker.__table__]


def create_tables(engine: Engine = default_engine, include_domain: bool = False):
    """Create missing tables. Domain tables are only created for local setups."""
    tables = None if include_domain else OWNED_TABLES
    Base.metadata.create_all(engine, tables=tables)
    logger.info(f"Created {'all' if include_domain else 'notification'} tables")


def drop_tables(engine: Engine = default_engine):
    Base.metadata.drop_all(engine, tables=OWNED_TABLES)
    logger.info("Dropped notification tables")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Manage reminder service tables")
    parser.add_argument("--drop", action="store_true", help="Drop notification tables first")
    parser.add_argument(
        "--with-domain", action="store_true", help="Also create the domain tables (local dev)"
    )
    args = parser.parse_args()

    if args.drop:
        drop_tables()
    create_tables(include_domain=args.with_domain)
