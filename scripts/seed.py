"""Seed reference data: default categories, starter tags and the admin account.

Usage: python scripts/seed.py [admin_email admin_password]
Without arguments the admin comes from DEFAULT_ADMIN_EMAIL / DEFAULT_ADMIN_PASSWORD.
"""

import sys
import os

# Add parent dir to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import structlog

from app.core.logging import configure_logging
from app.infrastructure.database import Base, SessionLocal, engine
import app.main  # noqa: F401  registers every model on Base

from app.application.services.bootstrap import (
    ensure_admin,
    ensure_default_categories,
    ensure_starter_tags,
)

logger = structlog.get_logger("seed")


def seed(admin_email=None, admin_password=None):
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        categories = ensure_default_categories(db)
        tags = ensure_starter_tags(db)
        admin = ensure_admin(db, admin_email, admin_password)
        logger.info(
            "Seed complete",
            categories_created=categories,
            tags_created=tags,
            admin=admin.email if admin else None,
        )
    except Exception as e:
        db.rollback()
        logger.error("Seed failed", error=str(e))
        raise
    finally:
        db.close()


if __name__ == "__main__":
    configure_logging()
    args = sys.argv[1:]
    if len(args) not in (0, 2):
        print(__doc__)
        sys.exit(1)
    seed(*args)
