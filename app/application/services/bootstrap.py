"""Idempotent bootstrap of reference data — categories, tags, the first admin."""

from typing import Optional

import structlog
from sqlalchemy.orm import Session

from app.application.services.auth_service import create_user, get_user_by_email
from app.config import get_settings
from app.domain.authorization import Role
from app.domain.models.category import Category, Tag
from app.domain.models.user import User
from app.infrastructure.repositories.tract_repository import tag_slug

settings = get_settings()
logger = structlog.get_logger(__name__)

DEFAULT_CATEGORIES = [
    ("Evangelism", "evangelism", "Salvation, witnessing, outreach"),
    ("Discipleship", "discipleship", "Christian growth, spiritual disciplines"),
    ("Apologetics", "apologetics", "Defending the faith, addressing doubts"),
    ("Youth", "youth", "Children and teen-focused materials"),
    ("Family", "family", "Marriage, parenting, relationships"),
    ("Seasonal", "seasonal", "Christmas, Easter, special occasions"),
]

STARTER_TAGS = [
    "salvation", "gospel", "prayer", "bible-study", "christmas",
    "easter", "teens", "children", "marriage", "faith",
]


def ensure_default_categories(db: Session) -> int:
    """Insert missing default categories. Returns how many were created."""
    existing = {slug for (slug,) in db.query(Category.slug).all()}
    created = 0
    for order, (name, slug, description) in enumerate(DEFAULT_CATEGORIES):
        if slug in existing:
            continue
        db.add(Category(name=name, slug=slug, description=description, order=order))
        created += 1
    if created:
        db.commit()
        logger.info("Default categories created", count=created)
    return created


def ensure_starter_tags(db: Session) -> int:
    existing = {name for (name,) in db.query(Tag.name).all()}
    missing = [name for name in STARTER_TAGS if name not in existing]
    for name in missing:
        db.add(Tag(name=name, slug=tag_slug(name)))
    if missing:
        db.commit()
        logger.info("Starter tags created", count=len(missing))
    return len(missing)


def ensure_admin(db: Session, email: Optional[str] = None, password: Optional[str] = None) -> Optional[User]:
    """Create the bootstrap admin unless unconfigured or already present."""
    email = email if email is not None else settings.DEFAULT_ADMIN_EMAIL
    password = password if password is not None else settings.DEFAULT_ADMIN_PASSWORD
    if not email or not password:
        return None

    user = get_user_by_email(db, email)
    if user is not None:
        return user

    user = create_user(db, name="Admin", email=email, password=password, role=Role.ADMIN.value)
    logger.info("Default admin user created", email=email)
    return user
