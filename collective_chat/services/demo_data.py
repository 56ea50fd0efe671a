"""
Demo data generator for the Neighborhood Collective chat assistant.
Creates neighborhoods, categories, businesses, member profiles and favorites
so both assistant modes can be tried locally.
"""

import random
from datetime import timedelta
from typing import Dict, List, Optional

from faker import Faker
from loguru import logger

from collective_chat.config.settings import settings
from collective_chat.infra.database import Database, get_database
from collective_chat.models.domain import (
    Business,
    Category,
    Favorite,
    Neighborhood,
    Profile,
    new_id,
    utcnow,
)


fake = Faker()

NEIGHBORHOODS = [
    "Maple Grove", "Riverside", "Oak Hill", "Cedar Park", "Lakeview", "Willow Creek",
]

CATEGORIES = [
    ("Plumbing", "🔧"),
    ("Electrical", "⚡"),
    ("Landscaping", "🌳"),
    ("House Cleaning", "🧹"),
    ("Handyman", "🔨"),
    ("Painting", "🎨"),
    ("Roofing", "🏠"),
    ("Pest Control", "🐜"),
    ("HVAC", "❄️"),
    ("Pet Care", "🐾"),
]

BUSINESS_SUFFIXES = ["Services", "Pros", "& Sons", "Co.", "Experts", "Solutions"]


def generate_neighborhoods() -> List[Neighborhood]:
    return [Neighborhood(id=new_id(), name=name) for name in NEIGHBORHOODS]


def generate_categories() -> List[Category]:
    return [Category(id=new_id(), name=name, emoji=emoji) for name, emoji in CATEGORIES]


def generate_businesses(
    categories: List[Category],
    neighborhoods: List[Neighborhood],
    count: int = 30,
    owner_ids: Optional[List[str]] = None,
) -> List[Business]:
    """Generate businesses; the first ``len(owner_ids)`` get an owning operator."""
    owner_ids = owner_ids or []
    businesses = []
    for i in range(count):
        category = random.choice(categories)
        businesses.append(
            Business(
                id=new_id(),
                user_id=owner_ids[i] if i < len(owner_ids) else None,
                name=f"{fake.last_name()} {category.name} {random.choice(BUSINESS_SUFFIXES)}",
                description=fake.catch_phrase(),
                category_id=category.id,
                neighborhood_id=random.choice(neighborhoods).id,
            )
        )
    return businesses


def generate_profiles(user_ids: List[str], neighborhoods: List[Neighborhood]) -> List[Profile]:
    return [
        Profile(
            id=user_id,
            full_name=fake.name(),
            neighborhood_id=random.choice(neighborhoods).id,
        )
        for user_id in user_ids
    ]


def generate_favorites(
    user_ids: List[str], businesses: List[Business], per_user: int = 4
) -> List[Favorite]:
    favorites = []
    now = utcnow()
    for user_id in user_ids:
        picks = random.sample(businesses, min(per_user, len(businesses)))
        for offset, business in enumerate(picks):
            favorites.append(
                Favorite(
                    id=new_id(),
                    user_id=user_id,
                    business_id=business.id,
                    created_at=now - timedelta(days=offset),
                )
            )
    return favorites


def populate_database(
    database: Optional[Database] = None,
    homeowner_ids: Optional[List[str]] = None,
    owner_ids: Optional[List[str]] = None,
    num_businesses: int = 30,
    reset: bool = False,
) -> Dict[str, int]:
    """
    Populate the directory tables with demo data.

    Homeowners get a profile and favorites; business owners get a profile and
    own one business each, so the classifier puts them in sales mode.

    Args:
        database: Target database (defaults to the configured one)
        homeowner_ids: User ids to seed as homeowners
        owner_ids: User ids to seed as business operators
        num_businesses: Total businesses to create
        reset: Drop and recreate all tables first

    Returns:
        Row counts per table
    """
    database = database or get_database()
    homeowner_ids = homeowner_ids or []
    owner_ids = owner_ids or []

    logger.info("🔧 Starting database population...")
    if reset:
        logger.warning("Dropping all tables")
        database.drop_tables()
    database.create_tables()

    with database.session_scope() as session:
        existing = session.query(Category).count()
        if existing and not reset:
            logger.warning(f"Database already has {existing} categories. Use reset=True to clear.")
            return {}

        neighborhoods = generate_neighborhoods()
        categories = generate_categories()
        session.add_all(neighborhoods + categories)
        session.flush()

        businesses = generate_businesses(
            categories, neighborhoods, count=max(num_businesses, len(owner_ids)), owner_ids=owner_ids
        )
        session.add_all(businesses)
        session.flush()

        profiles = generate_profiles(homeowner_ids + owner_ids, neighborhoods)
        favorites = generate_favorites(homeowner_ids, businesses)
        session.add_all(profiles + favorites)

        counts = {
            "neighborhoods": len(neighborhoods),
            "categories": len(categories),
            "businesses": len(businesses),
            "profiles": len(profiles),
            "favorites": len(favorites),
        }

    logger.success("🎉 Database population complete!")
    logger.info(f"Database location: {settings.database_url_resolved}")
    for table, count in counts.items():
        logger.info(f"  - {table}: {count}")
    return counts
