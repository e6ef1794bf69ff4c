"""Starter data: the two household members, a menu, and visitor toggles.

Idempotent: running multiple times won't create duplicates.
"""

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.db import Base, get_engine
from app.models import ROLE_FULFILLER, ROLE_ORDERER, Dish, Setting, User

logger = logging.getLogger("kitchen.seed")

SEED_MEMBERS = [
    {"name": "Chef", "role": ROLE_FULFILLER, "device_name": "Kitchen phone"},
    {"name": "Diner", "role": ROLE_ORDERER, "device_name": "Couch phone"},
]

SEED_DISHES = [
    {"name": "Mapo Tofu", "description": "Silky tofu in a numbing chili-bean sauce with minced pork.", "category": "Mains", "spice_level": 4, "prep_time": 25},
    {"name": "Tomato Egg Stir-fry", "description": "Fluffy scrambled eggs with sweet, tangy tomatoes.", "category": "Mains", "spice_level": 0, "prep_time": 10},
    {"name": "Kung Pao Chicken", "description": "Chicken with peanuts, dried chilies and Sichuan peppercorns.", "category": "Mains", "spice_level": 3, "prep_time": 20},
    {"name": "Steamed Dumplings", "description": "Pork and chive dumplings, steamed.", "category": "Appetizers", "spice_level": 0, "prep_time": 30},
    {"name": "Scallion Pancakes", "description": "Crispy, flaky layers swirled with scallions.", "category": "Appetizers", "spice_level": 0, "prep_time": 15},
    {"name": "Hot & Sour Soup", "description": "Tangy, peppery broth with tofu, mushrooms and bamboo shoots.", "category": "Soups", "spice_level": 2, "prep_time": 15},
    {"name": "Egg Fried Rice", "description": "Wok-tossed rice with egg and scallions.", "category": "Sides", "spice_level": 0, "prep_time": 10},
    {"name": "Garlic Bok Choy", "description": "Baby bok choy flash-sauteed with garlic.", "category": "Sides", "spice_level": 0, "prep_time": 8},
    {"name": "Dan Dan Noodles", "description": "Noodles in a spicy sesame-peanut sauce with chili oil.", "category": "Noodles", "spice_level": 3, "prep_time": 15},
    {"name": "Mango Pudding", "description": "Silky mango pudding topped with fresh fruit.", "category": "Desserts", "spice_level": 0, "prep_time": 5},
    {"name": "Red Bean Soup", "description": "Warm, sweet red bean soup.", "category": "Desserts", "spice_level": 0, "prep_time": 20},
    {"name": "Jasmine Tea", "description": "Fragrant jasmine-scented green tea.", "category": "Drinks", "spice_level": 0, "prep_time": 3},
]

SEED_SETTINGS = {"show_menu": "true", "show_stats": "false", "show_reviews": "false"}


def seed_household(db: Session) -> dict:
    created = {"users": 0, "dishes": 0, "settings": 0}

    for member in SEED_MEMBERS:
        if db.scalar(select(User).where(User.role == member["role"])) is None:
            db.add(User(is_whitelisted=True, **member))
            created["users"] += 1

    # Only seed the menu into an empty database; edits and deletions stick
    if db.scalar(select(Dish.id).limit(1)) is None:
        for dish in SEED_DISHES:
            db.add(Dish(price=0.0, **dish))
            created["dishes"] += 1

    for key, value in SEED_SETTINGS.items():
        if db.get(Setting, key) is None:
            db.add(Setting(key=key, value=value))
            created["settings"] += 1

    db.commit()
    if any(created.values()):
        logger.info(f"Seeded household data: {created}")
    return created


def init_db() -> None:
    """Create tables for the configured engine (SQLite default; Postgres uses Alembic)."""
    Base.metadata.create_all(bind=get_engine())
