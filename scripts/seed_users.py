#!/usr/bin/env python3
"""
Seed the database with sample users for local development.

Usage:
    python scripts/seed_users.py [count] [--reset]
"""

import asyncio
import os
import random
import sys
from datetime import timedelta

from sqlalchemy import delete

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.clock import today, utcnow, years_before
from core.db import AsyncSessionLocal
from models import Gender, GenderPreference, Match, Swipe, User, UserBlock, UserInterest

FIRST_NAMES = {
    Gender.MALE: ["James", "John", "Robert", "Michael", "William", "David", "Richard", "Joseph", "Thomas"],
    Gender.FEMALE: ["Mary", "Patricia", "Jennifer", "Linda", "Elizabeth", "Barbara", "Susan", "Jessica", "Sarah"],
}

BIOS = [
    "Love hiking, coffee, and good conversations.",
    "Foodie, traveler, and dog lover.",
    "Software engineer by day, musician by night.",
    "Bookworm, coffee addict, and aspiring chef.",
    "Photographer capturing life's moments.",
]

OCCUPATIONS = ["Software Engineer", "Teacher", "Nurse", "Chef", "Photographer", "Architect", "Writer"]

INTERESTS = [
    ["hiking", "coffee", "travel"],
    ["fitness", "yoga", "meditation"],
    ["music", "concerts", "festivals"],
    ["cooking", "food", "wine"],
    ["reading", "books", "writing"],
]

CITIES = [
    ("New York", "USA", 40.7128, -74.0060),
    ("Los Angeles", "USA", 34.0522, -118.2437),
    ("Chicago", "USA", 41.8781, -87.6298),
    ("London", "UK", 51.5074, -0.1278),
]


def build_user(index: int) -> User:
    gender = random.choice([Gender.MALE, Gender.FEMALE])
    city, country, lat, lng = random.choice(CITIES)
    age = random.randint(21, 45)
    birth = years_before(today(), age) - timedelta(days=random.randint(0, 364))
    wants = GenderPreference.FEMALE if gender is Gender.MALE else GenderPreference.MALE

    user = User(
        first_name=random.choice(FIRST_NAMES[gender]),
        date_of_birth=birth,
        gender=gender,
        bio=random.choice(BIOS),
        occupation=random.choice(OCCUPATIONS),
        photos=[f"https://picsum.photos/seed/user{index}/600/800"],
        interests=random.choice(INTERESTS),
        # Jitter within ~10 km of the city centre
        latitude=lat + random.uniform(-0.09, 0.09),
        longitude=lng + random.uniform(-0.09, 0.09),
        city=city,
        country=country,
        pref_age_min=max(18, age - 8),
        pref_age_max=age + 8,
        pref_max_distance_km=50,
        pref_show_me=wants,
        is_premium=random.random() < 0.3,
        last_active=utcnow() - timedelta(hours=random.randint(0, 72)),
    )
    user.interested_in = [UserInterest(gender=wants)]
    return user


async def seed_users(count: int, reset: bool = False) -> None:
    async with AsyncSessionLocal() as db:
        if reset:
            for model in (Swipe, Match, UserBlock, UserInterest, User):
                await db.execute(delete(model))
            print("🗑  Cleared users, swipes and matches")

        users = [build_user(i) for i in range(count)]
        db.add_all(users)
        await db.commit()
        print(f"✅ Created {len(users)} users")


if __name__ == "__main__":
    args = [a for a in sys.argv[1:] if not a.startswith("--")]
    asyncio.run(seed_users(int(args[0]) if args else 50, reset="--reset" in sys.argv))
