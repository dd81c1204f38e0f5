"""
Synthetic grades and comments for seeding imported restaurants.

Grades simulate an inspection history reaching back over a year: each
successive entry is pushed roughly 120 more days into the past. The numeric
score follows a tier band chosen by position (A: 90-99, B: 80-89,
C: 70-79) while the letter grade is drawn independently, so a record can
show grade "A" with a C-band score. Demo data only.
"""
from __future__ import annotations

import random
from datetime import datetime, timedelta, timezone
from typing import Any

from bson import ObjectId

LETTER_GRADES = ["A", "B", "C"]
TIER_BASE_SCORES = {"A": 90, "B": 80, "C": 70}

COMMENT_TEMPLATES = [
    "Amazing food! Best {dish} in the city.",
    "Great atmosphere and excellent service.",
    "The {dish} was outstanding!",
    "Highly recommend this place for a special occasion.",
    "Good food but a bit pricey.",
    "Love coming here, never disappoints!",
    "The staff was very friendly and accommodating.",
    "Perfect spot for a date night.",
    "Delicious food, will definitely return!",
    "One of my favorite restaurants in the area.",
]

DISHES = ["pasta", "sushi", "steak", "pizza", "tacos", "salad", "dessert", "appetizers"]
USER_IDS = [f"user{n:03d}" for n in range(1, 9)]

COMMENT_WINDOW_DAYS = 180


def generate_grades(
    count: int = 3,
    *,
    rng: random.Random | None = None,
    now: datetime | None = None,
) -> list[dict[str, Any]]:
    rng = rng or random.Random()
    now = now or datetime.now(timezone.utc)

    grades: list[dict[str, Any]] = []
    for i in range(count):
        days_ago = rng.randint(0, 364) + i * 120
        tier = LETTER_GRADES[i % len(LETTER_GRADES)]
        grades.append({
            "date": now - timedelta(days=days_ago),
            "grade": rng.choice(LETTER_GRADES),
            "score": TIER_BASE_SCORES[tier] + rng.randint(0, 9),
        })
    return grades


def generate_comments(
    restaurant_name: str,
    count: int = 4,
    *,
    rng: random.Random | None = None,
    now: datetime | None = None,
) -> list[dict[str, Any]]:
    """Build ``count`` positive reviews for ``restaurant_name`` from fixed templates."""
    rng = rng or random.Random()
    now = now or datetime.now(timezone.utc)

    comments: list[dict[str, Any]] = []
    for _ in range(count):
        text = rng.choice(COMMENT_TEMPLATES)
        if "{dish}" in text:
            text = text.replace("{dish}", rng.choice(DISHES))
        comments.append({
            "id": str(ObjectId()),
            "date": now - timedelta(days=rng.randint(0, COMMENT_WINDOW_DAYS - 1)),
            "comment": text,
            "user_id": rng.choice(USER_IDS),
            "rating": rng.randint(4, 5),
        })
    return comments
