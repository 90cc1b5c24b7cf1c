"""
Demo drill catalog.

Three categories with 80 drills each, difficulty 9..88, two technique tags per
drill rotating through the category's tag set.
"""
from __future__ import annotations

from drillcoach.core.models import Drill

TAGS_BY_CATEGORY: dict[str, list[str]] = {
    "shooting": ["footwork", "release", "arc", "balance"],
    "passing": ["vision", "timing", "accuracy", "movement"],
    "defense": ["positioning", "reaction", "angles", "balance"],
}


def build_demo_drill_pool(drills_per_category: int = 80, duration_minutes: int = 10) -> list[Drill]:
    drills = []
    for category, tags in TAGS_BY_CATEGORY.items():
        for index in range(1, drills_per_category + 1):
            difficulty = max(5, min(95, 8 + index))
            primary = tags[index % len(tags)]
            secondary = tags[(index + 1) % len(tags)]
            drills.append(
                Drill(
                    id=f"{category}_drill_{index}",
                    title=f"{category.capitalize()} Drill {index}",
                    category=category,
                    difficulty_score=float(difficulty),
                    tags=frozenset({primary, secondary}),
                    summary=f"Practice {category} with emphasis on {primary} and {secondary}.",
                    duration_minutes=duration_minutes,
                )
            )
    return drills
