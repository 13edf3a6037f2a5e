"""Exercise name matching, used to keep the catalog free of duplicates
when the same exercise is written in different ways."""

import re

EQUIPMENT_TYPES = [
    'barbell',
    'dumbbell',
    'cable',
    'machine',
    'kettlebell',
    'resistance band',
    'ez bar',
    'suspension trainer',
    'wall',
    'chair',
    'bench',
]

_NON_LETTERS_RE = re.compile(r"[^a-z\s]")


def create_search_key(exercise_name: str) -> str:
    """Order-insensitive key for an exercise name.

    "Barbell Bench Press" and "bench press (barbell)" share the key
    "barbellbenchpress".
    """
    words = _NON_LETTERS_RE.sub("", exercise_name.lower()).split()
    return "".join(sorted(words))


def extract_equipment(exercise_name: str) -> str:
    """First known piece of equipment named in the exercise, else bodyweight."""
    lower_name = exercise_name.lower()
    for equipment in EQUIPMENT_TYPES:
        if equipment in lower_name:
            return equipment
    return 'bodyweight'
