from typing import Any, Iterable, List, Mapping, Optional, Sequence, Union

from pydantic import BaseModel

# Muscle lists arrive as a real list, a comma-joined string left over from
# older rows (often with stray quotes), or nothing at all.
MuscleValue = Union[Sequence[str], str, None]

MUSCLE_FIELDS = ("primary_muscles", "secondary_muscles", "primary_muscle")


class MuscleFocus(BaseModel):
    muscle_focus: List[str] = []
    muscle_groups_targeted: str = ""


def normalize_muscles(value: MuscleValue) -> List[str]:
    """Convert any accepted muscle-list shape into a clean list of names."""
    if not value:
        return []
    if isinstance(value, str):
        segments = (segment.replace('"', "").strip() for segment in value.split(","))
        return [segment for segment in segments if segment]
    if isinstance(value, (list, tuple)):
        items = (str(item).strip() for item in value if item is not None)
        return [item for item in items if item]
    return []


def _read_field(exercise: Any, field: str) -> MuscleValue:
    if isinstance(exercise, Mapping):
        return exercise.get(field)
    return getattr(exercise, field, None)


def _locale_key(name: str):
    # Case-insensitive, lowercase first on ties ("chest" before "Chest")
    return (name.casefold(), name.swapcase())


def derive_muscle_focus(exercises: Optional[Iterable[Any]]) -> MuscleFocus:
    """Collect the muscles worked by ``exercises``.

    Primary, secondary and the legacy singular ``primary_muscle`` field are
    merged, deduplicated and sorted, so the result does not depend on the
    order of the exercises.
    """
    if not isinstance(exercises, (list, tuple)) or not exercises:
        return MuscleFocus()

    muscles = set()
    for exercise in exercises:
        if exercise is None:
            continue
        for field in MUSCLE_FIELDS:
            muscles.update(normalize_muscles(_read_field(exercise, field)))

    muscle_focus = sorted(muscles, key=_locale_key)
    return MuscleFocus(
        muscle_focus=muscle_focus,
        muscle_groups_targeted=", ".join(muscle_focus),
    )
