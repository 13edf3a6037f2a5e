import logging
from sqlmodel import Session, select, col
from typing import Optional, List, Tuple
from sqlalchemy.exc import IntegrityError

from app.models.exercise import Exercise
from app.schemas.exercise import ExerciseData
from app.services.exercise_matcher import create_search_key, extract_equipment
from app.services.muscle_focus import normalize_muscles

logger = logging.getLogger(__name__)

def get_exercise(session: Session, exercise_id: int) -> Optional[Exercise]:
    """Get a catalog exercise by ID"""
    return session.get(Exercise, exercise_id)

def get_exercise_by_search_key(session: Session, search_key: str) -> Optional[Exercise]:
    return session.exec(select(Exercise).where(Exercise.search_key == search_key)).first()

def find_or_create_exercise(session: Session, data: ExerciseData, commit: bool = True) -> Tuple[Exercise, bool]:
    """Return the catalog entry matching ``data.name``, creating it if needed.

    The boolean is True when a new row was inserted. With ``commit=False`` the
    row is only flushed inside a savepoint, so the caller's transaction stays
    open and a duplicate-key race rolls back nothing but the insert.
    """
    exercise_name = data.name.strip()
    search_key = create_search_key(exercise_name)

    existing = get_exercise_by_search_key(session, search_key)
    if existing:
        logger.debug("Found existing exercise %r (id=%s)", existing.name, existing.id)
        return existing, False

    equipment = data.equipment or extract_equipment(exercise_name)
    db_exercise = Exercise(
        name=exercise_name,
        search_key=search_key,
        primary_muscles=normalize_muscles(data.primary_muscles),
        secondary_muscles=normalize_muscles(data.secondary_muscles),
        equipment=equipment.lower(),
        movement_type=data.movement_type
    )
    try:
        if commit:
            session.add(db_exercise)
            session.commit()
        else:
            with session.begin_nested():
                session.add(db_exercise)
    except IntegrityError:
        # Inserted concurrently under the same key
        if commit:
            session.rollback()
        existing = get_exercise_by_search_key(session, search_key)
        if existing is None:
            raise
        return existing, False

    if commit:
        session.refresh(db_exercise)
    logger.info("Created exercise %r with search key %r", db_exercise.name, search_key)
    return db_exercise, True

def search_exercises(
    session: Session,
    query: str = "",
    muscle: str = "",
    movement: str = "",
    limit: int = 20,
    offset: int = 0
) -> List[Exercise]:
    """Search the catalog by name, optionally filtered by a worked muscle"""
    statement = select(Exercise)

    if query:
        statement = statement.where(col(Exercise.name).ilike(f"%{query}%"))
    if movement and movement != "all":
        statement = statement.where(col(Exercise.name).ilike(f"%{movement}%"))

    statement = statement.order_by(Exercise.name)
    exercises = list(session.exec(statement).all())

    # Muscle lists are JSON columns, matched here rather than in SQL
    if muscle and muscle != "all":
        exercises = [
            exercise for exercise in exercises
            if muscle in (exercise.primary_muscles or []) or muscle in (exercise.secondary_muscles or [])
        ]

    return exercises[offset:offset + limit]
