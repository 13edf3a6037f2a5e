from sqlmodel import Session, select, func
from typing import Optional, List, Tuple
from datetime import date, timedelta

from app.models.exercise import Exercise
from app.models.workout import Workout, WorkoutExercise, WorkoutSetEntry, WorkoutStatus
from app.schemas.workout import SetDetail
from app.services.muscle_focus import derive_muscle_focus
from app.utils.dates import utc_now

def get_user_workout(session: Session, user_id: int, workout_id: int) -> Optional[Workout]:
    """Get a workout only if it belongs to the user"""
    return session.exec(
        select(Workout).where(Workout.id == workout_id, Workout.user_id == user_id)
    ).first()

def get_user_workouts(session: Session, user_id: int, skip: int = 0, limit: int = 50) -> List[Workout]:
    """Get a user's workouts, newest first"""
    query = select(Workout).where(Workout.user_id == user_id)
    query = query.order_by(Workout.created_at.desc(), Workout.id.desc()).offset(skip).limit(limit)
    return list(session.exec(query).all())

def get_workout_exercises(session: Session, workout_id: int) -> List[Tuple[WorkoutExercise, Exercise]]:
    """Exercises of a workout with their catalog entries, in workout order"""
    query = (
        select(WorkoutExercise, Exercise)
        .join(Exercise, Exercise.id == WorkoutExercise.exercise_id)
        .where(WorkoutExercise.workout_id == workout_id)
        .order_by(WorkoutExercise.order_index)
    )
    return list(session.exec(query).all())

def count_recent_workouts(session: Session, user_id: int, hours: int = 24) -> int:
    """Number of workouts the user created in the last ``hours``"""
    since = utc_now() - timedelta(hours=hours)
    query = select(func.count()).select_from(Workout).where(
        Workout.user_id == user_id,
        Workout.created_at >= since
    )
    return session.exec(query).one()

def refresh_derived_fields(session: Session, workout: Workout) -> Workout:
    """Recompute muscle focus and summary counts from the workout's exercises.

    Does not commit.
    """
    rows = get_workout_exercises(session, workout.id)
    focus = derive_muscle_focus([exercise for _, exercise in rows])

    workout.muscle_focus = focus.muscle_focus
    workout.muscle_groups_targeted = focus.muscle_groups_targeted
    workout.total_exercises = len(rows)
    workout.total_sets = sum(link.sets or 0 for link, _ in rows)
    session.add(workout)
    return workout

def derive_status(
    requested: Optional[WorkoutStatus],
    current: Optional[WorkoutStatus],
    target_date: Optional[date],
    today: Optional[date] = None
) -> WorkoutStatus:
    """Status implied by the target date, unless the workout is completed"""
    if requested == WorkoutStatus.COMPLETED:
        return WorkoutStatus.COMPLETED
    if requested is None and current == WorkoutStatus.COMPLETED:
        return WorkoutStatus.COMPLETED
    if target_date is None:
        return WorkoutStatus.NEW
    today = today or date.today()
    if target_date >= today:
        return WorkoutStatus.TARGET
    return WorkoutStatus.MISSED

def update_workout(session: Session, workout: Workout, changes: dict) -> Workout:
    """Apply name/target_date/status changes and re-derive the status.

    ``changes`` holds only the fields the caller sent; values are already
    validated.
    """
    if "name" in changes:
        workout.name = changes["name"] or None
    if "target_date" in changes:
        workout.target_date = changes["target_date"]

    workout.status = derive_status(changes.get("status"), workout.status, workout.target_date)

    session.add(workout)
    session.commit()
    session.refresh(workout)
    return workout

def rate_workout(session: Session, workout: Workout, rating: int) -> Workout:
    workout.rating = rating
    session.add(workout)
    session.commit()
    session.refresh(workout)
    return workout

def _delete_set_entries(session: Session, workout_exercise_id: int) -> None:
    for entry in get_set_entries(session, workout_exercise_id):
        session.delete(entry)

def delete_workout(session: Session, workout: Workout) -> None:
    """Delete a workout with its exercise links and logged sets"""
    links = session.exec(select(WorkoutExercise).where(WorkoutExercise.workout_id == workout.id)).all()
    for link in links:
        _delete_set_entries(session, link.id)
        session.delete(link)
    session.delete(workout)
    session.commit()

def find_workout_exercise(session: Session, workout_id: int, exercise_id: int) -> Optional[WorkoutExercise]:
    return session.exec(
        select(WorkoutExercise).where(
            WorkoutExercise.workout_id == workout_id,
            WorkoutExercise.exercise_id == exercise_id
        )
    ).first()

def next_order_index(session: Session, workout_id: int) -> int:
    query = select(func.max(WorkoutExercise.order_index)).where(WorkoutExercise.workout_id == workout_id)
    current_max = session.exec(query).one()
    return 0 if current_max is None else current_max + 1

def add_exercise_to_workout(
    session: Session,
    workout: Workout,
    exercise: Exercise,
    sets: int = 3,
    reps: str = "10-12",
    rest_seconds: int = 60,
    rationale: Optional[str] = None,
    commit: bool = True
) -> WorkoutExercise:
    """Append an exercise at the end of the workout"""
    link = WorkoutExercise(
        workout_id=workout.id,
        exercise_id=exercise.id,
        order_index=next_order_index(session, workout.id),
        sets=sets,
        reps=reps,
        rest_seconds=rest_seconds,
        rationale=rationale
    )
    session.add(link)
    session.flush()
    refresh_derived_fields(session, workout)
    if commit:
        session.commit()
        session.refresh(link)
    return link

def remove_exercise_from_workout(session: Session, workout: Workout, workout_exercise_id: int) -> bool:
    """Remove one exercise and close the gap in the ordering"""
    link = session.exec(
        select(WorkoutExercise).where(
            WorkoutExercise.id == workout_exercise_id,
            WorkoutExercise.workout_id == workout.id
        )
    ).first()
    if not link:
        return False

    deleted_index = link.order_index
    _delete_set_entries(session, link.id)
    session.delete(link)

    later = session.exec(
        select(WorkoutExercise).where(
            WorkoutExercise.workout_id == workout.id,
            WorkoutExercise.order_index > deleted_index
        )
    ).all()
    for other in later:
        other.order_index -= 1
        session.add(other)

    session.flush()
    refresh_derived_fields(session, workout)
    session.commit()
    return True

def reorder_workout_exercises(session: Session, workout: Workout, workout_exercise_ids: List[int]) -> Workout:
    """Set each listed exercise's position to its index in the list.

    Ids that are not part of this workout are ignored.
    """
    links = {
        link.id: link
        for link in session.exec(
            select(WorkoutExercise).where(WorkoutExercise.workout_id == workout.id)
        ).all()
    }
    for index, link_id in enumerate(workout_exercise_ids):
        link = links.get(link_id)
        if link is None:
            continue
        link.order_index = index
        session.add(link)

    session.commit()
    session.refresh(workout)
    return workout

def get_workout_exercise(session: Session, workout_exercise_id: int) -> Optional[WorkoutExercise]:
    return session.get(WorkoutExercise, workout_exercise_id)

def get_set_entries(session: Session, workout_exercise_id: int) -> List[WorkoutSetEntry]:
    """Logged sets of one workout exercise, by set number"""
    query = (
        select(WorkoutSetEntry)
        .where(WorkoutSetEntry.workout_exercise_id == workout_exercise_id)
        .order_by(WorkoutSetEntry.set_number, WorkoutSetEntry.id)
    )
    return list(session.exec(query).all())

def replace_set_entries(
    session: Session,
    workout: Workout,
    link: WorkoutExercise,
    details: List[SetDetail]
) -> Workout:
    """Replace the logged sets of ``link`` with ``details``.

    The exercise's set count follows the number of logged sets, and the
    workout summary is recomputed.
    """
    _delete_set_entries(session, link.id)
    for detail in details:
        session.add(WorkoutSetEntry(workout_exercise_id=link.id, **detail.model_dump()))

    link.sets = len(details)
    session.add(link)
    session.flush()
    refresh_derived_fields(session, workout)

    session.commit()
    session.refresh(workout)
    return workout
