from .user import User
from .measurement import Measurement, MetricCatalog, MeasurementSource
from .exercise import Exercise, MovementType
from .workout import Workout, WorkoutExercise, WorkoutSetEntry, WorkoutStatus

__all__ = [
    'User',
    'Measurement',
    'MetricCatalog',
    'MeasurementSource',
    'Exercise',
    'MovementType',
    'Workout',
    'WorkoutExercise',
    'WorkoutSetEntry',
    'WorkoutStatus'
]
