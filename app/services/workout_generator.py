import json
import logging
import math
import re
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from openai import AsyncOpenAI, OpenAIError
from pydantic import ValidationError as PydanticValidationError
from sqlmodel import Session

from app.config import settings
from app.crud.exercise import find_or_create_exercise
from app.crud.workout import add_exercise_to_workout
from app.errors import BackendError, ServiceUnavailableError
from app.models.workout import Workout
from app.schemas.exercise import ExerciseData
from app.schemas.workout import GeneratedExercise, WorkoutGenerationRequest
from app.services.muscle_focus import normalize_muscles
from app.utils.sanitize import sanitize_workout_name

logger = logging.getLogger(__name__)

MAX_PARSE_ATTEMPTS = 2
MAX_RATIONALE_LENGTH = 1000

FOCUS_INSTRUCTIONS = {
    "cardio": "Sustained effort 20+ min at 65-85% HRmax. Use steady state or intervals (1:1-3:1 work:rest). Emphasize aerobic capacity and efficiency.",
    "hypertrophy": "5-30 reps @65-85% 1RM, 60-180s rest, 2-8s rep tempo. Prioritize volume, mechanical tension, metabolic stress. Proximity to failure > exact reps.",
    "isolation": "Single-joint, 8-25 reps @50-75% 1RM, 45-90s rest. Refine technique, target fibers with higher volume.",
    "strength": "1-6 reps @80-95% 1RM, 2-5 min rest. Compound lifts, progressive overload. Focus on max force production.",
    "speed": "3-8 reps @30-60% 1RM moved explosively, 2-4 min rest. Emphasize velocity, full recovery, avoid fatigue.",
    "stability": "Unilateral/anti-movement patterns, 8-15 reps, 60-120s rest. Prioritize motor control, proprioception, controlled tempo.",
    "activation": "Prep/mind-muscle work, 12-25 reps @20-50% 1RM, 30-60s rest. Groove patterns, tissue warm-up.",
    "stretch": "Static 30-60s post-workout, dynamic pre-workout. Aim for ROM gains & prep.",
    "mobility": "Controlled articular rotations, loaded stretches, flows. 10-15 reps, 2-3s end-range holds.",
    "plyometric": "3-8 explosive reps, 2-5 min rest. Focus on landing mechanics, reactive strength, elastic energy use.",
    "isometric": "Static holds 10-60s @70-100% max voluntary contraction, 60-180s rest. Focus on position maintenance and breathing.",
}
DEFAULT_FOCUS_INSTRUCTIONS = "Use balanced approach with moderate intensity, focus on proper form and technique"

BASE_WORKOUT_PROMPT = """
You are a fitness science expert. Design an optimal workout based on these parameters:

USER INPUTS:
- MUSCLE_FOCUS: {muscle_focus}
- WORKOUT_FOCUS: {workout_focus}
- EXERCISE_COUNT: {exercise_count}
{special_line}
TRAINING PARAMETERS FOR {workout_focus}:
{focus_instructions}

PROGRAMMING REQUIREMENTS:
1. EXACTLY {exercise_count} exercises
2. Minimum {min_exercises_for_muscle} exercises must target MUSCLE_FOCUS
3. Exercise sequence must follow scientific principles for {workout_focus}
4. Avoid redundant movement patterns
5. Balance joint stress distribution
6. Match sets/reps/rest with {workout_focus} principles
7. Prioritize safety and efficiency
8. For rationale: explain how to perform the exercise and what to avoid (max 3 sentences)

OUTPUT FORMAT:
Return ONLY valid JSON (no text outside object):

{{
  "workout": {{
    "name": "Short workout name",
    "exercises": [
      {{
        "name": "Exercise Name",
        "sets": 3,
        "reps": 10,
        "rest_time_seconds": 90,
        "rationale": "Form guidance, benefits, risks, and tips",
        "primary_muscles": ["chest"],
        "secondary_muscles": ["triceps"],
        "equipment": "barbell",
        "movement_type": "compound"
      }}
    ],
    "total_duration_minutes": 30,
    "muscle_groups_targeted": "Primary muscle groups",
    "joint_groups_affected": "Primary joints used",
    "equipment_needed": "All equipment required"
  }}
}}
"""

RETRY_PROMPT_SUFFIX = """
IMPORTANT: Ensure STRICTLY valid JSON with the exact structure. No extra text."""

_CODE_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


def build_workout_prompt(
    muscle_focus: List[str],
    workout_focus: List[str],
    exercise_count: int = 4,
    special_instructions: Optional[str] = None,
    retry: bool = False,
) -> str:
    """Fill the workout template with the user's choices."""
    workout_focus = workout_focus or ["hypertrophy"]
    primary_focus = workout_focus[0].lower()
    special_line = f"- SPECIAL: {special_instructions.strip()}\n" if special_instructions and special_instructions.strip() else ""

    prompt = BASE_WORKOUT_PROMPT.format(
        muscle_focus=", ".join(muscle_focus),
        workout_focus=", ".join(workout_focus),
        exercise_count=exercise_count,
        special_line=special_line,
        focus_instructions=FOCUS_INSTRUCTIONS.get(primary_focus, DEFAULT_FOCUS_INSTRUCTIONS),
        min_exercises_for_muscle=max(1, math.ceil(exercise_count * 0.6)),
    )
    if retry:
        prompt += RETRY_PROMPT_SUFFIX
    return prompt


def parse_workout_response(content: str) -> Dict[str, Any]:
    """Decode the model output, tolerating a markdown code fence."""
    cleaned = _CODE_FENCE_RE.sub("", (content or "").strip())
    return json.loads(cleaned)


def validate_workout_data(data: Any, expected_count: Optional[int] = None) -> Optional[str]:
    """Return an error message, or None when the payload is usable."""
    if not isinstance(data, dict):
        return "Response is not an object"
    workout = data.get("workout")
    if not isinstance(workout, dict):
        return "Missing workout object"
    exercises = workout.get("exercises")
    if not isinstance(exercises, list):
        return "Workout does not contain an exercises array"
    if not exercises:
        return "Exercises array is empty"

    if expected_count and abs(len(exercises) - expected_count) > 2:
        logger.warning("Workout exercise count differs from request: expected ~%s, got %s",
                       expected_count, len(exercises))

    for index, exercise in enumerate(exercises):
        if not isinstance(exercise, dict) or not isinstance(exercise.get("name"), str) or not exercise["name"].strip():
            return f"Exercise at index {index} is missing a name"
        sets = exercise.get("sets")
        if isinstance(sets, bool) or not isinstance(sets, (int, float)) or sets <= 0:
            return f"Exercise {exercise['name']} has invalid sets"
        reps = exercise.get("reps")
        if isinstance(reps, bool) or not isinstance(reps, (int, float, str)):
            return f"Exercise {exercise['name']} has invalid reps type"
        if isinstance(reps, (int, float)) and reps <= 0:
            return f"Exercise {exercise['name']} has invalid reps value"
    return None


def normalize_reps(reps: Any) -> str:
    """Reps are stored as text; numbers are clamped to 1-100."""
    if isinstance(reps, (int, float)) and not isinstance(reps, bool):
        return str(int(max(1, min(100, reps))))
    if isinstance(reps, str) and reps.strip():
        return reps.strip()
    return "10"


@dataclass
class GenerationResult:
    data: Dict[str, Any]
    raw_response: str
    parse_attempts: int
    generation_time_ms: int
    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None
    exercises: List[GeneratedExercise] = field(default_factory=list)


class WorkoutGenerator:
    def __init__(self, client=None, model: Optional[str] = None):
        if client is None and settings.OPENAI_API_KEY:
            client = AsyncOpenAI(
                api_key=settings.OPENAI_API_KEY,
                timeout=settings.OPENAI_TIMEOUT_SECONDS,
                max_retries=2,
            )
        self.client = client
        self.model = model or settings.OPENAI_MODEL

    async def _complete(self, prompt: str) -> Tuple[str, Any]:
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": "You are a fitness science expert that only answers in JSON."},
                    {"role": "user", "content": prompt},
                ],
                temperature=0.7,
                response_format={"type": "json_object"},
            )
        except OpenAIError as e:
            raise BackendError(f"OpenAI request failed: {e}") from e
        return response.choices[0].message.content or "", getattr(response, "usage", None)

    async def generate(
        self,
        request: WorkoutGenerationRequest,
        special_instructions: Optional[str] = None,
    ) -> GenerationResult:
        """Ask the model for a workout, retrying once with a stricter prompt."""
        if self.client is None:
            raise ServiceUnavailableError("OpenAI API key is not configured")

        start_time = time.perf_counter()
        last_error = None
        for attempt in range(1, MAX_PARSE_ATTEMPTS + 1):
            prompt = build_workout_prompt(
                request.muscle_focus,
                request.workout_focus,
                request.exercise_count,
                special_instructions,
                retry=attempt > 1,
            )
            content, usage = await self._complete(prompt)

            try:
                data = parse_workout_response(content)
            except json.JSONDecodeError as e:
                last_error = f"Invalid JSON: {e}"
                logger.warning("Workout generation attempt %s: %s", attempt, last_error)
                continue

            last_error = validate_workout_data(data, request.exercise_count)
            if last_error:
                logger.warning("Workout generation attempt %s: %s", attempt, last_error)
                continue

            workout = data["workout"]
            try:
                exercises = [GeneratedExercise(**exercise) for exercise in workout["exercises"]]
            except PydanticValidationError as e:
                last_error = f"Invalid exercise fields: {e}"
                logger.warning("Workout generation attempt %s: %s", attempt, last_error)
                continue

            return GenerationResult(
                data=workout,
                raw_response=content,
                parse_attempts=attempt,
                generation_time_ms=int((time.perf_counter() - start_time) * 1000),
                prompt_tokens=getattr(usage, "prompt_tokens", None),
                completion_tokens=getattr(usage, "completion_tokens", None),
                exercises=exercises,
            )

        raise BackendError(f"Failed to generate workout: {last_error}")

    def save_generated_workout(
        self,
        session: Session,
        user_id: int,
        request: WorkoutGenerationRequest,
        result: GenerationResult,
        special_instructions: Optional[str] = None,
    ) -> Workout:
        """Persist a generated workout with its exercises linked in order."""
        workout = Workout(
            user_id=user_id,
            name=sanitize_workout_name(result.data.get("name")),
            total_duration_minutes=result.data.get("total_duration_minutes") or 30,
            joint_groups_affected=result.data.get("joint_groups_affected") or "Multiple joints",
            equipment_needed=result.data.get("equipment_needed") or "Bodyweight",
            workout_data=result.data,
            raw_ai_response=result.raw_response,
            ai_model=self.model,
            prompt_tokens=result.prompt_tokens,
            completion_tokens=result.completion_tokens,
            generation_time_ms=result.generation_time_ms,
            parse_attempts=result.parse_attempts,
            workout_focus=list(request.workout_focus),
            exercise_count=request.exercise_count,
            special_instructions=special_instructions,
        )
        try:
            session.add(workout)
            session.flush()

            for generated in result.exercises:
                exercise, created = find_or_create_exercise(session, ExerciseData(
                    name=generated.name,
                    primary_muscles=normalize_muscles(generated.primary_muscles),
                    secondary_muscles=normalize_muscles(generated.secondary_muscles),
                    equipment=generated.equipment,
                ), commit=False)
                logger.debug("%s exercise %s (%s)", "Created" if created else "Found", exercise.name, exercise.id)
                rationale = generated.rationale[:MAX_RATIONALE_LENGTH] if generated.rationale else None
                add_exercise_to_workout(
                    session,
                    workout,
                    exercise,
                    sets=generated.sets,
                    reps=normalize_reps(generated.reps),
                    rest_seconds=generated.rest_time_seconds or 60,
                    rationale=rationale,
                    commit=False,
                )

            session.commit()
        except Exception:
            # The workout and its catalog rows are saved together or not at all
            session.rollback()
            raise

        session.refresh(workout)
        logger.info("Workout %s created with %s exercises", workout.id, workout.total_exercises)
        return workout
