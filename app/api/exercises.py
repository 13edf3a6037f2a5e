from fastapi import APIRouter, Depends, Query, Response
from sqlmodel import Session

from app.api.auth import get_current_user
from app.config import STATIC_QUERY_OPTIONS
from app.crud.exercise import search_exercises
from app.database import get_session
from app.models.user import User
from app.schemas.exercise import ExerciseResponse, ExerciseSearchResponse

router = APIRouter(prefix="/exercises", tags=["exercises"])

@router.get("/search", response_model=ExerciseSearchResponse)
async def search_exercise_catalog(
    response: Response,
    query: str = Query("", max_length=100),
    muscle: str = Query(""),
    movement: str = Query(""),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
) -> ExerciseSearchResponse:
    """Search the exercise catalog by name and worked muscle"""
    exercises = search_exercises(session, query=query.strip(), muscle=muscle, movement=movement,
                                 limit=limit, offset=offset)
    response.headers["Cache-Control"] = STATIC_QUERY_OPTIONS.cache_control()
    return ExerciseSearchResponse(exercises=[ExerciseResponse.model_validate(exercise) for exercise in exercises])
