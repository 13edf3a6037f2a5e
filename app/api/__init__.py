from fastapi import APIRouter
from app.api import (
    auth,
    measurements,
    exercises,
    workouts
)

api_router = APIRouter()

# Include all routers
api_router.include_router(auth.router, prefix="/auth")
api_router.include_router(measurements.router)
api_router.include_router(exercises.router)
api_router.include_router(workouts.router)
