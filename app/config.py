from pydantic import BaseModel
from pydantic_settings import BaseSettings
from functools import lru_cache
from dotenv import load_dotenv

load_dotenv()

class Settings(BaseSettings):
    API_V1_PREFIX: str = "/api/v1"
    DATABASE_URL: str = "sqlite:///./app.db"
    SECRET_KEY: str = "your-secret-key-here"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # OpenAI Configuration
    OPENAI_API_KEY: str = ""
    OPENAI_MODEL: str = "gpt-3.5-turbo"
    OPENAI_TIMEOUT_SECONDS: float = 60.0

    # Workout generation quota (per user, rolling 24h)
    WORKOUT_GENERATION_DAILY_LIMIT: int = 100

    class Config:
        env_file = ".env"

@lru_cache()
def get_settings():
    return Settings()

settings = get_settings()


class QueryOptions(BaseModel):
    """Freshness and retry policy for a read endpoint.

    Times are in seconds. ``stale_time`` is how long a response may be served
    without revalidation, ``gc_time`` how long an unused copy may be kept.
    """

    stale_time: int
    gc_time: int
    retry: int = 0
    refetch_on_window_focus: bool = False
    refetch_on_mount: bool = True
    refetch_on_reconnect: bool = False

    model_config = {"frozen": True}

    def cache_control(self) -> str:
        revalidate = max(self.gc_time - self.stale_time, 0)
        return f"private, max-age={self.stale_time}, stale-while-revalidate={revalidate}"


MEASUREMENTS_QUERY_OPTIONS = QueryOptions(
    stale_time=5 * 60,
    gc_time=10 * 60,
    retry=2,
)

REALTIME_QUERY_OPTIONS = QueryOptions(
    stale_time=1 * 60,
    gc_time=5 * 60,
    retry=2,
    refetch_on_window_focus=True,
)

STATIC_QUERY_OPTIONS = QueryOptions(
    stale_time=60 * 60,
    gc_time=30 * 60,
    retry=1,
    refetch_on_mount=False,
)
