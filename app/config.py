from pydantic_settings import BaseSettings
from pydantic import field_validator, model_validator
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = "postgresql+asyncpg://localhost:5432/crew_dispatch"

    @field_validator('DATABASE_URL', mode='before')
    @classmethod
    def convert_database_url(cls, v: str) -> str:
        """Convert postgresql:// to postgresql+asyncpg:// for async support."""
        if v and v.startswith('postgresql://'):
            return v.replace('postgresql://', 'postgresql+asyncpg://', 1)
        return v

    # CORS
    FRONTEND_URL: str = "http://localhost:5173"

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    DOCS_ENABLED: bool = True

    # Geofence radii (meters), must be strictly increasing
    DISPATCH_ARRIVAL_RADIUS_METERS: float = 100
    DISPATCH_DEPARTURE_RADIUS_METERS: float = 200
    DISPATCH_NEARBY_RADIUS_METERS: float = 500

    # Straight-line ETA estimate
    DISPATCH_ASSUMED_SPEED_MPH: float = 25

    # Scheduling
    DISPATCH_DEFAULT_MINUTES_PER_DAY: int = 480
    DISPATCH_SEGMENT_SAFETY_LIMIT_DAYS: int = 30
    DISPATCH_DEFAULT_MAX_JOBS_PER_DAY: int = 4
    DISPATCH_DEFAULT_JOB_DURATION_MINUTES: int = 120

    # Optimistic concurrency retries for automatic writers (ETA, auto-arrival)
    DISPATCH_CAS_MAX_RETRIES: int = 3

    # Target cadence for the upstream location source
    DISPATCH_UPDATE_INTERVAL_EN_ROUTE_SECONDS: int = 30
    DISPATCH_UPDATE_INTERVAL_WORKING_SECONDS: int = 300
    DISPATCH_UPDATE_INTERVAL_IDLE_SECONDS: int = 600

    @property
    def sqlalchemy_echo(self) -> bool:
        """Never echo SQL outside development."""
        return self.DEBUG and self.ENVIRONMENT == "development"

    @model_validator(mode="after")
    def check_radius_order(self) -> "Settings":
        if not (
            self.DISPATCH_ARRIVAL_RADIUS_METERS
            < self.DISPATCH_DEPARTURE_RADIUS_METERS
            < self.DISPATCH_NEARBY_RADIUS_METERS
        ):
            raise ValueError(
                "Geofence radii must satisfy ARRIVAL < DEPARTURE < NEARBY"
            )
        if self.DISPATCH_SEGMENT_SAFETY_LIMIT_DAYS < 1:
            raise ValueError("DISPATCH_SEGMENT_SAFETY_LIMIT_DAYS must be at least 1")
        return self

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
