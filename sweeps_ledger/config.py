"""Application configuration."""
from functools import lru_cache

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic_settings import BaseSettings


class SiteSettings(BaseModel):
    """Operator-tunable site settings.

    Only the options listed here are recognized; unknown keys are rejected.
    Amounts are whole coins and are converted to minor units where used.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    signup_bonus_gc: int = Field(default=10000, ge=0)
    signup_bonus_sc: int = Field(default=5, ge=0)
    referral_bonus_gc: int = Field(default=1000, ge=0)
    referral_bonus_sc: int = Field(default=1, ge=0)
    daily_bonus_gc: int = Field(default=5000, ge=0)
    redemption_fee_sc: int = Field(default=5, ge=0)
    min_redemption_sc: int = Field(default=100, ge=0)
    ticket_purchase_limit_per_minute: int = Field(default=50, ge=1)
    tournament_prize_split: tuple[int, ...] = Field(
        default=(50, 30, 20),
        description="Percent of the prize pool paid to rank 1, 2, 3, ...",
    )

    @field_validator("tournament_prize_split")
    @classmethod
    def validate_prize_split(cls, v: tuple[int, ...]) -> tuple[int, ...]:
        """Prize split must be non-empty, non-negative and not exceed 100%."""
        if not v:
            raise ValueError("tournament_prize_split must not be empty")
        if any(p < 0 for p in v):
            raise ValueError("tournament_prize_split entries must be >= 0")
        if sum(v) > 100:
            raise ValueError("tournament_prize_split must not exceed 100 percent")
        return v

    @model_validator(mode="after")
    def validate_redemption_fee(self) -> "SiteSettings":
        """A redemption at the minimum amount must still pay out something."""
        if self.redemption_fee_sc >= self.min_redemption_sc > 0:
            raise ValueError("redemption_fee_sc must be lower than min_redemption_sc")
        return self


class Settings(BaseSettings):
    """Application settings."""

    # App
    app_env: str = "development"
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_debug: bool = False
    log_level: str = "INFO"

    # Database
    database_url: str = Field(
        default="sqlite+aiosqlite:///./sweeps_ledger.db",
        description="Database connection URL (postgresql+asyncpg:// in production)",
    )
    db_pool_size: int = Field(
        default=20,
        description="DB connection pool size (ignored for SQLite)",
    )
    db_max_overflow: int = Field(
        default=10,
        description="Max overflow connections (ignored for SQLite)",
    )

    # Redis (notification transport and scheduler lock)
    redis_url: str | None = Field(
        default=None,
        description="Redis connection URL; notifications are dropped when unset",
    )

    # CORS
    cors_origins: str = "http://localhost:3000"

    # Tournament scheduler
    tournament_sweep_interval_seconds: int = Field(
        default=60,
        ge=1,
        description="Seconds between tournament lifecycle sweeps",
    )
    tournament_scheduler_enabled: bool = Field(
        default=True,
        description="Run the sweep loop inside the API process",
    )

    site: SiteSettings = Field(default_factory=SiteSettings)

    @model_validator(mode="after")
    def validate_production_settings(self) -> "Settings":
        """Reject development-only settings when app_env is production."""
        if self.app_env == "production":
            if self.app_debug:
                raise ValueError("app_debug cannot be enabled in production")

            origins = [o.strip() for o in self.cors_origins.split(",")]
            if "*" in origins:
                raise ValueError("cors_origins must list explicit origins in production")

            if self.database_url.startswith("sqlite"):
                raise ValueError("SQLite is not supported in production environment")

        return self

    model_config = {
        "env_file": ".env",
        "env_nested_delimiter": "__",
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
