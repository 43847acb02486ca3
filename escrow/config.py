from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PATH = Path(__file__).resolve().parent.parent / ".env.local"


class Settings(BaseSettings):
    # Environment settings
    environment: str = "development"
    debug: bool = False

    # Database
    DATABASE_URL: str = "postgresql://localhost:5432/escrow"

    # Session auth (HS256 JWT issued by the dashboard)
    JWT_SECRET: str | None = None
    JWT_AUDIENCE: str = "authenticated"

    # Shared secret for the external periodic trigger
    CRON_SECRET: str | None = None

    # Mail transport (Resend-compatible REST API)
    MAIL_API_URL: str = "https://api.resend.com/emails"
    MAIL_API_KEY: str | None = None
    MAIL_FROM: str = "MoneyManager <no-reply@mymoneylog.app>"
    MAIL_TIMEOUT_SECONDS: float = 15.0

    APP_BASE_URL: str = "https://mymoneylog.vercel.app"

    # Only trust X-Forwarded-For behind a known load balancer
    TRUST_X_FORWARDED_FOR: bool = False
    TRUSTED_PROXY_IPS: list[str] = []

    # =================================================================
    # INACTIVITY / DISCLOSURE SETTINGS
    # =================================================================
    DISCLOSURE_THRESHOLD_DAYS: int = 15
    REMINDER_THRESHOLD_DAYS: int = 7
    INACTIVITY_WARNING_DAYS: int = 10
    DISCLOSURE_COOLDOWN_DAYS: int = 7
    REMINDER_COOLDOWN_DAYS: int = 7
    NOTIFICATION_DEDUP_DAYS: int = 30
    MAX_CONCURRENT_SENDS: int = 5
    SWEEP_ERROR_PREVIEW: int = 5

    # =================================================================
    # DATABASE POOL SETTINGS
    # =================================================================
    DB_POOL_MIN_SIZE: int = 2
    DB_POOL_MAX_SIZE: int = 10
    DB_POOL_TIMEOUT: float = 30.0
    DB_POOL_MAX_IDLE: float = 600.0  # 10 minutes
    DB_POOL_MAX_LIFETIME: float = 3600.0  # 1 hour

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def get_db_pool_config(self) -> dict:
        """
        Get database pool configuration.
        Adjust environment-specific settings based on self.environment.
        """
        config = {
            "min_size": self.DB_POOL_MIN_SIZE,
            "max_size": self.DB_POOL_MAX_SIZE,
            "timeout": self.DB_POOL_TIMEOUT,
            "max_idle": self.DB_POOL_MAX_IDLE,
            "max_lifetime": self.DB_POOL_MAX_LIFETIME,
        }

        if self.environment == "development":
            config.update(
                {
                    "min_size": 1,
                    "max_size": 4,
                    "timeout": 15.0,
                }
            )

        return config

    def get_inactivity_config(self) -> dict:
        """Thresholds and windows used by the check-in, reminder and disclosure flows."""
        return {
            "disclosure_threshold_days": self.DISCLOSURE_THRESHOLD_DAYS,
            "reminder_threshold_days": self.REMINDER_THRESHOLD_DAYS,
            "warning_days": self.INACTIVITY_WARNING_DAYS,
            "disclosure_cooldown_days": self.DISCLOSURE_COOLDOWN_DAYS,
            "reminder_cooldown_days": self.REMINDER_COOLDOWN_DAYS,
            "notification_dedup_days": self.NOTIFICATION_DEDUP_DAYS,
        }


settings = Settings()
