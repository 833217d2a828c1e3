import secrets
import warnings

from pydantic import model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App settings
    app_name: str = "Gigarena"
    environment: str = "development"  # "development" or "production"
    debug: bool = False

    # Database
    database_url: str = "postgresql+asyncpg://localhost:5432/gigarena"

    # Auth - SECRET_KEY must be set via environment variable in production
    secret_key: str = ""
    session_max_age_days: int = 30

    # Where authenticated users land when they hit /login or /signup
    default_landing_path: str = "/dashboard"
    login_path: str = "/login"

    # CORS
    cors_origins: list[str] = ["http://localhost:3000"]

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Ensure secret_key is properly configured."""
        if not self.secret_key:
            if self.debug:
                # Generate a random key for development
                self.secret_key = secrets.token_urlsafe(32)
                warnings.warn(
                    "SECRET_KEY not set - using random key (sessions won't persist across restarts)",
                    stacklevel=2,
                )
            else:
                raise ValueError(
                    "SECRET_KEY environment variable must be set in production. "
                    "Generate one with: python -c \"import secrets; print(secrets.token_urlsafe(32))\""
                )
        return self

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def session_cookie_name(self) -> str:
        """Production cookies carry the __Secure- prefix browsers enforce over HTTPS."""
        if self.is_production:
            return "__Secure-next-auth.session-token"
        return "next-auth.session-token"

    @property
    def session_cookie_secure(self) -> bool:
        return self.is_production

    @property
    def session_max_age_seconds(self) -> int:
        return self.session_max_age_days * 24 * 60 * 60


settings = Settings()
