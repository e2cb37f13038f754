import logging
from pydantic_settings import BaseSettings
from pydantic import model_validator, ConfigDict
from functools import lru_cache

logger = logging.getLogger(__name__)

DEFAULT_SECRET_KEY = "change-me-in-production"
DEFAULT_ADMIN_PASSWORD = "admin123"


class Settings(BaseSettings):
    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Environment: "development" or "production"
    environment: str = "development"

    secret_key: str = DEFAULT_SECRET_KEY
    api_key: str = ""  # Optional programmatic bearer token
    admin_username: str = "admin"
    admin_password: str = DEFAULT_ADMIN_PASSWORD
    access_token_expire_minutes: int = 60 * 24
    cors_origins: str = "http://localhost:5173,http://localhost:3000"

    # Meta Graph API
    meta_api_version: str = "v21.0"
    meta_page_limit: int = 100
    meta_insights_limit: int = 500

    # Trendyol influencer center
    trendyol_report_url: str = (
        "https://apigw.trendyol.com/discovery-ia-webgw-service/v1/brand-offer-report/metrics"
    )
    trendyol_page_size: int = 20
    trendyol_max_pages: int = 500

    http_timeout: float = 30.0
    # Date pickers send calendar days; Trendyol wants unix seconds in local time
    report_timezone: str = "Europe/Istanbul"

    @model_validator(mode="after")
    def _validate_production_settings(self) -> "Settings":
        """Enforce that critical secrets are set when running in production."""
        if self.is_production:
            if self.secret_key == DEFAULT_SECRET_KEY:
                raise ValueError(
                    "SECRET_KEY must be set to a secure value in production. "
                    "Generate one with: python -c \"import secrets; print(secrets.token_hex(32))\""
                )
            if self.admin_password == DEFAULT_ADMIN_PASSWORD:
                raise ValueError("ADMIN_PASSWORD must be changed from the default in production.")
            if not self.api_key:
                logger.warning("API_KEY not set in production; only JWT login is accepted.")
        return self

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def meta_api_base(self) -> str:
        return f"https://graph.facebook.com/{self.meta_api_version}"

    @property
    def cors_origin_list(self) -> list[str]:
        origins = [o.strip() for o in self.cors_origins.split(",") if o.strip()]
        return origins or ["http://localhost:5173", "http://localhost:3000"]


@lru_cache
def get_settings() -> Settings:
    return Settings()
