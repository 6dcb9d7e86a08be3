from __future__ import annotations

from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


APP_VERSION = "1.0.0"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "formrelay"
    log_level: str = "INFO"
    debug: bool = False

    host: str = "0.0.0.0"
    port: int = 8080
    # Comma-delimited allowed origins for browser form posts.
    cors_origins: str = "*"
    # Only honor X-Forwarded-For when running behind a trusted proxy.
    trust_forwarded_for: bool = False

    # Per-address sliding window limit applied to every route.
    rate_limit_enabled: bool = True
    rate_limit_requests_per_minute: int = 60

    # Storage backend: "sqlite" (file path in db_name) or "postgres".
    db_type: str = "sqlite"
    db_name: str = "forms.db"
    db_host: str = "localhost"
    db_port: int = 5432
    db_user: str = ""
    db_password: str = ""
    db_ssl_mode: str = "disable"
    # Full SQLAlchemy URL; overrides the assembled one when set.
    database_url: str | None = None
    db_pool_size: int = 5
    db_max_overflow: int = 5

    forms_config_path: str = "configs/forms.yaml"
    # Root for the date-partitioned JSON backup copies.
    forms_storage_dir: str = "./submissions"
    # Enforce per-field validation patterns in addition to required checks.
    validate_field_patterns: bool = False

    email_provider: str = "smtp"
    smtp_host: str = "localhost"
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    smtp_from: str = "forms@localhost"
    # Upgrade to TLS when the server advertises STARTTLS.
    smtp_starttls: bool = True
    smtp_timeout_s: float = 30.0
    sendgrid_api_key: str = ""
    sendgrid_from: str = ""
    # Links rendered into the internal-testing welcome email.
    testflight_url: str = ""
    play_testing_url: str = ""

    ntfy_enabled: bool = False
    ntfy_url: str = "https://ntfy.sh"
    ntfy_topic: str = ""
    ntfy_token: str = ""
    ntfy_timeout_s: float = 10.0
    # Externally reachable base URL used for notification action buttons.
    public_base_url: str = "http://localhost:8080"
    # Bearer token required by the welcome-email webhook; unset disables it.
    welcome_webhook_token: str = ""

    google_service_account_file: str = ""
    google_package_name: str = ""

    analytics_enabled: bool = True
    analytics_secret_key: str = ""
    analytics_active_window_days: int = 30
    analytics_retention_days: int = 90

    admin_username: str = ""
    admin_password: str = ""
    admin_session_ttl_hours: int = 24

    def cors_origin_list(self) -> list[str]:
        return [item.strip() for item in self.cors_origins.split(",") if item.strip()]

    def google_play_configured(self) -> bool:
        return bool(self.google_service_account_file and self.google_package_name)


@lru_cache
def get_settings() -> Settings:
    return Settings()
