"""GTD backend configuration: settings for storage, mail and calendar."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str = "sqlite:///data/gtd.db"

    # CORS (comma-separated origins)
    cors_origins: str = "http://localhost:5173"

    # Single-user API key. Empty = auth disabled (dev mode)
    gtd_api_key: str = ""

    # Seed default contexts/projects/tasks into an empty database
    seed_on_startup: bool = True

    # Email account (IMAP for fetching, SMTP for sending)
    email_address: str = ""
    email_password: str = ""
    imap_host: str = ""
    imap_port: int = 993
    smtp_host: str = ""
    smtp_port: int = 587
    email_fetch_limit: int = 50  # most recent unread messages per fetch
    email_fetch_enabled: bool = False
    email_fetch_interval_minutes: float = 15.0

    # Google Calendar. A static token wins; otherwise the connector is asked
    # for a fresh one on every call.
    google_calendar_access_token: str = ""
    calendar_connector_url: str = ""
    calendar_connector_token: str = ""
    calendar_api_base: str = "https://www.googleapis.com/calendar/v3"
    calendar_lookahead_days: int = 7
    calendar_timeout_seconds: float = 15.0

    # Dashboard health inputs
    stale_email_hours: int = 48
    engage_window_days: int = 7

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()


def is_email_configured() -> bool:
    """True when both IMAP and SMTP sides of the mail account are set."""
    return bool(
        settings.email_address
        and settings.email_password
        and settings.imap_host
        and settings.smtp_host
    )
