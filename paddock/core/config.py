from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    env: str = "dev"
    database_url: str = "sqlite:///./paddock.db"
    log_level: str = "INFO"

    # Jolpica is an Ergast-compatible mirror
    jolpica_url: str = "https://api.jolpi.ca/ergast/f1"
    jolpica_requests_per_second: int = 3
    jolpica_max_retries: int = 3
    jolpica_cache_hours: int = 24

    openf1_url: str = "https://api.openf1.org/v1"
    openf1_delay_between_drivers_ms: int = 500
    openf1_delay_between_calls_ms: int = 200
    openf1_max_errors_before_stop: int = 5

    # Pins the "current" season; defaults to the calendar year
    season: Optional[int] = None

    jwt_secret: str = "default-secret-key-that-is-at-least-32-characters-long-for-security"
    jwt_expiration_seconds: int = 86400

    facebook_client_id: str = ""
    facebook_client_secret: str = ""
    facebook_redirect_uri: str = "http://localhost:8000/login/oauth2/code/facebook"
    facebook_graph_url: str = "https://graph.facebook.com/v19.0"
    facebook_dialog_url: str = "https://www.facebook.com/v19.0/dialog/oauth"

    frontend_url: str = "http://localhost:5173"
    cors_origins: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    scheduler_enabled: bool = False
    sync_on_startup: bool = False
    update_profile_pictures_on_startup: bool = False
    stats_cache_ttl_hours: int = 1
    # Pause between races when processing results
    race_sync_delay_seconds: float = 2.0

    class Config:
        env_file = ".env"
        env_prefix = ""
        case_sensitive = False

settings = Settings()
