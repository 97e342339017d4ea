from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""  # anon key; the service role key is never needed here

    # Public base URL of this app, used for email links and OAuth redirects
    app_url: str = "http://localhost:8000"

    # Record store
    users_table: str = "users"

    # Session cookies written by the Supabase client storage
    session_cookie_max_age: int = 60 * 60 * 24 * 365
    session_cookie_chunk_size: int = 3180

    # Verify-email page polling
    verification_poll_interval_seconds: float = 5.0

    # App
    app_name: str = "cloudmagic"
    debug: bool = False
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"
    rate_limit: str = "100/minute"  # slowapi format, e.g. "100/minute"
    auth_rate_limit: str = "10/minute"
    rate_limit_enabled: bool = True

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def callback_url(self) -> str:
        return f"{self.app_url.rstrip('/')}/auth/callback"

    @property
    def reset_password_url(self) -> str:
        return f"{self.app_url.rstrip('/')}/auth/reset-password"

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_prefix="",  # No prefix needed
        extra="ignore"
    )


settings = Settings()
