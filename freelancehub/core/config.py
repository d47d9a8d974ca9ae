from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="FREELANCEHUB_", env_file=".env", extra="ignore")

    app_name: str = "FreelanceHub"
    debug: bool = False
    api_prefix: str = "/api"
    log_level: str = "INFO"

    database_url: str = "sqlite:///./freelancehub.db"
    # Busy timeout on SQLite, statement_timeout on PostgreSQL.
    database_timeout_seconds: float = 5.0

    secret_key: str = "change-me-in-production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24

    chat_history_limit: int = 50


settings = Settings()
