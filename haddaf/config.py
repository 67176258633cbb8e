from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "postgresql+asyncpg://localhost:5432/haddaf"
    api_key: str | None = None

    # "sql" persists goals through database_url; "memory" keeps them in-process (dev only)
    goal_store: str = "sql"

    log_level: str = "INFO"

    # Global switch for in-app goal notifications (per-player opt-out lives in the inbox dispatch)
    notifications_enabled: bool = True

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
