from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "sqlite:///./shopdash.db"

    # CORS origins, as a JSON list in the environment
    CORS_ORIGINS: list[str] = ["http://localhost:3000"]

    LOG_LEVEL: str = "INFO"
    DEFAULT_LANGUAGE: str = "en"

    # Report window bounds (display limits, not correctness rules)
    TOP_SELLING_LIMIT: int = 10
    PROFITABILITY_LIMIT: int = 20
    STOCK_MOVEMENT_LIMIT: int = 100


settings = Settings()
