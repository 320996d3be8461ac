from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Redis (distributed cache tier)
    redis_url: str = "redis://localhost:6379/0"
    redis_socket_timeout: float = 2.0

    # ExchangeRate-API (rate source)
    exchangerate_api_url: str = "https://v6.exchangerate-api.com/v6"
    exchangerate_api_key: str = ""
    exchangerate_timeout: float = 10.0

    # FX cache TTLs, in seconds
    fx_local_cache_ttl: int = 300
    fx_latest_cache_ttl: int = 300

    # App
    app_env: str = "development"
    log_level: str = "INFO"


settings = Settings()
