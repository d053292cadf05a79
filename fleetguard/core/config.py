from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache

INSECURE_DEFAULT_SECRET = "your-secret-key-change-in-production"


class Settings(BaseSettings):
    # App
    app_name: str = "FleetGuard"
    environment: str = "development"
    debug: bool = False

    # CORS
    cors_origins: str = "http://localhost:3000"

    @property
    def cors_origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() == "production"

    # Database
    database_url: str = "sqlite:///./fleetguard.db"
    database_echo: bool = False

    # Security
    jwt_secret: str = INSECURE_DEFAULT_SECRET
    jwt_algorithm: str = "HS256"
    token_expire_days: int = 7

    @property
    def uses_insecure_secret(self) -> bool:
        return self.jwt_secret == INSECURE_DEFAULT_SECRET

    # Logging
    log_level: str = "INFO"
    log_dir: str = "./logs"
    log_to_file: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore"  # Allow extra env vars without raising validation errors
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
