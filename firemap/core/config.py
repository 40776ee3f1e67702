from typing import Any, List, Optional
from urllib.parse import quote_plus

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    PROJECT_NAME: str = "FireMap"
    VERSION: str = "1.0.0"
    API_V1_PREFIX: str = "/api/v1"

    # --- Environment & Debug ---
    ENVIRONMENT: str = "local"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"

    # --- Region configuration files ---
    TABLES_CONFIG_PATH: str = "configurations/tables.json"
    FILTER_CONFIG_PATH: str = "configurations/filter.json"

    # --- Search ---
    SEARCH_MIN_LENGTH: int = Field(
        default=2,
        ge=1,
        description="Minimum normalized length of a region search string.",
    )

    # --- CORS ---
    ALLOWED_ORIGINS: List[str] = Field(
        default_factory=list,
        validate_default=True,
        description="List of allowed CORS origins. Configure in .env",
    )

    # --- Database Config ---
    DB_HOST: Optional[str] = None
    DB_USER: Optional[str] = None
    DB_PASSWORD: Optional[str] = None
    DB_PORT: Optional[str] = "5432"
    DB_NAME: Optional[str] = "postgres"

    # --- Connection Pool ---
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_PRE_PING: bool = True

    DATABASE_URL: Optional[str] = Field(default=None, validate_default=True)

    model_config = SettingsConfigDict(
        env_file=".env", case_sensitive=True, extra="ignore"
    )

    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def default_allowed_origins(
        cls, v: Optional[List[str]], info: ValidationInfo
    ) -> Optional[List[str]]:
        env = info.data.get("ENVIRONMENT") or "local"
        if env != "production":
            if v is None:
                return ["http://localhost:5173", "http://localhost:3000"]
            if isinstance(v, str) and v.strip() in ("", "[]"):
                return ["http://localhost:5173", "http://localhost:3000"]
            if isinstance(v, list) and len(v) == 0:
                return ["http://localhost:5173", "http://localhost:3000"]
        return v

    @field_validator("DATABASE_URL", mode="before")
    @classmethod
    def assemble_db_connection(cls, v: Optional[str], info: ValidationInfo) -> Any:
        if isinstance(v, str) and v:
            return v

        values = info.data
        if not values.get("DB_HOST") or not values.get("DB_USER"):
            return None

        user = values.get("DB_USER")
        # URL-encode the password so '@', '#', '!' survive
        password = quote_plus(values.get("DB_PASSWORD") or "")
        host = values.get("DB_HOST")
        port = values.get("DB_PORT", "5432")
        db = values.get("DB_NAME", "postgres")

        return f"postgresql://{user}:{password}@{host}:{port}/{db}"


settings = Settings()
