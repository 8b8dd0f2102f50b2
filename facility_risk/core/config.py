from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator, model_validator
from urllib.parse import quote_plus


class Settings(BaseSettings):
    # Project Information
    PROJECT_NAME: str = "Facility Risk"
    VERSION: str = "0.1.0"
    API_V1_STR: str = "/api/v1"

    # Database - market data (CMS facilities/deficiencies) and focus area snapshots
    POSTGRES_SERVER: Optional[str] = None
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: Optional[str] = None
    POSTGRES_PASSWORD: Optional[str] = None
    POSTGRES_DB: Optional[str] = None
    SQLALCHEMY_DATABASE_URI: Optional[str] = None
    SQLALCHEMY_ECHO: bool = False

    LOG_LEVEL: str = "INFO"

    # Server
    SERVER_HOST: str = "0.0.0.0"
    SERVER_PORT: int = 8000

    CORS_ORIGINS: List[str] = []

    # Focus areas scoring
    FOCUS_AREAS_MODEL_VERSION: str = "1.0"
    FOCUS_AREAS_LOOKBACK_YEARS: int = 3
    FOCUS_AREAS_OVERDUE_DAYS: int = 456  # ~15 months
    FOCUS_AREAS_PEER_BED_BAND: float = 0.25

    # Scoring profiles per call path. The two formulas in use disagree and
    # product has not confirmed which one is canonical.
    FOCUS_AREAS_INTERACTIVE_PROFILE: str = "interactive_v1"
    FOCUS_AREAS_BATCH_PROFILE: str = "nightly_v1"

    # Nightly batch
    FOCUS_AREAS_BATCH_SIZE: int = 100
    FOCUS_AREAS_BATCH_WORKERS: int = 4

    # --- Validators & Derived Settings ---
    @field_validator("FOCUS_AREAS_BATCH_SIZE", "FOCUS_AREAS_BATCH_WORKERS", "FOCUS_AREAS_LOOKBACK_YEARS")
    @classmethod
    def must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be a positive integer")
        return v

    @field_validator("FOCUS_AREAS_PEER_BED_BAND")
    @classmethod
    def band_in_range(cls, v: float) -> float:
        if not 0 <= v < 1:
            raise ValueError("bed band must be a fraction in [0, 1)")
        return v

    @model_validator(mode="after")
    def _finalize_and_validate(self) -> "Settings":
        # Derive SQLALCHEMY_DATABASE_URI if not provided
        if not self.SQLALCHEMY_DATABASE_URI:
            user = self.POSTGRES_USER
            server = self.POSTGRES_SERVER
            db = self.POSTGRES_DB
            if user and server and db:
                safe_user = quote_plus(user)
                if self.POSTGRES_PASSWORD:
                    safe_password = quote_plus(self.POSTGRES_PASSWORD)
                    self.SQLALCHEMY_DATABASE_URI = (
                        f"postgresql://{safe_user}:{safe_password}@{server}:{self.POSTGRES_PORT}/{db}"
                    )
                else:
                    self.SQLALCHEMY_DATABASE_URI = (
                        f"postgresql://{safe_user}@{server}:{self.POSTGRES_PORT}/{db}"
                    )
            else:
                # Local development fallback
                self.SQLALCHEMY_DATABASE_URI = "sqlite:///./facility_risk.db"
        return self

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


settings = Settings()
