from typing import Annotated, List, Optional
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict
from pydantic import field_validator, model_validator
import os
import json
from urllib.parse import quote_plus
from pathlib import Path
from enum import Enum


class Environment(str, Enum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):
    # Environment Configuration
    ENVIRONMENT: Environment = Environment.DEVELOPMENT

    # Project Information
    PROJECT_NAME: str = "Eden Prime Scorecard"
    VERSION: str = "0.3.0"
    API_V1_STR: str = "/api/v1"

    # Database
    POSTGRES_SERVER: Optional[str] = None
    POSTGRES_PORT: Optional[int] = None
    POSTGRES_USER: Optional[str] = None
    POSTGRES_PASSWORD: Optional[str] = None
    POSTGRES_DB: Optional[str] = None
    SQLALCHEMY_DATABASE_URI: Optional[str] = None

    # Scoring
    SCORING_REVISION: Optional[str] = None  # build/commit hash of the deployed rule set
    SCORECARD_REUSE_WINDOW_SECONDS: int = 600
    PRIME_MIN_SCORED_DOMAINS: int = 5  # 5 = every domain must be scored before a Prime Score is shown

    # API Security
    REQUIRE_API_KEY: bool = False
    VALID_API_KEYS: Annotated[List[str], NoDecode] = []

    # Logging
    LOG_LEVEL: str = "INFO"

    # --- Validators & Derived Settings ---
    @field_validator("VALID_API_KEYS", mode="before")
    @classmethod
    def parse_api_keys(cls, v):
        if isinstance(v, str):
            try:
                parsed = json.loads(v)
            except (json.JSONDecodeError, TypeError):
                # Fallback: treat as comma-separated string
                return [key.strip() for key in v.split(",") if key.strip()]
            if isinstance(parsed, str):
                return [parsed]
            return parsed
        return v

    @field_validator("PRIME_MIN_SCORED_DOMAINS")
    @classmethod
    def check_min_scored_domains(cls, v: int) -> int:
        if v < 1 or v > 5:
            raise ValueError("PRIME_MIN_SCORED_DOMAINS must be between 1 and 5")
        return v

    @model_validator(mode="after")
    def _finalize_and_validate(self) -> "Settings":
        # Derive SQLALCHEMY_DATABASE_URI if not provided
        if not self.SQLALCHEMY_DATABASE_URI:
            user = self.POSTGRES_USER
            server = self.POSTGRES_SERVER
            port = self.POSTGRES_PORT
            db = self.POSTGRES_DB
            if user and server and port and db:
                safe_user = quote_plus(user)
                if self.POSTGRES_PASSWORD:
                    safe_password = quote_plus(self.POSTGRES_PASSWORD)
                    self.SQLALCHEMY_DATABASE_URI = (
                        f"postgresql://{safe_user}:{safe_password}@{server}:{port}/{db}"
                    )
                else:
                    self.SQLALCHEMY_DATABASE_URI = (
                        f"postgresql://{safe_user}@{server}:{port}/{db}"
                    )
            else:
                try:
                    project_root = Path(__file__).resolve().parents[2]
                except IndexError:
                    project_root = Path(os.getcwd())
                self.SQLALCHEMY_DATABASE_URI = f"sqlite:///{project_root / 'eden_prime.db'}"

        # Revision comes from the deploy environment when not pinned explicitly
        if not self.SCORING_REVISION:
            self.SCORING_REVISION = (
                os.getenv("VERCEL_GIT_COMMIT_SHA")
                or os.getenv("GIT_COMMIT_SHA")
                or "dev"
            )

        return self

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT == Environment.DEVELOPMENT

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == Environment.PRODUCTION

    @property
    def uses_sqlite(self) -> bool:
        return str(self.SQLALCHEMY_DATABASE_URI).startswith("sqlite")

    @model_validator(mode="after")
    def validate_environment_config(self):
        """Validate environment-specific configuration requirements"""
        if self.is_production:
            if self.uses_sqlite:
                raise ValueError("Production must use PostgreSQL, not SQLite")
            if self.SCORING_REVISION == "dev":
                raise ValueError("SCORING_REVISION must be pinned in production")
        return self

    model_config = SettingsConfigDict(case_sensitive=True, env_file=".env", extra="ignore")


settings = Settings()
