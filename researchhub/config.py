# SPDX-License-Identifier: Apache-2.0
"""All configuration via environment variables (12-factor). No hardcoded values."""
from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database
    database_url: str = Field(default="sqlite:///./researchhub.db", description="Database URL")

    # Identity: bearer tokens are issued by the hosted auth service and only validated here
    jwt_secret: str = Field(default="dev-jwt-secret-change-in-production", min_length=16)
    jwt_algorithm: str = Field(default="HS256", description="Signing algorithm of the identity service")
    jwt_audience: str | None = Field(default="authenticated", description="Expected aud claim, None to skip")

    # Which source wins when the profile table and the token claim disagree
    role_source: Literal["profile", "token", "parity"] = Field(default="profile")

    # Session lifecycle
    closing_block_type: str = Field(default="thank_you", min_length=1, description="Block type that ends a study")
    max_response_bytes: int = Field(default=64 * 1024, ge=1024, description="Max serialized size of one answer")

    # CORS
    allowed_origins: list[str] = Field(
        default=["http://localhost:5173"],
        description="Allowed CORS origins",
    )

    # Rate limiting (slowapi)
    rate_limit_enabled: bool = Field(default=True)
    default_rate_limit: str = Field(default="120/minute")

    log_level: str = Field(default="INFO")

    @property
    def production(self) -> bool:
        return self.jwt_secret != "dev-jwt-secret-change-in-production"


settings = Settings()

DATABASE_URL = settings.database_url
CLOSING_BLOCK_TYPE = settings.closing_block_type
PRODUCTION = settings.production
ROLES = ("participant", "researcher", "admin")
INITIAL_HASH = "0" * 64
