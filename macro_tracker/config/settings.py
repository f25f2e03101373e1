# macro_tracker/config/settings.py
"""
Application configuration using pydantic-settings (pydantic v2 style).

This centralizes environment-driven configuration. Values are read once through
`get_settings()` and injected into the session manager and services, so nothing
talks to the network at import time.
"""
from __future__ import annotations

import logging
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Application configuration loaded from environment.

    Relevant environment variables:
      - SUPABASE_URL
      - SUPABASE_SERVICE_ROLE_KEY
      - DATABASE_URL
      - AI_GATEWAY_API_KEY / AI_GATEWAY_BASE_URL / AI_MODEL
      - USDA_API_KEY
      - EXTERNAL_LOOKUP_TIMEOUT
      - EXTERNAL_AUTH_URL
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Supabase
    supabase_url: Optional[str] = None
    supabase_service_role_key: Optional[str] = None
    database_url: Optional[str] = None

    # AI gateway (OpenAI-compatible chat completions)
    ai_gateway_api_key: Optional[str] = None
    ai_gateway_base_url: str = "https://ai.gateway.lovable.dev/v1"
    ai_model: str = "google/gemini-2.5-flash"
    ai_request_timeout: float = 60.0

    # Nutrient databases
    usda_api_key: str = "DEMO_KEY"
    usda_base_url: str = "https://api.nal.usda.gov/fdc/v1"
    openfoodfacts_base_url: str = "https://world.openfoodfacts.org/api/v2"
    external_lookup_timeout: float = 2.0
    usda_generic_only: bool = True
    blend_ai_with_usda: bool = False

    # Calendar dates are computed in this zone
    app_timezone: str = "America/New_York"

    # Auth redirect for clients without a session
    external_auth_url: str = "https://www.jaxtrax.net/auth"
    auth_redirect_delay_seconds: int = Field(default=3, ge=0)

    # Runtime
    health_check_timeout: float = 5.0
    fail_on_db_startup: bool = False
    log_level: str = "INFO"

    # --- validators / post-init checks ---
    @field_validator("supabase_url", "supabase_service_role_key", "ai_gateway_api_key")
    @classmethod
    def maybe_strip(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None

    @field_validator("ai_gateway_base_url", "usda_base_url", "openfoodfacts_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    def model_post_init(self, __context) -> None:
        """
        Light-weight notice that runs after the model is constructed.
        Uses logging (not print) so messages show up in server logs.
        """
        if not self.supabase_url or not self.supabase_service_role_key:
            logger.warning(
                "Supabase credentials are not configured. "
                "Set SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY to enable DB features."
            )
        if not self.ai_gateway_api_key:
            logger.info(
                "AI_GATEWAY_API_KEY not set. Meal analysis and suggestions will fail."
            )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
