"""Centralized configuration — all env vars in one place."""

import os
from pathlib import Path

DEFAULT_RESOURCE_ID = "ee03643a-ee4c-48c2-ac30-9f2ff26ab722"


class Settings:
    """Application settings loaded from environment variables."""

    def __init__(self):
        self.cors_origins: list[str] = os.getenv("CORS_ORIGINS", "*").split(",")
        self.git_sha: str = os.getenv("GIT_SHA", "unknown")
        self.environment: str = os.getenv("ENVIRONMENT", "local")

        # data.gov.in
        self.data_gov_api_key: str | None = os.getenv("DATA_GOV_API_KEY")
        self.data_gov_resource_id: str = os.getenv("DATA_GOV_RESOURCE_ID", DEFAULT_RESOURCE_ID)
        self.upstream_timeout: float = float(os.getenv("UPSTREAM_TIMEOUT", "15"))

        # Geolocation providers
        self.geo_timeout: float = float(os.getenv("GEO_TIMEOUT", "7"))
        self.dev_fallback_ip: str = os.getenv("DEV_FALLBACK_IP", "103.120.164.1")

        # File-backed response cache
        self.cache_dir: Path = Path(os.getenv("CACHE_DIR", os.path.join("data", "cache")))

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def validate(self) -> list[str]:
        """Return list of missing required env vars for upstream data access."""
        required = ["DATA_GOV_API_KEY"]
        return [var for var in required if not getattr(self, _attr_for(var))]


settings = Settings()


def _attr_for(env_var: str) -> str:
    """Map env var name to Settings attribute name."""
    mapping = {
        "DATA_GOV_API_KEY": "data_gov_api_key",
    }
    return mapping.get(env_var, env_var.lower())
