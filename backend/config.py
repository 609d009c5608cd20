from pathlib import Path
from functools import lru_cache

import yaml
from pydantic_settings import BaseSettings, SettingsConfigDict

from pydantic import SecretStr


PROVIDER_TAGS = ("maxkb", "dify", "ragflow", "sqlbot")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Provider credentials
    maxkb_api_key: SecretStr = SecretStr("")
    maxkb_base_url: str = "http://localhost:8080"
    dify_api_key: SecretStr = SecretStr("")
    dify_base_url: str = "https://api.dify.ai"
    ragflow_api_key: SecretStr = SecretStr("")
    ragflow_base_url: str = "http://localhost:9380"
    sqlbot_api_key: SecretStr = SecretStr("")
    sqlbot_base_url: str = "http://localhost:8000"

    # Outbound calls
    request_timeout_seconds: float = 60.0

    # Server
    log_level: str = "INFO"

    # Deployment
    allowed_origins: str = ""

    # Loaded from YAML
    yaml_config: dict = {}

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        if self.yaml_config:
            return
        yaml_path = Path(__file__).parent.parent / "config" / "settings.yaml"
        if yaml_path.exists():
            with open(yaml_path, "r", encoding="utf-8") as f:
                self.yaml_config = yaml.safe_load(f) or {}

    @property
    def providers_config(self) -> dict:
        return self.yaml_config.get("providers", {}) or {}

    def provider_options(self, tag: str) -> dict:
        return self.providers_config.get(tag, {}) or {}

    def provider_credentials(self, tag: str) -> tuple[str, str]:
        """Return (api_key, base_url) for a provider tag."""
        api_key: SecretStr = getattr(self, f"{tag}_api_key")
        base_url: str = getattr(self, f"{tag}_base_url")
        return api_key.get_secret_value(), base_url

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()
