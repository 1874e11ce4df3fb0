from typing import List, Optional

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings"""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # Proxy configuration
    app_name: str = "Sentiment Analysis Proxy"
    version: str = "1.0.0"
    debug: bool = False

    # Server configuration
    host: str = "0.0.0.0"
    port: int = 8000
    api_prefix: str = ""
    cors_origins: List[str] = ["*"]

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "console"  # json or console
    environment: str = "development"

    # Azure AI Language (Text Analytics) configuration.
    # Read from AZURE_LANGUAGE_KEY / AZURE_LANGUAGE_ENDPOINT, checked per request.
    azure_language_key: Optional[SecretStr] = None
    azure_language_endpoint: Optional[str] = None
    azure_api_path: str = "/text/analytics/v3.1/sentiment"
    azure_timeout: float = 30.0
    azure_model_version: Optional[str] = None
    default_language: str = "pt"

    # HTTP client configuration
    connection_pool_size: int = 100
    connection_timeout: float = 5.0

    @property
    def language_service_configured(self) -> bool:
        if self.azure_language_key is None:
            return False
        return bool(
            self.azure_language_key.get_secret_value() and self.azure_language_endpoint
        )


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    return settings
