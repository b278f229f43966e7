"""Configuration management for the proxy."""

from pathlib import Path
from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SWAGGER_FILE = Path(__file__).resolve().parent.parent / "proxy" / "swagger.yaml"


class Settings(BaseSettings):
    """Configuration settings for the proxy.

    Resolved once at startup. ``PORT`` and ``BINANCE_API_URL`` are honoured
    without the prefix so existing deployment environments keep working.
    """

    model_config = SettingsConfigDict(
        env_prefix="BINPROXY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # Server settings
    host: str = Field(
        default="0.0.0.0",
        description="Interface to bind to"
    )
    port: int = Field(
        default=8080,
        description="Port to listen on",
        validation_alias=AliasChoices("port", "PORT", "BINPROXY_PORT"),
    )
    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR)"
    )

    # Upstream settings
    upstream_url: str = Field(
        default="https://api.binance.com/api/v3",
        description="Base URL of the upstream REST API",
        validation_alias=AliasChoices("upstream_url", "BINANCE_API_URL", "BINPROXY_UPSTREAM_URL"),
    )
    timeout: float = Field(
        default=30.0,
        description="Upstream round-trip timeout in seconds"
    )
    user_agent: str = Field(
        default="Binance-Proxy/1.0",
        description="User-Agent sent upstream when the client supplied none"
    )

    # Translation settings
    api_prefix: str = Field(
        default="/api",
        description="Leading path segment stripped before forwarding"
    )
    symbols_param: str = Field(
        default="symbols",
        description="Query parameter converted from comma-separated to a JSON array"
    )
    strict_decompression: bool = Field(
        default=False,
        description="Fail with an error instead of relaying a corrupt gzip body as-is"
    )

    # CORS / docs
    cors_max_age: int = Field(
        default=3600,
        description="Access-Control-Max-Age for preflight responses"
    )
    swagger_file: Optional[str] = Field(
        default=None,
        description="Path to the Swagger YAML served at /swagger/doc.json (None = bundled)"
    )

    @classmethod
    def load_from_file(cls, config_file: str) -> "Settings":
        """Load settings from a YAML config file.

        Args:
            config_file: Path to YAML config file

        Returns:
            Settings instance
        """
        import yaml

        with open(config_file, "r", encoding="utf-8") as f:
            config_data = yaml.safe_load(f) or {}

        return cls(**config_data)

    def get_swagger_path(self) -> Path:
        """Get the Swagger YAML path as a Path object."""
        if self.swagger_file:
            return Path(self.swagger_file).expanduser()
        return DEFAULT_SWAGGER_FILE
