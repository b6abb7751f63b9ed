import shlex

from pathlib import Path
from typing import List

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]

# Value shipped in .env.example; treated the same as an empty key.
PLACEHOLDER_API_KEY = "your_tatum_api_key_here"


def is_configured_key(value: str | None) -> bool:
    """A key counts as configured when it is non-empty and not the placeholder."""
    if not value:
        return False
    return value.strip() not in {"", PLACEHOLDER_API_KEY}


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Server Settings
    host: str = Field(default="127.0.0.1", description="Server host")
    port: int = Field(default=3000, description="Server port")
    log_level: str = Field(default="INFO", description="Logging level")

    # Tatum API
    tatum_api_key: str = Field(default="", description="Tatum API key used for direct data calls")
    tatum_api_url: str = Field(default="https://api.tatum.io/v3", description="Tatum v3 REST base URL")
    tatum_data_api_url: str = Field(default="https://api.tatum.io/v4", description="Tatum v4 data API base URL")
    request_timeout_seconds: float = Field(default=30.0, description="Timeout for single-chain Tatum requests")
    chain_request_timeout_seconds: float = Field(
        default=10.0,
        description="Timeout for each per-chain request in multi-chain fan-out",
    )

    # MCP tool process
    mcp_enabled: bool = Field(default=True, description="Spawn the MCP tool process on startup")
    mcp_command: str = Field(
        default="npx -y @tatumio/blockchain-mcp",
        description="Command line used to spawn the MCP tool process",
    )
    mcp_api_key: str = Field(
        default="",
        description="Credential passed to the MCP process; falls back to the Tatum API key",
        validation_alias=AliasChoices("mcp_api_key", "MCP_TATUM_API_KEY"),
    )
    mcp_ready_marker: str = Field(default="ready", description="Substring announcing the MCP process is ready")
    mcp_max_retries: int = Field(default=3, ge=0, description="Automatic restarts before permanent fallback")
    mcp_restart_delay_seconds: float = Field(default=5.0, description="Backoff before an automatic restart")
    mcp_connect_timeout_seconds: float = Field(default=10.0, description="Time allowed for the readiness marker")
    mcp_connect_polls: int = Field(default=20, ge=1, description="Connection polls performed by start()")
    mcp_poll_interval_seconds: float = Field(default=1.0, description="Interval between connection polls")
    mcp_health_check_interval_seconds: float = Field(default=30.0, description="Health check cadence")
    mcp_tool_timeout_seconds: float = Field(default=15.0, description="Timeout for a single tool call")

    @property
    def has_tatum_key(self) -> bool:
        return is_configured_key(self.tatum_api_key)

    @property
    def has_mcp_key(self) -> bool:
        return is_configured_key(self.mcp_api_key)

    @property
    def mcp_command_args(self) -> List[str]:
        return shlex.split(self.mcp_command)

    def resolve_mcp_api_key(self) -> str:
        """Credential handed to the tool process environment."""
        if self.has_mcp_key:
            return self.mcp_api_key
        if self.has_tatum_key:
            return self.tatum_api_key
        return PLACEHOLDER_API_KEY


# Global settings instance
settings = Settings()
