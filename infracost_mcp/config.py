"""MCP configuration loader - reads from infracost-mcp.toml with ENV overrides."""  # noqa: I001

from __future__ import annotations

from dataclasses import dataclass, field
import os
from pathlib import Path
import tomllib
from typing import Any, cast

from dotenv import find_dotenv, load_dotenv

DEFAULT_CONFIG_FILE = "infracost-mcp.toml"
DEFAULT_API_BASE = "https://api.infracost.io/v1"


@dataclass
class McpServerConfig:
    """Server transport settings."""

    name: str = "infracost-mcp"
    transport: str = "stdio"
    log_level: str = "info"

    def validate(self) -> None:
        if self.transport != "stdio":
            raise ValueError(f"Invalid transport: {self.transport}")
        if self.log_level.lower() not in ("debug", "info", "warning", "error"):
            raise ValueError(f"Invalid log_level: {self.log_level}")


@dataclass
class InfracostCliConfig:
    """Settings for the local infracost executable."""

    binary: str = "infracost"
    version_arg: str = "--version"
    max_output_bytes: int = 10 * 1024 * 1024

    def validate(self) -> None:
        if not self.binary:
            raise ValueError("cli.binary must not be empty")
        if self.max_output_bytes <= 0:
            raise ValueError("max_output_bytes must be positive")


@dataclass
class InfracostCloudConfig:
    """Infracost Cloud API settings.

    The service token is never read from TOML, only from the env var
    named by ``token_env``.
    """

    api_base: str = DEFAULT_API_BASE
    org_slug: str | None = None
    token_env: str = "INFRACOST_SERVICE_TOKEN"
    timeout: float | None = None
    service_token: str | None = field(default=None, repr=False)

    @property
    def configured(self) -> bool:
        return bool(self.service_token)

    def masked_token(self) -> str:
        if not self.service_token:
            return "Not set"
        return f"Set ({self.service_token[:8]}...)"

    def validate(self) -> None:
        if not self.api_base.startswith(("http://", "https://")):
            raise ValueError(f"Invalid api_base: {self.api_base}")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("cloud.timeout must be positive")


@dataclass
class McpObservabilityConfig:
    """Observability settings."""

    enabled: bool = False
    log_format: str = "json"  # "json" | "text"
    log_level: str = "info"
    include_correlation_id: bool = True
    metrics_enabled: bool = True

    def validate(self) -> None:
        if self.log_format not in ("json", "text"):
            raise ValueError(f"Invalid log_format: {self.log_format}")


@dataclass
class McpConfig:
    """Root MCP configuration."""

    server: McpServerConfig = field(default_factory=McpServerConfig)
    cli: InfracostCliConfig = field(default_factory=InfracostCliConfig)
    cloud: InfracostCloudConfig = field(default_factory=InfracostCloudConfig)
    observability: McpObservabilityConfig = field(default_factory=McpObservabilityConfig)

    def validate(self) -> None:
        self.server.validate()
        self.cli.validate()
        self.cloud.validate()
        self.observability.validate()


def _truthy(value: str) -> bool:
    return value.lower() in ("1", "true", "yes")


def _apply_env_overrides(cfg: McpConfig) -> McpConfig:
    """Apply environment variable overrides. ENV beats TOML."""
    token = os.getenv(cfg.cloud.token_env)
    if token:
        cfg.cloud.service_token = token

    if os.getenv("INFRACOST_ORG"):
        cfg.cloud.org_slug = os.getenv("INFRACOST_ORG")

    if os.getenv("INFRACOST_CLOUD_API_BASE"):
        cfg.cloud.api_base = os.getenv("INFRACOST_CLOUD_API_BASE", cfg.cloud.api_base)

    if os.getenv("INFRACOST_BIN"):
        cfg.cli.binary = os.getenv("INFRACOST_BIN", cfg.cli.binary)

    if os.getenv("INFRACOST_MCP_LOG_LEVEL"):
        cfg.server.log_level = os.getenv("INFRACOST_MCP_LOG_LEVEL", cfg.server.log_level)

    if os.getenv("INFRACOST_MCP_OBS_ENABLED"):
        cfg.observability.enabled = _truthy(os.getenv("INFRACOST_MCP_OBS_ENABLED", ""))
    if os.getenv("INFRACOST_MCP_OBS_LOG_FORMAT"):
        cfg.observability.log_format = os.getenv(
            "INFRACOST_MCP_OBS_LOG_FORMAT", cfg.observability.log_format
        )

    return cfg


def _apply_toml(cfg: McpConfig, data: dict[str, Any]) -> McpConfig:
    mcp_data = data.get("mcp", {})

    # Server
    srv = mcp_data.get("server", {})
    cfg.server.name = srv.get("name", cfg.server.name)
    cfg.server.transport = srv.get("transport", cfg.server.transport)
    cfg.server.log_level = srv.get("log_level", cfg.server.log_level)

    # CLI
    cli = mcp_data.get("cli", {})
    cfg.cli.binary = cli.get("binary", cfg.cli.binary)
    cfg.cli.version_arg = cli.get("version_arg", cfg.cli.version_arg)
    cfg.cli.max_output_bytes = cli.get("max_output_bytes", cfg.cli.max_output_bytes)

    # Cloud
    cloud = mcp_data.get("cloud", {})
    cfg.cloud.api_base = cloud.get("api_base", cfg.cloud.api_base)
    cfg.cloud.org_slug = cloud.get("org_slug", cfg.cloud.org_slug)
    cfg.cloud.token_env = cloud.get("token_env", cfg.cloud.token_env)
    cfg.cloud.timeout = cloud.get("timeout", cfg.cloud.timeout)

    # Observability
    obs = mcp_data.get("observability", {})
    cfg.observability.enabled = obs.get("enabled", cfg.observability.enabled)
    cfg.observability.log_format = obs.get("log_format", cfg.observability.log_format)
    cfg.observability.log_level = obs.get("log_level", cfg.observability.log_level)
    cfg.observability.include_correlation_id = obs.get(
        "include_correlation_id", cfg.observability.include_correlation_id
    )
    cfg.observability.metrics_enabled = obs.get(
        "metrics_enabled", cfg.observability.metrics_enabled
    )

    return cfg


def load_dotenv_if_present() -> bool:
    """Load a .env file into the process environment if one is found.

    Only called from the entrypoint. Variables already set win.
    """
    dotenv_path = find_dotenv(filename=".env", usecwd=True)
    if not dotenv_path:
        return False
    return load_dotenv(dotenv_path=dotenv_path, override=False)


def load_config(config_path: str | Path | None = None) -> McpConfig:
    """
    Load MCP config from infracost-mcp.toml with ENV overrides.

    Precedence: ENV → TOML → defaults

    Args:
        config_path: Path to the TOML file. If None, searches:
            1. INFRACOST_MCP_CONFIG env var
            2. ./infracost-mcp.toml

    Returns:
        McpConfig dataclass with merged settings.
    """
    if config_path is None:
        if os.getenv("INFRACOST_MCP_CONFIG"):
            config_path = Path(cast(str, os.getenv("INFRACOST_MCP_CONFIG")))
        else:
            config_path = Path(DEFAULT_CONFIG_FILE)
    else:
        config_path = Path(config_path)

    cfg = McpConfig()

    if config_path.exists():
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
        cfg = _apply_toml(cfg, data)

    cfg = _apply_env_overrides(cfg)

    cfg.validate()

    return cfg
