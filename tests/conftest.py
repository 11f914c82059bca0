"""Pytest fixtures for Infracost MCP."""

from collections.abc import Callable
from pathlib import Path
import sys

import pytest

from infracost_mcp.config import McpConfig

# Ensure repo root is importable as a package root.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

ENV_VARS = (
    "INFRACOST_SERVICE_TOKEN",
    "INFRACOST_ORG",
    "INFRACOST_BIN",
    "INFRACOST_CLOUD_API_BASE",
    "INFRACOST_MCP_CONFIG",
    "INFRACOST_MCP_LOG_LEVEL",
    "INFRACOST_MCP_OBS_ENABLED",
    "INFRACOST_MCP_OBS_LOG_FORMAT",
)

VERSION_PROBE = 'if [ "$1" = "--version" ]; then echo "Infracost v0.10.39"; exit 0; fi'


@pytest.fixture(autouse=True)
def hermetic_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """
    Autouse: each test runs in its own tmp cwd with no INFRACOST_* variables.
    """
    monkeypatch.chdir(tmp_path)
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return tmp_path


@pytest.fixture
def fake_infracost(tmp_path: Path) -> Callable[[str], str]:
    """Factory writing an executable shell script that stands in for infracost.

    The script answers ``--version`` and otherwise runs ``body``.
    """

    def _make(body: str, name: str = "infracost") -> str:
        script = tmp_path / "bin" / name
        script.parent.mkdir(exist_ok=True)
        script.write_text(f"#!/bin/sh\n{VERSION_PROBE}\n{body}\n")
        script.chmod(0o755)
        return str(script)

    return _make


@pytest.fixture
def cloud_config() -> McpConfig:
    """Config with a service token and default organization."""
    config = McpConfig()
    config.cloud.service_token = "ics_test_token_1234567890"
    config.cloud.org_slug = "acme"
    return config
