"""Server launch configuration.

A configuration file maps server names to launch settings. The layout of
the common ``mcp.json`` files is accepted, and so is YAML:

    mcpServers:
      filesystem:
        command: npx
        args: ["-y", "@modelcontextprotocol/server-filesystem", "."]
        env:
          DEBUG: "1"
        timeout: 60

The servers may also sit under ``servers`` or at the top level.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import ConfigError

logger = logging.getLogger(__name__)

TIMEOUT_ENV_VAR = "MCP_CLIENT_TIMEOUT"
DEFAULT_TIMEOUT = 30.0

SERVER_SECTION_KEYS = ("mcpServers", "servers")


def default_timeout() -> float:
    """Request timeout in seconds, from MCP_CLIENT_TIMEOUT if set."""
    value = os.getenv(TIMEOUT_ENV_VAR)
    if not value:
        return DEFAULT_TIMEOUT
    try:
        timeout = float(value)
    except ValueError:
        logger.warning(f"Ignoring invalid {TIMEOUT_ENV_VAR}={value!r}")
        return DEFAULT_TIMEOUT
    if timeout <= 0:
        logger.warning(f"Ignoring non-positive {TIMEOUT_ENV_VAR}={value!r}")
        return DEFAULT_TIMEOUT
    return timeout


class ServerConfig(BaseModel):
    """Launch settings for one server process."""

    command: str
    args: list[str] = Field(default_factory=list)
    env: dict[str, str] = Field(default_factory=dict)
    cwd: str | None = None
    timeout: float = Field(default_factory=default_timeout, gt=0)

    @field_validator("command")
    @classmethod
    def _command_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("command must not be empty")
        return value

    @field_validator("env", mode="before")
    @classmethod
    def _stringify_env(cls, value: Any) -> Any:
        # YAML turns `DEBUG: 1` into an int
        if isinstance(value, dict):
            return {str(k): str(v) for k, v in value.items()}
        return value


def parse_servers_config(data: Any, source: str = "<config>") -> dict[str, ServerConfig]:
    """Validate a decoded configuration document into ServerConfigs."""
    if not isinstance(data, dict):
        raise ConfigError(f"{source}: expected a mapping of servers")

    servers = data
    for key in SERVER_SECTION_KEYS:
        if key in data:
            servers = data[key]
            break

    if not isinstance(servers, dict):
        raise ConfigError(f"{source}: expected a mapping of servers")

    configs: dict[str, ServerConfig] = {}
    for name, entry in servers.items():
        if isinstance(entry, ServerConfig):
            configs[str(name)] = entry
            continue
        try:
            configs[str(name)] = ServerConfig.model_validate(entry)
        except ValidationError as e:
            raise ConfigError(f"{source}: invalid server {name!r}: {e}") from e
    return configs


def load_servers_config(path: str | Path) -> dict[str, ServerConfig]:
    """Load server configurations from a YAML or JSON file.

    Raises:
        ConfigError: If the file cannot be read or is invalid
    """
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid configuration in {path}: {e}") from e

    configs = parse_servers_config(data, source=str(path))
    logger.debug(f"Loaded {len(configs)} server config(s) from {path}")
    return configs
