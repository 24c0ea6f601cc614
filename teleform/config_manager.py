"""
Configuration Management for Teleform

This module provides centralized configuration with environment variable
handling and validation. Values are read from the process environment after
loading an optional ``.env`` file.

Public API:
    ServerConfig: HTTP server and generated-file settings
    AzureConfig: Azure tenant credentials used for discovery and export
    ExporterConfig: External exporter binary, workspace and prompt settings
    TeleformConfig: Aggregate of the above
"""

import logging
import os
import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from .exceptions import ConfigurationError
from .timeout_config import Timeouts

logger = logging.getLogger(__name__)


def _parse_bool(value: str) -> bool:
    """Parse boolean from string."""
    return value.strip().lower() in ("true", "1", "yes", "on")


def _parse_float(env_var: str, default: float) -> float:
    value = os.getenv(env_var)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        raise ConfigurationError(
            f"{env_var} must be a number, got {value!r}",
            context={"variable": env_var},
        ) from None


@dataclass
class ServerConfig:
    """Configuration for the HTTP server."""

    host: str = field(default_factory=lambda: os.getenv("TELEFORM_HOST", "127.0.0.1"))
    port: int = field(default_factory=lambda: int(os.getenv("TELEFORM_PORT", "3000")))
    cors_origins: List[str] = field(
        default_factory=lambda: [
            origin.strip()
            for origin in os.getenv(
                "TELEFORM_CORS_ORIGINS", "http://localhost:3000,http://localhost:5173"
            ).split(",")
            if origin.strip()
        ]
    )
    generated_dir: Path = field(
        default_factory=lambda: Path(
            os.getenv("TELEFORM_GENERATED_DIR", "generated/output")
        )
    )
    log_level: str = field(
        default_factory=lambda: os.getenv("TELEFORM_LOG_LEVEL", "INFO").upper()
    )

    def validate(self) -> None:
        if not (1 <= self.port <= 65535):
            raise ConfigurationError(
                f"Port must be between 1 and 65535, got {self.port}"
            )


@dataclass
class AzureConfig:
    """Azure tenant credentials.

    All three values are optional: without a client secret the credential
    provider falls back to ``DefaultAzureCredential`` (CLI login, managed
    identity, environment).
    """

    tenant_id: Optional[str] = field(
        default_factory=lambda: os.getenv("AZURE_TENANT_ID") or None
    )
    client_id: Optional[str] = field(
        default_factory=lambda: os.getenv("AZURE_CLIENT_ID") or None
    )
    client_secret: Optional[str] = field(
        default_factory=lambda: os.getenv("AZURE_CLIENT_SECRET") or None
    )

    def has_service_principal(self) -> bool:
        return bool(self.tenant_id and self.client_id and self.client_secret)

    def validate(self) -> None:
        if self.client_secret and not (self.tenant_id and self.client_id):
            raise ConfigurationError(
                "AZURE_CLIENT_SECRET is set but AZURE_TENANT_ID or AZURE_CLIENT_ID is missing"
            )


@dataclass
class ExporterConfig:
    """Configuration for the external exporter and its interactive prompts."""

    binary: str = field(
        default_factory=lambda: os.getenv("TELEFORM_EXPORTER_BINARY", "terraformer")
    )
    subcommand: List[str] = field(
        default_factory=lambda: shlex.split(
            os.getenv("TELEFORM_EXPORTER_SUBCOMMAND", "import azure")
        )
    )
    workspace_dir: Path = field(
        default_factory=lambda: Path(
            os.getenv("TELEFORM_WORKSPACE_DIR", "generated/exports")
        )
    )
    interactive: bool = field(
        default_factory=lambda: _parse_bool(
            os.getenv("TELEFORM_EXPORTER_INTERACTIVE", "true")
        )
    )
    prompt_delay: float = field(
        default_factory=lambda: _parse_float("TELEFORM_PROMPT_DELAY", 0.5)
    )
    prompt_dedupe_window: float = field(
        default_factory=lambda: _parse_float("TELEFORM_PROMPT_DEDUPE_WINDOW", 2.0)
    )
    timeout: int = field(default_factory=lambda: Timeouts.EXPORT)

    # Prompt markers and the keystroke answering each of them
    menu_marker: str = "show menu"
    continue_marker: str = "continue"
    quit_markers: List[str] = field(
        default_factory=lambda: ["quit", "import completed"]
    )
    import_key: str = "w"
    acknowledge_key: str = "c"
    quit_key: str = "q"

    def validate(self) -> None:
        if not self.binary:
            raise ConfigurationError("TELEFORM_EXPORTER_BINARY must not be empty")
        if self.prompt_delay < 0:
            raise ConfigurationError(
                f"TELEFORM_PROMPT_DELAY must be >= 0, got {self.prompt_delay}"
            )
        if self.prompt_dedupe_window < 0:
            raise ConfigurationError(
                "TELEFORM_PROMPT_DEDUPE_WINDOW must be >= 0, "
                f"got {self.prompt_dedupe_window}"
            )
        if self.timeout <= 0:
            raise ConfigurationError(f"Exporter timeout must be positive, got {self.timeout}")
        for key in (self.import_key, self.acknowledge_key, self.quit_key):
            if len(key) != 1:
                raise ConfigurationError(
                    f"Prompt responses must be single keystrokes, got {key!r}"
                )


@dataclass
class TeleformConfig:
    """Main configuration class for Teleform."""

    server: ServerConfig = field(default_factory=ServerConfig)
    azure: AzureConfig = field(default_factory=AzureConfig)
    exporter: ExporterConfig = field(default_factory=ExporterConfig)

    def validate(self) -> None:
        """Validate all sections.

        Raises:
            ConfigurationError: If any section is invalid
        """
        self.server.validate()
        self.azure.validate()
        self.exporter.validate()

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "TeleformConfig":
        """Load configuration from ``.env`` and the process environment."""
        load_dotenv(env_file, override=False)
        config = cls()
        config.validate()
        logger.debug(f"Loaded configuration: {config}")
        return config

    def __str__(self) -> str:
        """String representation with redacted secrets."""
        return (
            f"TeleformConfig(host={self.server.host}, port={self.server.port}, "
            f"generated_dir={self.server.generated_dir}, "
            f"tenant_id={_redact(self.azure.tenant_id)}, "
            f"client_secret={'[REDACTED]' if self.azure.client_secret else None}, "
            f"exporter={self.exporter.binary}, "
            f"workspace_dir={self.exporter.workspace_dir})"
        )


def _redact(value: Optional[str]) -> str:
    """Redact identifiers for logging (first 8 chars only)."""
    if not value:
        return "***"
    return value[:8] + "..." if len(value) > 8 else value


__all__ = ["AzureConfig", "ExporterConfig", "ServerConfig", "TeleformConfig"]
