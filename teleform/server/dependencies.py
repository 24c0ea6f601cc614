"""
FastAPI Dependencies for the Teleform server.

Global state is set once during app startup by ``initialize_services``;
endpoints receive it through the getters below, which tests replace with
``app.dependency_overrides``.
"""

from typing import Optional

from fastapi import Depends

from ..config_manager import TeleformConfig
from ..credential_provider import CredentialProvider
from ..export.pipeline import ExportPipeline
from ..generators.template_generator import TemplateGenerator
from ..services.azure_control_plane import AzureControlPlaneClient

# Global state (set during app startup)
_config: Optional[TeleformConfig] = None
_credential_provider: Optional[CredentialProvider] = None
_pipeline: Optional[ExportPipeline] = None
_generator: Optional[TemplateGenerator] = None


def initialize_services(config: TeleformConfig) -> None:
    """
    Create the shared services from configuration.

    Args:
        config: Loaded and validated configuration
    """
    global _config, _credential_provider, _pipeline, _generator

    _config = config
    _credential_provider = CredentialProvider(config.azure)
    _pipeline = ExportPipeline(config.exporter)
    _generator = TemplateGenerator(output_dir=config.server.generated_dir)


def reset_services() -> None:
    global _config, _credential_provider, _pipeline, _generator

    _config = None
    _credential_provider = None
    _pipeline = None
    _generator = None


def get_config() -> TeleformConfig:
    """Get the global configuration (FastAPI dependency)."""
    if _config is None:
        raise RuntimeError("Configuration not loaded")
    return _config


def get_credential_provider() -> CredentialProvider:
    """Get the global credential provider (FastAPI dependency)."""
    if _credential_provider is None:
        raise RuntimeError("Credential provider not initialized")
    return _credential_provider


def get_control_plane(
    provider: CredentialProvider = Depends(get_credential_provider),
) -> AzureControlPlaneClient:
    """Control-plane client bound to the credential current at request start."""
    return AzureControlPlaneClient(provider.snapshot().credential)


def get_pipeline() -> ExportPipeline:
    """Get the global export pipeline (FastAPI dependency)."""
    if _pipeline is None:
        raise RuntimeError("Export pipeline not initialized")
    return _pipeline


def get_generator() -> TemplateGenerator:
    """Get the global template generator (FastAPI dependency)."""
    if _generator is None:
        raise RuntimeError("Template generator not initialized")
    return _generator


__all__ = [
    "get_config",
    "get_control_plane",
    "get_credential_provider",
    "get_generator",
    "get_pipeline",
    "initialize_services",
    "reset_services",
]
