from typing import Callable, Optional
from unittest.mock import AsyncMock, Mock

import pytest

from teleform.config_manager import AzureConfig, ExporterConfig, ServerConfig, TeleformConfig
from teleform.services.azure_control_plane import AzureControlPlaneClient
from tests.fakes import INTERACTIVE_EXPORTER, make_exporter_config, make_resource


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch):
    """Keep developer credentials and overrides out of the tests."""
    for var in (
        "AZURE_TENANT_ID",
        "AZURE_CLIENT_ID",
        "AZURE_CLIENT_SECRET",
        "TELEFORM_EXPORTER_BINARY",
        "TELEFORM_EXPORTER_SUBCOMMAND",
        "TELEFORM_EXPORTER_INTERACTIVE",
        "TELEFORM_PROMPT_DELAY",
        "TELEFORM_PROMPT_DEDUPE_WINDOW",
        "TELEFORM_PORT",
    ):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def exporter_config_factory(tmp_path) -> Callable[..., ExporterConfig]:
    def factory(body: Optional[str] = None, **kwargs) -> ExporterConfig:
        return make_exporter_config(tmp_path, body, **kwargs)

    return factory


@pytest.fixture
def teleform_config(tmp_path) -> TeleformConfig:
    return TeleformConfig(
        server=ServerConfig(
            host="127.0.0.1",
            port=3000,
            cors_origins=["http://localhost:3000"],
            generated_dir=tmp_path / "generated",
            log_level="INFO",
        ),
        azure=AzureConfig(tenant_id=None, client_id=None, client_secret=None),
        exporter=make_exporter_config(tmp_path, INTERACTIVE_EXPORTER),
    )


@pytest.fixture
def mock_control_plane():
    """Control-plane client that lists one storage account and has no token."""
    client = Mock(spec=AzureControlPlaneClient)
    client.list_resources_in_container = AsyncMock(
        return_value=[make_resource("sademo")]
    )
    client.list_exportable_kinds = AsyncMock(return_value=["storage_account"])
    client.get_access_token = Mock(return_value=None)
    return client
