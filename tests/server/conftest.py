from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from teleform.credential_provider import CredentialProvider
from teleform.server.dependencies import get_control_plane, get_credential_provider
from teleform.server.main import create_app


@pytest.fixture
def mock_credential_provider():
    provider = Mock(spec=CredentialProvider)
    provider.get_current_tenant_id.return_value = None
    return provider


@pytest.fixture
def test_app(teleform_config, mock_control_plane, mock_credential_provider):
    """Full application with Azure access replaced by mocks."""
    app = create_app(teleform_config)
    app.dependency_overrides[get_control_plane] = lambda: mock_control_plane
    app.dependency_overrides[get_credential_provider] = lambda: mock_credential_provider
    return app


@pytest.fixture
def client(test_app):
    # entering the context runs the lifespan, which initializes the services
    with TestClient(test_app) as test_client:
        yield test_client
