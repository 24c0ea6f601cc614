"""
Tests for the Azure control-plane client adapter.

SDK clients are replaced through the injectable factories.
"""

from unittest.mock import Mock

import pytest
from azure.core.credentials import AccessToken
from azure.core.exceptions import ClientAuthenticationError, HttpResponseError

from teleform.credential_provider import ARM_SCOPE
from teleform.exceptions import AzureAuthenticationError, EnumerationError
from teleform.services.azure_control_plane import AzureControlPlaneClient, DiscoveredResource
from tests.fakes import sdk_resource

RG = "/subscriptions/sub-1/resourceGroups/rg-demo/providers"


@pytest.fixture
def credential():
    return Mock()


@pytest.fixture
def resources():
    return [
        sdk_resource(f"{RG}/Microsoft.Storage/storageAccounts/sa1", "sa1", "Microsoft.Storage/storageAccounts"),
        sdk_resource(f"{RG}/Microsoft.Compute/virtualMachines/vm1", "vm1", "Microsoft.Compute/virtualMachines"),
        sdk_resource(
            f"{RG}/Microsoft.Compute/virtualMachineScaleSets/vmss1",
            "vmss1",
            "Microsoft.Compute/virtualMachineScaleSets",
        ),
        sdk_resource(f"{RG}/Contoso.Widgets/gadgets/g1", "g1", "Contoso.Widgets/gadgets"),
    ]


@pytest.fixture
def resource_client(resources):
    client = Mock()
    client.resources.list_by_resource_group.return_value = resources
    return client


@pytest.fixture
def control_plane(credential, resource_client):
    return AzureControlPlaneClient(
        credential,
        resource_client_factory=Mock(return_value=resource_client),
        retry_delay=0,
    )


def test_discovered_resource_from_sdk_object():
    resource = DiscoveredResource.from_sdk(
        sdk_resource("/id/sa1", "sa1", "Microsoft.Storage/storageAccounts")
    )

    assert resource.mapped_kind == "storage_account"
    assert resource.to_dict() == {
        "id": "/id/sa1",
        "name": "sa1",
        "vendorType": "Microsoft.Storage/storageAccounts",
        "mappedKind": "storage_account",
        "location": "eastus",
        "tags": {"env": "test"},
    }


@pytest.mark.asyncio
async def test_list_accounts(credential):
    subscription = Mock(subscription_id="sub-1", display_name="Production", state="Enabled")
    client = Mock()
    client.subscriptions.list.return_value = [subscription]
    factory = Mock(return_value=client)

    accounts = await AzureControlPlaneClient(
        credential, subscription_client_factory=factory
    ).list_accounts()

    factory.assert_called_once_with(credential)
    assert accounts == [{"id": "sub-1", "display_name": "Production", "state": "Enabled"}]


@pytest.mark.asyncio
async def test_list_resource_containers(credential):
    group = Mock(id="/subscriptions/sub-1/resourceGroups/rg-demo", location="eastus", tags=None)
    group.name = "rg-demo"
    client = Mock()
    client.resource_groups.list.return_value = [group]
    factory = Mock(return_value=client)

    groups = await AzureControlPlaneClient(
        credential, resource_client_factory=factory
    ).list_resource_containers("sub-1")

    factory.assert_called_once_with(credential, "sub-1")
    assert groups == [
        {
            "id": "/subscriptions/sub-1/resourceGroups/rg-demo",
            "name": "rg-demo",
            "location": "eastus",
            "tags": {},
        }
    ]


@pytest.mark.asyncio
async def test_list_resources_keeps_unmapped_resources(control_plane, resource_client):
    resources = await control_plane.list_resources_in_container("sub-1", "rg-demo")

    resource_client.resources.list_by_resource_group.assert_called_once_with("rg-demo")
    assert [r.mapped_kind for r in resources] == [
        "storage_account",
        "virtual_machine",
        "virtual_machine",
        None,
    ]


@pytest.mark.asyncio
async def test_exportable_kinds_are_distinct_and_ordered(control_plane):
    kinds = await control_plane.list_exportable_kinds("sub-1", "rg-demo")
    assert kinds == ["storage_account", "virtual_machine"]


@pytest.mark.asyncio
async def test_grouping_leaves_out_unmapped_resources(control_plane):
    grouped = await control_plane.group_resources_by_kind("sub-1", "rg-demo")

    assert list(grouped) == ["storage_account", "virtual_machine"]
    assert [r.name for r in grouped["virtual_machine"]] == ["vm1", "vmss1"]


@pytest.mark.asyncio
async def test_transient_errors_are_retried(control_plane, resource_client, resources):
    resource_client.resources.list_by_resource_group.side_effect = [
        HttpResponseError("throttled"),
        resources,
    ]

    found = await control_plane.list_resources_in_container("sub-1", "rg-demo")

    assert len(found) == 4
    assert resource_client.resources.list_by_resource_group.call_count == 2


@pytest.mark.asyncio
async def test_persistent_errors_become_enumeration_errors(control_plane, resource_client):
    resource_client.resources.list_by_resource_group.side_effect = HttpResponseError(
        "ResourceGroupNotFound"
    )

    with pytest.raises(EnumerationError) as exc_info:
        await control_plane.list_resources_in_container("sub-1", "rg-demo")

    assert exc_info.value.context == {"subscription_id": "sub-1", "resource_group": "rg-demo"}
    assert resource_client.resources.list_by_resource_group.call_count == 3


@pytest.mark.asyncio
async def test_authentication_errors_are_not_retried(control_plane, resource_client):
    resource_client.resources.list_by_resource_group.side_effect = (
        ClientAuthenticationError("token expired")
    )

    with pytest.raises(AzureAuthenticationError):
        await control_plane.list_resources_in_container("sub-1", "rg-demo")

    assert resource_client.resources.list_by_resource_group.call_count == 1


@pytest.mark.asyncio
async def test_unexpected_errors_are_wrapped(control_plane, resource_client):
    resource_client.resources.list_by_resource_group.side_effect = RuntimeError("bug")

    with pytest.raises(EnumerationError) as exc_info:
        await control_plane.list_resources_in_container("sub-1", "rg-demo")

    assert isinstance(exc_info.value.cause, RuntimeError)


def test_access_token_uses_arm_scope(credential):
    token = AccessToken("tok", 4102444800)
    credential.get_token.return_value = token

    assert AzureControlPlaneClient(credential).get_access_token() is token
    credential.get_token.assert_called_once_with(ARM_SCOPE)


def test_access_token_is_best_effort(credential):
    credential.get_token.side_effect = ClientAuthenticationError("no login")

    assert AzureControlPlaneClient(credential).get_access_token() is None
