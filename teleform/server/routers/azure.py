"""
Azure Discovery Router.

Endpoints:
    GET  /api/subscriptions - Subscriptions visible to the current credential
    GET  /api/resource-groups/{account_id} - Resource groups of a subscription
    GET  /api/resource-kinds/{account_id}/{container} - Exportable kinds
    GET  /api/resources/{account_id}/{container} - Exportable resources by kind
    GET  /api/tenant - Currently active tenant
    POST /api/tenant - Switch tenant for subsequent requests
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends

from ...credential_provider import CredentialProvider
from ...exceptions import ValidationError
from ...services.azure_control_plane import AzureControlPlaneClient
from ..dependencies import get_control_plane, get_credential_provider
from ..models import TenantResponse, TenantSwitchRequest

router = APIRouter()


@router.get("/subscriptions")
async def list_subscriptions(
    control_plane: AzureControlPlaneClient = Depends(get_control_plane),
) -> Dict[str, Any]:
    accounts = await control_plane.list_accounts()
    return {
        "success": True,
        "subscriptions": [
            {
                "id": account["id"],
                "displayName": account["display_name"],
                "state": account["state"],
            }
            for account in accounts
        ],
    }


@router.get("/resource-groups/{account_id}")
async def list_resource_groups(
    account_id: str,
    control_plane: AzureControlPlaneClient = Depends(get_control_plane),
) -> Dict[str, Any]:
    groups = await control_plane.list_resource_containers(account_id)
    return {"success": True, "resourceGroups": groups}


@router.get("/resource-kinds/{account_id}/{container}")
async def list_resource_kinds(
    account_id: str,
    container: str,
    control_plane: AzureControlPlaneClient = Depends(get_control_plane),
) -> Dict[str, Any]:
    """Distinct exporter kinds present in the resource group."""
    kinds = await control_plane.list_exportable_kinds(account_id, container)
    return {"success": True, "resourceTypes": kinds}


@router.get("/resources/{account_id}/{container}")
async def list_resources(
    account_id: str,
    container: str,
    control_plane: AzureControlPlaneClient = Depends(get_control_plane),
) -> Dict[str, Any]:
    """Exportable resources grouped by kind, for individual selection."""
    grouped = await control_plane.group_resources_by_kind(account_id, container)
    return {
        "success": True,
        "resources": {
            kind: [resource.to_dict() for resource in resources]
            for kind, resources in grouped.items()
        },
        "resourceCount": sum(len(resources) for resources in grouped.values()),
    }


@router.get("/tenant", response_model=TenantResponse)
async def current_tenant(
    provider: CredentialProvider = Depends(get_credential_provider),
) -> TenantResponse:
    tenant_id = provider.get_current_tenant_id()
    return TenantResponse(
        message="Using tenant" if tenant_id else "Using default credential",
        tenant_id=tenant_id,
    )


@router.post("/tenant", response_model=TenantResponse)
async def switch_tenant(
    body: TenantSwitchRequest,
    provider: CredentialProvider = Depends(get_credential_provider),
) -> TenantResponse:
    """Switch the credential used by requests that start after this one."""
    try:
        current = provider.switch_tenant(
            body.tenant_id, client_id=body.client_id, client_secret=body.client_secret
        )
    except ValueError as e:
        raise ValidationError(str(e), error_code="INVALID_TENANT") from e
    return TenantResponse(message="Tenant switched", tenant_id=current.tenant_id)


__all__ = ["router"]
