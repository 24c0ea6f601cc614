"""
Azure Control-Plane Client Adapter

Thin async wrapper around the Azure management SDK clients for the three
listings the export flow needs (subscriptions, resource groups, resources in
a group) and for the access token handed to the exporter. Resource types are
mapped to exporter kinds here, so callers only ever see exportable kinds.

Blocking SDK calls run in a worker thread. Every SDK failure surfaces as an
``EnumerationError`` (or ``AzureAuthenticationError``); enumeration never
creates or touches an export workspace.
"""

import asyncio
import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Dict, List, Optional, TypeVar

from azure.core.credentials import AccessToken, TokenCredential
from azure.core.exceptions import AzureError, ClientAuthenticationError
from azure.identity import CredentialUnavailableError
from azure.mgmt.resource import ResourceManagementClient
from azure.mgmt.subscription import SubscriptionClient

from ..credential_provider import ARM_SCOPE
from ..exceptions import AzureAuthenticationError, EnumerationError, wrap_azure_exception
from ..export.resource_type_mapper import map_vendor_type
from ..timeout_config import Timeouts

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class DiscoveredResource:
    """One live resource; ``mapped_kind`` is None when it cannot be exported."""

    id: str
    name: str
    vendor_type: str
    mapped_kind: Optional[str]
    location: Optional[str] = None
    tags: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_sdk(cls, resource: Any) -> "DiscoveredResource":
        vendor_type = getattr(resource, "type", None) or ""
        return cls(
            id=getattr(resource, "id", None) or "",
            name=getattr(resource, "name", None) or "",
            vendor_type=vendor_type,
            mapped_kind=map_vendor_type(vendor_type),
            location=getattr(resource, "location", None),
            tags=dict(getattr(resource, "tags", None) or {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        return {
            "id": data["id"],
            "name": data["name"],
            "vendorType": data["vendor_type"],
            "mappedKind": data["mapped_kind"],
            "location": data["location"],
            "tags": data["tags"],
        }


class AzureControlPlaneClient:
    """
    Lists subscriptions, resource groups and resources for one credential.

    Args:
        credential: Azure credential captured for the current request
        subscription_client_factory: Optional factory for SubscriptionClient (for testing)
        resource_client_factory: Optional factory for ResourceManagementClient (for testing)
        max_retries: Attempts for transient Azure errors
        retry_delay: Initial backoff in seconds (doubles per attempt)
    """

    def __init__(
        self,
        credential: TokenCredential,
        subscription_client_factory: Optional[Callable[[Any], Any]] = None,
        resource_client_factory: Optional[Callable[[Any, str], Any]] = None,
        max_retries: int = 3,
        retry_delay: float = 1.0,
    ) -> None:
        self.credential = credential
        self.subscription_client_factory = (
            subscription_client_factory or SubscriptionClient
        )
        self.resource_client_factory = (
            resource_client_factory or ResourceManagementClient
        )
        self._max_retries = max(1, max_retries)
        self._retry_delay = retry_delay

    async def list_accounts(self) -> List[Dict[str, Any]]:
        """List subscriptions visible to the credential."""

        def _list() -> List[Dict[str, Any]]:
            client = self.subscription_client_factory(self.credential)
            return [
                {
                    "id": getattr(sub, "subscription_id", None),
                    "display_name": getattr(sub, "display_name", None),
                    "state": str(getattr(sub, "state", "") or "") or None,
                }
                for sub in client.subscriptions.list()
            ]

        accounts = await self._call("list subscriptions", _list, {})
        logger.info(f"Found {len(accounts)} subscriptions")
        return accounts

    async def list_resource_containers(self, account_id: str) -> List[Dict[str, Any]]:
        """List resource groups in a subscription."""

        def _list() -> List[Dict[str, Any]]:
            client = self.resource_client_factory(self.credential, account_id)
            return [
                {
                    "id": getattr(group, "id", None),
                    "name": getattr(group, "name", None),
                    "location": getattr(group, "location", None),
                    "tags": dict(getattr(group, "tags", None) or {}),
                }
                for group in client.resource_groups.list()
            ]

        return await self._call(
            "list resource groups", _list, {"subscription_id": account_id}
        )

    async def list_resources_in_container(
        self, account_id: str, container: str
    ) -> List[DiscoveredResource]:
        """List every resource in a resource group, mapped or not."""

        def _list() -> List[DiscoveredResource]:
            client = self.resource_client_factory(self.credential, account_id)
            return [
                DiscoveredResource.from_sdk(resource)
                for resource in client.resources.list_by_resource_group(container)
            ]

        resources = await self._call(
            "list resources",
            _list,
            {"subscription_id": account_id, "resource_group": container},
        )
        unmapped = sum(1 for r in resources if r.mapped_kind is None)
        logger.info(
            f"Found {len(resources)} resources in {container} ({unmapped} not exportable)"
        )
        return resources

    async def list_exportable_kinds(self, account_id: str, container: str) -> List[str]:
        """Distinct exporter kinds in a resource group, in discovery order."""
        resources = await self.list_resources_in_container(account_id, container)
        kinds: Dict[str, None] = {}
        for resource in resources:
            if resource.mapped_kind:
                kinds.setdefault(resource.mapped_kind, None)
        return list(kinds)

    async def group_resources_by_kind(
        self, account_id: str, container: str
    ) -> Dict[str, List[DiscoveredResource]]:
        """Exportable resources grouped by kind; unmapped resources are left out."""
        resources = await self.list_resources_in_container(account_id, container)
        grouped: Dict[str, List[DiscoveredResource]] = {}
        for resource in resources:
            if resource.mapped_kind:
                grouped.setdefault(resource.mapped_kind, []).append(resource)
        return grouped

    def get_access_token(self) -> Optional[AccessToken]:
        """Best-effort ARM token for the exporter; None if unavailable."""
        try:
            return self.credential.get_token(ARM_SCOPE)
        except (AzureError, CredentialUnavailableError) as e:
            logger.warning(f"Could not obtain an access token for the exporter: {e}")
            return None

    async def _call(
        self, operation: str, func: Callable[[], T], context: Dict[str, Any]
    ) -> T:
        """Run a blocking SDK call with retry on transient errors."""
        delay = self._retry_delay
        for attempt in range(1, self._max_retries + 1):
            try:
                return await asyncio.wait_for(
                    asyncio.to_thread(func), timeout=Timeouts.AZURE_LISTING
                )
            except (ClientAuthenticationError, CredentialUnavailableError) as exc:
                logger.error(f"Authentication failed during {operation}: {exc}")
                raise AzureAuthenticationError(
                    f"Azure authentication failed during {operation}: {exc}",
                    context=dict(context),
                    cause=exc,
                ) from exc
            except asyncio.TimeoutError as exc:
                raise EnumerationError(
                    f"Azure {operation} timed out after {Timeouts.AZURE_LISTING} seconds",
                    context=dict(context),
                ) from exc
            except AzureError as exc:
                logger.warning(f"Attempt {attempt} to {operation} failed: {exc}")
                if attempt >= self._max_retries:
                    raise wrap_azure_exception(exc, dict(context)) from exc
                await asyncio.sleep(delay)
                delay *= 2
            except Exception as exc:
                logger.exception(f"Unexpected error during {operation}")
                raise EnumerationError(
                    f"Failed to {operation}: {exc}", context=dict(context), cause=exc
                ) from exc
        raise EnumerationError(f"Failed to {operation}", context=dict(context))


__all__ = ["AzureControlPlaneClient", "DiscoveredResource"]
