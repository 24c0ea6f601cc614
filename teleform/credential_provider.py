"""
Credential Provider Module

This module owns the Azure credential used by the control-plane adapter and
the exporter. Request handlers never read the current credential directly:
they take a snapshot when the request starts and use it until the request
finishes, so a tenant switch only affects requests that start after it.
"""

import hashlib
import logging
import threading
from dataclasses import dataclass
from typing import Dict, Optional

from azure.core.credentials import TokenCredential
from azure.identity import ClientSecretCredential, DefaultAzureCredential

from .config_manager import AzureConfig

logger = logging.getLogger(__name__)

# Default scope for Azure Resource Manager tokens
ARM_SCOPE = "https://management.azure.com/.default"


@dataclass(frozen=True)
class RequestCredentials:
    """Credential captured once at request start."""

    credential: TokenCredential
    tenant_id: Optional[str] = None


class CredentialProvider:
    """
    Provides the current tenant credential.

    Attributes:
        config: AzureConfig used for the initial credential
        _credential_cache: Cache of credentials per tenant and credential kind
        _current: Credentials handed out by ``snapshot()``
    """

    def __init__(self, config: Optional[AzureConfig] = None) -> None:
        self.config = config or AzureConfig()
        self._lock = threading.Lock()
        self._credential_cache: Dict[str, TokenCredential] = {}
        self._current = RequestCredentials(
            credential=self._get_or_create_credential(
                self.config.tenant_id, self.config.client_id, self.config.client_secret
            ),
            tenant_id=self.config.tenant_id,
        )

    def snapshot(self) -> RequestCredentials:
        """Return the credentials to use for the whole of one request."""
        with self._lock:
            return self._current

    def switch_tenant(
        self,
        tenant_id: str,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
    ) -> RequestCredentials:
        """
        Replace the current credential.

        Switches are serialized. Requests that already took a snapshot keep
        using the previous credential.

        Args:
            tenant_id: Tenant to authenticate against
            client_id: Service principal client ID (optional)
            client_secret: Service principal secret (optional)

        Returns:
            The new current credentials

        Raises:
            ValueError: If tenant_id is empty or a secret is given without a client ID
        """
        if not tenant_id:
            raise ValueError("tenant_id is required to switch tenants")
        if client_secret and not client_id:
            raise ValueError("client_id is required when client_secret is given")

        with self._lock:
            credential = self._get_or_create_credential(
                tenant_id, client_id, client_secret
            )
            self._current = RequestCredentials(credential=credential, tenant_id=tenant_id)

        masked_tenant_id = tenant_id[:8] + "..." if len(tenant_id) > 8 else tenant_id
        logger.info(f"Switched to tenant ({masked_tenant_id})")
        return self._current

    def get_current_tenant_id(self) -> Optional[str]:
        """Get the currently active tenant ID."""
        return self.snapshot().tenant_id

    def clear_cache(self) -> None:
        """Clear credential cache. Useful for testing or credential refresh."""
        logger.debug("Clearing credential cache")
        with self._lock:
            self._credential_cache.clear()

    def _get_or_create_credential(
        self,
        tenant_id: Optional[str],
        client_id: Optional[str],
        client_secret: Optional[str],
    ) -> TokenCredential:
        """
        Get cached credential or create new one.

        Uses ClientSecretCredential when a full service principal is given and
        DefaultAzureCredential (CLI login, managed identity, environment)
        otherwise.
        """
        service_principal = bool(tenant_id and client_id and client_secret)
        if service_principal:
            # a rotated secret must not reuse the credential built from the old one
            digest = hashlib.sha256(client_secret.encode("utf-8")).hexdigest()[:16]
            cache_key = f"secret:{tenant_id}:{client_id}:{digest}"
        else:
            cache_key = f"default:{tenant_id or ''}"
        if cache_key in self._credential_cache:
            return self._credential_cache[cache_key]

        if service_principal:
            logger.debug(f"Creating client secret credential for tenant {tenant_id}")
            credential: TokenCredential = ClientSecretCredential(
                tenant_id=tenant_id,
                client_id=client_id,
                client_secret=client_secret,
            )
        elif tenant_id:
            logger.debug(f"Creating default credential for tenant {tenant_id}")
            credential = DefaultAzureCredential(additionally_allowed_tenants=[tenant_id])
        else:
            logger.debug("Creating default credential")
            credential = DefaultAzureCredential()

        self._credential_cache[cache_key] = credential
        return credential


__all__ = ["ARM_SCOPE", "CredentialProvider", "RequestCredentials"]
