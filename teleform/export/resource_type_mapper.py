"""
Resource-Type Mapper

Fixed table from Azure ARM resource types to the resource kind names the
exporter understands (``--resources=<kind>,...``). An unmapped type is a
normal "not supported" outcome: such resources are left out of every
listing and never exported.
"""

import logging
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)

# Azure resource type -> exporter resource kind. Several ARM types may share
# one kind.
AZURE_TO_EXPORT_KIND: Dict[str, str] = {
    "Microsoft.Resources/resourceGroups": "resource_group",
    # Compute
    "Microsoft.Compute/virtualMachines": "virtual_machine",
    "Microsoft.Compute/virtualMachineScaleSets": "virtual_machine",
    "Microsoft.Compute/availabilitySets": "availability_set",
    "Microsoft.Compute/disks": "disk",
    "Microsoft.Compute/snapshots": "disk",
    "Microsoft.Compute/images": "image",
    # Network
    "Microsoft.Network/virtualNetworks": "virtual_network",
    "Microsoft.Network/virtualNetworks/subnets": "subnet",
    "Microsoft.Network/networkSecurityGroups": "network_security_group",
    "Microsoft.Network/networkInterfaces": "network_interface",
    "Microsoft.Network/publicIPAddresses": "public_ip",
    "Microsoft.Network/publicIPPrefixes": "public_ip",
    "Microsoft.Network/loadBalancers": "load_balancer",
    "Microsoft.Network/applicationGateways": "application_gateway",
    "Microsoft.Network/routeTables": "route_table",
    "Microsoft.Network/natGateways": "nat_gateway",
    "Microsoft.Network/privateEndpoints": "private_endpoint",
    "Microsoft.Network/privateDnsZones": "private_dns",
    "Microsoft.Network/dnsZones": "dns",
    "Microsoft.Network/networkWatchers": "network_watcher",
    # Storage
    "Microsoft.Storage/storageAccounts": "storage_account",
    "Microsoft.Storage/storageAccounts/blobServices/containers": "storage_container",
    # Data
    "Microsoft.Sql/servers": "database",
    "Microsoft.Sql/servers/databases": "database",
    "Microsoft.DBforMySQL/servers": "database",
    "Microsoft.DBforMySQL/flexibleServers": "database",
    "Microsoft.DBforPostgreSQL/servers": "database",
    "Microsoft.DBforPostgreSQL/flexibleServers": "database",
    "Microsoft.DBforMariaDB/servers": "database",
    "Microsoft.DocumentDB/databaseAccounts": "cosmosdb",
    "Microsoft.Cache/Redis": "redis",
    "Microsoft.DataFactory/factories": "data_factory",
    "Microsoft.Databricks/workspaces": "databricks",
    "Microsoft.Purview/accounts": "purview",
    "Microsoft.Synapse/workspaces": "synapse",
    # Containers and apps
    "Microsoft.ContainerService/managedClusters": "container",
    "Microsoft.ContainerRegistry/registries": "container",
    "Microsoft.ContainerInstance/containerGroups": "container",
    "Microsoft.Web/sites": "app_service",
    "Microsoft.Web/serverfarms": "app_service",
    # Security and identity
    "Microsoft.KeyVault/vaults": "keyvault",
    "Microsoft.Authorization/roleAssignments": "role_assignment",
    "Microsoft.Authorization/roleDefinitions": "role_definition",
    "Microsoft.ManagedIdentity/userAssignedIdentities": "managed_identity",
    "Microsoft.Network/applicationSecurityGroups": "security_center",
    "Microsoft.Security/securityContacts": "security_center",
    # Integration
    "Microsoft.EventHub/namespaces": "eventhub",
    "Microsoft.ServiceBus/namespaces": "service_bus",
    "Microsoft.ApiManagement/service": "api_management",
    "Microsoft.Logic/workflows": "logic_app",
    # Monitoring
    "Microsoft.OperationalInsights/workspaces": "analysis",
    "Microsoft.Insights/components": "application_insights",
    "Microsoft.Insights/actionGroups": "monitor",
    "Microsoft.Insights/metricAlerts": "monitor",
}

# ARM types are case-insensitive; index the table once for fallback lookups
_LOWERCASE_INDEX: Dict[str, str] = {
    vendor_type.lower(): kind for vendor_type, kind in AZURE_TO_EXPORT_KIND.items()
}


def map_vendor_type(vendor_type: Optional[str]) -> Optional[str]:
    """Map an Azure resource type to an exporter resource kind.

    Args:
        vendor_type: ARM resource type, e.g. ``Microsoft.Storage/storageAccounts``

    Returns:
        The exporter kind, or None if the type is not supported
    """
    if not vendor_type:
        return None

    kind = AZURE_TO_EXPORT_KIND.get(vendor_type)
    if kind is None:
        # Azure returns both Microsoft.Insights and microsoft.insights
        kind = _LOWERCASE_INDEX.get(vendor_type.lower())
        if kind is None:
            logger.debug(f"No export kind mapping found for Azure type: {vendor_type}")
    return kind


def supported_vendor_types() -> List[str]:
    return sorted(AZURE_TO_EXPORT_KIND)


def supported_kinds() -> List[str]:
    """Distinct exporter kinds, sorted."""
    return sorted(set(AZURE_TO_EXPORT_KIND.values()))
