"""Services that talk to external systems."""

from .azure_control_plane import AzureControlPlaneClient, DiscoveredResource

__all__ = ["AzureControlPlaneClient", "DiscoveredResource"]
