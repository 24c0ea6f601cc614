"""API routers for the Teleform server."""

from . import aws, azure, download, export, health

__all__ = ["aws", "azure", "download", "export", "health"]
