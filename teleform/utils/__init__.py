"""
Utility modules for Teleform.

This package contains helpers shared by the server, the CLI and the export
pipeline.
"""

from .cli_installer import ensure_tool, install_hint, is_tool_installed, tool_status

__all__ = [
    "ensure_tool",
    "install_hint",
    "is_tool_installed",
    "tool_status",
]
