import platform
import shutil
from dataclasses import dataclass, field
from typing import Dict, Literal, Optional

from ..exceptions import ExporterNotInstalledError

# Tool registry for the external binaries the export flow relies on.
# Example:
# register_tool(Tool(
#     name="aztfexport",
#     installers={"brew": "brew install aztfexport", "apt": "...", "winget": "..."}
# ))


@dataclass
class Tool:
    name: str
    installers: Dict[str, str] = field(default_factory=dict)
    docs_url: Optional[str] = None


TOOL_REGISTRY: Dict[str, Tool] = {}


def register_tool(tool: Tool) -> None:
    """Register a CLI tool in the global registry."""
    TOOL_REGISTRY[tool.name] = tool


def is_tool_installed(name: str) -> bool:
    """Check if a CLI tool is installed and available in PATH."""
    return shutil.which(name) is not None


def detect_installer() -> Optional[Literal["brew", "apt", "winget", "choco"]]:
    """Detect the system's package manager."""
    system = platform.system()
    if system == "Darwin":
        if shutil.which("brew"):
            return "brew"
    elif system == "Linux":
        if shutil.which("apt"):
            return "apt"
    elif system == "Windows":
        if shutil.which("winget"):
            return "winget"
        if shutil.which("choco"):
            return "choco"
    return None


def install_hint(name: str) -> str:
    """Return a human-readable hint on how to install a tool.

    Unregistered tools (e.g. a custom exporter binary) only get a PATH hint.
    """
    tool = TOOL_REGISTRY.get(name)
    if tool is None:
        return f"Make sure '{name}' is installed and on PATH."
    installer = detect_installer()
    if installer and installer in tool.installers:
        return f"Install {name} with: {tool.installers[installer]}"
    if tool.docs_url:
        return f"Install {name} from {tool.docs_url}"
    return f"Make sure '{name}' is installed and on PATH."


def tool_status(*names: str) -> Dict[str, bool]:
    """Report which of the given tools (default: all registered) are on PATH."""
    return {name: is_tool_installed(name) for name in (names or TOOL_REGISTRY)}


def ensure_tool(name: str) -> None:
    """
    Ensure the given CLI tool is on PATH.

    Raises:
        ExporterNotInstalledError: If the tool cannot be found
    """
    if is_tool_installed(name):
        return
    raise ExporterNotInstalledError(
        f"'{name}' is not installed or not on PATH",
        binary=name,
        recovery_suggestion=install_hint(name),
    )


# Pre-register core tools
register_tool(
    Tool(
        name="terraformer",
        installers={
            "brew": "brew install terraformer",
            "apt": (
                "curl -Lo terraformer https://github.com/GoogleCloudPlatform/terraformer"
                "/releases/latest/download/terraformer-azure-linux-amd64 "
                "&& chmod +x terraformer && sudo mv terraformer /usr/local/bin/terraformer"
            ),
            "choco": "choco install terraformer -y",
        },
        docs_url="https://github.com/GoogleCloudPlatform/terraformer",
    )
)
register_tool(
    Tool(
        name="terraform",
        installers={
            "brew": "brew install terraform",
            "apt": "sudo apt-get update && sudo apt-get install -y terraform",
            "winget": "winget install HashiCorp.Terraform",
            "choco": "choco install terraform -y",
        },
    )
)
register_tool(
    Tool(
        name="az",
        installers={
            "brew": "brew install azure-cli",
            "apt": "sudo apt-get update && sudo apt-get install -y azure-cli",
            "winget": "winget install Microsoft.AzureCLI",
            "choco": "choco install azure-cli -y",
        },
    )
)
