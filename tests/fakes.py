"""Fake exporters and control-plane objects shared by the test suite."""

import sys
import textwrap
from pathlib import Path
from typing import List, Optional
from unittest.mock import Mock

from teleform.config_manager import ExporterConfig
from teleform.services.azure_control_plane import DiscoveredResource

STORAGE_TF = """terraform {
  required_providers {
    azurerm = {
      source = "hashicorp/azurerm"
    }
  }
}

provider "azurerm" {
  features {}
}

resource "azurerm_storage_account" "sa_demo" {
  name                      = "sademo"
  resource_group_name       = "rg-demo"
  account_tier              = "Standard"
  enable_https_traffic_only = true
}
"""

_PREAMBLE = '''
import os
import sys


def flag(name):
    prefix = "--" + name + "="
    return [arg[len(prefix):] for arg in sys.argv[1:] if arg.startswith(prefix)]


OUT = flag("path-output")[0]


def write_tf(relative, content):
    path = os.path.join(OUT, relative)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(content)
'''

# Walks through the terraformer-style menu: expects "w" then "q" on stdin
INTERACTIVE_EXPORTER = """
print("Found 1 resource. Press enter to show menu", flush=True)
first = sys.stdin.readline().strip()
print("received " + first, flush=True)
write_tf("azurerm/storage_account/storage_account.tf", STORAGE_TF)
print("Import completed. Type quit to exit", flush=True)
second = sys.stdin.readline().strip()
print("received " + second, flush=True)
sys.exit(0 if (first, second) == ("w", "q") else 3)
"""

NON_INTERACTIVE_EXPORTER = """
write_tf("azurerm/storage_account/storage_account.tf", STORAGE_TF)
print("done", flush=True)
"""

# Records its arguments so tests can check the built command line
ARGV_RECORDING_EXPORTER = """
with open(os.path.join(OUT, "..", "argv.txt"), "w", encoding="utf-8") as f:
    f.write("\\n".join(sys.argv[1:]))
write_tf("azurerm/storage_account/storage_account.tf", STORAGE_TF)
"""

FAILING_EXPORTER = """
print("starting import", flush=True)
sys.stderr.write("auth error\\n")
sys.exit(2)
"""

HANGING_EXPORTER = """
import time

print("waiting forever", flush=True)
time.sleep(60)
"""


def write_exporter_script(directory: Path, body: str, tf: str = STORAGE_TF) -> Path:
    """Write a fake exporter script that is run with the current interpreter."""
    script = directory / "fake_exporter.py"
    script.write_text(
        textwrap.dedent(_PREAMBLE) + f"STORAGE_TF = {tf!r}\n" + textwrap.dedent(body),
        encoding="utf-8",
    )
    return script


def make_exporter_config(
    directory: Path,
    body: Optional[str] = None,
    interactive: bool = True,
    timeout: int = 30,
    binary: Optional[str] = None,
) -> ExporterConfig:
    subcommand: List[str] = []
    if body is not None:
        subcommand = [str(write_exporter_script(directory, body))]
    return ExporterConfig(
        binary=binary or sys.executable,
        subcommand=subcommand,
        workspace_dir=directory / "exports",
        interactive=interactive,
        prompt_delay=0.01,
        prompt_dedupe_window=2.0,
        timeout=timeout,
    )


def sdk_resource(resource_id: str, name: str, vendor_type: str) -> Mock:
    """Stand-in for an azure-mgmt-resource GenericResource."""
    # name is a Mock constructor argument, so set attributes afterwards
    resource = Mock()
    resource.id = resource_id
    resource.name = name
    resource.type = vendor_type
    resource.location = "eastus"
    resource.tags = {"env": "test"}
    return resource


def make_resource(
    name: str,
    vendor_type: str = "Microsoft.Storage/storageAccounts",
    container: str = "rg-demo",
    account_id: str = "sub-1",
) -> DiscoveredResource:
    resource_id = (
        f"/subscriptions/{account_id}/resourceGroups/{container}"
        f"/providers/{vendor_type}/{name}"
    )
    return DiscoveredResource.from_sdk(sdk_resource(resource_id, name, vendor_type))
