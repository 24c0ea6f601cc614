"""
Tests for the output normalizer.

Tests cover:
- Boilerplate block stripping (nested braces, strings, comments, heredocs)
- Resource kind detection
- Text repairs
- Grouping, empty-file dropping and scaffolding
"""

from pathlib import Path

import pytest

from teleform.exceptions import NormalizationError
from teleform.export.normalizer import (
    DEFAULT_REPAIRS,
    OutputNormalizer,
    detect_resource_kind,
    discover_source_files,
    strip_boilerplate_blocks,
)
from tests.fakes import STORAGE_TF


@pytest.fixture
def normalizer():
    return OutputNormalizer()


def write(root: Path, relative: str, content: str) -> Path:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


# Boilerplate stripping


def test_strips_provider_and_terraform_blocks():
    cleaned = strip_boilerplate_blocks(STORAGE_TF)

    assert "provider" not in cleaned
    assert "required_providers" not in cleaned
    assert 'resource "azurerm_storage_account" "sa_demo"' in cleaned


def test_keeps_resource_blocks_with_braces_in_strings_and_heredocs():
    content = (
        'provider "azurerm" {\n'
        "  features {}\n"
        "}\n"
        'resource "azurerm_linux_web_app" "app" {\n'
        '  name = "brace } in string"\n'
        "  # closing } in a comment\n"
        "  app_settings = <<EOT\n"
        "}}} not structural\n"
        "EOT\n"
        "}\n"
    )

    cleaned = strip_boilerplate_blocks(content)

    assert cleaned.startswith('resource "azurerm_linux_web_app" "app" {')
    assert cleaned.rstrip().endswith("}")
    assert "}}} not structural" in cleaned


def test_provider_references_inside_resources_are_kept():
    content = 'resource "azurerm_resource_group" "rg" {\n  provider = azurerm.west\n}\n'
    assert strip_boilerplate_blocks(content) == content


# Kind detection


@pytest.mark.parametrize(
    "content, expected",
    [
        ('resource "azurerm_storage_account" "a" {}', "storage_account"),
        ('resource "random_string" "a" {}', "random_string"),
        ('variable "x" {}', "main"),
        ("", "main"),
        (
            'resource "azurerm_subnet" "a" {}\nresource "azurerm_virtual_network" "b" {}',
            "subnet",
        ),
    ],
)
def test_detect_resource_kind(content, expected):
    assert detect_resource_kind(content) == expected


def test_detection_is_case_sensitive():
    assert detect_resource_kind('resource "AzureRM_storage_account" "a" {}') == (
        "AzureRM_storage_account"
    )


# Repairs


def test_vm_disk_size_zero_is_repaired(normalizer):
    content = (
        'resource "azurerm_linux_virtual_machine" "vm" {\n'
        "  os_disk {\n"
        '    disk_size_gb = "0"\n'
        "  }\n"
        "}"
    )
    assert 'disk_size_gb = "30"' in normalizer.clean(content)


def test_nsg_priority_zero_is_repaired(normalizer):
    content = 'resource "azurerm_network_security_group" "nsg" {\n  priority = "0"\n}'
    assert 'priority = "100"' in normalizer.clean(content)


def test_repairs_only_apply_to_matching_resources(normalizer):
    content = 'resource "azurerm_monitor_autoscale_setting" "a" {\n  priority = "0"\n}'
    assert 'priority = "0"' in normalizer.clean(content)


def test_deprecated_storage_arguments_are_removed(normalizer):
    cleaned = normalizer.clean(STORAGE_TF)
    assert "enable_https_traffic_only" not in cleaned
    assert "account_tier" in cleaned


def test_default_repairs_have_unique_names():
    names = [repair.name for repair in DEFAULT_REPAIRS]
    assert len(names) == len(set(names))


# Full normalization


def test_groups_files_by_kind_and_scaffolds(normalizer, tmp_path):
    write(tmp_path, "azurerm/storage_account/a.tf", STORAGE_TF)
    write(
        tmp_path,
        "azurerm/storage_account/b.tf",
        'resource "azurerm_storage_account" "second" {\n  name = "second"\n}\n',
    )
    write(
        tmp_path,
        "azurerm/virtual_network/vnet.tf",
        'resource "azurerm_virtual_network" "vnet" {\n  name = "vnet"\n}\n',
    )

    result = normalizer.normalize(tmp_path, "sub-1", "rg-demo")

    assert result.kinds == {"storage_account": 2, "virtual_network": 1}
    assert sorted(p.name for p in tmp_path.iterdir()) == [
        "main.tf",
        "outputs.tf",
        "provider.tf",
        "storage_account.tf",
        "variables.tf",
        "virtual_network.tf",
    ]
    storage = (tmp_path / "storage_account.tf").read_text(encoding="utf-8")
    assert storage.index('"sa_demo"') < storage.index('"second"')
    assert "provider" not in storage


def test_whitespace_only_file_is_dropped(normalizer, tmp_path):
    write(tmp_path, "azurerm/blank/blank.tf", "   \n\t\n")

    result = normalizer.normalize(tmp_path, "sub-1", "rg-demo")

    assert result.kinds == {}
    assert result.dropped_files == ["azurerm/blank/blank.tf"]
    assert sorted(p.name for p in tmp_path.iterdir()) == [
        "main.tf",
        "outputs.tf",
        "provider.tf",
        "variables.tf",
    ]


def test_boilerplate_only_file_is_dropped(normalizer, tmp_path):
    write(tmp_path, "provider.tf", 'provider "azurerm" {\n  features {}\n}\n')

    result = normalizer.normalize(tmp_path, "sub-1", "rg-demo")

    assert result.dropped_files == ["provider.tf"]
    assert "required_providers" in (tmp_path / "provider.tf").read_text(encoding="utf-8")


def test_empty_output_still_scaffolds(normalizer, tmp_path):
    result = normalizer.normalize(tmp_path, "sub-secret-1", "rg-demo")

    assert result.kinds == {}
    variables = (tmp_path / "variables.tf").read_text(encoding="utf-8")
    assert '"sub-secret-1"' in variables
    assert "sensitive   = true" in variables
    assert '"rg-demo"' in variables
    assert 'provider "azurerm"' in (tmp_path / "provider.tf").read_text(encoding="utf-8")


def test_main_kind_is_appended_to_main_scaffold(normalizer, tmp_path):
    write(tmp_path, "extra.tf", 'locals {\n  owner = "ops"\n}\n')

    result = normalizer.normalize(tmp_path, "sub-1", "rg-demo")

    assert result.kinds == {"main": 1}
    main = (tmp_path / "main.tf").read_text(encoding="utf-8")
    assert 'data "azurerm_resource_group" "main"' in main
    assert 'owner = "ops"' in main


def test_source_files_and_directories_are_removed(normalizer, tmp_path):
    write(tmp_path, "azurerm/storage_account/a.tf", STORAGE_TF)
    write(tmp_path, "terraform.tfstate", "{}")

    normalizer.normalize(tmp_path, "sub-1", "rg-demo")

    assert not (tmp_path / "azurerm").exists()
    # non-.tf files are left alone
    assert (tmp_path / "terraform.tfstate").exists()


def test_discover_source_files_is_sorted(tmp_path):
    write(tmp_path, "b/z.tf", "")
    write(tmp_path, "a/y.tf", "")
    write(tmp_path, "a/notes.txt", "")

    assert [p.relative_to(tmp_path).as_posix() for p in discover_source_files(tmp_path)] == [
        "a/y.tf",
        "b/z.tf",
    ]


def test_unreadable_output_raises_normalization_error(normalizer, tmp_path):
    write(tmp_path, "bad.tf", "")
    (tmp_path / "bad.tf").write_bytes(b"\xff\xfe invalid utf-8 \x80")

    with pytest.raises(NormalizationError):
        normalizer.normalize(tmp_path, "sub-1", "rg-demo")


def test_filesystem_failure_raises_normalization_error(normalizer, tmp_path, monkeypatch):
    write(tmp_path, "a.tf", 'resource "azurerm_storage_account" "a" {}\n')

    def fail(*args, **kwargs):
        raise PermissionError(13, "Permission denied", str(tmp_path / "a.tf"))

    monkeypatch.setattr(Path, "read_text", fail)

    with pytest.raises(NormalizationError) as exc_info:
        normalizer.normalize(tmp_path, "sub-1", "rg-demo")

    assert exc_info.value.context["path"].endswith("a.tf")
