"""
Tests for export workspaces.

Tests cover:
- Unique naming for concurrent requests on the same resource group
- Idempotent, never-raising cleanup
- One-shot artifact release
- Stale workspace cleanup
"""

import os
import threading
import time

import pytest

from teleform.export.workspace import (
    ExportArtifact,
    ExportWorkspace,
    cleanup_stale_workspaces,
    cleanup_workspace,
    sanitize_name,
)


@pytest.mark.parametrize(
    "name, expected",
    [
        ("rg-demo", "rg-demo"),
        ("rg demo/../etc", "rg-demo-..-etc"),
        ("../..", "export"),
        ("", "export"),
    ],
)
def test_sanitize_name(name, expected):
    assert sanitize_name(name) == expected


def test_workspace_layout(tmp_path):
    workspace = ExportWorkspace.create(tmp_path, "rg-demo")

    assert workspace.root.parent == tmp_path
    assert workspace.root.name.startswith("rg-demo-")
    assert workspace.output_dir == workspace.root / "terraform"
    assert workspace.output_dir.is_dir()
    assert workspace.archive_path == tmp_path / f"{workspace.root.name}.zip"


def test_same_container_gets_distinct_workspaces(tmp_path):
    first = ExportWorkspace.create(tmp_path, "rg-demo")
    second = ExportWorkspace.create(tmp_path, "rg-demo")

    assert first.root != second.root
    assert first.archive_path != second.archive_path

    (first.output_dir / "a.tf").write_text("a")
    (second.output_dir / "b.tf").write_text("b")
    first.archive_path.write_bytes(b"zip")

    cleanup_workspace(first)

    assert not first.exists()
    assert (second.output_dir / "b.tf").read_text() == "b"


def test_cleanup_is_idempotent(tmp_path):
    workspace = ExportWorkspace.create(tmp_path, "rg-demo")

    cleanup_workspace(workspace)
    cleanup_workspace(workspace)
    cleanup_workspace(None)

    assert not workspace.exists()


def test_cleanup_logs_instead_of_raising(tmp_path, monkeypatch, caplog):
    workspace = ExportWorkspace.create(tmp_path, "rg-demo")

    def fail(path):
        raise PermissionError(13, "Permission denied", str(path))

    monkeypatch.setattr("teleform.export.workspace.shutil.rmtree", fail)

    cleanup_workspace(workspace)

    assert "Failed to remove export workspace" in caplog.text


def test_artifact_release_runs_once(tmp_path):
    workspace = ExportWorkspace.create(tmp_path, "rg-demo")
    workspace.archive_path.write_bytes(b"zip")
    artifact = ExportArtifact(workspace, "rg-demo-terraform.zip")

    assert artifact.archive_path == workspace.archive_path
    assert artifact.release() is True
    assert artifact.release() is False
    assert artifact.released
    assert not workspace.exists()


def test_artifact_release_from_many_threads(tmp_path):
    artifact = ExportArtifact(ExportWorkspace.create(tmp_path, "rg"), "rg-terraform.zip")
    results = []

    threads = [
        threading.Thread(target=lambda: results.append(artifact.release()))
        for _ in range(8)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert results.count(True) == 1


def test_stale_workspaces_are_removed(tmp_path):
    old = ExportWorkspace.create(tmp_path, "old")
    old.archive_path.write_bytes(b"zip")
    fresh = ExportWorkspace.create(tmp_path, "fresh")
    (tmp_path / "notes.txt").write_text("keep")

    two_days_ago = time.time() - 48 * 60 * 60
    for path in (old.root, old.archive_path, tmp_path / "notes.txt"):
        os.utime(path, (two_days_ago, two_days_ago))

    removed = cleanup_stale_workspaces(tmp_path, max_age_hours=24)

    assert removed == 2
    assert not old.exists()
    assert fresh.root.exists()
    assert (tmp_path / "notes.txt").exists()


def test_stale_cleanup_of_missing_directory(tmp_path):
    assert cleanup_stale_workspaces(tmp_path / "missing") == 0
