"""
Export workspaces and their cleanup.

Each export request owns one workspace directory (plus a sibling archive
file) and nothing else touches it, which is what lets concurrent exports run
without locking. Cleanup must run on every exit path and must never raise.

Public API:
    ExportWorkspace: Paths of one request's workspace
    ExportArtifact: Finished workspace + archive; ``release()`` cleans up once
    cleanup_workspace: Idempotent, never-raising removal
    cleanup_stale_workspaces: Removes leftovers of crashed processes
"""

import logging
import re
import shutil
import threading
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

OUTPUT_DIR_NAME = "terraform"
_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def sanitize_name(name: str) -> str:
    cleaned = _UNSAFE_CHARS.sub("-", name).strip("-.")
    return cleaned[:64] or "export"


@dataclass(frozen=True)
class ExportWorkspace:
    """
    Transient per-request directory tree.

    Attributes:
        root: Staging directory, ``<container>-<utc timestamp>-<suffix>``
        output_dir: ``root/terraform``, where the exporter writes
        archive_path: ``<base_dir>/<root name>.zip``
    """

    root: Path
    output_dir: Path
    archive_path: Path

    @classmethod
    def create(cls, base_dir: Path, container: str) -> "ExportWorkspace":
        """Create a new, uniquely named workspace under base_dir.

        The random suffix keeps workspaces created in the same instant for
        the same container distinct.
        """
        base_dir = Path(base_dir)
        base_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")
        name = f"{sanitize_name(container)}-{timestamp}-{uuid.uuid4().hex[:8]}"

        root = base_dir / name
        root.mkdir(exist_ok=False)
        output_dir = root / OUTPUT_DIR_NAME
        output_dir.mkdir()
        logger.debug(f"Created export workspace {root}")
        return cls(root=root, output_dir=output_dir, archive_path=base_dir / f"{name}.zip")

    def exists(self) -> bool:
        return self.root.exists() or self.archive_path.exists()


def cleanup_workspace(workspace: Optional[ExportWorkspace]) -> None:
    """Remove the workspace root and archive.

    Missing paths are fine; any other error is logged, never raised.
    """
    if workspace is None:
        return
    try:
        shutil.rmtree(workspace.root)
        logger.info(f"Removed export workspace {workspace.root}")
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"Failed to remove export workspace {workspace.root}: {e}")

    try:
        workspace.archive_path.unlink()
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"Failed to remove archive {workspace.archive_path}: {e}")


def cleanup_stale_workspaces(base_dir: Path, max_age_hours: float = 24.0) -> int:
    """
    Remove workspaces and archives older than max_age_hours.

    Covers leftovers from a process that died mid-export.

    Returns:
        Number of entries removed
    """
    base_dir = Path(base_dir)
    if not base_dir.is_dir():
        return 0

    max_age_seconds = max_age_hours * 60 * 60
    current_time = time.time()
    cleanup_count = 0

    for entry in base_dir.iterdir():
        try:
            if current_time - entry.stat().st_mtime <= max_age_seconds:
                continue
            if entry.is_dir():
                shutil.rmtree(entry)
            elif entry.suffix == ".zip":
                entry.unlink()
            else:
                continue
            cleanup_count += 1
        except OSError as e:
            logger.warning(f"Failed to remove stale export entry {entry}: {e}")

    if cleanup_count > 0:
        logger.info(f"Cleaned up {cleanup_count} stale export entries")
    return cleanup_count


class ExportArtifact:
    """A finished export: the archive to stream and the workspace to release."""

    def __init__(self, workspace: ExportWorkspace, download_name: str) -> None:
        self.workspace = workspace
        self.download_name = download_name
        self._lock = threading.Lock()
        self._released = False

    @property
    def archive_path(self) -> Path:
        return self.workspace.archive_path

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> bool:
        """Clean up the workspace. Only the first call does anything.

        Returns:
            True if this call performed the cleanup
        """
        with self._lock:
            if self._released:
                return False
            self._released = True
        cleanup_workspace(self.workspace)
        return True


__all__ = [
    "ExportArtifact",
    "ExportWorkspace",
    "cleanup_stale_workspaces",
    "cleanup_workspace",
    "sanitize_name",
]
