"""
Archiver for normalized export output.

Builds a single zip of the normalized directory (maximum deflate compression)
and reads it back in chunks for streaming responses.
"""

import logging
import zipfile
from pathlib import Path
from typing import Iterator

from ..exceptions import ArchiveError

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024


def create_archive(source_dir: Path, archive_path: Path) -> Path:
    """
    Zip every file under ``source_dir`` into ``archive_path``.

    Args:
        source_dir: Directory to archive; arcnames are relative to it
        archive_path: Destination zip file

    Returns:
        Path to the created archive

    Raises:
        ArchiveError: If the directory is missing or the archive cannot be written
    """
    source_dir = Path(source_dir)
    archive_path = Path(archive_path)
    if not source_dir.is_dir():
        raise ArchiveError(f"Nothing to archive: {source_dir} is not a directory", path=str(source_dir))

    files = sorted(f for f in source_dir.rglob("*") if f.is_file())
    try:
        archive_path.parent.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(
            archive_path, "w", zipfile.ZIP_DEFLATED, compresslevel=9
        ) as zf:
            for file_path in files:
                zf.write(file_path, file_path.relative_to(source_dir).as_posix())
    except (OSError, zipfile.BadZipFile) as e:
        raise ArchiveError(
            f"Failed to create archive: {e}", path=str(archive_path), cause=e
        ) from e

    logger.info(f"Created archive {archive_path} ({len(files)} files)")
    return archive_path


def iter_archive(archive_path: Path, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[bytes]:
    """Yield the archive's bytes in chunks.

    Raises:
        ArchiveError: If the archive cannot be read
    """
    try:
        with open(archive_path, "rb") as f:
            while True:
                chunk = f.read(chunk_size)
                if not chunk:
                    break
                yield chunk
    except OSError as e:
        raise ArchiveError(
            f"Failed to read archive: {e}", path=str(archive_path), cause=e
        ) from e


__all__ = ["DEFAULT_CHUNK_SIZE", "create_archive", "iter_archive"]
