"""
Export Router.

Endpoints:
    POST /api/export - Export live resources as a zipped Terraform directory

The workspace behind a successful export is released when the response
stream closes, whether the client read it all or went away. A background
task releases it too in case the stream is never iterated;
``ExportArtifact.release`` makes the second call a no-op.
"""

from typing import Iterator

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from ...export.archiver import iter_archive
from ...export.models import ExportRequest
from ...export.pipeline import ExportPipeline
from ...export.workspace import ExportArtifact
from ...services.azure_control_plane import AzureControlPlaneClient
from ..dependencies import get_control_plane, get_pipeline

router = APIRouter()


def _stream_and_release(artifact: ExportArtifact) -> Iterator[bytes]:
    try:
        yield from iter_archive(artifact.archive_path)
    finally:
        artifact.release()


@router.post("/export")
async def export_resources(
    export_request: ExportRequest,
    pipeline: ExportPipeline = Depends(get_pipeline),
    control_plane: AzureControlPlaneClient = Depends(get_control_plane),
) -> StreamingResponse:
    """
    Export the selected resources of one resource group.

    Returns:
        ``application/zip`` stream of the normalized Terraform directory

    Raises:
        ExportValidationError: 400 for missing identifiers or selection
        TeleformError: 500 for enumeration or export failures
    """
    artifact = await pipeline.run(export_request, control_plane)
    return StreamingResponse(
        _stream_and_release(artifact),
        media_type="application/zip",
        headers={
            "Content-Disposition": f'attachment; filename="{artifact.download_name}"'
        },
        background=BackgroundTask(artifact.release),
    )


__all__ = ["router"]
