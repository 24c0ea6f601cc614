"""
Download Router.

Endpoints:
    GET /api/download/{file_name} - Download a previously generated file
"""

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse

from ...exceptions import NotFoundError
from ...generators.template_generator import TemplateGenerator
from ..dependencies import get_generator

router = APIRouter()


@router.get("/download/{file_name}")
def download_file(
    file_name: str,
    generator: TemplateGenerator = Depends(get_generator),
) -> FileResponse:
    path = generator.resolve_download(file_name)
    if path is None:
        raise NotFoundError(f"File not found: {file_name}")
    return FileResponse(path, media_type="text/plain", filename=path.name)


__all__ = ["router"]
