"""
AWS Template Router.

Endpoints:
    POST /api/aws/{service} - Generate Terraform for one AWS service
    POST /api/generate/{service} - Older EC2/S3/RDS endpoints, same behavior

Handlers are plain functions so FastAPI runs the file writes in its
threadpool.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends

from ...exceptions import NotFoundError
from ...generators.aws import AWS_SERVICES, LEGACY_SERVICES
from ...generators.template_generator import TemplateGenerator
from ..dependencies import get_generator
from ..models import GenerationResponse

router = APIRouter()


def _generate(
    generator: TemplateGenerator, service: str, data: Optional[Dict[str, Any]]
) -> GenerationResponse:
    entry = AWS_SERVICES.get(service)
    if entry is None:
        raise NotFoundError(f"Unknown AWS service: {service}")
    generated = generator.generate(service, data or {})
    return GenerationResponse(
        message=f"{entry.label} Terraform code generated successfully",
        file_name=generated.file_name,
        code=generated.code,
        download_url=generated.download_url,
    )


@router.post("/aws/{service}", response_model=GenerationResponse)
def generate_aws(
    service: str,
    data: Optional[Dict[str, Any]] = Body(default=None),
    generator: TemplateGenerator = Depends(get_generator),
) -> GenerationResponse:
    """Generate Terraform for ec2, s3, rds, vpc, lambda, dynamodb or iam."""
    return _generate(generator, service, data)


@router.post("/generate/{service}", response_model=GenerationResponse)
def generate_legacy(
    service: str,
    data: Optional[Dict[str, Any]] = Body(default=None),
    generator: TemplateGenerator = Depends(get_generator),
) -> GenerationResponse:
    if service not in LEGACY_SERVICES:
        raise NotFoundError(f"Unknown generator: {service}")
    return _generate(generator, service, data)


__all__ = ["router"]
