"""Form-driven Terraform template generators."""

from .aws import AWS_SERVICES, LEGACY_SERVICES, AwsForm, AwsService, get_service
from .template_generator import GeneratedFile, TemplateGenerator

__all__ = [
    "AWS_SERVICES",
    "LEGACY_SERVICES",
    "AwsForm",
    "AwsService",
    "GeneratedFile",
    "TemplateGenerator",
    "get_service",
]
