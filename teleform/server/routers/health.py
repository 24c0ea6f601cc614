"""
Health and Status Router.

Endpoints:
    GET /api/health - Service health and external tool availability
    GET /api/status - Service overview
    GET /api/aws/status - Available AWS generators
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends

from ... import __version__
from ...config_manager import TeleformConfig
from ...generators.aws import AWS_SERVICES
from ...generators.template_generator import TemplateGenerator
from ...utils.cli_installer import tool_status
from ..dependencies import get_config, get_generator

router = APIRouter()


@router.get("/health")
def health_check(config: TeleformConfig = Depends(get_config)) -> Dict[str, Any]:
    """
    Health check endpoint.

    Reports whether the exporter and terraform binaries are on PATH. A
    missing exporter does not make the service unhealthy; only exports fail.
    """
    exporter = config.exporter.binary
    tools = tool_status(exporter, "terraform")
    return {
        "success": True,
        "status": "healthy",
        "version": __version__,
        "exporter": {"binary": exporter, "installed": tools[exporter]},
        "tools": tools,
    }


@router.get("/status")
def service_status(
    generator: TemplateGenerator = Depends(get_generator),
) -> Dict[str, Any]:
    return {
        "success": True,
        "status": "running",
        "version": __version__,
        "features": {
            "awsTemplates": generator.available_templates(),
            "azureExport": True,
        },
    }


@router.get("/aws/status")
def aws_status() -> Dict[str, Any]:
    return {
        "success": True,
        "services": [
            {"name": name, "label": entry.label, "endpoint": f"/api/aws/{name}"}
            for name, entry in AWS_SERVICES.items()
        ],
    }


__all__ = ["router"]
