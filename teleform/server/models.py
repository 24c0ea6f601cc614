"""
Request and response models for the Teleform API.

Field names are snake_case in Python and camelCase on the wire, matching
what the web UI sends and expects.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class TenantSwitchRequest(BaseModel):
    """Body of ``POST /api/tenant``."""

    model_config = ConfigDict(populate_by_name=True)

    tenant_id: str = Field(..., alias="tenantId", min_length=1)
    client_id: Optional[str] = Field(default=None, alias="clientId")
    client_secret: Optional[str] = Field(default=None, alias="clientSecret")


class TenantResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str
    tenant_id: Optional[str] = Field(default=None, alias="tenantId")


class GenerationResponse(BaseModel):
    """Result of one template generation."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str = Field(..., description="Human-readable summary")
    file_name: str = Field(..., alias="fileName")
    code: str = Field(..., description="Generated Terraform text")
    download_url: str = Field(..., alias="downloadUrl")


__all__ = ["GenerationResponse", "TenantResponse", "TenantSwitchRequest"]
