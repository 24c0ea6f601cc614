"""
Existing-resource export pipeline.

Exports live Azure resources through an external exporter, normalizes the
emitted Terraform into one file per resource kind and archives the result.
"""

from .archiver import create_archive, iter_archive
from .models import ExportPlan, ExportProcessResult, ExportRequest, NormalizationResult
from .normalizer import OutputNormalizer
from .pipeline import ExportPipeline, validate_export_request
from .prompt_driver import MarkerPromptDriver, NullPromptDriver, PromptDriver
from .resource_type_mapper import AZURE_TO_EXPORT_KIND, map_vendor_type
from .supervisor import ExportProcessSupervisor, ExporterCommandBuilder
from .workspace import ExportArtifact, ExportWorkspace, cleanup_workspace

__all__ = [
    "AZURE_TO_EXPORT_KIND",
    "ExportArtifact",
    "ExportPipeline",
    "ExportPlan",
    "ExportProcessResult",
    "ExportProcessSupervisor",
    "ExportRequest",
    "ExportWorkspace",
    "ExporterCommandBuilder",
    "MarkerPromptDriver",
    "NormalizationResult",
    "NullPromptDriver",
    "OutputNormalizer",
    "PromptDriver",
    "cleanup_workspace",
    "create_archive",
    "iter_archive",
    "map_vendor_type",
    "validate_export_request",
]
