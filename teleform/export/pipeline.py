"""
Export Pipeline

Orchestrates one existing-resource export end to end:

    validate -> resolve plan -> create workspace -> run exporter
    -> normalize -> archive

Stages run strictly in sequence and each starts only after its predecessor
succeeded. Validation and plan resolution happen before the workspace
exists; any failure after that point removes the workspace before the error
propagates. On success the caller owns the returned ``ExportArtifact`` and
must ``release()`` it once the archive has been streamed.
"""

import asyncio
import re
from typing import TYPE_CHECKING, Dict, List, Mapping, Optional

import structlog

from ..config_manager import ExporterConfig
from ..exceptions import ExportValidationError, WorkspaceError
from .archiver import create_archive
from .models import ExportPlan, ExportRequest
from .normalizer import OutputNormalizer
from .supervisor import ExportProcessSupervisor, build_exporter_environment
from .workspace import ExportArtifact, ExportWorkspace, cleanup_workspace, sanitize_name

if TYPE_CHECKING:
    from ..services.azure_control_plane import AzureControlPlaneClient

logger = structlog.get_logger(__name__)

_KIND_PATTERN = re.compile(r"^[A-Za-z0-9_]+$")


def validate_export_request(request: ExportRequest) -> None:
    """
    Reject requests that cannot be exported.

    Raises:
        ExportValidationError: If the subscription or resource group is
            missing, no selection was made, or a kind name is malformed
    """
    if not request.account_id:
        raise ExportValidationError(
            "controlPlaneAccountId is required", field_name="controlPlaneAccountId"
        )
    if not request.container:
        raise ExportValidationError(
            "resourceContainer is required", field_name="resourceContainer"
        )
    if not request.resource_kinds and not request.resource_ids:
        raise ExportValidationError(
            "Select at least one resource kind (resourceKinds) or resource (resourceIds)"
        )
    if not request.resource_ids:
        invalid = [k for k in request.resource_kinds if not _KIND_PATTERN.match(k)]
        if invalid:
            raise ExportValidationError(
                f"Invalid resource kind(s): {', '.join(invalid)}",
                field_name="resourceKinds",
            )


def archive_download_name(container: str) -> str:
    return f"{sanitize_name(container)}-terraform.zip"


class ExportPipeline:
    """
    Runs exports with one supervisor and normalizer shared across requests.

    Neither collaborator keeps per-request state, so concurrent runs are
    isolated by their workspaces alone.

    Args:
        config: Exporter configuration (workspace directory, binary, prompts)
        supervisor: Export process supervisor (defaults to one built from config)
        normalizer: Output normalizer (defaults to the packaged templates)
        base_env: Environment the exporter inherits (defaults to os.environ)
    """

    def __init__(
        self,
        config: Optional[ExporterConfig] = None,
        supervisor: Optional[ExportProcessSupervisor] = None,
        normalizer: Optional[OutputNormalizer] = None,
        base_env: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.config = config or ExporterConfig()
        self.supervisor = supervisor or ExportProcessSupervisor(self.config)
        self.normalizer = normalizer or OutputNormalizer()
        self.base_env = base_env

    async def resolve_plan(
        self, request: ExportRequest, control_plane: "AzureControlPlaneClient"
    ) -> ExportPlan:
        """
        Turn a validated request into an ExportPlan.

        In individual-resource mode (which wins when both selections are
        given) the resource group is enumerated once and every requested,
        exportable resource contributes its kind and an ID filter. Resource
        IDs are compared case-insensitively, as ARM IDs are.

        Raises:
            ExportValidationError: If the request is invalid or none of the
                requested resources can be exported
            EnumerationError: If listing the resource group fails
        """
        validate_export_request(request)
        account_id = request.account_id or ""
        container = request.container or ""

        if not request.resource_ids:
            return ExportPlan(
                account_id=account_id,
                container=container,
                kinds=list(request.resource_kinds),
            )

        if request.resource_kinds:
            logger.info(
                "selection_precedence",
                used="resourceIds",
                ignored_kinds=request.resource_kinds,
            )

        wanted = {resource_id.lower() for resource_id in request.resource_ids}
        resources = await control_plane.list_resources_in_container(account_id, container)

        filters: Dict[str, List[str]] = {}
        matched: List[str] = []
        for resource in resources:
            if resource.id.lower() not in wanted:
                continue
            if not resource.mapped_kind:
                logger.info(
                    "resource_not_exportable",
                    resource_id=resource.id,
                    vendor_type=resource.vendor_type,
                )
                continue
            filters.setdefault(resource.mapped_kind, []).append(resource.id)
            matched.append(resource.id)

        if not filters:
            raise ExportValidationError(
                "None of the selected resources exist in the resource group "
                "or can be exported",
                field_name="resourceIds",
            )

        missing = len(wanted) - len({resource_id.lower() for resource_id in matched})
        if missing:
            logger.warning("resources_skipped", count=missing, container=container)

        return ExportPlan(
            account_id=account_id,
            container=container,
            kinds=list(filters),
            resource_ids=matched,
            filters=filters,
        )

    async def run(
        self, request: ExportRequest, control_plane: "AzureControlPlaneClient"
    ) -> ExportArtifact:
        """
        Run one export.

        Returns:
            ExportArtifact whose archive is ready to stream

        Raises:
            ExportValidationError: Before any workspace is created
            EnumerationError: Before any workspace is created
            WorkspaceError: If the workspace cannot be created
            ExportError: Any later failure, after the workspace was removed
        """
        plan = await self.resolve_plan(request, control_plane)
        try:
            workspace = ExportWorkspace.create(self.config.workspace_dir, plan.container)
        except OSError as e:
            logger.error(
                "workspace_create_failed",
                base_dir=str(self.config.workspace_dir),
                error=str(e),
            )
            raise WorkspaceError(
                f"Could not create export workspace: {e}",
                path=str(self.config.workspace_dir),
                cause=e,
            ) from e
        log = logger.bind(workspace=workspace.root.name, container=plan.container)
        log.info("export_started", kinds=plan.kinds, individual=plan.individual_mode)

        try:
            token = await asyncio.to_thread(control_plane.get_access_token)
            env = build_exporter_environment(self.base_env, plan.account_id, token)

            await self.supervisor.run(plan, workspace.output_dir, env)
            result = await asyncio.to_thread(
                self.normalizer.normalize,
                workspace.output_dir,
                plan.account_id,
                plan.container,
            )
            await asyncio.to_thread(
                create_archive, workspace.output_dir, workspace.archive_path
            )
        except BaseException as e:
            # includes cancellation when the client goes away mid-export
            log.error("export_failed", error=str(e), error_type=type(e).__name__)
            cleanup_workspace(workspace)
            raise

        log.info("export_archived", kinds=result.kinds, files=result.files_written)
        return ExportArtifact(workspace, archive_download_name(plan.container))


__all__ = [
    "ExportPipeline",
    "ExportRequest",
    "archive_download_name",
    "validate_export_request",
]
