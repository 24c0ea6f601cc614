"""
Template Generator Service.

Renders the AWS service templates from posted form data and stores the
result in the generated output directory, where the download endpoint picks
it up.

Public API:
    TemplateGenerator: Renders, writes and resolves generated files
    GeneratedFile: Result of one generation
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import pydantic
from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateError

from ..exceptions import TemplateGenerationError, TemplateValidationError
from ..utils.hcl import FILTERS
from .aws import get_service

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates" / "aws"
TEMPLATE_SUFFIX = ".tf.j2"
DOWNLOAD_ROUTE = "/api/download"


@dataclass
class GeneratedFile:
    """A rendered template written to the output directory."""

    file_name: str
    path: Path
    code: str

    @property
    def download_url(self) -> str:
        return f"{DOWNLOAD_ROUTE}/{self.file_name}"


def _first_error(exc: pydantic.ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid form data"
    first = errors[0]
    field = ".".join(str(loc) for loc in first.get("loc", ()))
    message = first.get("msg", "invalid value")
    return f"Invalid {field}: {message}" if field else message


class TemplateGenerator:
    """
    Generate Terraform files from service templates.

    Attributes:
        templates_dir: Directory holding ``<service>.tf.j2`` templates
        output_dir: Directory generated files are written to
        provider: Cloud provider name passed to every template
    """

    def __init__(
        self,
        templates_dir: Optional[Path] = None,
        output_dir: Path = Path("generated/output"),
        provider: str = "aws",
    ):
        self.templates_dir = Path(templates_dir or DEFAULT_TEMPLATES_DIR)
        self.output_dir = Path(output_dir)
        self.provider = provider
        self.env = Environment(
            loader=FileSystemLoader(str(self.templates_dir)),
            undefined=StrictUndefined,
            autoescape=False,
            keep_trailing_newline=True,
        )
        self.env.filters.update(FILTERS)

    def available_templates(self) -> List[str]:
        """Service names with a template, excluding ``_``-prefixed partials."""
        return sorted(
            name[: -len(TEMPLATE_SUFFIX)]
            for name in self.env.list_templates()
            if name.endswith(TEMPLATE_SUFFIX) and not name.startswith("_")
        )

    def render(self, service: str, data: Optional[Mapping[str, Any]] = None) -> str:
        """
        Render the template of ``service`` with defaults applied to ``data``.

        Raises:
            TemplateValidationError: Unknown service or invalid form data
            TemplateGenerationError: The template failed to render
        """
        form_cls = get_service(service).form
        try:
            form = form_cls.model_validate(dict(data or {}))
        except pydantic.ValidationError as e:
            raise TemplateValidationError(_first_error(e), service=service) from e

        context: Dict[str, Any] = form.to_context()
        context.update(
            timestamp=datetime.now(timezone.utc).isoformat(),
            provider=self.provider,
        )
        try:
            return self.env.get_template(f"{service}{TEMPLATE_SUFFIX}").render(**context)
        except TemplateError as e:
            logger.error(f"Failed to render {service} template: {e}")
            raise TemplateGenerationError(
                f"Failed to render {service} template: {e}", service=service, cause=e
            ) from e

    def generate(
        self,
        service: str,
        data: Optional[Mapping[str, Any]] = None,
        file_prefix: Optional[str] = None,
    ) -> GeneratedFile:
        """
        Render ``service`` and write it as ``<prefix>-<timestamp>.tf``.

        Args:
            service: Service name (ec2, s3, rds, vpc, lambda, dynamodb, iam)
            data: Posted form data
            file_prefix: Overrides the service's default file name prefix

        Returns:
            GeneratedFile describing the written file
        """
        code = self.render(service, data)
        prefix = file_prefix or get_service(service).file_prefix
        stamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S-%fZ")
        file_name = f"{prefix}-{stamp}.tf"
        path = self.output_dir / file_name

        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            path.write_text(code, encoding="utf-8")
        except OSError as e:
            logger.error(f"Failed to write {path}: {e}")
            raise TemplateGenerationError(
                f"Failed to write generated file: {e}", service=service, cause=e
            ) from e

        logger.info(f"Generated {service} template: {file_name}")
        return GeneratedFile(file_name=file_name, path=path, code=code)

    def resolve_download(self, file_name: str) -> Optional[Path]:
        """
        Path of a previously generated file.

        Returns:
            The file path, or None when no such file exists

        Raises:
            TemplateValidationError: If the name escapes the output directory
        """
        base = self.output_dir.resolve()
        candidate = (self.output_dir / file_name).resolve()
        if (
            not file_name
            or Path(file_name).name != file_name
            or candidate.parent != base
        ):
            logger.warning(f"Rejected download path: {file_name!r}")
            raise TemplateValidationError(f"Invalid file name: {file_name}")
        return candidate if candidate.is_file() else None


__all__ = ["GeneratedFile", "TemplateGenerator"]
