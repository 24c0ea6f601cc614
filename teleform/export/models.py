"""Data types shared by the export pipeline stages."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ExportRequest(BaseModel):
    """Body of ``POST /api/export``.

    Selections are lenient on input (missing, null or blank entries are
    accepted here) so that ``validate_export_request`` can report a 400
    with a clear message instead of a schema error.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    account_id: Optional[str] = Field(default=None, alias="controlPlaneAccountId")
    container: Optional[str] = Field(default=None, alias="resourceContainer")
    resource_kinds: List[str] = Field(default_factory=list, alias="resourceKinds")
    resource_ids: List[str] = Field(default_factory=list, alias="resourceIds")

    @field_validator("account_id", "container", mode="before")
    @classmethod
    def strip_identifier(cls, v):
        if v is None:
            return None
        v = str(v).strip()
        return v or None

    @field_validator("resource_kinds", "resource_ids", mode="before")
    @classmethod
    def dedupe_selection(cls, v):
        """Drop blanks and duplicates, keeping first-seen order."""
        if v is None:
            return []
        if isinstance(v, str):
            v = [v]
        seen: Dict[str, None] = {}
        for item in v:
            if item is None:
                continue
            item = str(item).strip()
            if item:
                seen.setdefault(item, None)
        return list(seen)


@dataclass(frozen=True)
class ExportPlan:
    """Resolved exporter invocation for one request."""

    account_id: str
    container: str
    kinds: List[str]
    resource_ids: List[str] = field(default_factory=list)
    # kind -> resource ids, only in individual-resource mode
    filters: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def individual_mode(self) -> bool:
        return bool(self.resource_ids)


@dataclass
class ExportProcessResult:
    returncode: int
    stdout: str
    stderr: str
    keystrokes: List[str] = field(default_factory=list)


@dataclass
class NormalizationResult:
    """Outcome of one normalizer run.

    Attributes:
        kinds: Number of source fragments merged into each ``<kind>.tf``
        files_written: Output file names, kind files first, then scaffolding
        dropped_files: Source files that were empty after cleanup
    """

    kinds: Dict[str, int] = field(default_factory=dict)
    files_written: List[str] = field(default_factory=list)
    dropped_files: List[str] = field(default_factory=list)
