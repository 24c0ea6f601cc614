"""
Output Normalizer

Turns whatever the exporter wrote into a canonical file layout: one
``<kind>.tf`` per resource kind plus provider/variables/outputs/main
scaffolding.

Philosophy:
- Two explicit passes: discover all source files, then process and delete
- Text-level cleanup only; emitted resource syntax is left to the exporter
- Scaffolding is always written, so a zero-resource export still yields a
  valid configuration directory

Public API:
    OutputNormalizer: Runs the whole normalization over an output directory
    TextRepair: One fix for a known-bad emitted value
    DEFAULT_REPAIRS: The repairs applied by default
    strip_boilerplate_blocks: Remove top-level provider/terraform blocks
    detect_resource_kind: Kind of the first resource declaration in a file
    discover_source_files: Sorted list of .tf files under a directory
"""

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Pattern, Sequence, Tuple

import structlog
from jinja2 import Environment, FileSystemLoader, StrictUndefined

from ..exceptions import NormalizationError
from ..utils.hcl import FILTERS
from .models import NormalizationResult

logger = structlog.get_logger(__name__)

TF_EXTENSION = ".tf"
MAIN_KIND = "main"
VENDOR_PREFIX = "azurerm_"
SCAFFOLD_FILES = ("provider", "variables", "outputs", "main")

DEFAULT_TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates" / "export"

RESOURCE_DECLARATION = re.compile(r'^[ \t]*resource[ \t]+"([^"]+)"[ \t]+"', re.MULTILINE)
BOILERPLATE_HEADER = re.compile(r'\s*(?:provider\s+"[^"\n]*"|terraform)\s*')
HEREDOC_START = re.compile(r"<<-?([A-Za-z_][A-Za-z0-9_]*)[ \t]*\n")


@dataclass(frozen=True)
class TextRepair:
    """Rewrite ``pattern`` to ``replacement`` in files that contain ``marker``."""

    name: str
    marker: Pattern[str]
    pattern: Pattern[str]
    replacement: str

    def apply(self, content: str) -> str:
        if not self.marker.search(content):
            return content
        repaired, count = self.pattern.subn(self.replacement, content)
        if count:
            logger.debug("text_repair_applied", repair=self.name, count=count)
        return repaired


DEFAULT_REPAIRS: Tuple[TextRepair, ...] = (
    TextRepair(
        name="vm_disk_size",
        marker=re.compile(
            r'resource\s+"azurerm_(?:linux_|windows_)?virtual_machine(?:_scale_set)?"'
        ),
        pattern=re.compile(r'^([ \t]*disk_size_gb[ \t]*=[ \t]*)"0"', re.MULTILINE),
        replacement=r'\1"30"',
    ),
    TextRepair(
        name="nsg_priority",
        marker=re.compile(r'resource\s+"azurerm_network_security_(?:group|rule)"'),
        pattern=re.compile(r'^([ \t]*priority[ \t]*=[ \t]*)"0"', re.MULTILINE),
        replacement=r'\1"100"',
    ),
    TextRepair(
        name="storage_deprecated_arguments",
        marker=re.compile(r'resource\s+"azurerm_storage_account"'),
        pattern=re.compile(
            r"^[ \t]*(?:enable_https_traffic_only|allow_blob_public_access)[ \t]*=.*(?:\n|$)",
            re.MULTILINE,
        ),
        replacement="",
    ),
)


def _structural_braces(text: str) -> Iterator[Tuple[int, str]]:
    """Yield (index, brace) for braces outside strings, comments and heredocs."""
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == '"':
            i += 1
            while i < n and text[i] != '"':
                i += 2 if text[i] == "\\" else 1
        elif ch == "#" or text.startswith("//", i):
            end = text.find("\n", i)
            i = n if end == -1 else end
        elif text.startswith("/*", i):
            end = text.find("*/", i + 2)
            i = n if end == -1 else end + 1
        elif text.startswith("<<", i):
            match = HEREDOC_START.match(text, i)
            if match:
                terminator = re.compile(
                    r"^[ \t]*" + re.escape(match.group(1)) + r"[ \t]*$", re.MULTILINE
                )
                end = terminator.search(text, match.end())
                i = n if end is None else end.end()
                continue
        elif ch in "{}":
            yield i, ch
        i += 1


def _top_level_blocks(text: str) -> List[Tuple[int, int]]:
    """(open, close) brace indexes of every top-level block."""
    blocks: List[Tuple[int, int]] = []
    depth = 0
    open_idx = -1
    for idx, brace in _structural_braces(text):
        if brace == "{":
            if depth == 0:
                open_idx = idx
            depth += 1
        elif depth > 0:
            depth -= 1
            if depth == 0:
                blocks.append((open_idx, idx))
    return blocks


def strip_boilerplate_blocks(content: str) -> str:
    """Remove top-level ``provider "x" { }`` and ``terraform { }`` blocks."""
    spans: List[Tuple[int, int]] = []
    for open_idx, close_idx in _top_level_blocks(content):
        line_start = content.rfind("\n", 0, open_idx) + 1
        if BOILERPLATE_HEADER.fullmatch(content[line_start:open_idx]):
            end = close_idx + 1
            if content.startswith("\n", end):
                end += 1
            spans.append((line_start, end))

    for start, end in reversed(spans):
        content = content[:start] + content[end:]
    return content


def detect_resource_kind(content: str) -> str:
    """Kind of the first resource declaration, without the vendor prefix.

    First match wins and matching is case-sensitive. Content without a
    declaration belongs to the ``main`` kind.
    """
    match = RESOURCE_DECLARATION.search(content)
    if not match:
        return MAIN_KIND
    resource_type = match.group(1)
    if resource_type.startswith(VENDOR_PREFIX):
        resource_type = resource_type[len(VENDOR_PREFIX):]
    return resource_type or MAIN_KIND


def discover_source_files(root: Path) -> List[Path]:
    """Every ``.tf`` file under root, sorted for a deterministic run."""
    return sorted(
        path for path in Path(root).rglob(f"*{TF_EXTENSION}") if path.is_file()
    )


class OutputNormalizer:
    """
    Normalizes one exporter output directory in place.

    Args:
        templates_dir: Directory holding the scaffolding templates
        repairs: Text repairs applied to every file, in order
    """

    def __init__(
        self,
        templates_dir: Optional[Path] = None,
        repairs: Sequence[TextRepair] = DEFAULT_REPAIRS,
    ) -> None:
        self.templates_dir = Path(templates_dir or DEFAULT_TEMPLATES_DIR)
        self.repairs = tuple(repairs)
        self.env = Environment(
            loader=FileSystemLoader(str(self.templates_dir)),
            undefined=StrictUndefined,
            autoescape=False,
        )
        self.env.filters.update(FILTERS)

    def clean(self, content: str) -> str:
        """Strip boilerplate, apply repairs and trim one file's content."""
        content = strip_boilerplate_blocks(content)
        for repair in self.repairs:
            content = repair.apply(content)
        return content.strip()

    def normalize(
        self, output_dir: Path, account_id: str, container: str
    ) -> NormalizationResult:
        """
        Normalize ``output_dir`` in place.

        Args:
            output_dir: Directory the exporter wrote into
            account_id: Subscription ID written into variables.tf
            container: Resource group name written into variables.tf

        Returns:
            NormalizationResult describing the groups and files written

        Raises:
            NormalizationError: On any filesystem read/write failure
        """
        root = Path(output_dir)
        log = logger.bind(output_dir=str(root))
        try:
            sources = discover_source_files(root)
            log.info("normalization_started", source_files=len(sources))

            groups: Dict[str, List[str]] = {}
            dropped: List[str] = []
            for path in sources:
                content = self.clean(path.read_text(encoding="utf-8"))
                relative = path.relative_to(root).as_posix()
                if content:
                    groups.setdefault(detect_resource_kind(content), []).append(content)
                else:
                    dropped.append(relative)
                    log.debug("empty_file_dropped", file=relative)
                path.unlink()

            self._prune_empty_dirs(root)
            result = self._write_outputs(root, groups, account_id, container)
            result.dropped_files = dropped
        except (OSError, UnicodeDecodeError) as e:
            log.error("normalization_failed", error=str(e))
            raise NormalizationError(
                f"Failed to normalize exporter output: {e}",
                path=getattr(e, "filename", None) or str(root),
                cause=e,
            ) from e

        log.info(
            "normalization_finished",
            kinds=result.kinds,
            dropped=len(result.dropped_files),
        )
        return result

    def render_scaffolding(self, account_id: str, container: str) -> Dict[str, str]:
        context = {"account_id": account_id, "container": container}
        return {
            name: self.env.get_template(f"{name}{TF_EXTENSION}.j2").render(**context).strip()
            for name in SCAFFOLD_FILES
        }

    def _write_outputs(
        self,
        root: Path,
        groups: Dict[str, List[str]],
        account_id: str,
        container: str,
    ) -> NormalizationResult:
        scaffolding = self.render_scaffolding(account_id, container)
        result = NormalizationResult()

        for kind, contents in groups.items():
            result.kinds[kind] = len(contents)
            merged = "\n\n".join(contents)
            if kind in scaffolding:
                # e.g. the "main" kind lands after the resource group lookup
                scaffolding[kind] = f"{scaffolding[kind]}\n\n{merged}"
                continue
            file_name = f"{kind}{TF_EXTENSION}"
            (root / file_name).write_text(merged + "\n", encoding="utf-8")
            result.files_written.append(file_name)

        for name, content in scaffolding.items():
            file_name = f"{name}{TF_EXTENSION}"
            (root / file_name).write_text(content + "\n", encoding="utf-8")
            result.files_written.append(file_name)
        return result

    @staticmethod
    def _prune_empty_dirs(root: Path) -> None:
        for dirpath, _dirnames, _filenames in os.walk(root, topdown=False):
            path = Path(dirpath)
            if path != root and not any(path.iterdir()):
                path.rmdir()


__all__ = [
    "DEFAULT_REPAIRS",
    "OutputNormalizer",
    "TextRepair",
    "detect_resource_kind",
    "discover_source_files",
    "strip_boilerplate_blocks",
]
