"""Jinja2 filters for writing values into HCL templates."""

from typing import Any, Iterable


def hcl_string(value: Any) -> str:
    """Escape a value for use inside a double-quoted HCL string."""
    text = "" if value is None else str(value)
    return (
        text.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("${", "$${")
        .replace("%{", "%%{")
    )


def hcl_list(values: Iterable[Any]) -> str:
    """Render a list of strings as an HCL list literal."""
    return "[" + ", ".join(f'"{hcl_string(v)}"' for v in values or []) + "]"


def hcl_bool(value: Any) -> str:
    return "true" if value else "false"


FILTERS = {
    "hcl_string": hcl_string,
    "hcl_list": hcl_list,
    "hcl_bool": hcl_bool,
}
