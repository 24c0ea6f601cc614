"""
Teleform command line.

Commands:
    serve   Run the HTTP server
    export  Export a resource group to a local zip file
    kinds   List exportable resource kinds in a resource group
"""

import asyncio
import functools
import shutil
import sys
from pathlib import Path
from typing import Any, Callable, Coroutine, Optional, Tuple

import click

from .config_manager import TeleformConfig
from .credential_provider import CredentialProvider
from .exceptions import TeleformError
from .export.models import ExportRequest
from .export.pipeline import ExportPipeline
from .logging_config import configure_logging
from .services.azure_control_plane import AzureControlPlaneClient
from .utils.cli_installer import ensure_tool


def async_command(f: Callable[..., Coroutine[Any, Any, Any]]) -> Callable[..., Any]:
    """Decorator to make Click commands async-compatible."""

    @functools.wraps(f)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        return asyncio.run(f(*args, **kwargs))

    return wrapper


def _fail(error: TeleformError) -> None:
    click.echo(f"Error: {error.message}", err=True)
    if error.recovery_suggestion:
        click.echo(f"Hint: {error.recovery_suggestion}", err=True)
    sys.exit(1)


def _load_config(ctx: click.Context) -> TeleformConfig:
    try:
        config = TeleformConfig.from_env(ctx.obj.get("env_file"))
    except TeleformError as e:
        _fail(e)
    configure_logging(ctx.obj.get("log_level") or config.server.log_level)
    return config


def _control_plane(config: TeleformConfig) -> AzureControlPlaneClient:
    provider = CredentialProvider(config.azure)
    return AzureControlPlaneClient(provider.snapshot().credential)


@click.group()
@click.option("--log-level", default=None, help="Logging level (DEBUG, INFO, WARNING, ERROR)")
@click.option(
    "--env-file",
    type=click.Path(dir_okay=False),
    default=None,
    help="Read settings from this .env file",
)
@click.pass_context
def cli(ctx: click.Context, log_level: Optional[str], env_file: Optional[str]) -> None:
    """Teleform - Terraform from AWS forms and existing Azure resources."""
    ctx.ensure_object(dict)
    ctx.obj["log_level"] = log_level.upper() if log_level else None
    ctx.obj["env_file"] = env_file


@cli.command()
@click.option("--host", default=None, help="Bind address (default: TELEFORM_HOST)")
@click.option("--port", type=int, default=None, help="Port (default: TELEFORM_PORT)")
@click.option("--reload", is_flag=True, help="Restart on code changes")
@click.pass_context
def serve(ctx: click.Context, host: Optional[str], port: Optional[int], reload: bool) -> None:
    """Run the HTTP server."""
    from .server.main import serve as run_server

    config = _load_config(ctx)
    run_server(config, host=host, port=port, reload=reload)


@cli.command()
@click.option("--subscription", required=True, help="Azure subscription ID")
@click.option("--resource-group", required=True, help="Resource group to export")
@click.option("--kind", "kinds", multiple=True, help="Resource kind to export (repeatable)")
@click.option(
    "--resource-id",
    "resource_ids",
    multiple=True,
    help="Individual resource ID to export (repeatable, wins over --kind)",
)
@click.option(
    "--output",
    type=click.Path(dir_okay=False, writable=True),
    default=None,
    help="Destination zip file (default: ./<resource-group>-terraform.zip)",
)
@click.pass_context
@async_command
async def export(
    ctx: click.Context,
    subscription: str,
    resource_group: str,
    kinds: Tuple[str, ...],
    resource_ids: Tuple[str, ...],
    output: Optional[str],
) -> None:
    """Export live resources of a resource group as a zipped Terraform directory."""
    config = _load_config(ctx)
    request = ExportRequest(
        account_id=subscription,
        container=resource_group,
        resource_kinds=list(kinds),
        resource_ids=list(resource_ids),
    )
    pipeline = ExportPipeline(config.exporter)

    try:
        ensure_tool(config.exporter.binary)
        artifact = await pipeline.run(request, _control_plane(config))
    except TeleformError as e:
        _fail(e)

    destination = Path(output or artifact.download_name)
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(artifact.archive_path, destination)
    except OSError as e:
        click.echo(f"Error: could not write {destination}: {e}", err=True)
        sys.exit(1)
    finally:
        artifact.release()

    click.echo(f"Exported {resource_group} to {destination}")


@cli.command()
@click.option("--subscription", required=True, help="Azure subscription ID")
@click.option("--resource-group", required=True, help="Resource group to inspect")
@click.pass_context
@async_command
async def kinds(ctx: click.Context, subscription: str, resource_group: str) -> None:
    """List the exportable resource kinds present in a resource group."""
    config = _load_config(ctx)
    try:
        found = await _control_plane(config).list_exportable_kinds(
            subscription, resource_group
        )
    except TeleformError as e:
        _fail(e)

    if not found:
        click.echo(f"No exportable resources in {resource_group}")
        return
    for kind in found:
        click.echo(kind)


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
