"""
Export Process Supervisor

Runs the external exporter as a child process and brings it to completion
without a human at the terminal: stdout is read incrementally and fed to a
``PromptDriver``, whose keystrokes are written back to stdin by a single
writer task after a short debounce delay. stderr is buffered concurrently.
The run is bounded by a wall-clock timeout, after which the process is
killed.

Public API:
    ExporterCommandBuilder: Builds the exporter argv for an ExportPlan
    ExportProcessSupervisor: Spawns, drives and awaits the exporter
    build_exporter_environment: Child environment with subscription and token
"""

import asyncio
import codecs
import os
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional

import structlog
from azure.core.credentials import AccessToken

from ..config_manager import ExporterConfig
from ..exceptions import (
    ExporterExitError,
    ExporterNotInstalledError,
    ExportError,
    ExporterTimeoutError,
)
from ..timeout_config import log_timeout_event
from ..utils.cli_installer import install_hint
from .models import ExportPlan, ExportProcessResult
from .prompt_driver import MarkerPromptDriver, NullPromptDriver, PromptDriver, default_rules

logger = structlog.get_logger(__name__)

READ_CHUNK_SIZE = 4096
# Keep error messages readable when the exporter is chatty
MAX_DIAGNOSTIC_CHARS = 8000


def build_exporter_environment(
    base_env: Optional[Mapping[str, str]],
    account_id: str,
    token: Optional[AccessToken] = None,
) -> Dict[str, str]:
    """Return the environment for the exporter process.

    The subscription is always exported. The access token is only injected
    when it has a finite lifetime (``expires_on > 0``).
    """
    env = dict(os.environ if base_env is None else base_env)
    env["ARM_SUBSCRIPTION_ID"] = account_id
    env["AZURE_SUBSCRIPTION_ID"] = account_id
    if token is not None and token.expires_on > 0:
        env["ARM_ACCESS_TOKEN"] = token.token
    return env


class ExporterCommandBuilder:
    """Builds ``<binary> <subcommand...> --flag=value ...`` argument lists."""

    def __init__(self, binary: str, subcommand: Optional[List[str]] = None) -> None:
        self.binary = binary
        self.subcommand = list(subcommand or [])

    def build(self, plan: ExportPlan, output_dir: Path) -> List[str]:
        cmd = [
            self.binary,
            *self.subcommand,
            f"--resources={','.join(plan.kinds)}",
            f"--resource-group={plan.container}",
            f"--path-output={output_dir}",
        ]
        if plan.individual_mode:
            for kind in plan.kinds:
                ids = plan.filters.get(kind)
                if ids:
                    cmd.append(f"--filter={kind}={':'.join(ids)}")
        return cmd


class ExportProcessSupervisor:
    """
    Supervises one exporter run per call to ``run``.

    Args:
        config: Exporter configuration (binary, prompts, delay, timeout)
        prompt_driver_factory: Creates a fresh PromptDriver per run. Defaults
            to a MarkerPromptDriver built from the configured markers, or a
            NullPromptDriver when the exporter is not interactive.
    """

    def __init__(
        self,
        config: Optional[ExporterConfig] = None,
        prompt_driver_factory: Optional[Callable[[], PromptDriver]] = None,
    ) -> None:
        self.config = config or ExporterConfig()
        self.command_builder = ExporterCommandBuilder(
            self.config.binary, self.config.subcommand
        )
        self.prompt_driver_factory = prompt_driver_factory or self._default_driver

    def _default_driver(self) -> PromptDriver:
        if not self.config.interactive:
            return NullPromptDriver()
        return MarkerPromptDriver(
            rules=default_rules(
                menu_marker=self.config.menu_marker,
                continue_marker=self.config.continue_marker,
                quit_markers=self.config.quit_markers,
                import_key=self.config.import_key,
                acknowledge_key=self.config.acknowledge_key,
                quit_key=self.config.quit_key,
            ),
            dedupe_window=self.config.prompt_dedupe_window,
        )

    async def run(
        self,
        plan: ExportPlan,
        output_dir: Path,
        env: Optional[Mapping[str, str]] = None,
    ) -> ExportProcessResult:
        """
        Run the exporter to completion.

        Args:
            plan: Resolved kinds/filters for this request
            output_dir: Directory the exporter writes into (must exist)
            env: Full environment for the child (see build_exporter_environment)

        Returns:
            ExportProcessResult for a zero exit code

        Raises:
            ExporterNotInstalledError: If the binary cannot be spawned
            ExporterTimeoutError: If the run exceeds the configured timeout
            ExporterExitError: If the exporter exits nonzero
        """
        cmd = self.command_builder.build(plan, output_dir)
        log = logger.bind(container=plan.container, kinds=plan.kinds)
        log.info("exporter_starting", command=cmd[0], args=cmd[1:])

        driver = self.prompt_driver_factory()
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=(
                    asyncio.subprocess.PIPE
                    if self.config.interactive
                    else asyncio.subprocess.DEVNULL
                ),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=dict(env) if env is not None else None,
            )
        except (FileNotFoundError, PermissionError) as e:
            log.error("exporter_spawn_failed", error=str(e))
            raise ExporterNotInstalledError(
                f"Exporter '{self.command_builder.binary}' is not installed or not executable",
                binary=self.command_builder.binary,
                cause=e,
                recovery_suggestion=install_hint(self.command_builder.binary),
            ) from e

        try:
            result = await asyncio.wait_for(
                self._supervise(process, driver), timeout=self.config.timeout
            )
        except asyncio.TimeoutError:
            log_timeout_event("exporter", self.config.timeout, cmd, level="error")
            raise ExporterTimeoutError(
                f"Exporter did not finish within {self.config.timeout} seconds",
                timeout_value=self.config.timeout,
            ) from None
        finally:
            if process.returncode is None:
                process.kill()
                await process.wait()
                log.warning("exporter_killed", pid=process.pid)

        if result.returncode != 0:
            log.error("exporter_failed", returncode=result.returncode)
            diagnostics = (result.stdout + result.stderr).strip()
            if len(diagnostics) > MAX_DIAGNOSTIC_CHARS:
                diagnostics = "..." + diagnostics[-MAX_DIAGNOSTIC_CHARS:]
            raise ExporterExitError(
                f"Exporter exited with code {result.returncode}: {diagnostics}",
                returncode=result.returncode,
                stdout=result.stdout,
                stderr=result.stderr,
            )

        log.info("exporter_finished", keystrokes=result.keystrokes)
        return result

    async def _supervise(
        self, process: asyncio.subprocess.Process, driver: PromptDriver
    ) -> ExportProcessResult:
        stdout = process.stdout
        if stdout is None:
            raise ExportError("Exporter stdout is not captured", error_code="EXPORTER_NO_OUTPUT")

        queue: "asyncio.Queue[str]" = asyncio.Queue()
        sent: List[str] = []
        stdout_parts: List[str] = []

        writer = asyncio.create_task(self._write_keystrokes(process, queue, sent))
        stderr_task = asyncio.create_task(self._read_all(process.stderr))
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

        try:
            while True:
                chunk = await stdout.read(READ_CHUNK_SIZE)
                if not chunk:
                    break
                text = decoder.decode(chunk)
                if not text:
                    continue
                stdout_parts.append(text)
                logger.debug("exporter_output", text=text)
                for key in driver.on_output_chunk(text):
                    queue.put_nowait(key)

            stdout_parts.append(decoder.decode(b"", final=True))
            stderr = await stderr_task
            returncode = await process.wait()
        finally:
            writer.cancel()
            stderr_task.cancel()
            await asyncio.gather(writer, stderr_task, return_exceptions=True)
            if process.stdin is not None and not process.stdin.is_closing():
                process.stdin.close()

        return ExportProcessResult(
            returncode=returncode,
            stdout="".join(stdout_parts),
            stderr=stderr,
            keystrokes=sent,
        )

    async def _write_keystrokes(
        self,
        process: asyncio.subprocess.Process,
        queue: "asyncio.Queue[str]",
        sent: List[str],
    ) -> None:
        """Single writer: keeps keystrokes in order and debounced."""
        while True:
            key = await queue.get()
            # let the prompt finish rendering before answering it
            await asyncio.sleep(self.config.prompt_delay)
            stdin = process.stdin
            if stdin is None or stdin.is_closing():
                logger.warning("keystroke_dropped", key=key, reason="stdin closed")
                continue
            try:
                stdin.write(f"{key}\n".encode())
                await stdin.drain()
            except (BrokenPipeError, ConnectionResetError) as e:
                logger.warning("keystroke_dropped", key=key, reason=str(e))
                continue
            sent.append(key)
            logger.debug("keystroke_sent", key=key)

    @staticmethod
    async def _read_all(stream: Optional[asyncio.StreamReader]) -> str:
        if stream is None:
            return ""
        data = await stream.read()
        return data.decode("utf-8", errors="replace")


__all__ = [
    "ExportProcessSupervisor",
    "ExporterCommandBuilder",
    "build_exporter_environment",
]
