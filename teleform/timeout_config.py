"""
Centralized timeout configuration for external operations.

Timeout values are configurable via environment variables, with sensible
defaults for each operation category.

Usage:
    from teleform.timeout_config import Timeouts

    await asyncio.wait_for(process.wait(), timeout=Timeouts.EXPORT)

Environment Variables:
    - TELEFORM_TIMEOUT_STANDARD: Azure control-plane listings (default: 60s)
    - TELEFORM_TIMEOUT_EXPORT: Full exporter run (default: 1800s)
"""

import logging
import os
from typing import Final

logger = logging.getLogger(__name__)


def _get_timeout(env_var: str, default: int) -> int:
    """Get timeout value from environment variable or use default.

    Args:
        env_var: Environment variable name
        default: Default timeout in seconds

    Returns:
        Timeout value in seconds
    """
    value = os.environ.get(env_var)
    if value is not None:
        try:
            timeout = int(value)
            if timeout <= 0:
                logger.warning(
                    f"Invalid timeout value for {env_var}: {value}. "
                    f"Must be positive. Using default: {default}s"
                )
                return default
            return timeout
        except ValueError:
            logger.warning(
                f"Invalid timeout value for {env_var}: {value}. "
                f"Must be integer. Using default: {default}s"
            )
            return default
    return default


class Timeouts:
    """Centralized timeout constants (seconds).

    Categories:
        - STANDARD: Azure control-plane listings
        - EXPORT: One complete exporter run, prompts included
    """

    STANDARD: Final[int] = _get_timeout("TELEFORM_TIMEOUT_STANDARD", 60)
    AZURE_LISTING: Final[int] = STANDARD

    EXPORT: Final[int] = _get_timeout("TELEFORM_TIMEOUT_EXPORT", 1800)


def log_timeout_event(
    operation: str,
    timeout_value: int,
    command: str | list[str] | None = None,
    level: str = "warning",
) -> None:
    """Log a timeout event with consistent formatting.

    Args:
        operation: Name of the operation that timed out
        timeout_value: Timeout value that was exceeded
        command: Optional command that timed out
        level: Log level (debug, info, warning, error)
    """
    log_func = getattr(logger, level, logger.warning)
    cmd_str = ""
    if command:
        cmd_str = " ".join(command) if isinstance(command, list) else command
        if len(cmd_str) > 100:
            cmd_str = cmd_str[:97] + "..."
        cmd_str = f" - command: '{cmd_str}'"

    log_func(
        f"Operation '{operation}' timed out after {timeout_value} seconds{cmd_str}"
    )
