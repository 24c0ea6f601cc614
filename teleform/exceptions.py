"""
Custom Exception Hierarchy for Teleform

This module provides the exception hierarchy shared by the template
generators, the Azure control-plane adapter and the export pipeline. Every
exception carries an HTTP status code so the server layer can translate it
into a ``{"success": false, "error": ...}`` response without special cases.
"""

from typing import Any, Dict, Optional


class TeleformError(Exception):
    """
    Base exception class for all Teleform related errors.

    Provides structured error information including context, error codes,
    and optional recovery suggestions.
    """

    status_code: int = 500

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        recovery_suggestion: Optional[str] = None,
    ) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error message
            error_code: Optional error code for programmatic handling
            context: Optional dictionary with error context
            cause: Optional underlying exception that caused this error
            recovery_suggestion: Optional suggestion for error recovery
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}
        self.cause = cause
        self.recovery_suggestion = recovery_suggestion

    def __str__(self) -> str:
        """Return a formatted error message with context."""
        result = self.message
        if self.error_code:
            result = f"[{self.error_code}] {result}"
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            result += f" (context: {context_str})"
        if self.cause:
            result += f" (caused by: {self.cause})"
        if self.recovery_suggestion:
            result += f" (suggestion: {self.recovery_suggestion})"
        return result

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "context": self.context,
            "cause": str(self.cause) if self.cause else None,
            "recovery_suggestion": self.recovery_suggestion,
        }


# Configuration-related exceptions
class ConfigurationError(TeleformError):
    """Raised when configuration is missing or invalid."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        kwargs.setdefault("error_code", "INVALID_CONFIG")
        kwargs.setdefault(
            "recovery_suggestion", "Check the .env file and environment variables"
        )
        super().__init__(message, **kwargs)


# Validation-related exceptions
class ValidationError(TeleformError):
    """Base class for request validation errors."""

    status_code = 400


class ExportValidationError(ValidationError):
    """Raised when an export request lacks identifiers or a resource selection."""

    def __init__(
        self, message: str, field_name: Optional[str] = None, **kwargs: Any
    ) -> None:
        context = kwargs.get("context", {})
        if field_name:
            context["field"] = field_name
        kwargs["context"] = context
        kwargs.setdefault("error_code", "EXPORT_VALIDATION_FAILED")
        super().__init__(message, **kwargs)


class TemplateValidationError(ValidationError):
    """Raised when form parameters for a template are invalid."""

    def __init__(
        self, message: str, service: Optional[str] = None, **kwargs: Any
    ) -> None:
        context = kwargs.get("context", {})
        if service:
            context["service"] = service
        kwargs["context"] = context
        kwargs.setdefault("error_code", "TEMPLATE_VALIDATION_FAILED")
        super().__init__(message, **kwargs)


class NotFoundError(TeleformError):
    """Raised when a requested service or generated file does not exist."""

    status_code = 404

    def __init__(self, message: str, **kwargs: Any) -> None:
        kwargs.setdefault("error_code", "NOT_FOUND")
        super().__init__(message, **kwargs)


# Template generation exceptions
class TemplateGenerationError(TeleformError):
    """Raised when a Terraform template cannot be rendered or written."""

    def __init__(
        self, message: str, service: Optional[str] = None, **kwargs: Any
    ) -> None:
        context = kwargs.get("context", {})
        if service:
            context["service"] = service
        kwargs["context"] = context
        kwargs.setdefault("error_code", "TEMPLATE_GENERATION_FAILED")
        super().__init__(message, **kwargs)


# Azure-related exceptions
class EnumerationError(TeleformError):
    """Raised when listing subscriptions, resource groups or resources fails."""

    def __init__(
        self,
        message: str,
        subscription_id: Optional[str] = None,
        resource_group: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context", {})
        if subscription_id:
            context["subscription_id"] = subscription_id
        if resource_group:
            context["resource_group"] = resource_group
        kwargs["context"] = context
        kwargs.setdefault("error_code", "AZURE_ENUMERATION_FAILED")
        super().__init__(message, **kwargs)


class AzureAuthenticationError(EnumerationError):
    """Raised when Azure authentication fails."""

    def __init__(
        self, message: str, tenant_id: Optional[str] = None, **kwargs: Any
    ) -> None:
        context = kwargs.get("context", {})
        if tenant_id:
            context["tenant_id"] = tenant_id
        kwargs["context"] = context
        kwargs.setdefault("error_code", "AZURE_AUTH_FAILED")
        kwargs.setdefault(
            "recovery_suggestion",
            "Try running 'az login' or check your Azure credentials",
        )
        super().__init__(message, **kwargs)


# Export pipeline exceptions
class ExportError(TeleformError):
    """Base class for failures once an export run has been accepted."""

    pass


class ExporterNotInstalledError(ExportError):
    """Raised when the exporter binary cannot be spawned."""

    def __init__(
        self, message: str, binary: Optional[str] = None, **kwargs: Any
    ) -> None:
        context = kwargs.get("context", {})
        if binary:
            context["binary"] = binary
        kwargs["context"] = context
        kwargs.setdefault("error_code", "EXPORTER_NOT_INSTALLED")
        kwargs.setdefault(
            "recovery_suggestion",
            "Install the exporter and make sure it is on PATH "
            "(or set TELEFORM_EXPORTER_BINARY)",
        )
        super().__init__(message, **kwargs)


class ExporterExitError(ExportError):
    """Raised when the exporter terminates with a nonzero exit code."""

    def __init__(
        self,
        message: str,
        returncode: Optional[int] = None,
        stdout: str = "",
        stderr: str = "",
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context", {})
        if returncode is not None:
            context["returncode"] = returncode
        kwargs["context"] = context
        kwargs.setdefault("error_code", "EXPORTER_FAILED")
        super().__init__(message, **kwargs)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr


class ExporterTimeoutError(ExportError):
    """Raised when the exporter exceeds its wall-clock budget and is killed."""

    def __init__(
        self, message: str, timeout_value: Optional[int] = None, **kwargs: Any
    ) -> None:
        context = kwargs.get("context", {})
        if timeout_value:
            context["timeout"] = f"{timeout_value}s"
        kwargs["context"] = context
        kwargs.setdefault("error_code", "EXPORTER_TIMEOUT")
        super().__init__(message, **kwargs)


class NormalizationError(ExportError):
    """Raised when exporter output cannot be read or rewritten."""

    def __init__(self, message: str, path: Optional[str] = None, **kwargs: Any) -> None:
        context = kwargs.get("context", {})
        if path:
            context["path"] = path
        kwargs["context"] = context
        kwargs.setdefault("error_code", "NORMALIZATION_FAILED")
        super().__init__(message, **kwargs)


class WorkspaceError(ExportError):
    """Raised when the per-export workspace cannot be created."""

    def __init__(self, message: str, path: Optional[str] = None, **kwargs: Any) -> None:
        context = kwargs.get("context", {})
        if path:
            context["path"] = path
        kwargs["context"] = context
        kwargs.setdefault("error_code", "WORKSPACE_FAILED")
        kwargs.setdefault(
            "recovery_suggestion",
            "Check that TELEFORM_WORKSPACE_DIR points to a writable directory",
        )
        super().__init__(message, **kwargs)


class ArchiveError(ExportError):
    """Raised when the export archive cannot be built or streamed."""

    def __init__(self, message: str, path: Optional[str] = None, **kwargs: Any) -> None:
        context = kwargs.get("context", {})
        if path:
            context["path"] = path
        kwargs["context"] = context
        kwargs.setdefault("error_code", "ARCHIVE_FAILED")
        super().__init__(message, **kwargs)


# Utility functions for exception handling
def wrap_azure_exception(
    exc: Exception, context: Optional[Dict[str, Any]] = None
) -> EnumerationError:
    """
    Wrap a generic Azure SDK exception in our custom exception hierarchy.

    Args:
        exc: The original exception
        context: Optional context information

    Returns:
        EnumerationError: Wrapped exception with enhanced context
    """
    error_message = str(exc)
    lowered = error_message.lower()

    if (
        "authentication" in lowered
        or "unauthorized" in lowered
        or "credential" in lowered
    ):
        return AzureAuthenticationError(
            f"Azure authentication failed: {error_message}", context=context, cause=exc
        )
    return EnumerationError(
        f"Azure enumeration failed: {error_message}", context=context, cause=exc
    )
