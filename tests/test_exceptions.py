import pytest

from teleform.exceptions import (
    AzureAuthenticationError,
    EnumerationError,
    ExporterExitError,
    ExporterNotInstalledError,
    ExportValidationError,
    NotFoundError,
    TeleformError,
    TemplateGenerationError,
    TemplateValidationError,
    WorkspaceError,
    wrap_azure_exception,
)


@pytest.mark.parametrize(
    "error, status_code",
    [
        (ExportValidationError("bad"), 400),
        (TemplateValidationError("bad"), 400),
        (NotFoundError("gone"), 404),
        (EnumerationError("boom"), 500),
        (ExporterExitError("boom", returncode=2), 500),
        (TemplateGenerationError("boom"), 500),
        (WorkspaceError("boom", path="/srv/exports"), 500),
    ],
)
def test_status_codes(error, status_code):
    assert isinstance(error, TeleformError)
    assert error.status_code == status_code


def test_str_includes_code_and_context():
    error = ExporterExitError("Exporter failed", returncode=2)
    assert str(error) == "[EXPORTER_FAILED] Exporter failed (context: returncode=2)"


def test_to_dict():
    cause = OSError("no such file")
    error = ExporterNotInstalledError("missing", binary="terraformer", cause=cause)

    assert error.to_dict() == {
        "error_type": "ExporterNotInstalledError",
        "message": "missing",
        "error_code": "EXPORTER_NOT_INSTALLED",
        "context": {"binary": "terraformer"},
        "cause": "no such file",
        "recovery_suggestion": error.recovery_suggestion,
    }
    assert "TELEFORM_EXPORTER_BINARY" in error.recovery_suggestion


def test_wrap_authentication_failure():
    wrapped = wrap_azure_exception(Exception("Unauthorized: token expired"), {"op": "list"})

    assert isinstance(wrapped, AzureAuthenticationError)
    assert wrapped.context == {"op": "list"}
    assert "az login" in wrapped.recovery_suggestion


def test_wrap_other_failure():
    cause = Exception("ResourceGroupNotFound")
    wrapped = wrap_azure_exception(cause)

    assert type(wrapped) is EnumerationError
    assert wrapped.message == "Azure enumeration failed: ResourceGroupNotFound"
    assert wrapped.cause is cause
