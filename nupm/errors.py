"""Error types and message formatting for nupm.

Every failure the resolution and installation pipeline can report derives
from NupmError and carries a stable ``code``. The CLI maps these to a
single "Error: ..." line on stderr.

Error Style Guide:
- User-facing errors use 'Error: ' prefix
- Field errors use structured format: '<entity> field '<field>' <issue>'
- Use present tense: 'must be', 'is required'
- Include actionable hints where helpful
"""


class NupmError(Exception):
    """Base class for all nupm errors."""

    code: str = "UNKNOWN"

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ConfigError(NupmError):
    """Raised when config loading or validation fails."""

    code = "CONFIG_ERROR"


class InvalidVersionError(NupmError, ValueError):
    """A version or version range string could not be parsed."""

    code = "INVALID_VERSION"


class PackageNotFoundError(NupmError):
    """No tier (installed, cache, sources) could provide the package."""

    code = "PACKAGE_NOT_FOUND"


class DependencyInstallError(NupmError):
    """A dependency of the package being installed failed to install."""

    code = "DEPENDENCY_INSTALL_FAILED"


class CircularDependencyError(DependencyInstallError):
    """A package id reappeared while it was still being installed."""

    code = "CIRCULAR_DEPENDENCY"

    def __init__(self, package_id: str, chain: list[str]) -> None:
        self.package_id = package_id
        self.chain = list(chain)
        path = " -> ".join(self.chain + [package_id])
        super().__init__(f"Circular dependency detected: {path}")


class NetworkError(NupmError):
    """Download, feed query or credential acquisition failed."""

    code = "NETWORK_ERROR"


class AuthenticationFormatError(NetworkError):
    """The feed rejected the credentials format for the active runtime profile."""

    code = "AUTHENTICATION_FORMAT"


class ExtractionError(NupmError):
    """The package archive is missing or cannot be read."""

    code = "EXTRACTION_ERROR"


class RelocationError(NupmError):
    """A content folder could not be moved out of the package directory."""

    code = "RELOCATION_ERROR"


def format_error(message: str) -> str:
    """Format an error message with consistent prefix.

    Examples:
        >>> format_error("package 'Foo' not found")
        "Error: package 'Foo' not found"
    """
    return f"Error: {message}"


def format_field_error(entity: str, field: str, issue: str) -> str:
    """Format a field validation error with structured format.

    Examples:
        >>> format_field_error("Source 'nuget.org'", "path", "must be a non-empty string")
        "Source 'nuget.org' field 'path' must be a non-empty string"
    """
    return f"{entity} field '{field}' {issue}"


def format_suggestion(message: str, suggestion: str) -> str:
    """Format an error message with a helpful suggestion.

    Examples:
        >>> format_suggestion("config file not found", "run 'nupm config init' to create one")
        "Error: config file not found. Hint: run 'nupm config init' to create one"
    """
    return f"{format_error(message)}. Hint: {suggestion}"


__all__ = [
    "NupmError",
    "ConfigError",
    "InvalidVersionError",
    "PackageNotFoundError",
    "DependencyInstallError",
    "CircularDependencyError",
    "NetworkError",
    "AuthenticationFormatError",
    "ExtractionError",
    "RelocationError",
    "format_error",
    "format_field_error",
    "format_suggestion",
]
