"""Component installer exceptions.

Every error carries a human-readable message plus an optional context dict
(namespace, name, url, candidates) so callers can render actionable output.
"""


class ComponentError(Exception):
    """Base exception for component operations."""

    def __init__(self, message: str, context: dict | None = None):
        """Initialize with message and optional context.

        Args:
            message: Human-readable error message
            context: Optional dict with additional context (namespace, url, etc.)
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}


class ConfigError(ComponentError):
    """Project configuration (kitn.json) missing or invalid."""


class InvalidComponentRefError(ComponentError):
    """Component reference could not be parsed."""


class RegistryError(ComponentError):
    """Registry could not be used."""


class RegistryNotConfiguredError(RegistryError):
    """Namespace has no configured registry."""


class RegistryFetchError(RegistryError):
    """Registry document could not be fetched or parsed."""

    def __init__(
        self,
        message: str,
        namespace: str,
        url: str,
        status_code: int | None = None,
    ):
        super().__init__(message, context={"namespace": namespace, "url": url, "status_code": status_code})
        self.namespace = namespace
        self.url = url
        self.status_code = status_code


class ComponentNotFoundError(ComponentError):
    """Component not found in registry."""


class AmbiguousComponentError(ComponentError):
    """Requested name matches more than one registry entry."""

    def __init__(self, message: str, candidates: list):
        super().__init__(message, context={"candidates": candidates})
        self.candidates = candidates


class ComponentInstallError(ComponentError):
    """Component installation or removal failed."""
