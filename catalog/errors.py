"""Exception hierarchy for the catalog search service."""

from typing import Any


class CatalogSearchError(Exception):
    """Base class: carries a stable error code and optional details."""

    def __init__(self, message: str, error_code: str = "CATALOG_ERROR", details: dict[str, Any] | None = None):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"


class EngineUnavailable(CatalogSearchError):
    """The search engine cannot be reached. Never retried, never a fallback trigger."""

    def __init__(self, reason: str, details: dict[str, Any] | None = None):
        super().__init__(f"Search engine unavailable: {reason}", "ENGINE_UNAVAILABLE", details)


class InvalidCriteria(CatalogSearchError):
    """Malformed search input rejected at the boundary."""

    def __init__(self, reason: str, details: dict[str, Any] | None = None):
        super().__init__(f"Invalid search criteria: {reason}", "INVALID_CRITERIA", details)


class CatalogLoadError(CatalogSearchError):
    """Bootstrap course data could not be read or parsed."""

    def __init__(self, source: str, reason: str):
        super().__init__(
            f"Failed to load course data from {source}: {reason}",
            "CATALOG_LOAD_ERROR",
            {"source": source, "reason": reason},
        )
