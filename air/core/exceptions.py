"""
Exception hierarchy for the air agent.

Provider adapters translate SDK and HTTP failures into these types so the
router can tell what is worth retrying:

    AirError
    ├── ConfigurationError          fatal, agent cannot be built
    ├── ProviderError
    │   ├── ProviderUnavailableError   not retried, excluded from ranking
    │   └── TransientProviderError     retried with backoff
    │       └── ProviderTimeoutError
    ├── AllProvidersFailedError     triggers the fallback chain
    ├── ToolExecutionError          absorbed, query continues without the tool
    └── MemoryStoreError
"""

from typing import List, Optional, Tuple


class AirError(Exception):
    """Base exception for all agent errors."""


class ConfigurationError(AirError):
    """No usable provider is configured, or the configuration is invalid."""


class ProviderError(AirError):
    """A provider call failed."""

    def __init__(self, message: str, provider: Optional[str] = None):
        super().__init__(message)
        self.provider = provider


class ProviderUnavailableError(ProviderError):
    """Provider lacks credentials or model files."""


class TransientProviderError(ProviderError):
    """Network error, non-2xx status or similar; safe to retry."""


class ProviderTimeoutError(TransientProviderError):
    """Provider did not answer within its time budget."""


class AllProvidersFailedError(AirError):
    """
    Every ranked provider exhausted its retries.

    Attributes:
        errors: (provider name, exception) for each failed provider, in
            the order they were attempted.
    """

    def __init__(self, errors: Optional[List[Tuple[str, Exception]]] = None):
        self.errors = errors or []
        if self.errors:
            detail = "; ".join(f"{name}: {err}" for name, err in self.errors)
            message = f"All providers failed ({detail})"
        else:
            message = "No providers available"
        super().__init__(message)


class ToolExecutionError(AirError):
    """A tool was unknown, rejected its arguments, or failed to run."""

    def __init__(self, message: str, tool: Optional[str] = None):
        super().__init__(message)
        self.tool = tool


class MemoryStoreError(AirError):
    """The memory database could not be read or written."""
