"""Degraded-response strategies used when every live provider failed."""

from air.ai.fallback.chain import (
    CacheFallback,
    DefaultFallback,
    FallbackChain,
    FallbackStrategy,
)

__all__ = ["CacheFallback", "DefaultFallback", "FallbackChain", "FallbackStrategy"]
