"""Exception hierarchy for the model monitor.

Probe and discovery failures are recovered locally into status records or the
fallback catalog; only refresh-cycle failures reach callers.
"""
from __future__ import annotations


class MonitorError(Exception):
    """Base exception for all monitor errors."""


class UpstreamError(MonitorError):
    """Upstream API answered with a non-2xx status."""
    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"HTTP {status_code}: {message}")


class DiscoveryError(MonitorError):
    """Catalog payload could not be interpreted."""


class ModelNotFoundError(MonitorError):
    """Model identifier is missing from the upstream catalog."""
    def __init__(self, model_id: str):
        self.model_id = model_id
        super().__init__("Model not found in API")


class RefreshCycleError(MonitorError):
    """A refresh cycle failed outside of per-model probing."""
    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Refresh cycle failed: {reason}")
