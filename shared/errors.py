# =============================================================================
# Double Vision - Error Taxonomy
# =============================================================================
# Every failure raised by the core derives from DoubleVisionError and is
# scoped to the operation that raised it. Connection and command errors are
# surfaced to the caller unchanged; the monitoring scheduler logs and skips
# analysis errors per cycle.
# =============================================================================

from typing import Optional


class DoubleVisionError(Exception):
    """Base class for all Double Vision errors."""


class ValidationError(DoubleVisionError):
    """Malformed input rejected before any network I/O (e.g. a bad host)."""


class DeviceUnreachable(DoubleVisionError):
    """The liveness probe failed: bad status, timeout or network error."""

    def __init__(self, host: str, port: int, reason: Optional[str] = None):
        self.host = host
        self.port = port
        self.reason = reason
        message = f"Cannot connect to camera at {host}:{port}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class CaptureFailed(DoubleVisionError):
    """A pull-mode frame capture did not return a usable image."""


class CommandFailed(DoubleVisionError):
    """A device control command could not be delivered."""


class NotConnected(DoubleVisionError):
    """The operation requires a connected device."""


class Busy(DoubleVisionError):
    """Another connection attempt is still in progress."""


class MissingCredential(DoubleVisionError):
    """An external AI backend was selected without an API key."""

    def __init__(self, provider_kind):
        self.provider_kind = provider_kind
        name = getattr(provider_kind, "value", provider_kind)
        super().__init__(f"{name} API key not configured")


class BackendError(DoubleVisionError):
    """An external AI backend returned an error or could not be reached."""

    def __init__(self, provider_kind, detail: str):
        self.provider_kind = provider_kind
        self.detail = detail
        name = getattr(provider_kind, "value", provider_kind)
        super().__init__(f"{name} API error: {detail}")
