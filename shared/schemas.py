# =============================================================================
# Double Vision - Shared Data Contracts
# =============================================================================
# Pydantic models defining the data passed between the connection manager,
# the monitoring scheduler and the AI backend adapter, plus lenient models of
# the JSON bodies returned by the device.
#
# Snapshots and status objects are frozen: once the connection manager hands
# a frame to its subscribers nobody can mutate it, so the same instance can
# be shared between the scheduler, listeners and on-demand callers.
# =============================================================================

import base64
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_WIDTH = 320
DEFAULT_HEIGHT = 240


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ProviderKind(str, Enum):
    """Closed set of AI backends. Adding one requires a backend registration."""

    LOCAL = "local"
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GOOGLE = "google"


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    FAILED = "failed"


class Snapshot(BaseModel):
    """
    A single captured frame from the device.

    Attributes:
        image_bytes: JPEG payload. Never empty; copied to immutable bytes.
        captured_at: UTC timestamp of when the frame was received.
        width:       Frame width in pixels (device default when unknown).
        height:      Frame height in pixels (device default when unknown).
    """

    model_config = ConfigDict(frozen=True)

    image_bytes: bytes = Field(..., description="Raw JPEG frame bytes")
    captured_at: datetime = Field(default_factory=utc_now)
    width: int = Field(default=DEFAULT_WIDTH, gt=0)
    height: int = Field(default=DEFAULT_HEIGHT, gt=0)

    @field_validator("image_bytes", mode="before")
    @classmethod
    def _copy_payload(cls, value):
        if isinstance(value, (bytearray, memoryview)):
            return bytes(value)
        return value

    @field_validator("image_bytes")
    @classmethod
    def _require_payload(cls, value: bytes) -> bytes:
        if not value:
            raise ValueError("snapshot image_bytes must be non-empty")
        return value

    @property
    def size_bytes(self) -> int:
        return len(self.image_bytes)


class ImagePayload(BaseModel):
    """
    Base64 form of a Snapshot, produced once at the AI adapter boundary and
    shared by whichever backend handles the request.
    """

    model_config = ConfigDict(frozen=True)

    data: str
    media_type: str = "image/jpeg"
    width: int
    height: int
    size_bytes: int

    @classmethod
    def from_snapshot(cls, snapshot: Snapshot) -> "ImagePayload":
        return cls(
            data=base64.b64encode(snapshot.image_bytes).decode("ascii"),
            width=snapshot.width,
            height=snapshot.height,
            size_bytes=snapshot.size_bytes,
        )

    def to_data_url(self) -> str:
        return f"data:{self.media_type};base64,{self.data}"


class ConnectionStatus(BaseModel):
    """
    Observable state of the connection manager.

    Attributes:
        state:     Current lifecycle state.
        reason:    Failure description, only set when state is FAILED.
        host:      Device host of the current or last attempted link.
        port:      Device port of the current or last attempted link.
        streaming: Whether the WebSocket push channel is open.
    """

    model_config = ConfigDict(frozen=True)

    state: ConnectionState = ConnectionState.DISCONNECTED
    reason: Optional[str] = None
    host: Optional[str] = None
    port: Optional[int] = None
    streaming: bool = False


class AnalysisRecord(BaseModel):
    """
    One successful analysis held in the scheduler's bounded history.

    Attributes:
        text:        Backend output.
        produced_at: UTC timestamp of when the backend returned.
        captured_at: Timestamp of the analyzed Snapshot.
        trigger:     "timer" for periodic pulls, "push" for streamed frames.
        provider:    Backend that produced the text.
    """

    model_config = ConfigDict(frozen=True)

    text: str
    produced_at: datetime = Field(default_factory=utc_now)
    captured_at: Optional[datetime] = None
    trigger: str = "timer"
    provider: Optional[ProviderKind] = None


class BackendConfig(BaseModel):
    """
    Immutable per-session AI backend selection. Changing provider or key
    means building a new adapter.
    """

    model_config = ConfigDict(frozen=True)

    provider_kind: ProviderKind = ProviderKind.LOCAL
    api_key: Optional[str] = Field(default=None, repr=False)
    model: Optional[str] = None
    timeout_seconds: float = Field(default=60.0, gt=0)
    max_tokens: int = Field(default=500, gt=0)


class DeviceStatus(BaseModel):
    """Body of the device's GET /status response. Unknown fields are kept."""

    model_config = ConfigDict(extra="allow")

    ok: bool = True
    status: Optional[str] = None

    @property
    def healthy(self) -> bool:
        if not self.ok:
            return False
        return self.status is None or self.status.lower() in ("ok", "ready", "online")


class CommandResponse(BaseModel):
    """Body of the device's POST /command response, echoing the command."""

    model_config = ConfigDict(extra="allow")

    command: Optional[str] = None
    ok: bool = True

    def extras(self) -> Dict[str, Any]:
        return dict(self.model_extra or {})
