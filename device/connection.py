# =============================================================================
# Double Vision - Connection Manager
# =============================================================================
# Owns the link lifecycle to one camera at a time:
#
#   Disconnected → Connecting → Connected → Disconnected | Failed
#
# connect() validates the host, probes GET /status, and on success opens the
# WebSocket push channel. Losing the push channel leaves the manager
# Connected; pull captures through GET /capture keep working. Every pushed
# frame becomes a Snapshot that is fanned out to subscribers in registration
# order, with each subscriber's failures isolated from the others.
# =============================================================================

import io
import logging
import re
import threading
from typing import Any, Callable, Dict, List, Optional, Tuple

import requests
from PIL import Image, UnidentifiedImageError

from device.client import DeviceClient
from device.stream import FrameStream
from shared.errors import (
    Busy,
    CaptureFailed,
    CommandFailed,
    DeviceUnreachable,
    ValidationError,
)
from shared.schemas import (
    DEFAULT_HEIGHT,
    DEFAULT_WIDTH,
    CommandResponse,
    ConnectionState,
    ConnectionStatus,
    Snapshot,
)

logger = logging.getLogger(__name__)

_OCTET = r"(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)"
_IPV4_PATTERN = re.compile(rf"(?:{_OCTET}\.){{3}}{_OCTET}")

SnapshotHandler = Callable[[Snapshot], None]
StatusListener = Callable[[ConnectionStatus], None]
StreamFactory = Callable[..., FrameStream]


def is_valid_ipv4(host: str) -> bool:
    """Return True if host is a dotted-quad IPv4 address."""
    return isinstance(host, str) and _IPV4_PATTERN.fullmatch(host) is not None


def read_dimensions(image_bytes: bytes) -> Optional[Tuple[int, int]]:
    """
    Read width and height from an image header without decoding pixels.

    Returns:
        (width, height), or None if the bytes are not a recognizable image.
    """
    try:
        with Image.open(io.BytesIO(image_bytes)) as image:
            return image.size
    except (UnidentifiedImageError, OSError):
        return None


class ConnectionManager:
    """
    Supervises the link to a single camera and distributes its frames.

    Args:
        port:               Device HTTP/WebSocket port.
        stream_path:        Path of the WebSocket endpoint.
        probe_timeout:      Seconds allowed for the GET /status probe.
        capture_timeout:    Seconds allowed for a GET /capture pull.
        command_timeout:    Seconds allowed for a POST /command.
        default_resolution: (width, height) assumed until a pull capture
                            reports real dimensions.
        session:            requests.Session shared by all device clients.
        stream_factory:     Builds the push-channel reader; called as
                            factory(url, on_frame=..., on_closed=...).
    """

    def __init__(
        self,
        port: int = 80,
        stream_path: str = "/ws",
        probe_timeout: float = 5.0,
        capture_timeout: float = 10.0,
        command_timeout: float = 5.0,
        default_resolution: Tuple[int, int] = (DEFAULT_WIDTH, DEFAULT_HEIGHT),
        session: Optional[requests.Session] = None,
        stream_factory: Optional[StreamFactory] = None,
    ):
        self._default_port = port
        self._stream_path = stream_path if stream_path.startswith("/") else f"/{stream_path}"
        self._probe_timeout = probe_timeout
        self._capture_timeout = capture_timeout
        self._command_timeout = command_timeout
        self._session = session if session is not None else requests.Session()
        self._stream_factory = stream_factory or FrameStream

        self._lock = threading.RLock()
        self._state = ConnectionState.DISCONNECTED
        self._reason: Optional[str] = None
        self._host: Optional[str] = None
        self._port: Optional[int] = None
        self._client: Optional[DeviceClient] = None
        self._stream: Optional[FrameStream] = None
        self._attempt = 0
        self._probing = False
        self._resolution: Tuple[int, int] = default_resolution

        self._subscribers: List[SnapshotHandler] = []
        self._status_listeners: List[StatusListener] = []

    @classmethod
    def from_config(cls, config, session: Optional[requests.Session] = None) -> "ConnectionManager":
        """Build a manager from the global Config."""
        return cls(
            port=config.camera_port,
            stream_path=config.stream_path,
            probe_timeout=config.probe_timeout_seconds,
            capture_timeout=config.capture_timeout_seconds,
            command_timeout=config.command_timeout_seconds,
            default_resolution=(config.default_width, config.default_height),
            session=session,
        )

    # -----------------------------------------------------------------
    # Status
    # -----------------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def status(self) -> ConnectionStatus:
        with self._lock:
            return ConnectionStatus(
                state=self._state,
                reason=self._reason,
                host=self._host,
                port=self._port,
                streaming=self.is_streaming(),
            )

    @property
    def resolution(self) -> Tuple[int, int]:
        return self._resolution

    def is_connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    def is_streaming(self) -> bool:
        stream = self._stream
        return stream is not None and stream.is_open()

    def add_status_listener(self, listener: StatusListener) -> StatusListener:
        """Register a callback invoked with the new ConnectionStatus on every transition."""
        with self._lock:
            self._status_listeners.append(listener)
        return listener

    def remove_status_listener(self, listener: StatusListener) -> None:
        with self._lock:
            if listener in self._status_listeners:
                self._status_listeners.remove(listener)

    def _set_state(self, state: ConnectionState, reason: Optional[str] = None) -> None:
        with self._lock:
            if state == self._state and reason == self._reason:
                return
            self._state = state
            self._reason = reason if state is ConnectionState.FAILED else None
        self._notify_status()

    def _notify_status(self) -> None:
        with self._lock:
            listeners = list(self._status_listeners)
            status = self.status
        logger.info(
            "Connection state → %s%s",
            status.state.value,
            f" ({status.reason})" if status.reason else "",
        )
        for listener in listeners:
            try:
                listener(status)
            except Exception:
                logger.exception("Status listener %r failed", listener)

    # -----------------------------------------------------------------
    # Lifecycle
    # -----------------------------------------------------------------

    def connect(self, host: str, port: Optional[int] = None) -> ConnectionStatus:
        """
        Connect to the camera at host:port.

        Validates the host, probes GET /status with a bounded timeout, then
        opens the WebSocket push channel. A previous link is closed first.
        A disconnect() issued while the probe is running wins: the attempt
        is abandoned and the manager stays DISCONNECTED.

        Args:
            host: Dotted-quad IPv4 address of the camera.
            port: Optional port override (defaults to the configured port).

        Returns:
            The ConnectionStatus after connecting.

        Raises:
            ValidationError:   host is not a dotted-quad IPv4 address.
            Busy:              another connect() probe is still running,
                               including one abandoned by disconnect().
            DeviceUnreachable: the probe failed; the state is now FAILED
                               unless the attempt was abandoned.
        """
        if not is_valid_ipv4(host):
            raise ValidationError(f"Invalid IPv4 address: {host!r}")

        port = self._default_port if port is None else port

        with self._lock:
            if self._probing:
                raise Busy(f"Connection to {self._host}:{self._port} already in progress")
            self._probing = True
            self._attempt += 1
            attempt = self._attempt
            previous_stream = self._stream
            self._stream = None
            self._client = None
            self._host = host
            self._port = port
            self._state = ConnectionState.CONNECTING
            self._reason = None
        self._notify_status()

        try:
            if previous_stream is not None:
                previous_stream.close()
            return self._probe(attempt, host, port)
        finally:
            with self._lock:
                self._probing = False

    def _probe(self, attempt: int, host: str, port: int) -> ConnectionStatus:
        client = DeviceClient(host, port, session=self._session)
        logger.info("Probing camera at %s/status (timeout=%.1fs)", client.base_url, self._probe_timeout)
        try:
            device_status = client.get_status(timeout=self._probe_timeout)
        except (requests.exceptions.RequestException, ValueError) as exc:
            self._finish_attempt(attempt, ConnectionState.FAILED, reason=str(exc))
            raise DeviceUnreachable(host, port, str(exc)) from exc

        if not device_status.healthy:
            reason = f"device reported status {device_status.status!r}"
            self._finish_attempt(attempt, ConnectionState.FAILED, reason=reason)
            raise DeviceUnreachable(host, port, reason)

        if not self._finish_attempt(attempt, ConnectionState.CONNECTED, client=client):
            logger.info("Connection to %s:%d abandoned by disconnect", host, port)
            return self.status

        self._open_stream(attempt, host, port)
        return self.status

    def _finish_attempt(
        self,
        attempt: int,
        state: ConnectionState,
        reason: Optional[str] = None,
        client: Optional[DeviceClient] = None,
    ) -> bool:
        """Commit the outcome of a connect attempt unless it was superseded."""
        with self._lock:
            if attempt != self._attempt:
                return False
            self._state = state
            self._reason = reason if state is ConnectionState.FAILED else None
            if client is not None:
                self._client = client
        self._notify_status()
        return True

    def _open_stream(self, attempt: int, host: str, port: int) -> None:
        url = f"ws://{host}:{port}{self._stream_path}"
        opened: List[FrameStream] = []

        def on_frame(data: bytes) -> None:
            self._handle_stream_frame(opened[0] if opened else None, data)

        def on_closed(error: Optional[Exception]) -> None:
            self._handle_stream_closed(opened[0] if opened else None, error)

        stream = self._stream_factory(url, on_frame=on_frame, on_closed=on_closed)
        opened.append(stream)
        with self._lock:
            if attempt != self._attempt:
                return
            self._stream = stream
        try:
            stream.start()
        except Exception:
            # Push is optional: the link stays Connected for pull captures.
            logger.exception("Failed to start frame stream at %s", url)
            with self._lock:
                if self._stream is stream:
                    self._stream = None

    def disconnect(self) -> None:
        """
        Close the push channel if open and move to DISCONNECTED. Idempotent.

        Also abandons a connect() whose probe is still running.
        """
        with self._lock:
            self._attempt += 1
            stream = self._stream
            self._stream = None
            self._client = None
        if stream is not None:
            stream.close()
        self._set_state(ConnectionState.DISCONNECTED)

    # -----------------------------------------------------------------
    # Push channel
    # -----------------------------------------------------------------

    def subscribe(self, handler: SnapshotHandler) -> SnapshotHandler:
        """Register a Snapshot handler. Handlers run in registration order."""
        with self._lock:
            self._subscribers.append(handler)
        return handler

    def unsubscribe(self, handler: SnapshotHandler) -> None:
        with self._lock:
            if handler in self._subscribers:
                self._subscribers.remove(handler)

    def _handle_stream_frame(self, stream: Optional[FrameStream], data: bytes) -> None:
        if not data:
            logger.debug("Ignoring empty push frame")
            return
        with self._lock:
            current = stream is not None and self._stream is stream
        if not current or not self.is_connected():
            logger.debug("Dropping frame from a closed push channel")
            return
        width, height = self._resolution
        snapshot = Snapshot(image_bytes=data, width=width, height=height)
        self._publish(snapshot)

    def _publish(self, snapshot: Snapshot) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for handler in subscribers:
            try:
                handler(snapshot)
            except Exception:
                logger.exception("Snapshot subscriber %r failed", handler)

    def _handle_stream_closed(self, stream: Optional[FrameStream], error: Optional[Exception]) -> None:
        if error is not None:
            logger.warning("Push channel lost (%s); pull capture remains available", error)
        with self._lock:
            if stream is not None and self._stream is stream:
                self._stream = None

    def request_frame(self) -> bool:
        """
        Ask the device to push a frame immediately over the WebSocket.

        Returns:
            False when the push channel is not open.
        """
        stream = self._stream
        if stream is None or not self.is_connected():
            return False
        return stream.request_frame()

    # -----------------------------------------------------------------
    # Pull capture and commands
    # -----------------------------------------------------------------

    def take_snapshot(self) -> Snapshot:
        """
        Capture the current frame through GET /capture.

        Works whenever the manager is CONNECTED, regardless of the push
        channel. Updates the last-known resolution when the JPEG header
        reports real dimensions.

        Raises:
            CaptureFailed: Not connected, transport failure, non-2xx status
                or an empty body.
        """
        client = self._client
        if client is None or not self.is_connected():
            raise CaptureFailed("Camera not connected")

        try:
            data = client.capture(timeout=self._capture_timeout)
        except requests.exceptions.RequestException as exc:
            raise CaptureFailed(f"Failed to capture image: {exc}") from exc

        if not data:
            raise CaptureFailed("Failed to capture image: empty response body")

        dimensions = read_dimensions(data)
        if dimensions is not None:
            if dimensions != self._resolution:
                logger.info("Device resolution is now %dx%d", *dimensions)
            self._resolution = dimensions
        else:
            logger.debug("Capture has no readable image header; keeping %dx%d", *self._resolution)

        width, height = self._resolution
        return Snapshot(image_bytes=data, width=width, height=height)

    def send_command(self, name: str, params: Optional[Dict[str, Any]] = None) -> CommandResponse:
        """
        Send a control command (e.g. "quality", "framesize") to the device.

        Raises:
            CommandFailed: Not connected, transport failure or a bad response.
        """
        client = self._client
        if client is None or not self.is_connected():
            raise CommandFailed("Camera not connected")

        try:
            response = client.send_command(name, params, timeout=self._command_timeout)
        except (requests.exceptions.RequestException, ValueError) as exc:
            raise CommandFailed(f"Failed to send command {name!r}: {exc}") from exc

        logger.info("Command %s%s acknowledged by device", name, f" {params}" if params else "")
        return response
