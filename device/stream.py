# =============================================================================
# Double Vision - WebSocket Frame Stream
# =============================================================================
# Provides the FrameStream class that holds the device's WebSocket push
# channel in a background daemon thread. Every binary message is handed to a
# frame callback; the text literal "capture" can be sent to ask the device
# for an immediate frame. Losing this link only loses the push channel.
# =============================================================================

import logging
import threading
from typing import Callable, Optional

from websockets.exceptions import WebSocketException
from websockets.sync.client import connect

logger = logging.getLogger(__name__)

CAPTURE_REQUEST = "capture"


class FrameStream:
    """
    Background reader for the device's binary JPEG push stream.

    Args:
        url:          WebSocket URL (e.g. "ws://10.0.0.5:80/ws").
        on_frame:     Called with the raw bytes of every binary message,
                      on the reader thread.
        on_closed:    Called once when the link ends, with the exception that
                      ended it (None for a requested or clean close).
        open_timeout: Seconds allowed for the opening handshake.
    """

    def __init__(
        self,
        url: str,
        on_frame: Callable[[bytes], None],
        on_closed: Optional[Callable[[Optional[Exception]], None]] = None,
        open_timeout: float = 5.0,
    ):
        self._url = url
        self._on_frame = on_frame
        self._on_closed = on_closed
        self._open_timeout = open_timeout
        self._ws = None
        self._closing = threading.Event()
        self._ws_lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None

    @property
    def url(self) -> str:
        return self._url

    def is_open(self) -> bool:
        return self._ws is not None and not self._closing.is_set()

    def start(self) -> None:
        """
        Open the link in a background daemon thread.

        A stream is single-use: once close() has been called, start() does
        nothing.
        """
        if self._closing.is_set():
            logger.debug("Frame stream to %s already closed; not starting", self._url)
            return
        if self._thread is not None and self._thread.is_alive():
            logger.warning("Frame stream is already running.")
            return

        self._thread = threading.Thread(
            target=self._run, name="frame-stream", daemon=True
        )
        self._thread.start()

    def _run(self) -> None:
        """Internal loop: connect → receive frames → report closure."""
        error: Optional[Exception] = None
        try:
            ws = connect(self._url, open_timeout=self._open_timeout, max_size=None)
            with self._ws_lock:
                abandoned = self._closing.is_set()
                if not abandoned:
                    self._ws = ws
            if abandoned:
                # close() ran during the handshake and found no socket to close.
                ws.close()
                return

            with ws:
                logger.info("WebSocket connection established (%s)", self._url)
                for message in ws:
                    if self._closing.is_set():
                        break
                    if isinstance(message, bytes):
                        self._on_frame(message)
                    else:
                        logger.debug("Ignoring text message from device: %r", message[:80])
        except (WebSocketException, OSError) as exc:
            if not self._closing.is_set():
                error = exc
                logger.warning("Frame stream to %s lost: %s", self._url, exc)
        finally:
            with self._ws_lock:
                self._ws = None
            logger.info("WebSocket connection closed (%s)", self._url)
            if self._on_closed is not None:
                self._on_closed(error)

    def request_frame(self) -> bool:
        """
        Ask the device for an immediate frame over the open link.

        Returns:
            True if the request was sent, False if the link is not open.
        """
        ws = self._ws
        if ws is None or self._closing.is_set():
            return False
        try:
            ws.send(CAPTURE_REQUEST)
        except (WebSocketException, OSError) as exc:
            logger.warning("Failed to request frame over %s: %s", self._url, exc)
            return False
        return True

    def close(self, timeout: float = 5.0) -> None:
        """Close the link and wait briefly for the reader thread to exit."""
        with self._ws_lock:
            self._closing.set()
            ws = self._ws
        if ws is not None:
            ws.close()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=timeout)
        self._thread = None
