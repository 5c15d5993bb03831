# =============================================================================
# Double Vision - Device HTTP Client
# =============================================================================
# Provides the DeviceClient class wrapping the camera's HTTP surface:
#   GET  /status   liveness probe (JSON)
#   GET  /capture  current frame (binary JPEG)
#   POST /command  form-encoded control request (JSON echo)
# Every request carries an explicit timeout. Nothing here retries; callers
# decide what a failure means.
# =============================================================================

import logging
from typing import Any, Dict, Optional

import requests

from shared.schemas import CommandResponse, DeviceStatus

logger = logging.getLogger(__name__)


class DeviceClient:
    """
    HTTP client for a single camera endpoint.

    Args:
        host:    Device IPv4 address.
        port:    Device HTTP port.
        session: Optional requests.Session to share (tests inject a stub).
    """

    def __init__(self, host: str, port: int, session: Optional[requests.Session] = None):
        self._host = host
        self._port = port
        self._base_url = f"http://{host}:{port}"
        self._session = session if session is not None else requests.Session()

    @property
    def base_url(self) -> str:
        return self._base_url

    def get_status(self, timeout: float) -> DeviceStatus:
        """
        Probe the device's /status endpoint.

        Args:
            timeout: Seconds before the probe is abandoned.

        Returns:
            DeviceStatus parsed from the JSON body (defaults when the body is
            not JSON, since a 2xx answer already proves liveness).

        Raises:
            requests.exceptions.RequestException: On timeout, network failure
                or a non-2xx status.
        """
        url = f"{self._base_url}/status"
        response = self._session.get(url, timeout=timeout)
        response.raise_for_status()

        try:
            body = response.json()
        except ValueError:
            logger.debug("Status body from %s is not JSON", url)
            return DeviceStatus()

        if not isinstance(body, dict):
            return DeviceStatus()
        return DeviceStatus(**body)

    def capture(self, timeout: float) -> bytes:
        """
        Fetch the current frame from /capture.

        Returns:
            The raw JPEG bytes (possibly empty if the device misbehaves).

        Raises:
            requests.exceptions.RequestException: On timeout, network failure
                or a non-2xx status.
        """
        url = f"{self._base_url}/capture"
        response = self._session.get(url, timeout=timeout)
        response.raise_for_status()
        logger.debug("Captured %d bytes from %s", len(response.content), url)
        return response.content

    def send_command(
        self,
        command: str,
        params: Optional[Dict[str, Any]] = None,
        timeout: float = 5.0,
    ) -> CommandResponse:
        """
        POST a control command to /command as a form-encoded body.

        Args:
            command: Command name (e.g. "framesize", "quality").
            params:  Extra form fields sent alongside the command.
            timeout: Seconds before the request is abandoned.

        Returns:
            CommandResponse parsed from the device's JSON echo.

        Raises:
            requests.exceptions.RequestException: On transport failure or a
                non-2xx status.
            ValueError: If the body is not JSON.
        """
        form = {"command": command}
        for key, value in (params or {}).items():
            form[str(key)] = str(value)

        url = f"{self._base_url}/command"
        response = self._session.post(url, data=form, timeout=timeout)
        response.raise_for_status()

        body = response.json()
        if not isinstance(body, dict):
            body = {"command": command, "result": body}
        return CommandResponse(**body)
