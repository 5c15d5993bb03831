# =============================================================================
# Double Vision - HTTP Chat Backend Transport
# =============================================================================
# Shared transport for the external multimodal chat APIs. Subclasses own
# everything provider-specific: endpoint, authentication headers, request
# body shape and the path to the generated text. This base only checks the
# credential, performs one bounded POST, and translates failures into
# BackendError. It never retries.
# =============================================================================

import logging
from abc import abstractmethod
from typing import Any, Dict, Optional

import requests

from providers.base import AnalysisBackend
from providers.prompts import ANALYSIS_PROMPT
from shared.errors import BackendError, MissingCredential
from shared.schemas import ImagePayload

logger = logging.getLogger(__name__)


class HTTPChatBackend(AnalysisBackend):
    """
    Base class for backends reached through one authenticated HTTPS POST.

    Args:
        api_key:    Provider API key (None or empty fails with MissingCredential).
        model:      Model name; defaults to the subclass's default_model.
        timeout:    Seconds before the request is abandoned.
        max_tokens: Upper bound on generated tokens.
        session:    Optional requests.Session (tests inject a stub).
    """

    endpoint: str = ""
    default_model: str = ""

    def __init__(
        self,
        api_key: Optional[str],
        model: Optional[str] = None,
        timeout: float = 60.0,
        max_tokens: int = 500,
        session: Optional[requests.Session] = None,
    ):
        self._api_key = api_key
        self._model = model or self.default_model
        self._timeout = timeout
        self._max_tokens = max_tokens
        self._session = session if session is not None else requests.Session()

    @property
    def model(self) -> str:
        return self._model

    def analyze(self, image: ImagePayload) -> str:
        self._require_credential()
        return self._send(self._vision_body(image, ANALYSIS_PROMPT))

    def generate_code(self, prompt: str) -> str:
        self._require_credential()
        return self._send(self._text_body(prompt))

    def _require_credential(self) -> None:
        if not self._api_key:
            raise MissingCredential(self.kind)

    # -- Provider-specific wire format --

    def _url(self) -> str:
        return self.endpoint

    @abstractmethod
    def _headers(self) -> Dict[str, str]:
        """Authentication and content headers."""

    @abstractmethod
    def _vision_body(self, image: ImagePayload, prompt: str) -> Dict[str, Any]:
        """Request body carrying the instruction prompt and the image."""

    @abstractmethod
    def _text_body(self, prompt: str) -> Dict[str, Any]:
        """Request body carrying a text-only prompt."""

    @abstractmethod
    def _extract_text(self, data: Dict[str, Any]) -> str:
        """Pull the generated text out of the provider's JSON response."""

    # -- Transport --

    def _send(self, body: Dict[str, Any]) -> str:
        try:
            response = self._session.post(
                self._url(),
                json=body,
                headers=self._headers(),
                timeout=self._timeout,
            )
        except requests.exceptions.RequestException as exc:
            raise BackendError(self.kind, f"request failed: {exc}") from exc

        if not 200 <= response.status_code < 300:
            raise BackendError(
                self.kind,
                f"HTTP {response.status_code}: {response.text[:200]}",
            )

        try:
            text = self._extract_text(response.json())
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise BackendError(self.kind, f"unexpected response body: {exc}") from exc

        if not isinstance(text, str):
            raise BackendError(self.kind, "response text is not a string")

        logger.info("%s (%s) returned %d characters", self.kind.value, self._model, len(text))
        return text
