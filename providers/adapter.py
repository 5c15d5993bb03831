# =============================================================================
# Double Vision - AI Backend Adapter
# =============================================================================
# Presents analyze(Snapshot) and generate_interface_code(description) over
# whichever backend the session's BackendConfig selects. The Snapshot is
# base64-encoded exactly once here, at the adapter boundary; backends only
# ever see the encoded ImagePayload.
#
# BACKEND_TYPES must cover every ProviderKind member; the import-time check
# below fails loudly if a new kind is added without a backend.
# =============================================================================

import logging
from typing import Dict, Optional, Type

import requests

from providers.anthropic_messages import AnthropicBackend
from providers.base import AnalysisBackend
from providers.gemini import GeminiBackend
from providers.http import HTTPChatBackend
from providers.local import LocalBackend
from providers.openai_chat import OpenAIBackend
from providers.prompts import CODE_GENERATION_PROMPT
from shared.schemas import BackendConfig, ImagePayload, ProviderKind, Snapshot

logger = logging.getLogger(__name__)

BACKEND_TYPES: Dict[ProviderKind, Type[AnalysisBackend]] = {
    ProviderKind.LOCAL: LocalBackend,
    ProviderKind.OPENAI: OpenAIBackend,
    ProviderKind.ANTHROPIC: AnthropicBackend,
    ProviderKind.GOOGLE: GeminiBackend,
}

_unregistered = set(ProviderKind) - set(BACKEND_TYPES)
if _unregistered:
    raise RuntimeError(f"No backend registered for {sorted(k.value for k in _unregistered)}")


def build_backend(
    config: BackendConfig,
    session: Optional[requests.Session] = None,
) -> AnalysisBackend:
    """
    Instantiate the backend selected by config.

    Args:
        config:  Immutable backend selection.
        session: Optional requests.Session for external backends.

    Returns:
        A ready AnalysisBackend. External backends without an API key are
        still built; they fail with MissingCredential on first use.
    """
    backend_type = BACKEND_TYPES[config.provider_kind]
    if issubclass(backend_type, HTTPChatBackend):
        return backend_type(
            api_key=config.api_key,
            model=config.model,
            timeout=config.timeout_seconds,
            max_tokens=config.max_tokens,
            session=session,
        )
    return backend_type()


class AIBackendAdapter:
    """
    Uniform analysis and code-generation entry point for one session.

    Args:
        config:  Immutable backend selection; build a new adapter to change it.
        session: Optional requests.Session passed to external backends.
    """

    def __init__(self, config: BackendConfig, session: Optional[requests.Session] = None):
        self._config = config
        self._backend = build_backend(config, session=session)
        logger.info("AI backend: %s", config.provider_kind.value)

    @property
    def config(self) -> BackendConfig:
        return self._config

    @property
    def provider_kind(self) -> ProviderKind:
        return self._config.provider_kind

    def analyze(self, snapshot: Snapshot) -> str:
        """
        Analyze a captured frame.

        Raises:
            MissingCredential: External backend selected without an API key.
            BackendError:      Non-2xx response, transport failure or an
                               unexpected response body.
        """
        payload = ImagePayload.from_snapshot(snapshot)
        logger.debug(
            "Analyzing %dx%d frame (%d bytes → %d base64 chars) with %s",
            payload.width,
            payload.height,
            payload.size_bytes,
            len(payload.data),
            self.provider_kind.value,
        )
        return self._backend.analyze(payload)

    def generate_interface_code(self, description: str) -> str:
        """Generate LVGL interface code for a textual description."""
        prompt = CODE_GENERATION_PROMPT.format(description=description)
        return self._backend.generate_code(prompt)
