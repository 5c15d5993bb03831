# =============================================================================
# Double Vision - Local (Offline) Backend
# =============================================================================
# Deterministic backend used by default and in tests. It never performs
# network I/O: the analysis is a template filled from the frame's size,
# resolution and a content fingerprint, so the same frame always yields the
# same text.
# =============================================================================

import hashlib
import logging

from providers.base import AnalysisBackend
from providers.prompts import (
    LOCAL_ANALYSIS_MARKER,
    LOCAL_ANALYSIS_TEMPLATE,
    LOCAL_CODE_TEMPLATE,
)
from shared.schemas import ImagePayload, ProviderKind

logger = logging.getLogger(__name__)


class LocalBackend(AnalysisBackend):
    kind = ProviderKind.LOCAL

    def analyze(self, image: ImagePayload) -> str:
        fingerprint = hashlib.sha256(image.data.encode("ascii")).hexdigest()[:12]
        logger.debug("Local analysis for frame %s (%dx%d)", fingerprint, image.width, image.height)
        return LOCAL_ANALYSIS_TEMPLATE.format(
            marker=LOCAL_ANALYSIS_MARKER,
            width=image.width,
            height=image.height,
            size_bytes=image.size_bytes,
            fingerprint=fingerprint,
        )

    def generate_code(self, prompt: str) -> str:
        return LOCAL_CODE_TEMPLATE
