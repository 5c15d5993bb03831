# =============================================================================
# Double Vision - AI Backend Interface
# =============================================================================
# Every backend answers the same two questions: what does this frame show,
# and what interface code would implement this description. Backends receive
# the already base64-encoded ImagePayload and a finished prompt string.
# =============================================================================

from abc import ABC, abstractmethod

from shared.schemas import ImagePayload, ProviderKind


class AnalysisBackend(ABC):
    """Abstract base class for interchangeable AI backends."""

    kind: ProviderKind

    @abstractmethod
    def analyze(self, image: ImagePayload) -> str:
        """Return a textual analysis of the frame. Raises on failure."""

    @abstractmethod
    def generate_code(self, prompt: str) -> str:
        """Return generated interface code for a code-generation prompt."""
