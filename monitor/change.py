# =============================================================================
# Double Vision - Frame Change Detection
# =============================================================================
# Lightweight pixel-difference check used to skip pushed frames that look the
# same as the previous one. Both frames are downscaled to 64x64 grayscale and
# compared by mean absolute difference normalised to [0, 1].
# =============================================================================

import io
import logging
import threading
from typing import Optional

import numpy as np
from PIL import Image, UnidentifiedImageError

from shared.schemas import Snapshot

logger = logging.getLogger(__name__)

_THUMBNAIL_SIZE = (64, 64)


class FrameChangeDetector:
    """
    Tracks the last seen frame and reports whether a new one differs enough.

    Args:
        threshold: Minimum normalised mean difference for a frame to count as
                   changed. 0 or less disables the check entirely.
    """

    def __init__(self, threshold: float = 0.0):
        self._threshold = threshold
        self._previous: Optional[np.ndarray] = None
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self._threshold > 0

    def reset(self) -> None:
        with self._lock:
            self._previous = None

    def changed(self, snapshot: Snapshot) -> bool:
        """
        Determine whether a frame differs enough from the previous one.

        The first frame, and any frame that cannot be decoded, is always
        considered changed.
        """
        if not self.enabled:
            return True

        try:
            with Image.open(io.BytesIO(snapshot.image_bytes)) as image:
                small = np.array(
                    image.convert("L").resize(_THUMBNAIL_SIZE, Image.BILINEAR),
                    dtype=np.float32,
                )
        except (UnidentifiedImageError, OSError):
            logger.debug("Undecodable frame treated as changed")
            return True

        with self._lock:
            previous = self._previous
            self._previous = small

        if previous is None:
            return True

        diff = float(np.mean(np.abs(small - previous))) / 255.0
        if diff < self._threshold:
            logger.debug("Frame skipped (diff=%.4f < threshold=%.4f)", diff, self._threshold)
            return False

        logger.debug("Frame changed (diff=%.4f)", diff)
        return True
