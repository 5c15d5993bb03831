# =============================================================================
# Double Vision - Simulated Camera Frames
# =============================================================================
# Renders numbered test-pattern JPEGs at the ESP32-CAM frame sizes so the
# simulator's /capture and /ws endpoints return real, decodable images.
# =============================================================================

import io
from typing import Dict, Tuple

import numpy as np
from PIL import Image, ImageDraw

FRAME_SIZES: Dict[str, Tuple[int, int]] = {
    "QQVGA": (160, 120),
    "QVGA": (320, 240),
    "VGA": (640, 480),
    "SVGA": (800, 600),
}

DEFAULT_FRAME_SIZE = "QVGA"


def render_frame(frame_number: int, frame_size: str = DEFAULT_FRAME_SIZE, quality: int = 80) -> bytes:
    """
    Render a test-pattern JPEG.

    The pattern is a horizontal colour gradient shifted by the frame number,
    with the frame number drawn in the top-left corner.

    Args:
        frame_number: Counter drawn into the frame and used to shift colours.
        frame_size:   Key of FRAME_SIZES.
        quality:      JPEG quality (1-95).

    Returns:
        JPEG-encoded bytes.
    """
    width, height = FRAME_SIZES[frame_size]

    x = np.linspace(0, 255, width, dtype=np.float32)
    y = np.linspace(0, 255, height, dtype=np.float32)[:, None]
    shift = (frame_number * 8) % 256
    pixels = np.zeros((height, width, 3), dtype=np.uint8)
    pixels[..., 0] = ((x + shift) % 256).astype(np.uint8)
    pixels[..., 1] = np.broadcast_to(y, (height, width)).astype(np.uint8)
    pixels[..., 2] = 128

    image = Image.fromarray(pixels)
    draw = ImageDraw.Draw(image)
    draw.rectangle((4, 4, 84, 20), fill=(0, 0, 0))
    draw.text((8, 6), f"#{frame_number:05d}", fill=(255, 255, 255))

    buffer = io.BytesIO()
    image.save(buffer, format="JPEG", quality=max(1, min(95, quality)))
    return buffer.getvalue()
