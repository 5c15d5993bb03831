# =============================================================================
# Double Vision - Device Simulator Application
# =============================================================================
# FastAPI stand-in for the ESP32 camera firmware. Serves the same surface the
# connection manager consumes:
#   GET  /status   liveness JSON
#   GET  /capture  current frame as image/jpeg
#   POST /command  form-encoded command (framesize, quality), JSON echo
#   WS   /ws       binary JPEG frames at a fixed rate; the text "capture"
#                  requests an immediate frame
# =============================================================================

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass

from fastapi import FastAPI, HTTPException, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import Response

from config import get_config
from simulator.frames import DEFAULT_FRAME_SIZE, FRAME_SIZES, render_frame

logger = logging.getLogger(__name__)


@dataclass
class CameraState:
    """Mutable settings of the simulated camera."""

    frame_size: str = DEFAULT_FRAME_SIZE
    quality: int = 80
    frame_count: int = 0
    started_at: float = 0.0

    def next_frame(self) -> bytes:
        self.frame_count += 1
        return render_frame(self.frame_count, self.frame_size, self.quality)

    def apply(self, command: str, value: str) -> None:
        """
        Apply a control command.

        Raises:
            ValueError: Unknown command or invalid value.
        """
        if command == "framesize":
            key = value.upper()
            if key not in FRAME_SIZES:
                raise ValueError(f"unknown framesize {value!r}")
            self.frame_size = key
        elif command == "quality":
            quality = int(value)
            if not 1 <= quality <= 95:
                raise ValueError("quality must be between 1 and 95")
            self.quality = quality
        else:
            raise ValueError(f"unknown command {command!r}")


# ---------------------------------------------------------------------------
# Global state populated during lifespan startup
# ---------------------------------------------------------------------------
_camera = CameraState()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Reset the simulated camera on startup."""
    global _camera
    _camera = CameraState(started_at=time.time())
    logger.info("Simulated camera ready (%s).", _camera.frame_size)
    yield
    logger.info("Shutting down simulated camera...")


app = FastAPI(
    title="Double Vision Device Simulator",
    description=(
        "Simulates the ESP32 camera's HTTP and WebSocket surface with a "
        "numbered test-pattern image, for running the monitor without hardware."
    ),
    version="0.1.0",
    lifespan=lifespan,
)


@app.get("/status")
def status():
    """Liveness endpoint reporting the current camera settings."""
    width, height = FRAME_SIZES[_camera.frame_size]
    uptime = time.time() - _camera.started_at if _camera.started_at > 0 else 0.0
    return {
        "ok": True,
        "status": "ok",
        "framesize": _camera.frame_size,
        "width": width,
        "height": height,
        "quality": _camera.quality,
        "frames": _camera.frame_count,
        "uptime_seconds": round(uptime, 2),
    }


@app.get("/capture")
def capture():
    """Return the current frame as a JPEG."""
    return Response(content=_camera.next_frame(), media_type="image/jpeg")


@app.post("/command")
async def command(request: Request):
    """Apply a form-encoded control command and echo it back."""
    form = await request.form()
    name = form.get("command")
    if not name:
        raise HTTPException(status_code=400, detail="Missing 'command' field")

    # The setting may arrive as "value" or under the command's own name.
    value = form.get("value", form.get(str(name), ""))
    try:
        _camera.apply(str(name), str(value))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    logger.info("Command %s=%s applied", name, value)
    return {"ok": True, "command": name, "value": value}


@app.websocket("/ws")
async def stream(websocket: WebSocket):
    """Push frames at the configured rate; answer "capture" immediately."""
    await websocket.accept()
    period = 1.0 / max(0.1, get_config().simulator_fps)
    logger.info("Stream client connected (%.1f fps)", 1.0 / period)

    try:
        while True:
            try:
                message = await asyncio.wait_for(websocket.receive_text(), timeout=period)
            except asyncio.TimeoutError:
                message = None

            if message is not None and message != "capture":
                logger.debug("Ignoring stream message %r", message)
                continue
            await websocket.send_bytes(_camera.next_frame())
    except WebSocketDisconnect:
        logger.info("Stream client disconnected")
