# =============================================================================
# Double Vision - Device Package
# =============================================================================
# This package contains the camera-side components: the HTTP client for the
# device surface, the WebSocket push-frame reader, and the connection manager
# that supervises both.
# =============================================================================
