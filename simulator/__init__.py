# =============================================================================
# Double Vision - Simulator Package
# =============================================================================
# A FastAPI stand-in for the ESP32 camera so the monitor can be run and
# exercised without hardware.
# =============================================================================
