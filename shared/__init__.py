# =============================================================================
# Double Vision - Shared Package
# =============================================================================
# Data contracts and the error taxonomy used by the device, providers,
# monitor and simulator packages.
# =============================================================================
