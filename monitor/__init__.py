# =============================================================================
# Double Vision - Monitor Package
# =============================================================================
# This package contains the monitoring scheduler, the keyword-driven
# suggestion routing, the notification collaborator, frame change detection,
# and the command-line orchestrator.
# =============================================================================
