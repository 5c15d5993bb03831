# =============================================================================
# Double Vision - Notification Collaborator
# =============================================================================
# The scheduler reports results through a Notifier. The base class ignores
# everything; LoggingNotifier writes warnings and advisories to the log, which
# is what the command-line monitor uses.
# =============================================================================

import logging
from typing import List

from shared.schemas import AnalysisRecord

logger = logging.getLogger(__name__)


class Notifier:
    """Receives user-facing events from the monitoring scheduler."""

    def warn(self, message: str, record: AnalysisRecord) -> None:
        """A display issue was detected in an analysis."""

    def advise(self, suggestions: List[str], record: AnalysisRecord) -> None:
        """LVGL optimization suggestions derived from an analysis."""

    def analysis_updated(self, record: AnalysisRecord) -> None:
        """A new analysis was appended to the history."""


class LoggingNotifier(Notifier):
    def warn(self, message: str, record: AnalysisRecord) -> None:
        logger.warning("%s", message)

    def advise(self, suggestions: List[str], record: AnalysisRecord) -> None:
        logger.info("LVGL optimization suggestions: %s", ", ".join(suggestions))

    def analysis_updated(self, record: AnalysisRecord) -> None:
        first_line = record.text.strip().splitlines()[0] if record.text.strip() else ""
        logger.info("Analysis (%s) → %s", record.trigger, first_line[:80])
