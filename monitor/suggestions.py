# =============================================================================
# Double Vision - Analysis Routing and Suggestions
# =============================================================================
# Scans analysis text for keyword triggers (case-insensitive substrings):
#   "error" / "problem"  → warn-level suggestion path
#   "lvgl"  / "widget"   → secondary LVGL advisory pass
# Also builds the fix request sent back to the backend and the Markdown
# analysis document shown on demand.
# =============================================================================

from typing import List, Optional, Sequence

from monitor.notifier import Notifier
from providers.prompts import FIX_REQUEST
from shared.schemas import AnalysisRecord

ISSUE_KEYWORDS = ("error", "problem")
ADVISORY_KEYWORDS = ("lvgl", "widget")

ADVISORY_HINTS = (
    ("memory", "Consider optimizing memory usage with lv_mem_monitor()"),
    ("performance", "Consider using lv_timer instead of delays for better performance"),
    ("style", "Use lv_style_t objects for consistent styling"),
)

ISSUE_WARNING = "Display issue detected. Review the analysis or generate a fix."

DOCUMENT_HISTORY_ENTRIES = 5


def _contains_any(text: str, keywords: Sequence[str]) -> bool:
    lowered = text.lower()
    return any(keyword in lowered for keyword in keywords)


def detects_issue(text: str) -> bool:
    return _contains_any(text, ISSUE_KEYWORDS)


def needs_advisory(text: str) -> bool:
    return _contains_any(text, ADVISORY_KEYWORDS)


def advisory_suggestions(text: str) -> List[str]:
    lowered = text.lower()
    return [hint for keyword, hint in ADVISORY_HINTS if keyword in lowered]


def route_analysis(record: AnalysisRecord, notifier: Notifier) -> None:
    """Send an analysis down the warning and advisory paths it triggers."""
    if detects_issue(record.text):
        notifier.warn(ISSUE_WARNING, record)

    if needs_advisory(record.text):
        suggestions = advisory_suggestions(record.text)
        if suggestions:
            notifier.advise(suggestions, record)


def build_fix_request(analysis: str) -> str:
    return FIX_REQUEST.format(analysis=analysis)


def render_analysis_document(
    record: AnalysisRecord,
    history: Optional[Sequence[AnalysisRecord]] = None,
) -> str:
    """
    Render an analysis and the most recent history entries as Markdown.

    Args:
        record:  The analysis to display.
        history: Optional history; its last five entries are appended.
    """
    lines = [
        f"# Display Analysis - {record.produced_at.isoformat()}",
        "",
        record.text,
    ]
    if history:
        recent = list(history)[-DOCUMENT_HISTORY_ENTRIES:]
        lines += [
            "",
            "## Analysis History",
            "",
            "\n\n---\n\n".join(entry.text for entry in recent),
        ]
    return "\n".join(lines) + "\n"
