"""
Tests for keyword routing, fix requests and the rendered analysis document.
"""
from datetime import datetime, timezone

import pytest

from monitor.notifier import LoggingNotifier, Notifier
from monitor.suggestions import (
    ISSUE_WARNING,
    advisory_suggestions,
    build_fix_request,
    detects_issue,
    needs_advisory,
    render_analysis_document,
    route_analysis,
)
from shared.schemas import AnalysisRecord

PRODUCED = datetime(2024, 5, 1, 12, 30, 0, tzinfo=timezone.utc)


def record(text):
    return AnalysisRecord(text=text, produced_at=PRODUCED)


class CollectingNotifier(Notifier):
    def __init__(self):
        self.events = []

    def warn(self, message, record):
        self.events.append(("warn", message))

    def advise(self, suggestions, record):
        self.events.append(("advise", suggestions))


@pytest.mark.parametrize(
    "text,expected",
    [
        ("Render ERROR in header", True),
        ("one problem found", True),
        ("Errors everywhere", True),
        ("Layout is clean", False),
        ("", False),
    ],
)
def test_detects_issue(text, expected):
    assert detects_issue(text) is expected


@pytest.mark.parametrize(
    "text,expected",
    [
        ("Uses LVGL 8", True),
        ("a Widget overlaps", True),
        ("plain text", False),
    ],
)
def test_needs_advisory(text, expected):
    assert needs_advisory(text) is expected


def test_advisory_suggestions_follow_hint_order():
    suggestions = advisory_suggestions("STYLE is inconsistent, memory is tight, performance ok")
    assert suggestions == [
        "Consider optimizing memory usage with lv_mem_monitor()",
        "Consider using lv_timer instead of delays for better performance",
        "Use lv_style_t objects for consistent styling",
    ]


def test_advisory_suggestions_empty():
    assert advisory_suggestions("the lvgl screen looks fine") == []


def test_route_analysis_warns_and_advises():
    notifier = CollectingNotifier()
    route_analysis(record("LVGL widget error: memory leak suspected"), notifier)

    assert notifier.events == [
        ("warn", ISSUE_WARNING),
        ("advise", ["Consider optimizing memory usage with lv_mem_monitor()"]),
    ]


def test_route_analysis_quiet_for_clean_text():
    notifier = CollectingNotifier()
    route_analysis(record("Clock face at 12:00"), notifier)
    assert notifier.events == []


def test_logging_notifier_logs(caplog):
    notifier = LoggingNotifier()
    with caplog.at_level("INFO"):
        route_analysis(record("widget problem, poor performance"), notifier)
        notifier.analysis_updated(record("widget problem, poor performance"))

    messages = caplog.text
    assert ISSUE_WARNING in messages
    assert "lv_timer" in messages


def test_build_fix_request():
    assert build_fix_request("Label clipped") == (
        "Fix the issues mentioned in this analysis: Label clipped"
    )


class TestAnalysisDocument:
    def test_without_history(self):
        document = render_analysis_document(record("Screen shows a gauge"))
        assert document.startswith("# Display Analysis - 2024-05-01T12:30:00+00:00\n")
        assert "Screen shows a gauge" in document
        assert "## Analysis History" not in document

    def test_history_limited_to_last_five(self):
        history = [record(f"entry {n}") for n in range(1, 8)]
        document = render_analysis_document(history[-1], history)

        assert "## Analysis History" in document
        assert "entry 1" not in document
        assert "entry 2" not in document
        section = document.split("## Analysis History", 1)[1]
        assert section.strip() == "\n\n---\n\n".join(f"entry {n}" for n in range(3, 8))
