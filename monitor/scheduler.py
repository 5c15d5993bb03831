# =============================================================================
# Double Vision - Monitoring Scheduler
# =============================================================================
# Decides when a frame is analyzed and keeps a bounded history of results.
#
# Two triggers feed one worker thread:
#   timer  every interval_ms the worker pulls a frame with take_snapshot()
#   push   frames fanned out by the connection manager are parked in a
#          latest-frame-only slot and picked up by the worker
#
# Push frames are debounced against the timestamp of the last analyzed
# Snapshot; timer pulls are not. A single-flight lock guards the analysis
# path so cycles never overlap, and per-cycle failures are logged and skipped.
# =============================================================================

import logging
import threading
import time
from collections import deque
from datetime import timedelta
from typing import Callable, Deque, List, Optional

from monitor.change import FrameChangeDetector
from monitor.notifier import LoggingNotifier, Notifier
from monitor.suggestions import build_fix_request, route_analysis
from shared.errors import NotConnected
from shared.schemas import AnalysisRecord, Snapshot, utc_now

logger = logging.getLogger(__name__)

TRIGGER_TIMER = "timer"
TRIGGER_PUSH = "push"

AnalysisListener = Callable[[AnalysisRecord], None]


class MonitoringScheduler:
    """
    Periodic and push-driven analysis of camera frames.

    Args:
        connection:       ConnectionManager supplying frames.
        adapter:          AIBackendAdapter performing the analysis.
        notifier:         Receives warnings, advisories and updates.
        interval_ms:      Period of the timer trigger.
        debounce_ms:      Minimum gap between an analyzed frame and the next
                          analyzed push frame.
        history_capacity: Number of AnalysisRecords kept (oldest evicted).
        change_threshold: Pixel-difference threshold for skipping unchanged
                          push frames; 0 disables the check.
    """

    def __init__(
        self,
        connection,
        adapter,
        notifier: Optional[Notifier] = None,
        interval_ms: int = 5000,
        debounce_ms: int = 2000,
        history_capacity: int = 10,
        change_threshold: float = 0.0,
    ):
        self._connection = connection
        self._adapter = adapter
        self._notifier = notifier if notifier is not None else LoggingNotifier()
        self._interval = interval_ms / 1000.0
        self._debounce = timedelta(milliseconds=debounce_ms)
        self._history: Deque[AnalysisRecord] = deque(maxlen=history_capacity)
        self._change_detector = FrameChangeDetector(change_threshold)

        self._active = False
        self._state_lock = threading.Lock()
        self._analysis_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._wake = threading.Event()
        self._thread: Optional[threading.Thread] = None

        self._pending: Optional[Snapshot] = None
        self._last_snapshot: Optional[Snapshot] = None
        self._listeners: List[AnalysisListener] = []

        connection.subscribe(self.handle_snapshot)

    @classmethod
    def from_config(cls, config, connection, adapter, notifier: Optional[Notifier] = None):
        return cls(
            connection,
            adapter,
            notifier=notifier,
            interval_ms=config.monitoring_interval_ms,
            debounce_ms=config.debounce_ms,
            history_capacity=config.history_capacity,
            change_threshold=config.change_detection_threshold,
        )

    # -----------------------------------------------------------------
    # Lifecycle
    # -----------------------------------------------------------------

    def start(self) -> None:
        """
        Start the timer and accept push frames.

        Raises:
            NotConnected: The connection manager is not CONNECTED.
        """
        with self._state_lock:
            if self._active:
                return
            if not self._connection.is_connected():
                raise NotConnected("Camera not connected")

            self._active = True
            self._pending = None
            self._change_detector.reset()
            # One stop flag per worker; a worker outliving stop() exits on its own.
            self._stop_event = threading.Event()
            self._wake.clear()
            self._thread = threading.Thread(
                target=self._run,
                args=(self._stop_event,),
                name="monitoring-scheduler",
                daemon=True,
            )
            self._thread.start()

        logger.info("AI visual monitoring started (interval=%.1fs)", self._interval)

    def stop(self, timeout: float = 5.0) -> None:
        """
        Stop the timer and ignore further push frames. Idempotent.

        An analysis already in flight finishes on its own; no new cycle
        starts after this returns.
        """
        with self._state_lock:
            if not self._active:
                return
            self._active = False
            self._pending = None
            self._stop_event.set()
            self._wake.set()
            thread = self._thread
            self._thread = None

        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=timeout)
        logger.info("AI visual monitoring stopped.")

    def is_active(self) -> bool:
        return self._active

    # -----------------------------------------------------------------
    # Worker
    # -----------------------------------------------------------------

    def _run(self, stop_event: threading.Event) -> None:
        """Internal loop: wait for a push frame or the timer deadline."""
        next_tick = time.monotonic() + self._interval
        while not stop_event.is_set():
            remaining = max(0.0, next_tick - time.monotonic())
            if self._wake.wait(timeout=remaining):
                if stop_event.is_set():
                    break
                self._wake.clear()
                snapshot = self._take_pending()
                if snapshot is not None:
                    self.analyze(snapshot, trigger=TRIGGER_PUSH)
                continue

            next_tick = time.monotonic() + self._interval
            self.run_cycle()

    def _take_pending(self) -> Optional[Snapshot]:
        with self._state_lock:
            snapshot = self._pending
            self._pending = None
        return snapshot

    def handle_snapshot(self, snapshot: Snapshot) -> bool:
        """
        Push trigger: called by the connection manager's fan-out.

        Returns quickly; the frame is parked for the worker thread, replacing
        any frame still waiting.

        Returns:
            True if the frame was queued for analysis.
        """
        if not self._active or self._is_debounced(snapshot):
            return False
        if not self._change_detector.changed(snapshot):
            return False

        with self._state_lock:
            if not self._active:
                return False
            self._pending = snapshot
        self._wake.set()
        return True

    def _is_debounced(self, snapshot: Snapshot) -> bool:
        last = self._last_snapshot
        if last is None:
            return False
        return snapshot.captured_at - last.captured_at < self._debounce

    def run_cycle(self) -> Optional[AnalysisRecord]:
        """
        Timer trigger: pull a frame and analyze it.

        Returns:
            The new AnalysisRecord, or None if the cycle was skipped.
        """
        if not self._active or not self._connection.is_connected():
            return None

        try:
            snapshot = self._connection.take_snapshot()
        except Exception:
            logger.exception("Monitoring cycle failed to capture a frame")
            return None

        return self.analyze(snapshot, trigger=TRIGGER_TIMER)

    def analyze(self, snapshot: Snapshot, trigger: str = TRIGGER_TIMER) -> Optional[AnalysisRecord]:
        """
        Run one analysis cycle for a frame.

        Cycles are serialized. Push frames are re-checked against the
        debounce window once the lock is held, because an earlier cycle may
        have finished while this one waited.

        Returns:
            The new AnalysisRecord, or None if skipped or failed.
        """
        with self._analysis_lock:
            if not self._active:
                return None
            if trigger == TRIGGER_PUSH and self._is_debounced(snapshot):
                logger.debug("Push frame debounced")
                return None

            try:
                text = self._adapter.analyze(snapshot)
            except Exception:
                logger.exception("Analysis failed; skipping cycle")
                return None

            record = AnalysisRecord(
                text=text,
                produced_at=utc_now(),
                captured_at=snapshot.captured_at,
                trigger=trigger,
                provider=getattr(self._adapter, "provider_kind", None),
            )
            self._last_snapshot = snapshot
            self._history.append(record)

        self._deliver(record)
        return record

    def _deliver(self, record: AnalysisRecord) -> None:
        try:
            route_analysis(record, self._notifier)
            self._notifier.analysis_updated(record)
        except Exception:
            logger.exception("Notifier failed for analysis")

        for listener in list(self._listeners):
            try:
                listener(record)
            except Exception:
                logger.exception("Analysis listener %r failed", listener)

    # -----------------------------------------------------------------
    # Queries and collaborators
    # -----------------------------------------------------------------

    def add_analysis_listener(self, listener: AnalysisListener) -> AnalysisListener:
        self._listeners.append(listener)
        return listener

    def remove_analysis_listener(self, listener: AnalysisListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def get_history(self) -> List[AnalysisRecord]:
        """Analyses in chronological order, oldest first."""
        return list(self._history)

    def get_last(self) -> Optional[AnalysisRecord]:
        return self._history[-1] if self._history else None

    def get_last_snapshot(self) -> Optional[Snapshot]:
        return self._last_snapshot

    def generate_fix(self, record: AnalysisRecord) -> str:
        """Ask the backend for interface code fixing the issues in an analysis."""
        return self._adapter.generate_interface_code(build_fix_request(record.text))
