"""
Timer Service - Elapsed-time counter with an optional Pomodoro cycle.

Architecture Decision: Observer Pattern (Qt Signals)
The timer emits signals when state changes, keeping it decoupled from UI.
Persisting a finished run is the caller's job (see TrackerApi.save_session).
"""

import logging
import time
from typing import Callable, Optional

from PySide6.QtCore import QObject, QTimer, Signal

from app.domain.models import PomodoroConfig, PomodoroPhase

logger = logging.getLogger(__name__)

TICK_INTERVAL_MS = 1000
AUTO_START_DELAY_MS = 1000


class WorkTimer(QObject):
    """
    The work timer. Manages state but knows nothing about the UI or database.

    Elapsed time is always derived from clock() - anchor, where the anchor is
    recomputed on start() and add_seconds(), so delayed ticks never cause drift.
    """

    # Signals
    tick = Signal(int)  # elapsed seconds
    started = Signal()
    paused = Signal(int)  # elapsed seconds
    phase_completed = Signal(str, int)  # new phase, completed work sessions

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        super().__init__()
        self._clock = clock
        self._running = False
        self._anchor = 0.0
        self.elapsed_seconds: int = 0

        # Pomodoro overlay (None when disabled)
        self.pomodoro: Optional[PomodoroConfig] = None
        self.phase = PomodoroPhase.WORK
        self.completed_count: int = 0

        # Internal timer that fires every second
        self.timer = QTimer(self)
        self.timer.setInterval(TICK_INTERVAL_MS)
        self.timer.timeout.connect(self._on_tick)

        # Delayed restart after a phase change, gives the UI time to transition
        self._auto_start_timer = QTimer(self)
        self._auto_start_timer.setSingleShot(True)
        self._auto_start_timer.setInterval(AUTO_START_DELAY_MS)
        self._auto_start_timer.timeout.connect(self.start)

    # --- Basic timer ---

    def start(self):
        """Start or resume counting. No-op if already running."""
        if self._running:
            return

        self._auto_start_timer.stop()
        self._running = True
        self._anchor = self._clock() - self.elapsed_seconds
        self.timer.start()
        self.started.emit()

    def pause(self):
        """Stop counting, keeping the value of the last tick. No-op if not running."""
        if not self._running:
            return

        self._running = False
        self.timer.stop()
        self.paused.emit(self.elapsed_seconds)

    def reset(self):
        """Pause and zero the counter"""
        self.pause()
        self._auto_start_timer.stop()
        self.elapsed_seconds = 0
        self.tick.emit(0)

    def add_seconds(self, delta: int):
        """Adjust the counter by delta seconds (may be negative), never below zero"""
        self.elapsed_seconds = max(0, self.elapsed_seconds + delta)
        if self._running:
            self._anchor = self._clock() - self.elapsed_seconds
        self.tick.emit(self.elapsed_seconds)

    def get_elapsed(self) -> int:
        return self.elapsed_seconds

    def is_running(self) -> bool:
        return self._running

    def _sample(self) -> int:
        return max(0, int(self._clock() - self._anchor))

    def _on_tick(self):
        """Called every second to update the timer"""
        if not self._running:
            return

        self.elapsed_seconds = self._sample()
        self.tick.emit(self.elapsed_seconds)

        if self.pomodoro is not None and self.elapsed_seconds >= self.phase_target():
            self._complete_phase()

    # --- Pomodoro ---

    def enable_pomodoro(self, config: PomodoroConfig):
        """Switch to Pomodoro mode, starting a fresh cycle in the work phase"""
        self.pomodoro = config
        self.phase = PomodoroPhase.WORK
        self.completed_count = 0
        self.reset()

    def disable_pomodoro(self):
        self._auto_start_timer.stop()
        self.pomodoro = None
        self.phase = PomodoroPhase.WORK
        self.completed_count = 0

    def phase_target(self) -> int:
        """Duration of the current phase in seconds"""
        if self.pomodoro is None:
            return 0
        if self.phase == PomodoroPhase.SHORT_BREAK:
            return self.pomodoro.short_break
        if self.phase == PomodoroPhase.LONG_BREAK:
            return self.pomodoro.long_break
        return self.pomodoro.work_duration

    def remaining_seconds(self) -> int:
        """Countdown value for the current phase"""
        return max(0, self.phase_target() - self.elapsed_seconds)

    def is_break(self) -> bool:
        return self.phase in (PomodoroPhase.SHORT_BREAK, PomodoroPhase.LONG_BREAK)

    def skip_break(self):
        """Leave the current break and go back to work. Ignored outside a break."""
        if self.pomodoro is None or not self.is_break():
            return

        self._auto_start_timer.stop()
        self.pause()
        self.phase = PomodoroPhase.WORK
        self.elapsed_seconds = 0
        self.tick.emit(0)

    def _complete_phase(self):
        self.pause()

        if self.phase == PomodoroPhase.WORK:
            self.completed_count += 1
            if self.completed_count % self.pomodoro.sessions_until_long_break == 0:
                self.phase = PomodoroPhase.LONG_BREAK
            else:
                self.phase = PomodoroPhase.SHORT_BREAK
            auto_start = self.pomodoro.auto_start_breaks
        else:
            self.phase = PomodoroPhase.WORK
            auto_start = self.pomodoro.auto_start_work

        self.elapsed_seconds = 0
        logger.info(f"Pomodoro phase complete, next: {self.phase.value} (completed {self.completed_count})")
        self.tick.emit(0)
        self.phase_completed.emit(self.phase.value, self.completed_count)

        if auto_start:
            self._auto_start_timer.start()


def format_time(seconds: int) -> str:
    """Format seconds as HH:MM:SS"""
    hours, remainder = divmod(seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def format_time_short(seconds: int) -> str:
    """Format seconds as 'HHh MMm'"""
    hours, remainder = divmod(seconds, 3600)
    return f"{hours:02d}h {remainder // 60:02d}m"


def calculate_progress(elapsed: int, target: int) -> float:
    """Progress towards target in percent, capped at 100"""
    if target <= 0:
        return 100.0
    return min(100.0, elapsed / target * 100)
