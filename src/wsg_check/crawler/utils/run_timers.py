# src/wsg_check/crawler/utils/run_timers.py
import time
from datetime import datetime, timezone
from typing import Optional


class RunTimers:
    """
    Measures the wall-clock duration of a run and remembers when it started.
    """

    def __init__(self):
        self._start_time: Optional[float] = None
        self._end_time: Optional[float] = None
        self.started_at: Optional[datetime] = None

    def start(self) -> None:
        """Starts the timer."""
        self._start_time = time.perf_counter()
        self._end_time = None
        self.started_at = datetime.now(timezone.utc)

    def stop(self) -> None:
        """Stops the timer."""
        if self._start_time is not None:
            self._end_time = time.perf_counter()

    @property
    def duration(self) -> float:
        """Returns the elapsed time in seconds."""
        if self._start_time is None:
            return 0.0

        if self._end_time is None:
            return time.perf_counter() - self._start_time

        return self._end_time - self._start_time

    @property
    def duration_ms(self) -> int:
        return int(round(self.duration * 1000))

    def __repr__(self) -> str:
        return f"<RunTimers duration={self.duration:.4f}s>"
