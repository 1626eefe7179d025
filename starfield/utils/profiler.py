"""Lightweight wall-clock timers.

Used to measure:
    - Simulation build (star sampling + reference disc)
    - Per-frame render time
    - Sink write time

Timings end up in the run manifest and in DEBUG logs.
"""

import logging
import time
from contextlib import contextmanager
from typing import Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


@contextmanager
def timer(name: str, sink: Optional[Callable[[str, float], None]] = None):
    """Context manager for wall-clock timing.

    Parameters
    ----------
    name : str
        Timer name (for logging/display)
    sink : Optional[Callable[[str, float], None]]
        Optional callback(name, elapsed_seconds).
        If None, the elapsed time is logged at DEBUG level.

    Examples
    --------
    >>> with timer("render_frame"):
    ...     frame = renderer.render(0)

    >>> timings = TimingAccumulator()
    >>> with timer("render", sink=timings.add):
    ...     frame = renderer.render(0)
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed = time.perf_counter() - start
        if sink is not None:
            sink(name, elapsed)
        else:
            logger.debug(f"{name}: {elapsed:.3f} s")


class TimingAccumulator:
    """Collects named timings and summarizes them for the run manifest."""

    def __init__(self):
        self.samples: Dict[str, List[float]] = {}

    def add(self, name: str, elapsed: float) -> None:
        self.samples.setdefault(name, []).append(float(elapsed))

    def summary(self) -> Dict[str, Dict[str, float]]:
        """Return {name: {count, total_s, mean_s, max_s}}."""
        out = {}
        for name, values in self.samples.items():
            total = sum(values)
            out[name] = {
                'count': len(values),
                'total_s': round(total, 6),
                'mean_s': round(total / len(values), 6),
                'max_s': round(max(values), 6),
            }
        return out
