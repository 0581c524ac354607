"""
Timing Utilities
================

Lightweight profiling for the render pipeline. `time_it` records the
wall-clock duration of decorated calls into the `TimingStats` singleton,
which summarizes them per function (mean, median, std, min, max) for the
CLI's `--time_it` report.
"""

import functools
import threading
import time
from collections import defaultdict
from typing import Dict

import numpy as np

# main.py enables this for --time_it. Read at call time.
ENABLE_TIMING = False

_local = threading.local()


class TimingStats:
    """
    Singleton aggregating execution times across the application.

    Thread-safe: renders on different threads may record concurrently.
    """
    _instance = None
    _lock = threading.Lock()

    def __new__(cls):
        with cls._lock:
            if cls._instance is None:
                instance = super(TimingStats, cls).__new__(cls)
                instance.timings = defaultdict(list)
                instance.record_lock = threading.Lock()
                cls._instance = instance
        return cls._instance

    def add_timing(self, func_name: str, execution_time: float):
        """
        Records one measurement.

        Args:
            func_name (str): Qualified name of the timed function.
            execution_time (float): Duration in seconds.
        """
        with self.record_lock:
            self.timings[func_name].append(execution_time)

    def get_stats(self) -> Dict[str, Dict[str, float]]:
        """
        Summarizes everything recorded since the last reset.

        Returns:
            Dict[str, Dict[str, float]]: Function name to its statistics.
        """
        with self.record_lock:
            snapshot = {name: list(values) for name, values in self.timings.items() if values}
        return {
            name: {
                'mean': float(np.mean(values)),
                'median': float(np.median(values)),
                'std': float(np.std(values)),
                'min': float(np.min(values)),
                'max': float(np.max(values)),
                'calls': len(values),
                'total_time': float(np.sum(values)),
            }
            for name, values in snapshot.items()
        }

    def report(self) -> str:
        """Formats the statistics as a table, slowest function first."""
        stats = sorted(self.get_stats().items(), key=lambda item: item[1]['total_time'], reverse=True)
        lines = [f"{'function':<40} {'total(s)':<12} {'calls':<8} {'mean(s)':<10} {'std(s)':<10}"]
        for name, s in stats:
            lines.append(f"{name:<40} {s['total_time']:<12.4f} {s['calls']:<8} "
                         f"{s['mean']:<10.4f} {s['std']:<10.4f}")
        return "\n".join(lines)

    def reset(self):
        with self.record_lock:
            self.timings.clear()


def time_it(func):
    """
    Decorator recording the execution time of `func`.

    Recursive calls are only timed at the outermost level, tracked per thread.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        if not ENABLE_TIMING:
            return func(*args, **kwargs)
        key = func.__qualname__
        depths = getattr(_local, 'depths', None)
        if depths is None:
            depths = _local.depths = defaultdict(int)
        depths[key] += 1
        start = time.perf_counter() if depths[key] == 1 else None
        try:
            return func(*args, **kwargs)
        finally:
            if start is not None:
                TimingStats().add_timing(key, time.perf_counter() - start)
            depths[key] -= 1

    return wrapper
