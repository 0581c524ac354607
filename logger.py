"""
Render Event Logging
====================

Concrete implementations of the `Logger` abstract base class.

Thread-safety design:
    CSVLogger uses a producer/consumer queue with a dedicated writer
    thread, so rendering never blocks on file I/O. The daemon thread drains
    the queue and appends rows in order.

Classes:
    CSVLogger: Thread-safe CSV writer with event-type filtering.
    ConsoleLogger: Forwards events to the standard `logging` module.
    CompositeLogger: Fan-out to multiple loggers.
"""

import csv
import logging
import queue
import threading
from datetime import datetime
from typing import Any, Dict, List, Optional

from framework import Logger

RENDER_FIELDS = [
    'timestamp', 'event_type', 'seed', 'label', 'width', 'height',
    'depth', 'node_count', 'expression', 'duration', 'image_path',
]


class CSVLogger(Logger):
    """
    Thread-safe CSV logger with event-type filtering.

    Each instance owns one file and one writer thread. Fields not listed in
    `fieldnames` are dropped; missing ones are written empty.
    """
    def __init__(self, log_file_path: str, fieldnames: Optional[List[str]] = None,
                 allowed_event_types: Optional[List[str]] = None):
        self.log_file_path = log_file_path
        self.fieldnames = list(fieldnames or RENDER_FIELDS)
        self.allowed_event_types = allowed_event_types
        self._fieldname_set = set(self.fieldnames)

        self._queue = queue.Queue()
        self._stop_event = threading.Event()
        self._closed = False

        with open(self.log_file_path, 'w', newline='') as f:
            csv.DictWriter(f, fieldnames=self.fieldnames).writeheader()

        self._thread = threading.Thread(target=self._process_queue, daemon=True)
        self._thread.start()

    def _process_queue(self):
        """Writer thread: appends queued rows until stopped and drained."""
        while not self._stop_event.is_set() or not self._queue.empty():
            try:
                row = self._queue.get(timeout=0.1)
            except queue.Empty:
                continue
            try:
                with open(self.log_file_path, 'a', newline='') as f:
                    csv.DictWriter(f, fieldnames=self.fieldnames).writerow(row)
            finally:
                self._queue.task_done()

    def log_event(self, event_type: str, data: Dict[str, Any]):
        if self._closed:
            raise RuntimeError(f"CSVLogger for {self.log_file_path} is closed")
        if self.allowed_event_types and event_type not in self.allowed_event_types:
            return

        entry = {'timestamp': datetime.now().isoformat(), 'event_type': event_type}
        entry.update(data)
        row = {k: v for k, v in entry.items() if k in self._fieldname_set}
        for field in self.fieldnames:
            row.setdefault(field, None)
        self._queue.put(row)

    def close(self):
        """Drains the queue, then stops the writer thread. Safe to call twice."""
        if self._closed:
            return
        self._closed = True
        self._queue.join()
        self._stop_event.set()
        self._thread.join()


class ConsoleLogger(Logger):
    """Writes each event as one line through a standard library logger."""
    def __init__(self, name: str = 'genart.events', level: int = logging.INFO):
        self.logger = logging.getLogger(name)
        self.level = level

    def log_event(self, event_type: str, data: Dict[str, Any]):
        details = " ".join(f"{k}={v}" for k, v in data.items() if k != 'expression')
        self.logger.log(self.level, f"[{event_type}] {details}")
        if 'expression' in data:
            self.logger.debug(f"[{event_type}] expression={data['expression']}")

    def close(self):
        pass


class CompositeLogger(Logger):
    """
    A logger that delegates to a list of other loggers.
    """
    def __init__(self, loggers: List[Logger]):
        self.loggers = loggers

    def log_event(self, event_type: str, data: Dict[str, Any]):
        for logger in self.loggers:
            logger.log_event(event_type, data)

    def close(self):
        for logger in self.loggers:
            logger.close()
