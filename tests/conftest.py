from typing import Any, Dict, List, Sequence, Tuple

import pytest

from framework import ExpressionNode, Logger, RandomSource
from genart import DEFAULT_GRAMMAR


class ScriptedRandom(RandomSource):
    """Replays a fixed list of draws, then fails loudly if over-consumed."""
    def __init__(self, values: Sequence[float]):
        self.values = list(values)
        self.consumed = 0

    def next(self) -> float:
        if self.consumed >= len(self.values):
            raise AssertionError("ScriptedRandom exhausted")
        value = self.values[self.consumed]
        self.consumed += 1
        return value


class RecordingLogger(Logger):
    def __init__(self):
        self.events: List[Tuple[str, Dict[str, Any]]] = []
        self.closed = False

    def log_event(self, event_type: str, data: Dict[str, Any]):
        self.events.append((event_type, dict(data)))

    def close(self):
        self.closed = True


def node(name: str, *children: ExpressionNode, params: Tuple[float, ...] = ()) -> ExpressionNode:
    return ExpressionNode(DEFAULT_GRAMMAR.production(name), tuple(children), params)


def constant(value: float) -> ExpressionNode:
    return node('rand', params=(value,))


@pytest.fixture
def recording_logger():
    return RecordingLogger()
