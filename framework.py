"""
Core Framework Components
=========================

This module defines the fundamental data structures and contracts shared by
the generator: grammar productions, synthesized expression trees, the random
source interface and the event logger interface. It also holds the error
taxonomy so that every layer raises the same exception types.

Classes:
    Production: One typed grammar rule.
    ExpressionNode: Immutable synthesized expression tree.
    RandomSource: Contract for a reproducible stream of floats in [0, 1).
    Logger: Contract for structured event logging.
"""

import abc
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple


class GrammarError(ValueError):
    """A grammar is not closed or some type can never reach a terminal."""


class BudgetExhaustedError(RuntimeError):
    """No production of the requested type fits the remaining depth budget."""


@dataclass(frozen=True)
class Production:
    """
    A single grammar rule.

    A production belongs to exactly one type and lists the types of its
    arguments in order. Productions with no arguments are terminals.

    Attributes:
        name (str): Short identifier, unique within the grammar.
        type (str): The type this production produces.
        args (Tuple[str, ...]): Argument types, in order.
        render (Callable[..., str]): Combines the rendered parameters and
            rendered arguments into the text of this node.
        apply (Callable[..., Any]): Numeric implementation. Terminals are
            called as ``apply(x, y, *params)``; other productions as
            ``apply(*params, *operands)``.
        sample (Optional[Callable]): Draws the baked parameters of this node
            from the random source at synthesis time. ``None`` means the
            production carries no parameters.
    """
    name: str
    type: str
    args: Tuple[str, ...]
    render: Callable[..., str] = field(compare=False)
    apply: Callable[..., Any] = field(compare=False)
    sample: Optional[Callable[['RandomSource'], Tuple[float, ...]]] = field(default=None, compare=False)

    @property
    def is_terminal(self) -> bool:
        return not self.args


@dataclass(frozen=True)
class ExpressionNode:
    """
    A synthesized expression: a production plus its argument sub-trees.

    Nodes are immutable once built. ``params`` holds values drawn during
    synthesis (e.g. random constants) so evaluation never touches the
    random source again.
    """
    production: Production
    children: Tuple['ExpressionNode', ...] = ()
    params: Tuple[float, ...] = ()

    def __post_init__(self):
        if len(self.children) != len(self.production.args):
            raise ValueError(
                f"Production '{self.production.name}' expects {len(self.production.args)} "
                f"arguments, got {len(self.children)}"
            )

    @property
    def type(self) -> str:
        return self.production.type

    def to_string(self) -> str:
        rendered_params = [repr(float(p)) for p in self.params]
        rendered_children = [child.to_string() for child in self.children]
        return self.production.render(*rendered_params, *rendered_children)

    def to_rpn(self) -> List['ExpressionNode']:
        """Post-order list of nodes; operands always precede their operator."""
        sequence = []
        def post_order_traverse(node):
            for child in node.children:
                post_order_traverse(child)
            sequence.append(node)
        post_order_traverse(self)
        return sequence

    def depth(self) -> int:
        """Nesting depth, counting a lone terminal as 1."""
        return 1 + max((child.depth() for child in self.children), default=0)

    def node_count(self) -> int:
        return 1 + sum(child.node_count() for child in self.children)

    def __str__(self) -> str:
        return self.to_string()


class RandomSource(abc.ABC):
    """
    Abstract base class for the random stream driving synthesis.

    Implementations must be fully determined by their construction
    arguments so that the same seed always reproduces the same image.
    """
    @abc.abstractmethod
    def next(self) -> float:
        """
        Advances the stream.

        Returns:
            float: The next value, in [0, 1).
        """
        pass


class Logger(abc.ABC):
    """
    Abstract base class for event logging.

    Defines the interface for recording render events to various
    outputs (CSV files, fan-out composites, ...).
    """
    @abc.abstractmethod
    def log_event(self, event_type: str, data: Dict[str, Any]):
        """
        Logs a specific event.

        Args:
            event_type (str): The category of the event (e.g., 'render').
            data (Dict[str, Any]): Key-value pairs of data associated with the event.
        """
        pass

    @abc.abstractmethod
    def close(self):
        """
        Finalizes the logging process, flushing buffers and closing files.
        """
        pass
