"""
Typed Production Grammar
========================

A grammar is a table mapping each type to its ordered list of productions.
The table is pure data: synthesis, compilation and rendering all read it,
none of them hard-code a particular set of rules.

The `TerminationAnalyzer` computes, for every type, the minimum number of
expansion steps needed to bottom out in terminals:

    steps(production) = 0                                  if terminal
                      = 1 + max(steps(arg) for arg in args) otherwise
    steps(type)       = min(steps(p) for p in productions(type))

Types may be mutually recursive, so the values are found as a least fixed
point: every type starts at infinity and the table is relaxed until nothing
changes (shortest paths over the grammar hypergraph). Values only ever
decrease and are non-negative integers once finite, so the loop is bounded.
"""

import logging
import math
from typing import Dict, Iterable, Mapping, Sequence, Tuple

from framework import GrammarError, Production

logger = logging.getLogger(__name__)

INFINITE_STEPS = math.inf


class TerminationAnalyzer:
    """
    Memoized steps-to-terminal table for a fixed grammar.

    The table is computed eagerly on construction and is read-only
    afterwards, so concurrent readers need no locking.
    """
    def __init__(self, productions: Mapping[str, Sequence[Production]]):
        self._productions = productions
        self._cache: Dict[str, float] = self._solve()

    def _solve(self) -> Dict[str, float]:
        steps = {type_name: INFINITE_STEPS for type_name in self._productions}
        changed = True
        passes = 0
        while changed:
            changed = False
            passes += 1
            for type_name, options in self._productions.items():
                best = min((self._production_steps(p, steps) for p in options), default=INFINITE_STEPS)
                if best < steps[type_name]:
                    steps[type_name] = best
                    changed = True
        logger.debug(f"Steps-to-terminal converged after {passes} passes: {steps}")
        return steps

    @staticmethod
    def _production_steps(production: Production, steps: Mapping[str, float]) -> float:
        if production.is_terminal:
            return 0
        return 1 + max(steps[arg] for arg in production.args)

    def steps_to_terminal(self, type_name: str) -> float:
        try:
            return self._cache[type_name]
        except KeyError:
            raise ValueError(f"Unknown type '{type_name}'") from None

    def production_steps(self, production: Production) -> float:
        return self._production_steps(production, self._cache)

    def unreachable_types(self) -> Tuple[str, ...]:
        return tuple(t for t, s in self._cache.items() if s == INFINITE_STEPS)


class Grammar:
    """
    Validated production table plus its termination analysis.

    Raises:
        GrammarError: If an argument type has no productions, a production is
            filed under the wrong type, or some type can never reach a terminal.
    """
    def __init__(self, productions: Iterable[Production]):
        table: Dict[str, list] = {}
        for production in productions:
            table.setdefault(production.type, []).append(production)
        self._table: Dict[str, Tuple[Production, ...]] = {t: tuple(ps) for t, ps in table.items()}

        if not self._table:
            raise GrammarError("Grammar has no productions")

        names = [p.name for ps in self._table.values() for p in ps]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise GrammarError(f"Duplicate production names: {duplicates}")

        for type_name, options in self._table.items():
            for production in options:
                missing = [arg for arg in production.args if arg not in self._table]
                if missing:
                    raise GrammarError(
                        f"Production '{production.name}' of type '{type_name}' "
                        f"references types with no productions: {missing}"
                    )

        self.analyzer = TerminationAnalyzer(self._table)
        unreachable = self.analyzer.unreachable_types()
        if unreachable:
            raise GrammarError(f"Types can never reach a terminal production: {list(unreachable)}")

    @property
    def types(self) -> Tuple[str, ...]:
        return tuple(self._table)

    def productions_for(self, type_name: str) -> Tuple[Production, ...]:
        try:
            return self._table[type_name]
        except KeyError:
            raise ValueError(f"Unknown type '{type_name}'") from None

    def production(self, name: str) -> Production:
        for options in self._table.values():
            for production in options:
                if production.name == name:
                    return production
        raise KeyError(name)

    def steps_to_terminal(self, type_name: str) -> int:
        return self.analyzer.steps_to_terminal(type_name)

    def production_steps(self, production: Production) -> int:
        return self.analyzer.production_steps(production)

    def min_depth_budget(self, type_name: str) -> int:
        """Smallest depth budget that can synthesize `type_name`."""
        return self.steps_to_terminal(type_name) + 1

    def __repr__(self) -> str:
        summary = ", ".join(f"{t}: {len(ps)}" for t, ps in self._table.items())
        return f"Grammar({summary})"
