"""
Weighted Counters

Count tables manipulated by the estimators. A WeightedMultiset maps a token to
a non-negative weight; a ConditionalWeightedMultiset maps a context tuple to a
WeightedMultiset. Neither holds any probabilistic logic of its own.
"""

from collections import Counter
from typing import Dict, Hashable, Iterator, Tuple

Context = Tuple[str, ...]


class WeightedMultiset(Counter):
    """
    Mapping from item to accumulated weight.

    Missing items weigh 0. Iteration follows insertion order, so sampling
    over the entries is reproducible.
    """

    def increment(self, key: Hashable, amount: float = 1.0) -> None:
        """Add amount to the weight of key. The result is floored at zero."""
        self[key] = max(self[key] + amount, 0.0)

    def get(self, key: Hashable, default: float = 0.0) -> float:
        return super().get(key, default)

    def total(self) -> float:
        return float(sum(self.values()))

    def scale(self, factor: float) -> None:
        for key in self:
            self[key] *= factor

    def normalize(self) -> None:
        """Divide every weight by the total mass. An empty or zero-mass multiset is left as is."""
        total = self.total()
        if total > 0:
            self.scale(1.0 / total)


class ConditionalWeightedMultiset:
    """
    Mapping from a context to a WeightedMultiset of continuations.

    Reading an absent context returns an empty multiset without inserting it,
    so lookups never grow the table after training.
    """

    def __init__(self):
        self._counters: Dict[Context, WeightedMultiset] = {}

    def increment(self, context: Context, key: Hashable, amount: float = 1.0) -> None:
        counter = self._counters.get(context)
        if counter is None:
            counter = self._counters[context] = WeightedMultiset()
        counter.increment(key, amount)

    def set_count(self, context: Context, key: Hashable, value: float) -> None:
        counter = self._counters.get(context)
        if counter is None:
            counter = self._counters[context] = WeightedMultiset()
        counter[key] = value

    def get_counter(self, context: Context) -> WeightedMultiset:
        return self._counters.get(context, WeightedMultiset())

    def get_count(self, context: Context, key: Hashable) -> float:
        counter = self._counters.get(context)
        if counter is None:
            return 0.0
        return counter.get(key)

    def total(self, context: Context) -> float:
        counter = self._counters.get(context)
        return counter.total() if counter is not None else 0.0

    def contexts(self) -> Iterator[Context]:
        return iter(self._counters)

    def items(self):
        return self._counters.items()

    def normalize(self) -> None:
        """Normalize each conditional distribution independently."""
        for counter in self._counters.values():
            counter.normalize()

    def __contains__(self, context: Context) -> bool:
        return context in self._counters

    def __len__(self) -> int:
        return len(self._counters)

    def __iter__(self) -> Iterator[Context]:
        return iter(self._counters)
