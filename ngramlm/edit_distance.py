"""
Edit Distance

Levenshtein alignment between two token sequences, used to score speech
recognition hypotheses against the gold transcription.
"""

from typing import Dict, Hashable, Sequence, Tuple


class EditDistance:
    """
    Minimum edit distance with configurable operation costs.

    The alignment table has (len(first) + 1) x (len(second) + 1) cells and is
    filled once per pair; results are cached on the instance, so scoring the
    same hypothesis against the same gold sentence twice is a lookup.
    """

    def __init__(self, insert_cost: float = 1.0, delete_cost: float = 1.0,
                 substitute_cost: float = 1.0):
        self.insert_cost = insert_cost
        self.delete_cost = delete_cost
        self.substitute_cost = substitute_cost
        self._cache: Dict[Tuple[Tuple[Hashable, ...], Tuple[Hashable, ...]], float] = {}

    def distance(self, first: Sequence[Hashable], second: Sequence[Hashable]) -> float:
        """
        Calculate the cost of aligning first with second.

        A token of first left unmatched costs insert_cost, a token of second
        left unmatched costs delete_cost.

        Args:
            first: Reference token sequence
            second: Hypothesis token sequence

        Returns:
            Minimum total cost of insertions, deletions and substitutions
        """
        key = (tuple(first), tuple(second))
        cached = self._cache.get(key)
        if cached is None:
            cached = self._cache[key] = self._align(*key)
        return cached

    def _align(self, first: Tuple[Hashable, ...], second: Tuple[Hashable, ...]) -> float:
        # best[i][j] is the cost of aligning first[i:] with second[j:]
        rows, cols = len(first), len(second)
        best = [[0.0] * (cols + 1) for _ in range(rows + 1)]

        for i in range(rows - 1, -1, -1):
            best[i][cols] = best[i + 1][cols] + self.insert_cost
        for j in range(cols - 1, -1, -1):
            best[rows][j] = best[rows][j + 1] + self.delete_cost

        for i in range(rows - 1, -1, -1):
            for j in range(cols - 1, -1, -1):
                if first[i] == second[j]:
                    diagonal = best[i + 1][j + 1]
                else:
                    diagonal = self.substitute_cost + best[i + 1][j + 1]
                best[i][j] = min(
                    self.insert_cost + best[i + 1][j],
                    self.delete_cost + best[i][j + 1],
                    diagonal,
                )
        return best[0][0]

    def clear_cache(self) -> None:
        self._cache.clear()

    def __call__(self, first: Sequence[Hashable], second: Sequence[Hashable]) -> float:
        return self.distance(first, second)
