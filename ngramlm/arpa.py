"""
ARPA Backoff Models

Loads a pretrained backoff model in the ARPA text format (as written by SRILM
and similar toolkits) and exposes it through the LanguageModel interface, so
that it can be evaluated alongside the models trained here.
"""

import logging
import random
import re
from pathlib import Path
from typing import Dict, Optional, Tuple, Union

from .corpus import START_TOKEN, STOP_TOKEN
from .counters import WeightedMultiset
from .errors import DataError
from .model import LanguageModel


logger = logging.getLogger(__name__)

ARPA_START = "<s>"
ARPA_STOP = "</s>"
ARPA_UNKNOWN = "<unk>"

_SECTION = re.compile(r'^\\(\d+)-grams:$')
_COUNT = re.compile(r'^ngram\s+(\d+)\s*=\s*(\d+)$')


class ArpaLanguageModel(LanguageModel):
    """
    Backoff n-gram model read from an ARPA file.

    P(w | h) = 10^logp(h, w) if the n-gram is listed, otherwise
    10^bow(h) * P(w | h[1:]). Words outside the model's vocabulary map to
    <unk> when the model has it and get probability 0 otherwise.
    """

    name = "arpa"

    def __init__(self, log_probs: Dict[Tuple[str, ...], float],
                 backoffs: Dict[Tuple[str, ...], float],
                 rng: Optional[random.Random] = None):
        super().__init__(rng)
        self.log_probs = log_probs
        self.backoffs = backoffs
        self.order = max((len(ngram) for ngram in log_probs), default=1)
        self.vocab = [ngram[0] for ngram in log_probs if len(ngram) == 1]
        self._known = set(self.vocab)
        self.training_stats = {
            'model': self.name,
            'order': self.order,
            'vocab_size': len(self.vocab),
            'ngrams': len(log_probs),
        }

    @classmethod
    def from_file(cls, path: Union[str, Path], rng: Optional[random.Random] = None) -> 'ArpaLanguageModel':
        """Load a model from an ARPA file."""
        path = Path(path)
        if not path.is_file():
            raise DataError(f"ARPA file not found: {path}")

        declared: Dict[int, int] = {}
        log_probs: Dict[Tuple[str, ...], float] = {}
        backoffs: Dict[Tuple[str, ...], float] = {}
        n = 0

        with open(path, encoding='utf-8') as f:
            for line_number, line in enumerate(f, start=1):
                line = line.strip()
                if not line or line == '\\data\\':
                    continue
                if line == '\\end\\':
                    break

                count_match = _COUNT.match(line)
                if count_match:
                    declared[int(count_match.group(1))] = int(count_match.group(2))
                    continue

                section_match = _SECTION.match(line)
                if section_match:
                    n = int(section_match.group(1))
                    continue

                fields = line.split()
                if n == 0 or len(fields) not in (n + 1, n + 2):
                    raise DataError(f"{path}:{line_number}: malformed ARPA line: {line!r}")
                try:
                    ngram = tuple(fields[1:n + 1])
                    log_probs[ngram] = float(fields[0])
                    if len(fields) == n + 2:
                        backoffs[ngram] = float(fields[n + 1])
                except ValueError:
                    raise DataError(f"{path}:{line_number}: malformed ARPA line: {line!r}")

        for order, expected in declared.items():
            found = sum(1 for ngram in log_probs if len(ngram) == order)
            if found != expected:
                logger.warning("%s: header declares %d %d-grams, found %d", path, expected, order, found)

        if not log_probs:
            raise DataError(f"{path}: no n-grams found")

        logger.info("Loaded ARPA model from %s (order %d, %d n-grams)",
                    path, max(len(ngram) for ngram in log_probs), len(log_probs))
        return cls(log_probs, backoffs, rng=rng)

    def _to_arpa(self, token: str) -> str:
        if token == START_TOKEN:
            return ARPA_START
        if token == STOP_TOKEN:
            return ARPA_STOP
        if token not in self._known and ARPA_UNKNOWN in self._known:
            return ARPA_UNKNOWN
        return token

    def _log10_probability(self, word: str, context: Tuple[str, ...]) -> Optional[float]:
        ngram = context + (word,)
        if ngram in self.log_probs:
            return self.log_probs[ngram]
        if not context:
            return None
        lower = self._log10_probability(word, context[1:])
        if lower is None:
            return None
        return self.backoffs.get(context, 0.0) + lower

    def word_probability(self, word: str, context: Tuple[str, ...]) -> float:
        word = self._to_arpa(word)
        context = tuple(self._to_arpa(token) for token in context[-(self.order - 1):]) if self.order > 1 else ()
        log_prob = self._log10_probability(word, context)
        if log_prob is None:
            return 0.0
        return 10.0 ** log_prob

    def generation_distribution(self, context: Tuple[str, ...]) -> WeightedMultiset:
        distribution = WeightedMultiset()
        for word in self.vocab:
            if word == ARPA_START:
                continue
            token = STOP_TOKEN if word == ARPA_STOP else word
            distribution[token] = self.word_probability(token, context)
        return distribution
