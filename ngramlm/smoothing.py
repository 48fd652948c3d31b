"""
Smoothing Methods for N-gram Language Models

This module implements the absolute discounting and stupid backoff
estimators, and a factory that builds any model by method name.
"""

import logging
import random
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

from .corpus import UNKNOWN_TOKEN
from .counters import ConditionalWeightedMultiset, Context
from .errors import ConfigurationError
from .model import CountingModel, EmpiricalTrigramModel, EmpiricalUnigramModel, LanguageModel, check_parameter


logger = logging.getLogger(__name__)


class SmoothingMethod(Enum):
    """Available models."""
    UNIGRAM = "unigram"                    # Relative frequency baseline
    TRIGRAM = "trigram"                    # Linear interpolation of empirical distributions
    ABSOLUTE_BIGRAM = "absolute_bigram"    # Absolute discounting
    ABSOLUTE_TRIGRAM = "absolute_trigram"
    STUPID_BIGRAM = "stupid_bigram"        # Stupid backoff
    STUPID_TRIGRAM = "stupid_trigram"


def estimate_discount(table: ConditionalWeightedMultiset) -> Optional[float]:
    """
    Estimate the ideal absolute discount D = n1 / (n1 + 2 * n2).

    n1 and n2 are the numbers of (context, word) pairs seen exactly once and
    exactly twice. Returns None when the table has neither.
    """
    n1 = 0
    n2 = 0
    for _, counter in table.items():
        for count in counter.values():
            if count == 1:
                n1 += 1
            elif count == 2:
                n2 += 1
    if n1 + n2 == 0:
        return None
    return n1 / (n1 + 2 * n2)


def discount_table(table: ConditionalWeightedMultiset,
                   discount: float) -> Tuple[ConditionalWeightedMultiset, Dict[Context, float]]:
    """
    Apply absolute discounting to a table of raw counts.

    Args:
        table: Raw conditional counts
        discount: Amount subtracted from every count (floored at zero)

    Returns:
        Tuple of (discounted weights divided by the raw context total,
        reserved mass per context)
    """
    discounted = ConditionalWeightedMultiset()
    lambdas: Dict[Context, float] = {}

    for context, counter in table.items():
        total = counter.total()
        for word, count in counter.items():
            discounted.set_count(context, word, max(count - discount, 0.0) / total)
        lambdas[context] = discount * len(counter) / total

    return discounted, lambdas


def _resolve_discount(label: str, table: ConditionalWeightedMultiset, discount: Optional[float]) -> Tuple[Optional[float], float]:
    estimated = estimate_discount(table)
    logger.info("Estimated ideal %s discount is: %s", label, estimated)
    if discount is None:
        if estimated is None:
            raise ConfigurationError(
                f"{label} discount cannot be estimated from this corpus, pass one explicitly"
            )
        discount = estimated
    discount = check_parameter(f"{label} discount", discount)
    logger.info("Actual %s discount is: %s", label, discount)
    return estimated, discount


class AbsoluteDiscountBigramModel(CountingModel):
    """
    Absolute discounting for a bigram model, plus a single fictitious count
    for unknown words.

    P(w | v) = max(c(v, w) - D, 0) / c(v) + lambda(v) * P1(w)
    lambda(v) = D * |{w : c(v, w) > 0}| / c(v)

    A context never seen in training backs off entirely to P1. If the result
    is zero, P(UNKNOWN) is returned instead.
    """

    order = 2
    name = "absolute discount bigram"

    def __init__(self, sentences: Iterable[List[str]], discount: Optional[float] = None,
                 rng: Optional[random.Random] = None):
        super().__init__(rng)
        self._count_ngrams(sentences)
        self.word_counter.increment(UNKNOWN_TOKEN, 1.0)

        self._estimated_discount, self._discount = _resolve_discount('bigram', self.bigram_counter, discount)
        self.discounted_bigrams, self.lambdas = discount_table(self.bigram_counter, self._discount)
        self.training_stats['discount'] = self._discount

        self.bigram_counter.normalize()
        self.word_counter.normalize()

    @property
    def discount(self) -> float:
        return self._discount

    @property
    def estimated_discount(self) -> Optional[float]:
        return self._estimated_discount

    def word_probability(self, word: str, context: Tuple[str, ...]) -> float:
        bigram_context = context[-1:]
        bigram = self.discounted_bigrams.get_count(bigram_context, word)
        lambda_b = self.lambdas.get(bigram_context, 1.0)
        result = bigram + lambda_b * self.word_counter.get(word)
        if result == 0.0:
            return self.unknown_probability()
        return result


class AbsoluteDiscountTrigramModel(CountingModel):
    """
    Absolute discounting for a trigram model, plus a single fictitious count
    for unknown words.

    P(w | u, v) = d3(u, v, w) + lambda3(u, v) * (d2(v, w) + lambda2(v) * P1(w))

    where d3 and d2 are the discounted relative frequencies. The bigram and
    trigram discounts are estimated and overridden independently. Unseen
    contexts back off entirely to the next order down.
    """

    order = 3
    name = "absolute discount trigram"

    def __init__(self, sentences: Iterable[List[str]],
                 discount_b: Optional[float] = None, discount_t: Optional[float] = None,
                 rng: Optional[random.Random] = None):
        super().__init__(rng)
        self._count_ngrams(sentences)
        self.word_counter.increment(UNKNOWN_TOKEN, 1.0)

        self._estimated_discount_b, self._discount_b = _resolve_discount('bigram', self.bigram_counter, discount_b)
        self._estimated_discount_t, self._discount_t = _resolve_discount('trigram', self.trigram_counter, discount_t)
        self.discounted_bigrams, self.lambdas_b = discount_table(self.bigram_counter, self._discount_b)
        self.discounted_trigrams, self.lambdas_t = discount_table(self.trigram_counter, self._discount_t)
        self.training_stats['discount_b'] = self._discount_b
        self.training_stats['discount_t'] = self._discount_t

        self.trigram_counter.normalize()
        self.bigram_counter.normalize()
        self.word_counter.normalize()

    @property
    def discount_b(self) -> float:
        return self._discount_b

    @property
    def discount_t(self) -> float:
        return self._discount_t

    @property
    def estimated_discounts(self) -> Tuple[Optional[float], Optional[float]]:
        return self._estimated_discount_b, self._estimated_discount_t

    def word_probability(self, word: str, context: Tuple[str, ...]) -> float:
        pre_previous, previous = context
        trigram = self.discounted_trigrams.get_count((pre_previous, previous), word)
        bigram = self.discounted_bigrams.get_count((previous,), word)
        lambda_t = self.lambdas_t.get((pre_previous, previous), 1.0)
        lambda_b = self.lambdas_b.get((previous,), 1.0)

        result = trigram + lambda_t * (bigram + lambda_b * self.word_counter.get(word))
        if result == 0.0:
            return self.unknown_probability()
        return result


class StupidBackoffBigramModel(CountingModel):
    """
    Stupid backoff for a bigram model. UNKNOWN gets as many counts as there
    are words seen exactly once in training.

    Scores are not normalized: the bigram relative frequency if nonzero, else
    the unigram frequency times unigram_backoff, else P(UNKNOWN) times
    unknown_backoff.
    """

    order = 2
    name = "stupid backoff bigram"

    def __init__(self, sentences: Iterable[List[str]],
                 unigram_backoff: float = 0.1, unknown_backoff: float = 0.1,
                 rng: Optional[random.Random] = None):
        super().__init__(rng)
        self._unigram_backoff = check_parameter('unigram_backoff', unigram_backoff)
        self._unknown_backoff = check_parameter('unknown_backoff', unknown_backoff)
        logger.info("%s: unigram backoff: %s unknown backoff: %s",
                    self.name, self._unigram_backoff, self._unknown_backoff)

        self._count_ngrams(sentences)
        self._add_unknown_mass()

        self.bigram_counter.normalize()
        self.word_counter.normalize()

    def _add_unknown_mass(self) -> None:
        singletons = sum(1 for count in self.word_counter.values() if count == 1)
        logger.info("%s: number of unknown words: %d", self.name, singletons)
        self.word_counter.increment(UNKNOWN_TOKEN, singletons)
        self.training_stats['unknown_words'] = singletons

    @property
    def unigram_backoff(self) -> float:
        return self._unigram_backoff

    @property
    def unknown_backoff(self) -> float:
        return self._unknown_backoff

    def _backoff_to_unigram(self, word: str) -> float:
        unigram = self.word_counter.get(word)
        if unigram != 0.0:
            return unigram * self._unigram_backoff
        return self.unknown_probability() * self._unknown_backoff

    def word_probability(self, word: str, context: Tuple[str, ...]) -> float:
        bigram = self.bigram_counter.get_count(context[-1:], word)
        if bigram != 0.0:
            return bigram
        return self._backoff_to_unigram(word)


class StupidBackoffTrigramModel(StupidBackoffBigramModel):
    """
    Stupid backoff for a trigram model.

    The trigram relative frequency if nonzero, else the bigram frequency
    times bigram_backoff, then the unigram and unknown levels as in the
    bigram model.
    """

    order = 3
    name = "stupid backoff trigram"

    def __init__(self, sentences: Iterable[List[str]],
                 bigram_backoff: float = 0.5, unigram_backoff: float = 0.3,
                 unknown_backoff: float = 0.2, rng: Optional[random.Random] = None):
        self._bigram_backoff = check_parameter('bigram_backoff', bigram_backoff)
        super().__init__(sentences, unigram_backoff=unigram_backoff,
                         unknown_backoff=unknown_backoff, rng=rng)
        self.trigram_counter.normalize()

    @property
    def bigram_backoff(self) -> float:
        return self._bigram_backoff

    def word_probability(self, word: str, context: Tuple[str, ...]) -> float:
        pre_previous, previous = context
        trigram = self.trigram_counter.get_count((pre_previous, previous), word)
        if trigram != 0.0:
            return trigram
        bigram = self.bigram_counter.get_count((previous,), word)
        if bigram != 0.0:
            return bigram * self._bigram_backoff
        return self._backoff_to_unigram(word)


MODEL_CLASSES = {
    SmoothingMethod.UNIGRAM: EmpiricalUnigramModel,
    SmoothingMethod.TRIGRAM: EmpiricalTrigramModel,
    SmoothingMethod.ABSOLUTE_BIGRAM: AbsoluteDiscountBigramModel,
    SmoothingMethod.ABSOLUTE_TRIGRAM: AbsoluteDiscountTrigramModel,
    SmoothingMethod.STUPID_BIGRAM: StupidBackoffBigramModel,
    SmoothingMethod.STUPID_TRIGRAM: StupidBackoffTrigramModel,
}

# Tuned parameters used when the caller supplies none
DEFAULT_PARAMS: Dict[SmoothingMethod, Dict] = {
    SmoothingMethod.UNIGRAM: {},
    SmoothingMethod.TRIGRAM: {'lambda1': 0.5, 'lambda2': 0.3, 'unknown_first_occurrence': True},
    SmoothingMethod.ABSOLUTE_BIGRAM: {'discount': 0.4},
    SmoothingMethod.ABSOLUTE_TRIGRAM: {'discount_b': 0.4, 'discount_t': 0.4},
    SmoothingMethod.STUPID_BIGRAM: {'unigram_backoff': 0.1, 'unknown_backoff': 0.1},
    SmoothingMethod.STUPID_TRIGRAM: {'bigram_backoff': 0.5, 'unigram_backoff': 0.3, 'unknown_backoff': 0.2},
}

# The two parameters swept by a grid search, per method
GRID_PARAMETERS: Dict[SmoothingMethod, Tuple[str, ...]] = {
    SmoothingMethod.TRIGRAM: ('lambda1', 'lambda2'),
    SmoothingMethod.ABSOLUTE_BIGRAM: ('discount',),
    SmoothingMethod.ABSOLUTE_TRIGRAM: ('discount_b', 'discount_t'),
    SmoothingMethod.STUPID_BIGRAM: ('unigram_backoff', 'unknown_backoff'),
    SmoothingMethod.STUPID_TRIGRAM: ('bigram_backoff', 'unigram_backoff'),
}


def parse_method(method) -> SmoothingMethod:
    """Map a method name (or enum member) to a SmoothingMethod."""
    if isinstance(method, SmoothingMethod):
        return method
    try:
        return SmoothingMethod(str(method).lower())
    except ValueError:
        names = ', '.join(m.value for m in SmoothingMethod)
        raise ConfigurationError(f"Unknown model: {method!r} (choose from {names})")


def get_model(method, sentences: Iterable[List[str]],
              rng: Optional[random.Random] = None, **params) -> LanguageModel:
    """
    Factory function to train the model for a method.

    Args:
        method: SmoothingMethod or its name
        sentences: Training sentences
        rng: Random source for sentence generation
        **params: Overrides for DEFAULT_PARAMS of the method

    Returns:
        Trained LanguageModel
    """
    method = parse_method(method)
    defaults = DEFAULT_PARAMS[method]

    unknown = set(params) - set(defaults)
    if unknown:
        raise ConfigurationError(
            f"Unknown parameter(s) for {method.value}: {', '.join(sorted(unknown))}"
        )

    model_params = {**defaults, **params}
    return MODEL_CLASSES[method](sentences, rng=rng, **model_params)
