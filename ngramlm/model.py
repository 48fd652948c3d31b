"""
N-gram Language Model Implementation

This module contains the LanguageModel base class shared by every estimator,
together with the empirical (relative frequency) models. The smoothed
estimators live in smoothing.py.
"""

import logging
import math
import random
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional, Tuple

from .corpus import STOP_TOKEN, UNKNOWN_TOKEN, add_sentence_markers
from .counters import ConditionalWeightedMultiset, WeightedMultiset
from .errors import ComputationError, ConfigurationError, DataError


logger = logging.getLogger(__name__)

# Generated sentences stop once they grow past this many tokens
MAX_SENTENCE_LENGTH = 30

PROBABILITY_TOLERANCE = 1e-9


def sample(distribution: WeightedMultiset, rng: random.Random) -> str:
    """
    Draw a token by inverse-CDF sampling.

    Entries are walked in insertion order; the first token whose cumulative
    weight exceeds a uniform draw is returned. If the weights sum to less than
    the draw, UNKNOWN_TOKEN is returned.
    """
    threshold = rng.random()
    cumulative = 0.0
    for word, weight in distribution.items():
        cumulative += weight
        if cumulative > threshold:
            return word
    return UNKNOWN_TOKEN


def check_parameter(name: str, value: float, low: float = 0.0, high: float = 1.0) -> float:
    """Validate that a model parameter lies in [low, high]."""
    try:
        value = float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{name} must be a number, got {value!r}")
    if math.isnan(value) or value < low or value > high:
        raise ConfigurationError(f"{name} must be in [{low}, {high}], got {value}")
    return value


class LanguageModel(ABC):
    """
    Base class for all language models.

    A model exposes two capabilities: the probability of a sentence and the
    generation of a random sentence. Subclasses provide the conditional
    probability of a word and the distributions to sample from.

    Attributes:
        order: The n of the model (1 unigram, 2 bigram, 3 trigram)
        training_stats: Dictionary describing the trained model
    """

    order: int = 1
    name: str = "language model"

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()
        self.training_stats: Dict = {}

    @abstractmethod
    def word_probability(self, word: str, context: Tuple[str, ...]) -> float:
        """
        Calculate P(word | context).

        Args:
            word: The word to score
            context: Tuple of the (order - 1) preceding tokens

        Returns:
            Probability (or backoff score) of the word
        """

    @abstractmethod
    def generation_distribution(self, context: Tuple[str, ...]) -> WeightedMultiset:
        """Return the distribution sampled for the next word after context (0 to order-1 tokens)."""

    def checked_probability(self, word: str, context: Tuple[str, ...]) -> float:
        """Return word_probability, raising ComputationError if it is not a probability."""
        value = self.word_probability(word, context)
        if math.isnan(value) or value < 0.0 or value > 1.0 + PROBABILITY_TOLERANCE:
            raise ComputationError(
                f"{self.name}: P({word} | {' '.join(context)}) = {value} is not a probability",
                ngram=context + (word,), value=value
            )
        return value

    def sentence_log_probability(self, sentence: List[str]) -> float:
        """
        Calculate log2 P(sentence), including the stop token.

        Returns float('-inf') if any token has zero probability.
        """
        marked = add_sentence_markers(sentence, self.order)
        total = 0.0
        for i in range(self.order - 1, len(marked)):
            context = tuple(marked[i - self.order + 1:i])
            prob = self.checked_probability(marked[i], context)
            if prob == 0.0:
                return float('-inf')
            total += math.log2(prob)
        return total

    def sentence_probability(self, sentence: List[str]) -> float:
        """Calculate P(sentence). Raises ComputationError on an invalid conditional probability."""
        return 2.0 ** self.sentence_log_probability(sentence)

    def generate_word(self, context: Tuple[str, ...] = ()) -> str:
        return sample(self.generation_distribution(context), self.rng)

    def generate_sentence(self) -> List[str]:
        """
        Generate a random sentence.

        The first word is drawn from the unigram distribution and each later
        word from the distribution conditioned on the trailing context.
        Generation ends when the stop token is drawn (it is not included)
        or the sentence grows past MAX_SENTENCE_LENGTH tokens.
        """
        sentence = []
        word = self.generate_word(())
        while word != STOP_TOKEN and len(sentence) <= MAX_SENTENCE_LENGTH:
            sentence.append(word)
            context = tuple(sentence[-(self.order - 1):]) if self.order > 1 else ()
            word = self.generate_word(context)
        return sentence

    @property
    def vocabulary(self) -> List[str]:
        return list(self.generation_distribution(()))

    def __repr__(self) -> str:
        return f"{type(self).__name__}(order={self.order})"


class CountingModel(LanguageModel):
    """
    Base class for models trained by counting n-grams over padded sentences.

    Fills word_counter, bigram_counter and trigram_counter (as far as the
    order requires) with raw counts. Contexts are token tuples.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        super().__init__(rng)
        self.word_counter = WeightedMultiset()
        self.bigram_counter = ConditionalWeightedMultiset()
        self.trigram_counter = ConditionalWeightedMultiset()

    def _count_ngrams(self, sentences: Iterable[List[str]], unknown_first_occurrence: bool = False) -> int:
        """
        Count n-grams in the training data.

        Args:
            sentences: Tokenized training sentences
            unknown_first_occurrence: Record the first occurrence of each word
                with zero unigram weight

        Returns:
            Number of first occurrences withheld from the unigram counts
        """
        unknown_words = 0
        num_sentences = 0
        num_tokens = 0

        for sentence in sentences:
            marked = add_sentence_markers(sentence, self.order)
            num_sentences += 1
            num_tokens += len(sentence)

            for i in range(self.order - 1, len(marked)):
                word = marked[i]
                if unknown_first_occurrence and word not in self.word_counter:
                    self.word_counter[word] = 0.0
                    unknown_words += 1
                else:
                    self.word_counter.increment(word)
                if self.order >= 2:
                    self.bigram_counter.increment((marked[i - 1],), word)
                if self.order >= 3:
                    self.trigram_counter.increment((marked[i - 2], marked[i - 1]), word)

        if num_sentences == 0:
            raise DataError(f"{self.name}: no training sentences")

        self.training_stats = {
            'model': self.name,
            'order': self.order,
            'num_sentences': num_sentences,
            'total_tokens': num_tokens,
            'vocab_size': len(self.word_counter),
            'bigram_contexts': len(self.bigram_counter),
            'trigram_contexts': len(self.trigram_counter),
        }
        return unknown_words

    def unknown_probability(self) -> float:
        return self.word_counter.get(UNKNOWN_TOKEN)

    def generation_distribution(self, context: Tuple[str, ...]) -> WeightedMultiset:
        if not context:
            return self.word_counter
        if len(context) == 1:
            return self.bigram_counter.get_counter(context)
        return self.trigram_counter.get_counter(context[-2:])


class EmpiricalUnigramModel(CountingModel):
    """
    Relative-frequency unigram model with one fictitious count for unknown words.

    P(w) = c(w) / N, and P(UNKNOWN) for words never seen in training.
    """

    order = 1
    name = "empirical unigram"

    def __init__(self, sentences: Iterable[List[str]], rng: Optional[random.Random] = None):
        super().__init__(rng)
        self._count_ngrams(sentences)
        self.word_counter.increment(UNKNOWN_TOKEN, 1.0)
        self.word_counter.normalize()

    def word_probability(self, word: str, context: Tuple[str, ...] = ()) -> float:
        prob = self.word_counter.get(word)
        if prob == 0.0:
            return self.unknown_probability()
        return prob


class EmpiricalTrigramModel(CountingModel):
    """
    Linearly interpolated trigram model.

    P(w | u, v) = lambda1 * P3(w | u, v) + lambda2 * P2(w | v)
                  + (1 - lambda1 - lambda2) * P1(w)

    Each table is a relative-frequency distribution. An unseen w gets
    P1(w) = P(UNKNOWN). With unknown_first_occurrence the first occurrence of
    every word is withheld from the unigram counts and credited to UNKNOWN
    instead; words never seen again then share the UNKNOWN mass.
    """

    order = 3
    name = "empirical interpolated trigram"

    def __init__(self, sentences: Iterable[List[str]],
                 lambda1: float = 0.5, lambda2: float = 0.3,
                 unknown_first_occurrence: bool = True,
                 rng: Optional[random.Random] = None):
        super().__init__(rng)
        self._lambda1 = check_parameter('lambda1', lambda1)
        self._lambda2 = check_parameter('lambda2', lambda2)
        if self._lambda1 + self._lambda2 > 1.0:
            raise ConfigurationError(
                f"lambda1 + lambda2 must not exceed 1, got {self._lambda1 + self._lambda2}"
            )

        unknown_words = self._count_ngrams(sentences, unknown_first_occurrence)
        logger.info("%s: number of unknown words: %d", self.name, unknown_words)
        self.word_counter.increment(UNKNOWN_TOKEN, max(unknown_words, 1))
        self.training_stats['unknown_words'] = unknown_words

        self.trigram_counter.normalize()
        self.bigram_counter.normalize()
        self.word_counter.normalize()
        self._share_unknown_mass()

    def _share_unknown_mass(self) -> None:
        """
        Split P(UNKNOWN) evenly between UNKNOWN and the words whose only
        occurrence was withheld, so that the unigram table still sums to one.
        """
        withheld = [word for word, weight in self.word_counter.items() if weight == 0.0]
        if not withheld:
            return
        share = self.word_counter[UNKNOWN_TOKEN] / (len(withheld) + 1)
        for word in withheld:
            self.word_counter[word] = share
        self.word_counter[UNKNOWN_TOKEN] = share

    @property
    def lambda1(self) -> float:
        return self._lambda1

    @property
    def lambda2(self) -> float:
        return self._lambda2

    def word_probability(self, word: str, context: Tuple[str, ...]) -> float:
        pre_previous, previous = context
        trigram = self.trigram_counter.get_count((pre_previous, previous), word)
        bigram = self.bigram_counter.get_count((previous,), word)
        unigram = self.word_counter.get(word)
        if unigram == 0.0:
            unigram = self.unknown_probability()
        return (self._lambda1 * trigram + self._lambda2 * bigram
                + (1.0 - self._lambda1 - self._lambda2) * unigram)
