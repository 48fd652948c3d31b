"""
N-gram Language Model Package

Smoothed n-gram language models (empirical interpolation, absolute
discounting, stupid backoff) and their evaluation by perplexity and by
word error rate on speech recognition N-best lists.
"""

from .arpa import ArpaLanguageModel
from .counters import ConditionalWeightedMultiset, WeightedMultiset
from .edit_distance import EditDistance
from .errors import ComputationError, ConfigurationError, DataError, NGramError
from .evaluation import (
    MetricResult, perplexity, word_error_rate, word_error_rate_lower_bound,
    word_error_rate_random_choice, word_error_rate_upper_bound
)
from .model import EmpiricalTrigramModel, EmpiricalUnigramModel, LanguageModel
from .nbest import SpeechNBestList, read_nbest_lists
from .smoothing import (
    AbsoluteDiscountBigramModel, AbsoluteDiscountTrigramModel, SmoothingMethod,
    StupidBackoffBigramModel, StupidBackoffTrigramModel, get_model
)
from .corpus import read_sentences

__version__ = "0.1.0"
__all__ = [
    "LanguageModel", "EmpiricalUnigramModel", "EmpiricalTrigramModel",
    "AbsoluteDiscountBigramModel", "AbsoluteDiscountTrigramModel",
    "StupidBackoffBigramModel", "StupidBackoffTrigramModel", "ArpaLanguageModel",
    "SmoothingMethod", "get_model",
    "WeightedMultiset", "ConditionalWeightedMultiset", "EditDistance",
    "MetricResult", "perplexity", "word_error_rate", "word_error_rate_lower_bound",
    "word_error_rate_upper_bound", "word_error_rate_random_choice",
    "SpeechNBestList", "read_nbest_lists", "read_sentences",
    "NGramError", "ConfigurationError", "ComputationError", "DataError",
]
