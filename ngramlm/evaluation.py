"""
Model Evaluation

Perplexity over sentence collections and word error rate over speech N-best
lists, for any LanguageModel. Sentences or hypotheses whose scoring fails are
reported in the result instead of being folded into the aggregate.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from .edit_distance import EditDistance
from .errors import ComputationError
from .model import LanguageModel
from .nbest import SpeechNBestList


logger = logging.getLogger(__name__)

# Acoustic scores are divided by this before being added to the LM log-probability
ACOUSTIC_SCALE = 16.0


@dataclass
class Flag:
    """An item excluded from, or poisoning, an aggregate metric."""
    index: int
    reason: str
    hypothesis: Optional[int] = None


@dataclass
class MetricResult:
    """
    Value of an aggregate metric plus the items that could not be scored cleanly.

    Attributes:
        value: The metric
        num_items: Sentences or N-best lists seen
        num_words: Words in the denominator
        flagged: Items with zero probability or a computation error
    """
    value: float
    num_items: int
    num_words: int
    flagged: List[Flag] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.flagged

    def __float__(self) -> float:
        return self.value


def perplexity(model: LanguageModel, sentences: Iterable[List[str]]) -> MetricResult:
    """
    Calculate perplexity on a set of sentences.

    Perplexity = 2^(-1/N * sum(log2 P(sentence))), where N counts the words of
    the sentences (stop tokens excluded). A sentence with zero probability
    makes the perplexity infinite and is flagged. A sentence whose scoring
    raises ComputationError is flagged and left out.

    Raises:
        ComputationError: if there are no words to average over
    """
    total_log_prob = 0.0
    total_words = 0
    num_sentences = 0
    flagged = []

    for index, sentence in enumerate(sentences):
        num_sentences += 1
        try:
            log_prob = model.sentence_log_probability(sentence)
        except ComputationError as e:
            logger.warning("Sentence %d excluded from perplexity: %s", index, e)
            flagged.append(Flag(index, str(e)))
            continue

        if log_prob == float('-inf'):
            flagged.append(Flag(index, "zero probability"))

        total_log_prob += log_prob
        total_words += len(sentence)

    if total_words == 0:
        raise ComputationError("Perplexity is undefined without any words to score")

    avg_log_prob = total_log_prob / total_words
    try:
        value = 2.0 ** (-avg_log_prob)
    except OverflowError:
        value = float('inf')

    return MetricResult(value, num_sentences, total_words, flagged)


def language_model_score(model: LanguageModel, sentence: List[str]) -> float:
    """Return the natural log probability of a sentence."""
    return model.sentence_log_probability(sentence) * math.log(2.0)


def _format_hypothesis(prefix: str, hypothesis: List[str], nbest_list: SpeechNBestList,
                       model: LanguageModel) -> str:
    acoustic = nbest_list.acoustic_score(hypothesis) / ACOUSTIC_SCALE
    try:
        language = language_model_score(model, hypothesis)
    except ComputationError as e:
        return f"{prefix}\tAM: {acoustic:.2E}\tLM: {e}\t{' '.join(hypothesis)}"
    return (f"{prefix}\tAM: {acoustic:.2E}\tLM: {language:.2E}\t"
            f"Total: {acoustic + language:.2E}\t{' '.join(hypothesis)}")


def word_error_rate(model: LanguageModel, nbest_lists: Sequence[SpeechNBestList],
                    verbose: bool = False,
                    edit_distance: Optional[EditDistance] = None) -> MetricResult:
    """
    Calculate the word error rate of the hypotheses the model picks.

    Each hypothesis is scored ln P_lm(h) + acoustic(h) / 16. When several
    hypotheses share the best score, their edit distances are averaged.

    Args:
        model: Language model used for rescoring
        nbest_lists: N-best lists with gold transcriptions
        verbose: Log the chosen and the gold hypothesis for every list
        edit_distance: Distance to use (unit costs by default)

    Returns:
        MetricResult with total distance / total gold words

    Raises:
        ComputationError: if no list could be scored
    """
    edit_distance = edit_distance or EditDistance()
    total_distance = 0.0
    total_words = 0
    flagged = []

    for index, nbest_list in enumerate(nbest_lists):
        correct_sentence = nbest_list.correct_sentence
        scored = []
        for position, guess in enumerate(nbest_list.nbest_sentences):
            try:
                score = (language_model_score(model, guess)
                         + nbest_list.acoustic_score(guess) / ACOUSTIC_SCALE)
            except ComputationError as e:
                logger.warning("N-best list %d, hypothesis %d skipped: %s", index, position, e)
                flagged.append(Flag(index, str(e), hypothesis=position))
                continue
            scored.append((score, guess))

        if not scored:
            flagged.append(Flag(index, "no hypothesis could be scored"))
            continue

        best_score = max(score for score, _ in scored)
        best_guesses = [guess for score, guess in scored if score == best_score]
        distance = sum(edit_distance.distance(correct_sentence, guess) for guess in best_guesses)
        total_distance += distance / len(best_guesses)
        total_words += len(correct_sentence)

        if verbose:
            logger.info(_format_hypothesis("GUESS:", best_guesses[0], nbest_list, model))
            logger.info(_format_hypothesis("GOLD:", correct_sentence, nbest_list, model))

    if total_words == 0:
        raise ComputationError("Word error rate is undefined without any gold words")

    return MetricResult(total_distance / total_words, len(nbest_lists), total_words, flagged)


def _word_error_rate_baseline(nbest_lists: Sequence[SpeechNBestList],
                              choose: Callable[[List[float]], float],
                              edit_distance: Optional[EditDistance] = None) -> MetricResult:
    edit_distance = edit_distance or EditDistance()
    total_distance = 0.0
    total_words = 0

    for nbest_list in nbest_lists:
        correct_sentence = nbest_list.correct_sentence
        distances = [edit_distance.distance(correct_sentence, guess)
                     for guess in nbest_list.nbest_sentences]
        if not distances:
            continue
        total_distance += choose(distances)
        total_words += len(correct_sentence)

    if total_words == 0:
        raise ComputationError("Word error rate is undefined without any gold words")

    return MetricResult(total_distance / total_words, len(nbest_lists), total_words)


def word_error_rate_lower_bound(nbest_lists: Sequence[SpeechNBestList],
                                edit_distance: Optional[EditDistance] = None) -> MetricResult:
    """WER when always picking the closest hypothesis (best path)."""
    return _word_error_rate_baseline(nbest_lists, min, edit_distance)


def word_error_rate_upper_bound(nbest_lists: Sequence[SpeechNBestList],
                                edit_distance: Optional[EditDistance] = None) -> MetricResult:
    """WER when always picking the farthest hypothesis (worst path)."""
    return _word_error_rate_baseline(nbest_lists, max, edit_distance)


def word_error_rate_random_choice(nbest_lists: Sequence[SpeechNBestList],
                                  edit_distance: Optional[EditDistance] = None) -> MetricResult:
    """Expected WER when picking a hypothesis uniformly at random (average path)."""
    return _word_error_rate_baseline(nbest_lists, lambda distances: sum(distances) / len(distances),
                                     edit_distance)


def extract_correct_sentences(nbest_lists: Iterable[SpeechNBestList]) -> List[List[str]]:
    """Return the gold transcriptions of the N-best lists."""
    return [nbest_list.correct_sentence for nbest_list in nbest_lists]


def evaluate_model(model: LanguageModel,
                   nbest_lists: Sequence[SpeechNBestList] = (),
                   datasets: Optional[Dict[str, List[List[str]]]] = None,
                   verbose: bool = False) -> Dict[str, MetricResult]:
    """
    Run the full evaluation of a model.

    Args:
        model: The model to evaluate
        nbest_lists: Speech N-best lists (WER and HUB perplexity are skipped if empty)
        datasets: Named sentence collections to compute perplexity on
        verbose: Log chosen hypotheses during the WER computation

    Returns:
        Dictionary of metric name to MetricResult, in a stable order
    """
    results: Dict[str, MetricResult] = {}
    edit_distance = EditDistance()

    for name, sentences in (datasets or {}).items():
        if sentences:
            results[f'{name}_perplexity'] = perplexity(model, sentences)

    if nbest_lists:
        results['hub_perplexity'] = perplexity(model, extract_correct_sentences(nbest_lists))
        results['wer_lower_bound'] = word_error_rate_lower_bound(nbest_lists, edit_distance)
        results['wer_upper_bound'] = word_error_rate_upper_bound(nbest_lists, edit_distance)
        results['wer_random_choice'] = word_error_rate_random_choice(nbest_lists, edit_distance)
        results['word_error_rate'] = word_error_rate(model, nbest_lists, verbose, edit_distance)

    return results
