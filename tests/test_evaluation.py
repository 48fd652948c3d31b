import math

import pytest

from conftest import ConstantModel
from ngramlm.errors import ComputationError
from ngramlm.evaluation import (
    evaluate_model,
    extract_correct_sentences,
    language_model_score,
    perplexity,
    word_error_rate,
    word_error_rate_lower_bound,
    word_error_rate_random_choice,
    word_error_rate_upper_bound,
)
from ngramlm.model import EmpiricalUnigramModel
from ngramlm.nbest import SpeechNBestList


class PickyModel(ConstantModel):
    """Returns an impossible probability for the word 'bad'."""

    def word_probability(self, word, context):
        return 1.5 if word == "bad" else self.value


def test_perplexity_known_value():
    model = EmpiricalUnigramModel([["a", "b"]])
    result = perplexity(model, [["a", "b"]])
    assert result.value == pytest.approx(8.0)
    assert result.num_items == 1
    assert result.num_words == 2
    assert result.ok


def test_perplexity_of_constant_model(constant_model):
    # every token, stop included, has probability one half
    result = perplexity(constant_model, [["x", "y", "z"]])
    assert result.value == pytest.approx(2.0 ** (4 / 3))


def test_perplexity_without_words_raises(constant_model):
    with pytest.raises(ComputationError):
        perplexity(constant_model, [])
    with pytest.raises(ComputationError):
        perplexity(constant_model, [[]])


def test_zero_probability_sentence_makes_perplexity_infinite():
    result = perplexity(ConstantModel(value=0.0), [["a"], ["b"]])
    assert result.value == float('inf')
    assert [flag.index for flag in result.flagged] == [0, 1]
    assert not result.ok


def test_failing_sentence_is_excluded_and_flagged():
    result = perplexity(PickyModel(), [["good"], ["bad"], ["fine"]])
    assert result.value == pytest.approx(4.0)
    assert result.num_items == 3
    assert result.num_words == 2
    assert len(result.flagged) == 1
    assert result.flagged[0].index == 1
    assert "not a probability" in result.flagged[0].reason


def test_language_model_score_is_natural_log(constant_model):
    assert language_model_score(constant_model, ["a"]) == pytest.approx(2 * math.log(0.5))


def test_word_error_rate_picks_by_combined_score(constant_model, nbest_lists):
    # utt1: "a dog" wins on the acoustic score (distance 3)
    # utt2: "the dog sat" wins (distance 1)
    result = word_error_rate(constant_model, nbest_lists)
    assert result.value == pytest.approx(4 / 7)
    assert result.num_items == 2
    assert result.num_words == 7


def test_word_error_rate_averages_ties(constant_model):
    nbest_list = SpeechNBestList.from_hypotheses(
        ["a", "b"], [(["a", "b"], -10.0), (["a", "c"], -10.0)]
    )
    assert word_error_rate(constant_model, [nbest_list]).value == pytest.approx(0.25)


def test_word_error_rate_is_zero_when_gold_is_chosen(constant_model):
    nbest_list = SpeechNBestList.from_hypotheses(
        ["the", "cat"], [(["a", "dog"], -1000.0), (["the", "cat"], 0.0)]
    )
    assert word_error_rate(constant_model, [nbest_list]).value == 0.0


def test_word_error_rate_flags_unscorable_hypotheses():
    nbest_list = SpeechNBestList.from_hypotheses(
        ["the", "cat"], [(["bad", "cat"], 0.0), (["the", "hat"], -10.0)]
    )
    result = word_error_rate(PickyModel(), [nbest_list])
    assert result.value == pytest.approx(0.5)
    assert len(result.flagged) == 1
    assert result.flagged[0].hypothesis == 0


def test_word_error_rate_without_gold_words_raises(constant_model):
    with pytest.raises(ComputationError):
        word_error_rate(constant_model, [])


def test_bounds(nbest_lists):
    lower = word_error_rate_lower_bound(nbest_lists)
    upper = word_error_rate_upper_bound(nbest_lists)
    random_choice = word_error_rate_random_choice(nbest_lists)

    assert lower.value == pytest.approx(1 / 7)
    assert upper.value == pytest.approx(7 / 7)
    assert random_choice.value == pytest.approx((4 / 3 + 5 / 2) / 7)
    assert lower.value <= random_choice.value <= upper.value


def test_model_lies_within_bounds(constant_model, nbest_lists):
    value = word_error_rate(constant_model, nbest_lists).value
    assert word_error_rate_lower_bound(nbest_lists).value <= value
    assert value <= word_error_rate_upper_bound(nbest_lists).value


def test_verbose_logs_guess_and_gold(constant_model, nbest_lists, caplog):
    with caplog.at_level("INFO", logger="ngramlm.evaluation"):
        word_error_rate(constant_model, nbest_lists, verbose=True)
    messages = [record.getMessage() for record in caplog.records]
    assert any(message.startswith("GUESS:") for message in messages)
    assert any(message.startswith("GOLD:") and "the dog sat down" in message for message in messages)


def test_extract_correct_sentences(nbest_lists):
    assert extract_correct_sentences(nbest_lists) == [["the", "cat", "sat"], ["the", "dog", "sat", "down"]]


def test_evaluate_model(constant_model, nbest_lists, corpus):
    results = evaluate_model(constant_model, nbest_lists, datasets={'validation': corpus, 'test': []})
    assert list(results) == [
        'validation_perplexity',
        'hub_perplexity',
        'wer_lower_bound',
        'wer_upper_bound',
        'wer_random_choice',
        'word_error_rate',
    ]
    assert float(results['word_error_rate']) == pytest.approx(4 / 7)


def test_evaluate_model_without_nbest_lists(constant_model, corpus):
    assert list(evaluate_model(constant_model, datasets={'train': corpus})) == ['train_perplexity']
