import random

import pytest

from ngramlm.counters import WeightedMultiset
from ngramlm.model import LanguageModel
from ngramlm.nbest import SpeechNBestList


class ConstantModel(LanguageModel):
    """Gives every word the same probability and only ever generates 'la'."""

    order = 2
    name = "constant"

    def __init__(self, value=0.5, rng=None):
        super().__init__(rng)
        self.value = value

    def word_probability(self, word, context):
        return self.value

    def generation_distribution(self, context):
        return WeightedMultiset({"la": 1.0})


@pytest.fixture
def corpus():
    return [
        ["the", "cat", "sat"],
        ["the", "dog", "sat"],
        ["a", "cat", "ran"],
        ["the", "cat", "ran", "away"],
        ["a", "dog", "sat", "down"],
    ]


@pytest.fixture
def cat_corpus():
    return [["the", "cat", "sat"], ["the", "dog", "sat"]]


@pytest.fixture
def rng():
    return random.Random(0)


@pytest.fixture
def constant_model():
    return ConstantModel()


@pytest.fixture
def nbest_lists():
    return [
        SpeechNBestList.from_hypotheses(
            ["the", "cat", "sat"],
            [(["the", "cat", "sat"], -100.0),
             (["the", "cat", "dog"], -100.0),
             (["a", "dog"], -90.0)],
            name="utt1",
        ),
        SpeechNBestList.from_hypotheses(
            ["the", "dog", "sat", "down"],
            [(["the", "dog", "sat"], -50.0),
             (["a", "cat", "ran", "away"], -60.0)],
            name="utt2",
        ),
    ]
