"""
Corpus Loading and Preprocessing

This module reads tokenized sentence files, loads the Brown corpus as an
alternative training source, and pads sentences with boundary markers for
n-gram counting.
"""

import logging
from pathlib import Path
from typing import Iterable, List, Optional, Set, Tuple, Union

import nltk
from nltk.corpus import brown

from .errors import DataError


logger = logging.getLogger(__name__)

# Special tokens
START_TOKEN = "<S>"
STOP_TOKEN = "</S>"
UNKNOWN_TOKEN = "*UNKNOWN*"


def ensure_nltk_data():
    """Download the Brown corpus if it is not present."""
    try:
        nltk.data.find('corpora/brown')
    except LookupError:
        logger.info("Downloading Brown corpus...")
        nltk.download('brown', quiet=True)


def preprocess_text(text: str, lowercase: bool = True) -> List[str]:
    """
    Split a line of text into tokens.

    Args:
        text: Raw input line
        lowercase: Whether to lowercase the text

    Returns:
        List of whitespace-delimited tokens
    """
    if lowercase:
        text = text.lower()
    return text.split()


def add_sentence_markers(tokens: List[str], n: int) -> List[str]:
    """
    Add start and stop markers to a copy of a sentence.

    Args:
        tokens: List of tokens in the sentence
        n: The n in n-gram (determines number of start markers)

    Returns:
        New list with (n-1) start markers and one stop marker
    """
    return [START_TOKEN] * (n - 1) + list(tokens) + [STOP_TOKEN]


def read_sentences(path: Union[str, Path], lowercase: bool = True) -> List[List[str]]:
    """
    Read a sentence file, one sentence per non-empty line.

    Args:
        path: Path to a text file of whitespace-tokenized sentences
        lowercase: Whether to lowercase the tokens

    Returns:
        List of sentences as token lists, in file order
    """
    path = Path(path)
    if not path.is_file():
        raise DataError(f"Sentence file not found: {path}")

    sentences = []
    with open(path, encoding='utf-8') as f:
        for line in f:
            tokens = preprocess_text(line, lowercase=lowercase)
            if tokens:
                sentences.append(tokens)

    logger.info("Read %d sentences from %s", len(sentences), path)
    return sentences


def load_brown_corpus(categories: Optional[List[str]] = None,
                      lowercase: bool = True,
                      min_sentence_length: int = 3) -> Tuple[List[List[str]], dict]:
    """
    Load the Brown corpus and return preprocessed sentences.

    Args:
        categories: Optional list of Brown corpus categories to load
                   (e.g., ['news', 'fiction']). If None, loads all categories.
        lowercase: Whether to lowercase the text
        min_sentence_length: Minimum number of words in a sentence

    Returns:
        Tuple of (list of sentences as token lists, corpus statistics dict)
    """
    ensure_nltk_data()

    if categories:
        sents = brown.sents(categories=categories)
    else:
        sents = brown.sents()

    processed_sentences = []
    total_tokens = 0

    for sent in sents:
        tokens = [w.lower() if lowercase else w for w in sent]

        if len(tokens) >= min_sentence_length:
            processed_sentences.append(tokens)
            total_tokens += len(tokens)

    stats = {
        'num_sentences': len(processed_sentences),
        'total_tokens': total_tokens,
        'categories': categories or brown.categories()
    }

    return processed_sentences, stats


def get_brown_categories() -> List[str]:
    """Return list of available Brown corpus categories."""
    ensure_nltk_data()
    return brown.categories()


def extract_vocabulary(sentences: Iterable[List[str]]) -> Set[str]:
    """Return the set of word types appearing in the sentences."""
    vocabulary = set()
    for sentence in sentences:
        vocabulary.update(sentence)
    return vocabulary


def split_corpus(sentences: List[List[str]],
                 validation_fraction: float = 0.1,
                 test_fraction: float = 0.1) -> Tuple[List[List[str]], List[List[str]], List[List[str]]]:
    """
    Split sentences into contiguous train, validation and test portions.

    Args:
        sentences: Full list of sentences
        validation_fraction: Share of sentences held out for validation
        test_fraction: Share of sentences held out for testing

    Returns:
        Tuple of (train, validation, test) sentence lists
    """
    total = len(sentences)
    num_test = int(total * test_fraction)
    num_validation = int(total * validation_fraction)
    num_train = total - num_validation - num_test

    train = sentences[:num_train]
    validation = sentences[num_train:num_train + num_validation]
    test = sentences[num_train + num_validation:]
    return train, validation, test
