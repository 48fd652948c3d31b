"""
Speech N-best Lists

An N-best list holds the alternative transcriptions a speech recognizer
produced for one utterance, each with an acoustic score, plus the gold
transcription.

On disk, a directory holds one `*.nbest` file per utterance. The first
non-empty line is the gold transcription; every following non-empty line is
an acoustic score and a hypothesis separated by a tab:

    the cat sat on the mat
    -2041.7<TAB>the cat sat on the mat
    -2043.2<TAB>the cat sat on a mat
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, Tuple, Union

from .corpus import preprocess_text
from .errors import DataError


logger = logging.getLogger(__name__)

NBEST_SUFFIX = ".nbest"


@dataclass
class SpeechNBestList:
    """Hypotheses for one utterance with their acoustic scores."""
    correct_sentence: List[str]
    nbest_sentences: List[List[str]]
    acoustic_scores: Dict[Tuple[str, ...], float] = field(default_factory=dict)
    name: str = ""

    def acoustic_score(self, hypothesis: List[str]) -> float:
        """Return the acoustic score of a hypothesis (0.0 for the gold sentence if it was not hypothesized)."""
        return self.acoustic_scores.get(tuple(hypothesis), 0.0)

    @classmethod
    def from_hypotheses(cls, correct_sentence: List[str],
                        hypotheses: Iterable[Tuple[List[str], float]],
                        name: str = "") -> 'SpeechNBestList':
        """Build a list from (hypothesis, acoustic score) pairs; a repeated hypothesis keeps its first score."""
        sentences = []
        scores: Dict[Tuple[str, ...], float] = {}
        for hypothesis, score in hypotheses:
            key = tuple(hypothesis)
            if key in scores:
                continue
            scores[key] = score
            sentences.append(list(hypothesis))
        return cls(list(correct_sentence), sentences, scores, name)


def read_nbest_file(path: Union[str, Path], vocabulary: Optional[Set[str]] = None) -> Optional[SpeechNBestList]:
    """
    Read one N-best file.

    Args:
        path: Path to a `.nbest` file
        vocabulary: If given, hypotheses containing other words are dropped

    Returns:
        The N-best list, or None if no hypothesis survives the filter
    """
    path = Path(path)
    correct_sentence = None
    hypotheses = []

    with open(path, encoding='utf-8') as f:
        for line_number, line in enumerate(f, start=1):
            if not line.strip():
                continue
            if correct_sentence is None:
                correct_sentence = preprocess_text(line)
                continue

            score_text, _, hypothesis_text = line.partition('\t')
            try:
                score = float(score_text)
            except ValueError:
                raise DataError(f"{path}:{line_number}: expected '<acoustic score>\\t<hypothesis>', got {line.rstrip()!r}")
            hypothesis = preprocess_text(hypothesis_text)

            if vocabulary is not None and any(word not in vocabulary for word in hypothesis):
                continue
            hypotheses.append((hypothesis, score))

    if correct_sentence is None:
        raise DataError(f"{path}: missing gold transcription")
    if not hypotheses:
        logger.debug("%s: no hypotheses left after vocabulary filtering", path)
        return None

    return SpeechNBestList.from_hypotheses(correct_sentence, hypotheses, name=path.stem)


def read_nbest_lists(path: Union[str, Path], vocabulary: Optional[Set[str]] = None) -> List[SpeechNBestList]:
    """
    Read every N-best file in a directory, in file name order.

    Args:
        path: Directory of `.nbest` files (or a single file)
        vocabulary: Training vocabulary used to filter hypotheses

    Returns:
        List of SpeechNBestList
    """
    path = Path(path)
    if path.is_file():
        files = [path]
    elif path.is_dir():
        files = sorted(path.glob(f"*{NBEST_SUFFIX}"))
    else:
        raise DataError(f"N-best path not found: {path}")

    nbest_lists = []
    for file in files:
        nbest_list = read_nbest_file(file, vocabulary)
        if nbest_list is not None:
            nbest_lists.append(nbest_list)

    logger.info("Read %d N-best lists from %s (%d skipped)",
                len(nbest_lists), path, len(files) - len(nbest_lists))
    return nbest_lists
