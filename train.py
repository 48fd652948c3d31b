#!/usr/bin/env python3
"""
N-gram Language Model Training and Evaluation Script

Train a smoothed n-gram model on a sentence corpus and evaluate it by
perplexity and by word error rate on speech recognition N-best lists.

Usage:
    python train.py --path data --model absolute_bigram
    python train.py --path data --model stupid_trigram --param bigram_backoff=0.4
    python train.py --path data --model absolute_trigram --grid-search
    python train.py --brown news --model trigram --seed 1
"""

import argparse
import random
import sys
from pathlib import Path
from typing import Dict, List, Optional

from ngramlm import SmoothingMethod
from ngramlm.arpa import ArpaLanguageModel
from ngramlm.corpus import extract_vocabulary, get_brown_categories, load_brown_corpus, read_sentences, split_corpus
from ngramlm.errors import ConfigurationError, NGramError
from ngramlm.nbest import read_nbest_lists
from ngramlm.training import console, evaluate_model_cli, grid_search, setup_logging, train_model_cli


TRAIN_FILE = "treebank-sentences-spoken-train.txt"
VALIDATION_FILE = "treebank-sentences-spoken-validate.txt"
TEST_FILE = "treebank-sentences-spoken-test.txt"
NBEST_DIR = "wsj_n_bst"


def parse_params(pairs: Optional[List[str]]) -> Dict:
    """Parse key=value model parameters."""
    params = {}
    for pair in pairs or []:
        key, sep, value = pair.partition('=')
        if not sep or not key:
            raise ConfigurationError(f"Parameters must look like key=value, got {pair!r}")
        if value.lower() in ('true', 'false'):
            params[key] = value.lower() == 'true'
            continue
        try:
            params[key] = float(value)
        except ValueError:
            raise ConfigurationError(f"Parameter {key} must be a number, got {value!r}")
    return params


def read_optional(path: Path) -> List[List[str]]:
    if not path.is_file():
        console.print(f"[yellow]![/yellow] {path} not found, skipping")
        return []
    return read_sentences(path)


def main():
    model_names = [m.value for m in SmoothingMethod] + ['arpa']

    parser = argparse.ArgumentParser(
        description="Train and evaluate smoothed n-gram language models",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --path data --model absolute_bigram --param discount=0.4
  %(prog)s --path data --model stupid_trigram --grid-search
  %(prog)s --path data --model arpa --arpa models/wsj.arpa
  %(prog)s --brown news fiction --model trigram

Available models:
  unigram          - Relative frequency baseline
  trigram          - Linear interpolation (lambda1, lambda2, unknown_first_occurrence)
  absolute_bigram  - Absolute discounting (discount)
  absolute_trigram - Absolute discounting (discount_b, discount_t)
  stupid_bigram    - Stupid backoff (unigram_backoff, unknown_backoff)
  stupid_trigram   - Stupid backoff (bigram_backoff, unigram_backoff, unknown_backoff)
  arpa             - Pretrained ARPA backoff model (--arpa)
        """
    )

    parser.add_argument('-p', '--path', type=Path, default=Path('.'),
                        help='Directory holding the sentence files and the N-best lists (default: .)')
    parser.add_argument('-m', '--model', type=str, default='trigram', choices=model_names,
                        help='Model to train (default: trigram)')
    parser.add_argument('--param', action='append', metavar='KEY=VALUE',
                        help='Model parameter override, may be repeated')
    parser.add_argument('--arpa', type=Path, default=None,
                        help='ARPA file for --model arpa')
    parser.add_argument('--brown', type=str, nargs='*', default=None, metavar='CATEGORY',
                        help='Train on the Brown corpus (optionally only these categories) instead of --path')
    parser.add_argument('--list-categories', action='store_true',
                        help='List available Brown corpus categories and exit')
    parser.add_argument('--grid-search', action='store_true',
                        help='Evaluate a grid of parameter values instead of a single model')
    parser.add_argument('--generate', type=int, default=10,
                        help='Number of sentences to generate after evaluation (default: 10)')
    parser.add_argument('--seed', type=int, default=None,
                        help='Seed for sentence generation')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Print the chosen and gold hypothesis of every N-best list')
    parser.add_argument('--log-level', type=str, default='INFO',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='Logging level (default: INFO)')

    args = parser.parse_args()
    setup_logging(args.log_level)
    rng = random.Random(args.seed) if args.seed is not None else None

    # List categories and exit
    if args.list_categories:
        console.print("Available Brown corpus categories:")
        for category in get_brown_categories():
            console.print(f"  - {category}")
        return 0

    try:
        params = parse_params(args.param)

        # Load data
        if args.brown is not None:
            with console.status("[cyan]Loading Brown corpus..."):
                sentences, corpus_stats = load_brown_corpus(categories=args.brown or None)
            console.print(f"[green]✓[/green] Loaded {corpus_stats['num_sentences']:,} sentences "
                          f"({corpus_stats['total_tokens']:,} tokens)")
            train, validation, test = split_corpus(sentences)
            nbest_lists = []
        else:
            train = read_sentences(args.path / TRAIN_FILE)
            validation = read_optional(args.path / VALIDATION_FILE)
            test = read_optional(args.path / TEST_FILE)
            nbest_path = args.path / NBEST_DIR
            nbest_lists = read_nbest_lists(nbest_path, extract_vocabulary(train)) if nbest_path.exists() else []

        datasets = {'train': train, 'validation': validation, 'test': test}

        if args.grid_search:
            grid_search(args.model, train, nbest_lists, datasets, params=params)
            return 0

        if args.model == 'arpa':
            if args.arpa is None:
                raise ConfigurationError("--model arpa needs --arpa FILE")
            model = ArpaLanguageModel.from_file(args.arpa, rng=rng)
        else:
            model = train_model_cli(args.model, train, params, rng=rng)

        evaluate_model_cli(model, nbest_lists, datasets,
                           verbose=args.verbose, num_generated=args.generate)

    except NGramError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
