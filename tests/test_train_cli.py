import sys

import pytest

import train
from ngramlm.errors import ConfigurationError
from ngramlm.training import create_results_table, create_stats_table, grid_search, render_grid
from ngramlm.evaluation import MetricResult


@pytest.fixture
def data_dir(tmp_path, corpus):
    lines = "\n".join(' '.join(sentence) for sentence in corpus) + "\n"
    (tmp_path / train.TRAIN_FILE).write_text(lines, encoding='utf-8')
    (tmp_path / train.VALIDATION_FILE).write_text("the cat sat down\n", encoding='utf-8')
    nbest_dir = tmp_path / train.NBEST_DIR
    nbest_dir.mkdir()
    (nbest_dir / "utt1.nbest").write_text(
        "the cat sat\n-100\tthe cat sat\n-101\tthe dog sat\n-99\ta zebra sat\n", encoding='utf-8'
    )
    return tmp_path


def run_main(monkeypatch, *args):
    monkeypatch.setattr(sys, 'argv', ['train.py', *args])
    return train.main()


def test_parse_params():
    assert train.parse_params(None) == {}
    assert train.parse_params(["discount=0.4", "unknown_first_occurrence=False"]) == {
        'discount': 0.4, 'unknown_first_occurrence': False
    }
    with pytest.raises(ConfigurationError):
        train.parse_params(["discount"])
    with pytest.raises(ConfigurationError):
        train.parse_params(["discount=high"])


@pytest.mark.parametrize("model", ["unigram", "absolute_bigram", "stupid_trigram"])
def test_main_trains_and_evaluates(monkeypatch, data_dir, model):
    assert run_main(monkeypatch, '--path', str(data_dir), '--model', model,
                    '--seed', '3', '--generate', '2', '--log-level', 'WARNING') == 0


def test_main_with_parameter_override(monkeypatch, data_dir):
    assert run_main(monkeypatch, '--path', str(data_dir), '--model', 'trigram',
                    '--param', 'lambda1=0.6', '--param', 'lambda2=0.2', '--generate', '0') == 0


def test_main_reports_errors(monkeypatch, tmp_path, data_dir):
    assert run_main(monkeypatch, '--path', str(tmp_path / "missing")) == 1
    assert run_main(monkeypatch, '--path', str(data_dir), '--model', 'arpa') == 1
    assert run_main(monkeypatch, '--path', str(data_dir), '--model', 'trigram',
                    '--param', 'lambda1=0.9', '--param', 'lambda2=0.9') == 1


def test_main_grid_search(monkeypatch, data_dir):
    assert run_main(monkeypatch, '--path', str(data_dir), '--model', 'absolute_bigram',
                    '--grid-search', '--log-level', 'WARNING') == 0


def test_grid_search_skips_invalid_combinations(corpus):
    grid = grid_search('trigram', corpus, datasets={'train': corpus}, values=[0.5, 0.7])
    cells = grid['train_perplexity']
    assert set(cells) == {(0.5, 0.5)}


def test_grid_search_one_parameter(corpus, nbest_lists):
    grid = grid_search('absolute_bigram', corpus, nbest_lists, values=[0.2, 0.8])
    assert set(grid) == {'hub_perplexity', 'wer_lower_bound', 'wer_upper_bound',
                         'wer_random_choice', 'word_error_rate'}
    assert set(grid['word_error_rate']) == {(0.2,), (0.8,)}


def test_grid_search_needs_parameters(corpus):
    with pytest.raises(ConfigurationError):
        grid_search('unigram', corpus)


def test_tables():
    assert create_stats_table({'num_sentences': 3, 'discount': 0.4, 'model': 'x'}).row_count == 3
    results = {'word_error_rate': MetricResult(0.25, 2, 8)}
    assert create_results_table(results).row_count == 1
    assert render_grid("WER", ("a", "b"), [0.1, 0.2], {(0.1, 0.2): 0.5}).row_count == 2
