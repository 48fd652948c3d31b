"""
N-gram Language Model Web API

A Flask application for training a language model and querying it for
sentence probabilities, generated sentences and perplexity.
"""

import logging
import threading
from typing import Dict, List, Optional

from flask import Flask, jsonify, request

from ..corpus import load_brown_corpus, preprocess_text, read_sentences
from ..errors import ComputationError, ConfigurationError, DataError, NGramError
from ..evaluation import perplexity
from ..model import LanguageModel
from ..smoothing import DEFAULT_PARAMS, SmoothingMethod, get_model


app = Flask(__name__)
logger = logging.getLogger(__name__)

# Global state
model: Optional[LanguageModel] = None
model_lock = threading.Lock()


class ModelNotTrainedError(NGramError):
    """Raised when a query arrives before any model was trained."""


def _parse_sentences(texts: List[str]) -> List[List[str]]:
    return [preprocess_text(text) for text in texts if text.strip()]


def _current_model() -> LanguageModel:
    with model_lock:
        current = model
    if current is None:
        raise ModelNotTrainedError("No model trained")
    return current


@app.errorhandler(ConfigurationError)
@app.errorhandler(DataError)
def handle_bad_request(error):
    return jsonify({'error': str(error)}), 400


@app.errorhandler(ComputationError)
def handle_computation_error(error):
    return jsonify({'error': str(error), 'ngram': list(error.ngram or ()), 'value': error.value}), 422


@app.errorhandler(ModelNotTrainedError)
def handle_missing_model(error):
    return jsonify({'error': str(error)}), 400


@app.route('/api/methods')
def api_methods():
    """List the available models with their default parameters."""
    return jsonify([
        {'method': method.value, 'params': DEFAULT_PARAMS[method]}
        for method in SmoothingMethod
    ])


@app.route('/api/train', methods=['POST'])
def api_train():
    """
    Train a model.

    The body names the method, optional parameter overrides, and one training
    source: inline sentences, a sentence file path, or Brown corpus categories.
    """
    global model

    data = request.get_json(silent=True) or {}
    method = data.get('method', SmoothingMethod.TRIGRAM.value)
    params: Dict = data.get('params') or {}
    if not isinstance(params, dict):
        raise ConfigurationError("'params' must be an object of parameter names to values")

    if data.get('sentences'):
        sentences = _parse_sentences(data['sentences'])
    elif data.get('path'):
        sentences = read_sentences(data['path'])
    elif 'categories' in data:
        sentences, _ = load_brown_corpus(categories=data['categories'] or None)
    else:
        raise DataError("Provide 'sentences', 'path' or 'categories' to train on")

    new_model = get_model(method, sentences, **params)

    with model_lock:
        model = new_model

    logger.info("Trained %s on %d sentences", new_model.name, len(sentences))
    return jsonify({'message': 'Training complete', 'stats': new_model.training_stats})


@app.route('/api/model/info')
def api_model_info():
    """Get model information."""
    current = _current_model()
    return jsonify({
        'name': current.name,
        'order': current.order,
        'stats': current.training_stats
    })


@app.route('/api/probability', methods=['POST'])
def api_probability():
    """Score a sentence."""
    current = _current_model()
    data = request.get_json(silent=True) or {}
    sentence = preprocess_text(data.get('sentence', ''))

    log_prob = current.sentence_log_probability(sentence)
    return jsonify({
        'sentence': sentence,
        'probability': 2.0 ** log_prob,
        'log2_probability': log_prob if log_prob != float('-inf') else None,
    })


@app.route('/api/generate', methods=['POST'])
def api_generate():
    """Generate sentences from the model."""
    current = _current_model()
    data = request.get_json(silent=True) or {}
    try:
        count = int(data.get('count', 1))
    except (TypeError, ValueError):
        raise ConfigurationError(f"'count' must be an integer, got {data.get('count')!r}")
    count = max(1, min(count, 100))

    generated = [current.generate_sentence() for _ in range(count)]
    return jsonify({
        'sentences': generated,
        'text': [' '.join(sentence) for sentence in generated]
    })


@app.route('/api/perplexity', methods=['POST'])
def api_perplexity():
    """Calculate perplexity for given sentences."""
    current = _current_model()
    data = request.get_json(silent=True) or {}
    parsed = _parse_sentences(data.get('sentences', []))

    if not parsed:
        return jsonify({'error': 'No sentences provided'}), 400

    result = perplexity(current, parsed)
    return jsonify({
        'perplexity': result.value if result.value != float('inf') else None,
        'num_sentences': result.num_items,
        'num_words': result.num_words,
        'flagged': [{'index': flag.index, 'reason': flag.reason} for flag in result.flagged]
    })


if __name__ == '__main__':
    import argparse

    parser = argparse.ArgumentParser(description='N-gram Model Web API')
    parser.add_argument('--host', default='127.0.0.1', help='Host to bind to')
    parser.add_argument('--port', type=int, default=5000, help='Port to bind to')
    parser.add_argument('--debug', action='store_true', help='Enable debug mode')

    args = parser.parse_args()

    print(f"\nStarting N-gram Language Model API on http://{args.host}:{args.port}\n")

    app.run(host=args.host, port=args.port, debug=args.debug, threaded=True)
