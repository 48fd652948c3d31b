import pytest

from ngramlm.web import app as web_app


@pytest.fixture
def client():
    web_app.app.config['TESTING'] = True
    web_app.model = None
    with web_app.app.test_client() as client:
        yield client
    web_app.model = None


@pytest.fixture
def trained_client(client):
    response = client.post('/api/train', json={
        'method': 'absolute_bigram',
        'params': {'discount': 0.4},
        'sentences': ["the cat sat", "the dog sat", "", "a cat ran"],
    })
    assert response.status_code == 200
    return client


def test_methods(client):
    methods = {entry['method']: entry['params'] for entry in client.get('/api/methods').get_json()}
    assert methods['absolute_bigram'] == {'discount': 0.4}
    assert set(methods) == {'unigram', 'trigram', 'absolute_bigram', 'absolute_trigram',
                            'stupid_bigram', 'stupid_trigram'}


def test_queries_need_a_model(client):
    response = client.get('/api/model/info')
    assert response.status_code == 400
    assert response.get_json()['error'] == "No model trained"


def test_train_and_info(trained_client):
    info = trained_client.get('/api/model/info').get_json()
    assert info['order'] == 2
    assert info['stats']['num_sentences'] == 3
    assert info['stats']['discount'] == 0.4


def test_train_from_file(client, tmp_path):
    path = tmp_path / "train.txt"
    path.write_text("the cat sat\nthe dog sat\n", encoding='utf-8')
    response = client.post('/api/train', json={'method': 'stupid_bigram', 'path': str(path)})
    assert response.status_code == 200
    assert response.get_json()['stats']['num_sentences'] == 2


def test_train_rejects_bad_requests(client):
    assert client.post('/api/train', json={'method': 'trigram'}).status_code == 400
    response = client.post('/api/train', json={'method': 'kneser_ney', 'sentences': ["a b"]})
    assert response.status_code == 400
    assert "Unknown model" in response.get_json()['error']
    response = client.post('/api/train', json={'method': 'trigram', 'sentences': ["a b"],
                                               'params': {'lambda1': 0.9, 'lambda2': 0.9}})
    assert response.status_code == 400
    assert client.post('/api/train', json={'path': '/nonexistent/file.txt'}).status_code == 400


def test_probability(trained_client):
    data = trained_client.post('/api/probability', json={'sentence': "The cat sat"}).get_json()
    assert data['sentence'] == ["the", "cat", "sat"]
    assert 0.0 < data['probability'] < 1.0
    assert data['log2_probability'] < 0.0


def test_generate(trained_client):
    data = trained_client.post('/api/generate', json={'count': 500}).get_json()
    assert len(data['sentences']) == 100
    assert data['text'][0] == ' '.join(data['sentences'][0])


def test_perplexity(trained_client):
    data = trained_client.post('/api/perplexity', json={'sentences': ["the cat sat", "a dog sat"]}).get_json()
    assert data['num_sentences'] == 2
    assert data['num_words'] == 6
    assert data['perplexity'] > 1.0
    assert data['flagged'] == []

    response = trained_client.post('/api/perplexity', json={'sentences': ["  "]})
    assert response.status_code == 400


@pytest.mark.parametrize("count", ["many", None, [3]])
def test_generate_rejects_bad_count(trained_client, count):
    response = trained_client.post('/api/generate', json={'count': count})
    assert response.status_code == 400
    assert "'count' must be an integer" in response.get_json()['error']


def test_train_rejects_params_that_are_not_an_object(client):
    response = client.post('/api/train', json={'method': 'absolute_bigram', 'params': [0.4],
                                               'sentences': ["the cat sat"]})
    assert response.status_code == 400
    assert "'params' must be an object" in response.get_json()['error']
