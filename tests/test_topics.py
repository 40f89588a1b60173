import numpy as np
import pytest

from edustats.models.topics import DEFAULT_CORPUS, assign_topics, relevant_documents, tokenize


@pytest.fixture(scope="module")
def model():
    return assign_topics(n_topics=3, n_iter=50, seed=0)


def test_tokenize_drops_stopwords_and_punctuation():
    assert tokenize("The online videos are very helpful!") == ["online", "videos", "helpful"]


def test_keyword_weights_are_ranked_and_sum_to_at_most_one(model):
    assert len(model.topics) == 3
    for topic in model.topics:
        weights = [kw.weight for kw in topic.keywords]
        assert len(weights) == 5
        assert weights == sorted(weights, reverse=True)
        assert sum(weights) <= 1.0 + 1e-12
        assert topic.name


def test_document_distributions_sum_to_one(model):
    assert len(model.documents) == len(DEFAULT_CORPUS)
    for doc in model.documents:
        assert sum(t.weight for t in doc.topic_distribution) == pytest.approx(1.0)
    assert np.allclose(model.topic_word.sum(axis=1), 1.0)


def test_relevant_documents_respect_threshold(model):
    for topic in model.topics:
        docs = relevant_documents(model, topic.id)
        weights = [d.topic_distribution[topic.id].weight for d in docs]
        assert all(w > 0.1 for w in weights)
        assert weights == sorted(weights, reverse=True)
    with pytest.raises(KeyError):
        relevant_documents(model, 7)


def test_same_seed_gives_same_topics(model):
    again = assign_topics(n_topics=3, n_iter=50, seed=0)
    assert [t.keywords for t in again.topics] == [t.keywords for t in model.topics]


def test_document_without_tokens_is_uniform():
    result = assign_topics(["the and of", "exam deadline exam"], n_topics=2, n_iter=10)
    weights = [t.weight for t in result.documents[0].topic_distribution]
    assert weights == pytest.approx([0.5, 0.5])


def test_invalid_arguments_raise():
    with pytest.raises(ValueError):
        assign_topics(n_topics=0)
    with pytest.raises(ValueError):
        assign_topics(alpha=0.0)
