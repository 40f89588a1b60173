"""Latent Dirichlet allocation by collapsed Gibbs sampling.

Every token carries a topic assignment. One sweep resamples each assignment
from its full conditional given all others::

    P(z = k | rest) ∝ (n_dk + alpha) * (n_kw + beta) / (n_k + V * beta)

After the last sweep the topic-word distribution ``phi`` and the
document-topic distribution ``theta`` are read off the count tables with the
Dirichlet smoothing. Document rows of ``theta`` therefore sum to one, and a
topic's keyword list (a top-``n`` slice of a ``phi`` row) sums to at most one.

References:
    Griffiths, T. L., & Steyvers, M. (2004). Finding scientific topics.
    PNAS, 101(suppl 1), 5228-5235.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np
import pandas as pd

from ..schema import DocumentTopic, Keyword, LdaDocument, Topic

logger = logging.getLogger(__name__)

DEFAULT_N_TOPICS = 3
DEFAULT_N_KEYWORDS = 5
DEFAULT_N_ITER = 200
DEFAULT_ALPHA = 0.1
DEFAULT_BETA = 0.01
DEFAULT_RELEVANCE_THRESHOLD = 0.1

DEFAULT_CORPUS: Tuple[str, ...] = (
    "I am having trouble understanding the concept of regression.",
    "When is the deadline for the assignment submission?",
    "The online videos are very helpful for learning.",
    "I scored low on the exam because I was confused.",
    "Can the teacher reply to my forum post?",
    "The difficulty of this course is too high.",
    "I submitted my assignment late, will I lose grades?",
    "Students need more help with the exam preparation.",
    "The learning platform video player is broken.",
    "I understand the concepts but fail the tests.",
)

STOPWORDS = frozenset(
    """
    a am an and are as at be because but by can do for from had has have
    having i in is it lose low more my need of on or so the this to too very
    was when will with
    """.split()
)

_TOKEN = re.compile(r"[a-z]+")


@dataclass(frozen=True)
class TopicModel:
    """Fitted LDA model.

    Attributes:
        topics: Topics with their top keywords, strongest first.
        documents: Corpus documents with their topic distributions.
        vocabulary: Token types in column order of ``topic_word``.
        topic_word: ``K x V`` DataFrame of ``phi`` (rows sum to one).
        document_topic: ``D x K`` array of ``theta`` (rows sum to one).
    """

    topics: Tuple[Topic, ...]
    documents: Tuple[LdaDocument, ...]
    vocabulary: Tuple[str, ...]
    topic_word: pd.DataFrame
    document_topic: np.ndarray


def tokenize(text: str) -> List[str]:
    """Lowercase word tokens of at least three letters, stopwords removed."""
    return [t for t in _TOKEN.findall(text.lower()) if len(t) >= 3 and t not in STOPWORDS]


def assign_topics(
    corpus: Sequence[str] = DEFAULT_CORPUS,
    n_topics: int = DEFAULT_N_TOPICS,
    n_keywords: int = DEFAULT_N_KEYWORDS,
    n_iter: int = DEFAULT_N_ITER,
    alpha: float = DEFAULT_ALPHA,
    beta: float = DEFAULT_BETA,
    seed=0,
) -> TopicModel:
    """Fit an LDA model to ``corpus``.

    Args:
        corpus: Documents as raw strings.
        n_topics (int, optional): Number of topics ``K``. Defaults to ``3``.
        n_keywords (int, optional): Keywords reported per topic.
        n_iter (int, optional): Gibbs sweeps. Defaults to ``200``.
        alpha (float, optional): Document-topic Dirichlet prior.
        beta (float, optional): Topic-word Dirichlet prior.
        seed: Seed or :class:`numpy.random.Generator`. Defaults to ``0`` so
            repeated calls return the same topics.

    Returns:
        TopicModel: Topics, per-document distributions and the raw tables.

    Raises:
        ValueError: If ``n_topics`` or ``n_keywords`` is less than 1, or a
            prior is not positive.

    Note:
        Documents without any usable token receive the uniform distribution.
    """
    if n_topics < 1:
        raise ValueError("n_topics must be at least 1.")
    if n_keywords < 1:
        raise ValueError("n_keywords must be at least 1.")
    if alpha <= 0 or beta <= 0:
        raise ValueError("alpha and beta must be positive.")
    rng = np.random.default_rng(seed)

    docs = [tokenize(text) for text in corpus]
    vocabulary = tuple(sorted({w for doc in docs for w in doc}))
    word_index = {w: i for i, w in enumerate(vocabulary)}
    n_docs, n_words, k = len(docs), len(vocabulary), int(n_topics)

    doc_ids = np.array([d for d, doc in enumerate(docs) for _ in doc], dtype=int)
    word_ids = np.array([word_index[w] for doc in docs for w in doc], dtype=int)
    z = rng.integers(0, k, size=word_ids.size)

    n_dk = np.zeros((n_docs, k))
    n_kw = np.zeros((k, n_words))
    n_k = np.zeros(k)
    np.add.at(n_dk, (doc_ids, z), 1)
    np.add.at(n_kw, (z, word_ids), 1)
    np.add.at(n_k, z, 1)

    for _ in range(n_iter):
        for i in range(word_ids.size):
            d, w, t = doc_ids[i], word_ids[i], z[i]
            n_dk[d, t] -= 1
            n_kw[t, w] -= 1
            n_k[t] -= 1
            weights = (n_dk[d] + alpha) * (n_kw[:, w] + beta) / (n_k + n_words * beta)
            t = rng.choice(k, p=weights / weights.sum())
            z[i] = t
            n_dk[d, t] += 1
            n_kw[t, w] += 1
            n_k[t] += 1
    logger.debug("LDA: %d documents, %d tokens, %d sweeps", n_docs, word_ids.size, n_iter)

    phi = (n_kw + beta) / (n_k[:, None] + n_words * beta) if n_words else np.zeros((k, 0))
    theta = (n_dk + alpha) / (n_dk.sum(axis=1, keepdims=True) + k * alpha)

    topics = []
    for t in range(k):
        order = np.argsort(-phi[t], kind="stable")[:n_keywords]
        keywords = tuple(Keyword(text=vocabulary[w], weight=float(phi[t, w])) for w in order)
        name = " / ".join(kw.text for kw in keywords[:3]) or None
        topics.append(Topic(id=t, keywords=keywords, name=name))

    documents = tuple(
        LdaDocument(
            id=d,
            content=corpus[d],
            topic_distribution=tuple(DocumentTopic(topic_id=t, weight=float(theta[d, t])) for t in range(k)),
        )
        for d in range(n_docs)
    )
    return TopicModel(
        topics=tuple(topics),
        documents=documents,
        vocabulary=vocabulary,
        topic_word=pd.DataFrame(phi, index=range(k), columns=list(vocabulary)),
        document_topic=theta,
    )


def relevant_documents(
    model: TopicModel, topic_id: int, threshold: float = DEFAULT_RELEVANCE_THRESHOLD
) -> Tuple[LdaDocument, ...]:
    """Documents whose weight on ``topic_id`` exceeds ``threshold``, heaviest first.

    Raises:
        KeyError: If ``topic_id`` is not a topic of ``model``.
    """
    if not 0 <= topic_id < len(model.topics):
        raise KeyError(f"Unknown topic id: {topic_id}")
    weight = {doc.id: doc.topic_distribution[topic_id].weight for doc in model.documents}
    hits = [doc for doc in model.documents if weight[doc.id] > threshold]
    return tuple(sorted(hits, key=lambda doc: -weight[doc.id]))
