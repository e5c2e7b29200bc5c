"""
Lexical similarity scoring for knowledge base retrieval.

All similarity computations share the same tokenizer so that scores from
different components are comparable. Nothing here is a real IR model: the
scores are TF-IDF-like and Jaccard overlaps over a tiny in-memory corpus.
"""

import math
import re
from collections import Counter
from typing import Iterator, List, Sequence, Set

_NON_ALPHANUMERIC = re.compile(r'[^a-z0-9\s]')

MIN_TOKEN_LENGTH = 3

# Combined score weights and boosts
TFIDF_WEIGHT = 0.7
JACCARD_WEIGHT = 0.3
NAME_MATCH_BOOST = 0.5
CATEGORY_MATCH_BOOST = 0.2


def iter_tokens(text: str) -> Iterator[str]:
    """Yield lowercase alphanumeric tokens of at least three characters."""
    for token in _NON_ALPHANUMERIC.sub(' ', text.lower()).split():
        if len(token) >= MIN_TOKEN_LENGTH:
            yield token


def tokenize(text: str) -> List[str]:
    """Tokenize text into an ordered list of tokens."""
    return list(iter_tokens(text))


class Corpus:
    """Background documents used for inverse document frequency."""

    def __init__(self, documents: Sequence[str]):
        self.documents = list(documents)
        self._token_sets: List[Set[str]] = [set(iter_tokens(doc)) for doc in self.documents]

    def __len__(self) -> int:
        return len(self.documents)

    def document_frequency(self, token: str) -> int:
        return sum(1 for tokens in self._token_sets if token in tokens)

    def idf(self, token: str) -> float:
        return math.log((len(self) + 1) / (self.document_frequency(token) + 1))


def tfidf_similarity(query: str, document: str, corpus: Corpus) -> float:
    """
    TF-IDF-like relevance of a document to a query.

    Sums tf * idf for query terms found in the document and divides by the
    total number of query tokens, so unmatched terms still weigh the score
    down.
    """
    query_tokens = tokenize(query)
    doc_tokens = tokenize(document)

    if not query_tokens or not doc_tokens:
        return 0.0

    doc_tf = Counter(doc_tokens)

    total = 0.0
    for term in query_tokens:
        tf = doc_tf.get(term, 0)
        if tf > 0:
            total += tf * corpus.idf(term)

    return total / len(query_tokens)


def jaccard_similarity(text1: str, text2: str) -> float:
    """Token set overlap between two texts."""
    tokens1 = set(iter_tokens(text1))
    tokens2 = set(iter_tokens(text2))

    if not tokens1 or not tokens2:
        return 0.0

    return len(tokens1 & tokens2) / len(tokens1 | tokens2)


def combined_similarity(query: str, document: str, corpus: Corpus) -> float:
    """Weighted blend of TF-IDF and Jaccard similarity (before boosts)."""
    return (tfidf_similarity(query, document, corpus) * TFIDF_WEIGHT +
            jaccard_similarity(query, document) * JACCARD_WEIGHT)


def name_match_boost(brief_name: str, candidate_name: str) -> float:
    """Boost when either product name contains the other."""
    brief_name = brief_name.lower().strip()
    candidate_name = candidate_name.lower()
    if brief_name in candidate_name or candidate_name in brief_name:
        return NAME_MATCH_BOOST
    return 0.0


def category_match_boost(category: str, product_id: str) -> float:
    """Boost when the brief category and the product id prefix overlap."""
    category = category.lower()
    id_prefix = product_id.split("_")[0]
    category_head = category.split(" ")[0]
    if id_prefix in category or category_head in product_id:
        return CATEGORY_MATCH_BOOST
    return 0.0
