"""
TF-IDF line search.

A body of text is split into lines, each line is a document, and documents are
ranked against a free-text query by

    score(D, Q) = Σ_{t in unique(Q)} tf(t, D) * idf(t)

where:
    tf(t, D) = count of tokens in D equal to t / number of tokens in D
               (1 when D has no tokens)
    idf(t)   = ln(N / df(t))  (0 when no document contains t)

Words are maximal runs of ASCII letters and compare case-insensitively.
Documents whose scores differ by less than Config.epsilon keep their original
order, and documents scoring exactly 0 are never returned.
"""

from __future__ import annotations

import logging
import math
import re
from collections import Counter
from collections.abc import Iterable
from functools import cached_property, cmp_to_key
from typing import TYPE_CHECKING, Iterator

import numpy as np

if TYPE_CHECKING:
    from numpy.typing import NDArray

logger = logging.getLogger(__name__)

_WORD_RE = re.compile(r"[A-Za-z]+")
_LINE_RE = re.compile(r"[^\n]+")


# -----------------------------------------------------------------------------
# Config
# -----------------------------------------------------------------------------

class Config:
    epsilon: float = 1e-9  # scores closer than this are ties
    case_offset: int = ord("a") - ord("A")


# -----------------------------------------------------------------------------
# Words and lines
# -----------------------------------------------------------------------------

def words_equal(a: str, b: str) -> bool:
    """ASCII-only case-insensitive comparison; every other character must match exactly."""
    if len(a) != len(b):
        return False
    for x, y in zip(a, b):
        if x == y:
            continue
        low, high = sorted((x, y))
        if not ("A" <= low <= "Z" and ord(high) - ord(low) == Config.case_offset):
            return False
    return True


def tokenize(text: str) -> Iterator[str]:
    """Yields maximal runs of ASCII letters, left to right."""
    return (match.group() for match in _WORD_RE.finditer(text))


def split_lines(text: str) -> list[str]:
    """Splits text on '\\n', dropping empty lines."""
    return _LINE_RE.findall(text)


def unique_terms(words: Iterable[str]) -> list[str]:
    """Case-insensitive de-duplication keeping the first occurrence of each word."""
    unique: list[str] = []
    for word in words:
        if not any(words_equal(seen, word) for seen in unique):
            unique.append(word)
    return unique


# -----------------------------------------------------------------------------
# Term statistics (reference definitions, rescanning the text)
# -----------------------------------------------------------------------------

def term_frequency(word: str, document: str) -> float:
    """
    Fraction of the document's tokens equal to `word`.

    A document without tokens has TF = 1, so it can still score when the word
    has a non-zero IDF elsewhere in the corpus.
    """
    matches = 0
    total = 0
    for token in tokenize(document):
        total += 1
        if words_equal(token, word):
            matches += 1
    if total == 0:
        return 1.0
    return matches / total


def inverse_document_frequency(word: str, documents: list[str]) -> float:
    """ln(N / df); 0 when the word appears in no document."""
    containing = sum(
        1 for document in documents if any(words_equal(token, word) for token in tokenize(document))
    )
    if containing == 0:
        return 0.0
    return math.log(len(documents) / containing)


def score_document(terms: list[str], document: str, idfs: list[float]) -> float:
    """TF-IDF of one document for the unique query terms and their IDFs."""
    score = 0.0
    for term, idf in zip(terms, idfs):
        score += term_frequency(term, document) * idf
    return score


# -----------------------------------------------------------------------------
# Corpus
# -----------------------------------------------------------------------------

class Corpus:
    """
    An ordered, read-only collection of lines with cached term statistics.

    Tokens are ASCII letters only, so lowercasing them is exactly the
    case fold used by `words_equal`; the cached tables therefore reproduce
    `term_frequency` and `inverse_document_frequency` bit for bit.

    Args:
        documents (list[str]): The lines, in order.

    Attributes:
        documents (list[str]): The lines.
        document_count (int): Number of lines.
    """

    def __init__(self, documents: list[str]):
        self.documents = documents
        self.document_count = len(documents)

    def __len__(self) -> int:
        return self.document_count

    def __getitem__(self, index: int) -> str:
        return self.documents[index]

    def __iter__(self) -> Iterator[str]:
        return iter(self.documents)

    @classmethod
    def from_text(cls, text: str) -> Corpus:
        return cls(split_lines(text))

    @cached_property
    def term_frequency(self) -> list[Counter[str]]:
        """Lowercased token counts for each document."""
        return [Counter(token.lower() for token in tokenize(doc)) for doc in self.documents]

    @cached_property
    def document_frequency(self) -> Counter[str]:
        """Number of documents each lowercased term appears in."""
        return Counter(term for counts in self.term_frequency for term in counts)

    @cached_property
    def document_length(self) -> np.ndarray:
        """Token count of each document."""
        return np.array([sum(counts.values()) for counts in self.term_frequency], dtype=np.int64)

    def tf_vector(self, term: str) -> NDArray[np.float64]:
        """TF of `term` in every document; documents without tokens get 1."""
        key = term.lower()
        counts = np.array([counts.get(key, 0) for counts in self.term_frequency], dtype=np.float64)
        lengths = self.document_length.astype(np.float64)
        return np.divide(counts, lengths, out=np.ones_like(counts), where=lengths > 0)

    def idf(self, term: str) -> float:
        df = self.document_frequency.get(term.lower(), 0)
        if df == 0:
            return 0.0
        return math.log(self.document_count / df)


# -----------------------------------------------------------------------------
# Search engine
# -----------------------------------------------------------------------------

def _compare(scores: NDArray[np.float64], a: int, b: int) -> int:
    """Descending score, original order for scores within epsilon."""
    score_a, score_b = scores[a], scores[b]
    if abs(score_a - score_b) > Config.epsilon:
        return -1 if score_a > score_b else 1
    return a - b


class SearchEngine:
    """
    Ranks the lines of an indexed text against free-text queries.

    `build_index` replaces the document set wholesale; `search` reads it.
    Neither is safe to call concurrently with `build_index` on the same engine.
    """

    def __init__(self):
        self.corpus = Corpus([])

    @property
    def documents(self) -> tuple[str, ...]:
        return tuple(self.corpus.documents)

    def build_index(self, text: str) -> None:
        self.corpus = Corpus.from_text(text)
        logger.debug("Indexed %d lines", len(self.corpus))

    def prepare_query(self, query: str) -> tuple[list[str], list[float]]:
        """Unique query terms in first-appearance order and their IDFs."""
        terms = unique_terms(tokenize(query))
        idfs = [self.corpus.idf(term) for term in terms]
        return terms, idfs

    def _scores(self, terms: list[str], idfs: list[float]) -> NDArray[np.float64]:
        scores = np.zeros(len(self.corpus), dtype=np.float64)
        for term, idf in zip(terms, idfs):
            scores += self.corpus.tf_vector(term) * idf
        return scores

    def score(self, query: str, index: int) -> float:
        """Score of one document, recomputed from its text."""
        terms = unique_terms(tokenize(query))
        idfs = [inverse_document_frequency(term, self.corpus.documents) for term in terms]
        return score_document(terms, self.corpus[index], idfs)

    def _rank(self, terms: list[str], idfs: list[float]) -> tuple[list[int], NDArray[np.float64]]:
        scores = self._scores(terms, idfs)
        order = sorted(range(len(self.corpus)), key=cmp_to_key(lambda a, b: _compare(scores, a, b)))
        return order, scores

    def rank(self, query: str) -> NDArray[np.int64]:
        """All document indices, best first."""
        order, _ = self._rank(*self.prepare_query(query))
        return np.array(order, dtype=np.int64)

    def search(self, query: str, results_count: int) -> list[str]:
        """Up to `results_count` lines with non-zero score, best first."""
        if results_count < 0:
            raise ValueError(f"results_count must be non-negative, got {results_count}")

        terms, idfs = self.prepare_query(query)
        order, scores = self._rank(terms, idfs)

        # walk the first results_count ranked positions; near-zero scores may tie with zero ones
        results = [self.corpus[idx] for idx in order[:results_count] if scores[idx] != 0]
        logger.debug("Query with %d unique terms matched %d lines", len(terms), len(results))
        return results
