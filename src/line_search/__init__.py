import logging

from line_search.tfidf import (
    Config,
    Corpus,
    SearchEngine,
    inverse_document_frequency,
    score_document,
    split_lines,
    term_frequency,
    tokenize,
    unique_terms,
    words_equal,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "Config",
    "Corpus",
    "SearchEngine",
    "inverse_document_frequency",
    "score_document",
    "split_lines",
    "term_frequency",
    "tokenize",
    "unique_terms",
    "words_equal",
]
