"""Pure text similarity and keyword scoring."""

from .metrics import (
    STOP_WORDS,
    Algorithm,
    bm25_keyword_score,
    compare_texts,
    cosine_similarity,
    extract_keywords,
    jaccard_similarity,
    levenshtein_distance,
    levenshtein_similarity,
    ngram_similarity,
    ngrams,
    tokenize_keywords,
)

__all__ = [
    "STOP_WORDS",
    "Algorithm",
    "bm25_keyword_score",
    "compare_texts",
    "cosine_similarity",
    "extract_keywords",
    "jaccard_similarity",
    "levenshtein_distance",
    "levenshtein_similarity",
    "ngram_similarity",
    "ngrams",
    "tokenize_keywords",
]
