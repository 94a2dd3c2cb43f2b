"""Text similarity and keyword scoring functions.

Every function here is pure: no shared state, safe to call from any thread.
"""

import math
import re
from collections import Counter
from enum import Enum
from typing import Optional

from ragcheck.exceptions import InvalidInputError
from ragcheck.utils.config import BM25Config

DEFAULT_NGRAM_SIZE = 3

STOP_WORDS = frozenset({
    "a", "an", "and", "are", "as", "at", "be", "but", "by", "for",
    "from", "has", "he", "in", "is", "it", "its", "of", "on", "or",
    "that", "the", "to", "was", "will", "with",
})

_NON_WORD = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")


class Algorithm(str, Enum):
    """Similarity algorithms available to compare_texts."""

    LEVENSHTEIN = "levenshtein"
    COSINE = "cosine"
    JACCARD = "jaccard"
    NGRAM = "ngram"


def tokenize_keywords(query: str) -> list[str]:
    """Extract search keywords from free text.

    Lowercases, strips punctuation, and drops short tokens and stop words.
    Order and duplicates are preserved.
    """
    words = _NON_WORD.sub(" ", query.lower()).split()
    return [word for word in words if len(word) > 2 and word not in STOP_WORDS]


extract_keywords = tokenize_keywords


def levenshtein_distance(str1: str, str2: str) -> int:
    """Edit distance with unit insert, delete and substitute costs."""
    len1 = len(str1)
    len2 = len(str2)

    matrix = [[0] * (len2 + 1) for _ in range(len1 + 1)]
    for i in range(len1 + 1):
        matrix[i][0] = i
    for j in range(len2 + 1):
        matrix[0][j] = j

    for i in range(1, len1 + 1):
        for j in range(1, len2 + 1):
            cost = 0 if str1[i - 1] == str2[j - 1] else 1
            matrix[i][j] = min(
                matrix[i - 1][j] + 1,  # deletion
                matrix[i][j - 1] + 1,  # insertion
                matrix[i - 1][j - 1] + cost,  # substitution
            )

    return matrix[len1][len2]


def levenshtein_similarity(str1: str, str2: str) -> float:
    """Similarity ratio in [0, 1] derived from the edit distance."""
    max_len = max(len(str1), len(str2))
    if max_len == 0:
        return 1.0

    return 1.0 - levenshtein_distance(str1, str2) / max_len


def jaccard_similarity(text1: str, text2: str) -> float:
    """Word-set intersection over union, case-folded."""
    words1 = set(text1.lower().split())
    words2 = set(text2.lower().split())

    union = words1 | words2
    if not union:
        return 0.0

    return len(words1 & words2) / len(union)


def cosine_similarity(text1: str, text2: str) -> float:
    """Cosine similarity of the two texts' word-frequency vectors."""
    freq1 = Counter(text1.lower().split())
    freq2 = Counter(text2.lower().split())

    dot_product = sum(count * freq2[word] for word, count in freq1.items() if word in freq2)
    magnitude1 = math.sqrt(sum(count * count for count in freq1.values()))
    magnitude2 = math.sqrt(sum(count * count for count in freq2.values()))

    denominator = magnitude1 * magnitude2
    if denominator == 0:
        return 0.0

    return min(dot_product / denominator, 1.0)


def ngrams(text: str, n: int = DEFAULT_NGRAM_SIZE) -> list[str]:
    """Lowercase word n-grams, joined by a single space."""
    if n <= 0:
        raise InvalidInputError(f"n-gram size must be positive, got {n}")

    words = text.lower().split()
    return [" ".join(words[i:i + n]) for i in range(len(words) - n + 1)]


def ngram_similarity(text1: str, text2: str, n: int = DEFAULT_NGRAM_SIZE) -> float:
    """Jaccard similarity over the two texts' n-gram sets."""
    ngrams1 = set(ngrams(text1, n))
    ngrams2 = set(ngrams(text2, n))

    union = ngrams1 | ngrams2
    if not union:
        return 0.0

    return len(ngrams1 & ngrams2) / len(union)


def bm25_keyword_score(
    content: str,
    keywords: list[str],
    config: Optional[BM25Config] = None,
) -> float:
    """Score content against keywords with a BM25-like formula.

    Term frequency counts occurrences of each keyword inside the lowercased
    content. IDF uses the fixed ``config.corpus_size`` instead of real
    document frequencies. The summed score is averaged over the keywords
    and clamped to [0, 1].

    Args:
        content: Text to score
        keywords: Keywords as produced by tokenize_keywords
        config: Scorer parameters (defaults: k1=1.5, b=0.75, avg_doc_length=300)

    Returns:
        Relevance score in [0, 1]
    """
    if not keywords:
        return 0.0

    config = config or BM25Config()
    k1 = config.k1
    b = config.b

    content_lower = content.lower()
    content_length = len(content_lower.split())

    score = 0.0
    for keyword in keywords:
        tf = content_lower.count(keyword)
        if tf == 0:
            continue

        numerator = tf * (k1 + 1)
        denominator = tf + k1 * (1 - b + b * content_length / config.avg_doc_length)
        idf = math.log((config.corpus_size + 1) / (tf + 0.5))

        score += (numerator / denominator) * idf

    return max(0.0, min(score / len(keywords), 1.0))


def compare_texts(
    text1: str,
    text2: str,
    algorithm: Algorithm | str = Algorithm.COSINE,
    ignore_case: bool = True,
    ignore_whitespace: bool = True,
) -> float:
    """Compare two texts with the chosen algorithm after normalisation."""
    try:
        algorithm = Algorithm(algorithm)
    except ValueError:
        raise InvalidInputError(f"Unknown similarity algorithm: {algorithm}") from None

    if ignore_case:
        text1 = text1.lower()
        text2 = text2.lower()

    if ignore_whitespace:
        text1 = _WHITESPACE.sub(" ", text1).strip()
        text2 = _WHITESPACE.sub(" ", text2).strip()

    if algorithm is Algorithm.LEVENSHTEIN:
        return levenshtein_similarity(text1, text2)
    if algorithm is Algorithm.JACCARD:
        return jaccard_similarity(text1, text2)
    if algorithm is Algorithm.NGRAM:
        return ngram_similarity(text1, text2)
    return cosine_similarity(text1, text2)
