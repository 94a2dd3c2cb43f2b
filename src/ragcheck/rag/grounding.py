"""Attribute generated sentences to the retrieved chunks that support them."""

import logging
import re
from typing import Optional

from ragcheck.text.metrics import tokenize_keywords
from ragcheck.utils.config import GroundingConfig

from .document import GroundedClaim, SearchResult

logger = logging.getLogger(__name__)

_SENTENCE_END = re.compile(r"[.!?]+")


def split_sentences(text: str, min_length: int = 10) -> list[str]:
    """Split text on sentence terminators, dropping fragments of ``min_length`` chars or fewer."""
    sentences = (part.strip() for part in _SENTENCE_END.split(text))
    return [sentence for sentence in sentences if len(sentence) > min_length]


def support_confidence(
    sentence: str,
    content: str,
    phrase_bonus: float = 0.5,
) -> float:
    """How well ``content`` supports ``sentence``, in [0, 1].

    The share of the sentence's keywords found in the content, plus
    ``phrase_bonus`` when the whole sentence appears verbatim (case-folded).
    """
    content_lower = content.lower()
    keywords = tokenize_keywords(sentence)

    overlap = 0.0
    if keywords:
        matched = sum(1 for word in keywords if word in content_lower)
        overlap = matched / len(keywords)

    phrase_match = phrase_bonus if sentence.lower() in content_lower else 0.0
    return min(overlap + phrase_match, 1.0)


def ground_sources(
    generated_text: str,
    results: list[SearchResult],
    config: Optional[GroundingConfig] = None,
) -> list[GroundedClaim]:
    """Ground each sentence of generated text in the retrieved results.

    For every sentence, results with confidence above
    ``config.min_confidence`` are kept, best first, up to
    ``config.max_sources``. Sentences without any supporting result are left
    out of the output.

    Args:
        generated_text: Text produced from the retrieved context
        results: Retrieved chunks the text was generated from
        config: Grounding thresholds

    Returns:
        Grounded claims in sentence order
    """
    config = config or GroundingConfig()
    claims = []

    for sentence in split_sentences(generated_text, config.min_sentence_length):
        scored = [
            (result, support_confidence(sentence, result.content, config.phrase_match_bonus))
            for result in results
        ]
        supporting = [item for item in scored if item[1] > config.min_confidence]
        supporting.sort(key=lambda item: item[1], reverse=True)
        supporting = supporting[:config.max_sources]

        if not supporting:
            logger.debug(f"No source supports claim: {sentence[:60]!r}")
            continue

        claims.append(GroundedClaim(
            claim=sentence,
            sources=[result for result, _ in supporting],
            confidence=supporting[0][1],
        ))

    return claims
