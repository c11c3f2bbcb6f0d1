"""
Fuzzy matching of registry artifact references against hub model ids.

Registry modelcar references (`registry.redhat.io/rhelai1/modelcar-llama-3-1-8b:1.5`)
and hub ids (`RedHatAI/Llama-3.1-8B`) follow different spelling conventions, so
both sides are normalised to lowercase dash-separated tokens before comparison.
The score is the fraction of tokens shared one-to-one, with a small boost when
one normalised name contains the other. It is symmetric in its arguments.
"""
import logging
import re
from collections import Counter
from typing import Iterable, List

from ..config import HIGH_CONFIDENCE_THRESHOLD, MATCH_THRESHOLD
from .schemas import ConfidenceLevel, HubIndexEntry, MatchResult

logger = logging.getLogger(__name__)

CONTAINMENT_BOOST = 0.1

KNOWN_PREFIXES = ("registry.redhat.io/rhelai1/modelcar-", "redhatai/")

_SEPARATORS = re.compile(r"[_. :]")
_REPEATED_DASHES = re.compile(r"-{2,}")


def normalize_model_name(name: str) -> str:
    """Lowercase, drop known prefixes and the `:tag`, and join tokens with single dashes."""
    normalized = name.lower()

    stripped = True
    while stripped:
        stripped = False
        for prefix in KNOWN_PREFIXES:
            if normalized.startswith(prefix):
                normalized = normalized[len(prefix):]
                stripped = True

    if ":" in normalized:
        normalized = normalized[:normalized.rindex(":")]

    normalized = _SEPARATORS.sub("-", normalized)
    return _REPEATED_DASHES.sub("-", normalized)


def _tokens(normalized: str) -> List[str]:
    return [token for token in normalized.split("-") if token]


def calculate_similarity(first: str, second: str) -> float:
    """Similarity in [0, 1] between two model identifiers."""
    normalized_first = normalize_model_name(first)
    normalized_second = normalize_model_name(second)

    first_tokens = _tokens(normalized_first)
    second_tokens = _tokens(normalized_second)
    if not first_tokens or not second_tokens:
        return 0.0

    if normalized_first == normalized_second:
        return 1.0

    # Multiset intersection: each token on one side pairs with at most one on the other
    common = sum((Counter(first_tokens) & Counter(second_tokens)).values())
    token_score = common / max(len(first_tokens), len(second_tokens))

    if normalized_first in normalized_second or normalized_second in normalized_first:
        return token_score + (1.0 - token_score) * CONTAINMENT_BOOST
    return token_score


def confidence_for_score(score: float) -> ConfidenceLevel:
    if score >= HIGH_CONFIDENCE_THRESHOLD:
        return ConfidenceLevel.HIGH
    if score >= MATCH_THRESHOLD:
        return ConfidenceLevel.MEDIUM
    return ConfidenceLevel.NONE


def find_best_match(ref: str, candidates: Iterable[HubIndexEntry]) -> MatchResult:
    """
    Score every candidate against the reference and keep the best one.

    Ties keep the earliest candidate. A best score below the match threshold
    yields a result with no candidate and confidence `none`.
    """
    best_candidate = None
    best_score = 0.0
    for candidate in candidates:
        score = calculate_similarity(ref, candidate.name)
        if score > best_score:
            best_candidate = candidate
            best_score = score

    confidence = confidence_for_score(best_score)
    if best_candidate is None or confidence == ConfidenceLevel.NONE:
        logger.debug(f"No hub match for {ref} (best score {best_score:.2f})")
        return MatchResult(score=best_score)

    logger.debug(f"Matched {ref} -> {best_candidate.name} (score {best_score:.2f}, {confidence.value})")
    return MatchResult(candidate=best_candidate, score=best_score, confidence=confidence)
