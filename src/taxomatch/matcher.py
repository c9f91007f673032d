"""Cascading matcher for TaxoMatch.

A canonical name is looked up in each reference source in priority order. The
first source holding either the exact name or a candidate within the edit
distance threshold wins; later sources are never consulted.
"""

import logging
import math
from typing import List, Optional, Sequence, Tuple

from rapidfuzz.distance import Levenshtein

from taxomatch.exceptions import SourceUnavailableError
from taxomatch.sources.base import ReferenceSource
from taxomatch.types.data_classes import CanonicalName, MatchResult, ReferenceRecord

logger = logging.getLogger(__name__)


def _exact_candidate(
    name: CanonicalName,
    source: ReferenceSource,
    candidates: Sequence[ReferenceRecord],
) -> Optional[ReferenceRecord]:
    exact = getattr(source, "exact", None)
    if exact is not None:
        return exact(name)
    for candidate in candidates:
        if candidate.name == name.value:
            return candidate
    return None


def closest_candidate(
    value: str,
    candidates: Sequence[ReferenceRecord],
    threshold: float,
) -> Tuple[Optional[ReferenceRecord], Optional[int]]:
    """Return the candidate closest to ``value`` within ``threshold``.

    Ties go to the earliest candidate.

    Args:
        value: The string to compare against
        candidates: Candidate records in their natural order
        threshold: Maximum accepted Levenshtein distance

    Returns:
        Tuple of (best candidate, distance), or (None, None) when no
        candidate is close enough
    """
    if threshold < 0:
        return None, None

    # Distances are integers, so d <= threshold iff d <= floor(threshold)
    cutoff = int(math.floor(threshold))
    best: Optional[ReferenceRecord] = None
    best_distance: Optional[int] = None

    for candidate in candidates:
        limit = cutoff if best_distance is None else best_distance - 1
        if limit < 0:
            break
        distance = Levenshtein.distance(value, candidate.name, score_cutoff=limit)
        if distance <= limit:
            best, best_distance = candidate, distance

    return best, best_distance


def candidates_within(
    value: str,
    candidates: Sequence[ReferenceRecord],
    threshold: float,
) -> List[Tuple[ReferenceRecord, int]]:
    """Return every candidate within ``threshold`` of ``value``, in order."""
    if threshold < 0:
        return []

    cutoff = int(math.floor(threshold))
    kept = []
    for candidate in candidates:
        distance = Levenshtein.distance(value, candidate.name, score_cutoff=cutoff)
        if distance <= cutoff:
            kept.append((candidate, distance))
    return kept


def cascade(
    name: Optional[CanonicalName],
    sources: Sequence[ReferenceSource],
    threshold: float,
) -> Tuple[MatchResult, Optional[int]]:
    """Run the cascade and report which source produced the match.

    Args:
        name: The canonical name to resolve; None or empty yields no match
        sources: Reference sources in priority order
        threshold: Maximum accepted Levenshtein distance

    Returns:
        Tuple of (MatchResult, index of the winning source or None)
    """
    if name is None or not name.value:
        return MatchResult(query=name), None

    for index, source in enumerate(sources):
        try:
            candidates = source.candidates(name)
            exact = _exact_candidate(name, source, candidates)
            if exact is not None:
                logger.debug(f"Exact match for '{name.value}' in {source.label}")
                return MatchResult(query=name, matched_record=exact, distance=0.0, source=exact.source_id), index

            best, distance = closest_candidate(name.value, candidates, threshold)
        except SourceUnavailableError as e:
            logger.warning(f"Skipping {source.label} for '{name.value}': {e}")
            continue

        if best is not None:
            logger.debug(f"Matched '{name.value}' to '{best.name}' in {source.label} (distance {distance})")
            result = MatchResult(query=name, matched_record=best, distance=float(distance), source=best.source_id)
            return result, index

    return MatchResult(query=name), None


def resolve(
    name: Optional[CanonicalName],
    sources: Sequence[ReferenceSource],
    threshold: float,
) -> MatchResult:
    """Resolve a canonical name against ordered reference sources.

    Sources are consulted in order. An exact name match returns at once with
    distance 0; otherwise the closest candidate within ``threshold`` wins.
    A source raising SourceUnavailableError counts as having no match.

    Returns:
        MatchResult describing the winning candidate, or an empty result
    """
    return cascade(name, sources, threshold)[0]
