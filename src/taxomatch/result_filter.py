"""Edit-distance filter for reconstructed records."""

from typing import Optional

from rapidfuzz.distance import Levenshtein

from taxomatch.types.data_classes import CanonicalName, TaxonomicRecord


def name_distance(record: TaxonomicRecord, query: CanonicalName) -> Optional[int]:
    """Return the Levenshtein distance between a record and a query.

    Returns None when the record has no display name.
    """
    if record.scientific_name is None:
        return None
    return Levenshtein.distance(record.scientific_name, query.value)


def accept(record: TaxonomicRecord, query: CanonicalName, threshold: float) -> bool:
    """Decide whether a reconstructed record is close enough to its query.

    Records without a display name cannot be judged and are kept.

    Args:
        record: The reconstructed record
        query: The canonical query the record was returned for
        threshold: Maximum accepted Levenshtein distance

    Returns:
        True to keep the record, False to drop it
    """
    distance = name_distance(record, query)
    return distance is None or distance <= threshold
