"""Genus reconciliation for species records.

Species records are joined with the higher classification of their genus.
Every distinct genus is looked up once per pass, whatever the number of
species sharing it, and species without a classification are kept.
"""

import logging
import threading
import warnings
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from taxomatch.exceptions import ReconciliationGapWarning, SourceUnavailableError
from taxomatch.types.data_classes import GenusClassification, TaxonomicRecord

logger = logging.getLogger(__name__)

GenusLookup = Callable[[str], Optional[GenusClassification]]


class GenusClassificationCache:
    """Per-pass cache of genus classifications.

    Each genus is looked up at most once. Insertion is double-checked under a
    lock so that concurrent callers asking for the same genus share a single
    lookup. A lookup raising SourceUnavailableError is cached as a gap.
    """

    def __init__(self, lookup: GenusLookup):
        self._lookup = lookup
        self._entries: Dict[str, Optional[GenusClassification]] = {}
        self._lock = threading.Lock()
        self.lookup_count = 0

    def __contains__(self, genus: str) -> bool:
        return genus in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, genus: str) -> Optional[GenusClassification]:
        """Return the classification of ``genus``, looking it up if needed."""
        if genus in self._entries:
            return self._entries[genus]

        with self._lock:
            if genus in self._entries:
                return self._entries[genus]

            self.lookup_count += 1
            try:
                classification = self._lookup(genus)
            except SourceUnavailableError as e:
                logger.warning(f"Genus lookup failed for '{genus}': {e}")
                classification = None
            self._entries[genus] = classification
            return classification


def distinct_genera(records: Iterable[TaxonomicRecord]) -> List[str]:
    """Return the distinct non-null genera of ``records`` in first-seen order."""
    seen = {}
    for record in records:
        if record.genus and record.genus not in seen:
            seen[record.genus] = None
    return list(seen)


def reconcile(
    species_records: Sequence[TaxonomicRecord],
    genus_lookup: GenusLookup,
    cache: Optional[GenusClassificationCache] = None,
) -> List[Tuple[TaxonomicRecord, Optional[GenusClassification]]]:
    """Left-join species records with their genus classification.

    Args:
        species_records: Records to reconcile
        genus_lookup: Callable returning the classification of a genus, or
            None when the genus is unknown
        cache: Optional cache to share within a pass; a fresh one is used
            otherwise

    Returns:
        One (record, classification) pair per input record, in input order
    """
    if cache is None:
        cache = GenusClassificationCache(genus_lookup)

    genera = distinct_genera(species_records)
    logger.debug(f"Reconciling {len(species_records)} records across {len(genera)} genera")

    classifications = {genus: cache.get(genus) for genus in genera}
    for genus, classification in classifications.items():
        if classification is None:
            message = f"No classification found for genus '{genus}'"
            logger.info(message)
            warnings.warn(message, ReconciliationGapWarning, stacklevel=2)

    return [
        (record, classifications.get(record.genus) if record.genus else None)
        for record in species_records
    ]
