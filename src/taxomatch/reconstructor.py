"""Taxonomic record reconstruction.

Upstream species records carry the parts of a name (genus, specific epithet
and one infraspecific epithet slot per rank) next to an authored
``scientificName``. This module rebuilds the display name from those parts
and flags records whose accepted name differs from the record itself.
"""

import logging
import warnings
from typing import Any, Dict, Mapping, Optional, Tuple

from taxomatch.canonicalizer import canonical_tokens
from taxomatch.exceptions import AmbiguousRankWarning
from taxomatch.types.data_classes import (
    INFRASPECIFIC_PRECEDENCE,
    InfraspecificRank,
    TaxonomicRecord,
)
from taxomatch.utils import clean_text, normalize_fields

logger = logging.getLogger(__name__)

# Upstream fields consumed by the reconstructor
_CONSUMED_FIELDS = {
    "genus",
    "specificEpithet",
    "scientificName",
    "scientificNameID",
    "acceptedNameUsageID",
    "acceptedNameUsage",
}

# Authored names are kept under these names
_AUTHORED_FIELDS = {
    "scientificName": "scientificNamewithAuthorship",
    "acceptedNameUsage": "acceptedNameUsagewithAuthorship",
}


def _slot_value(fields: Mapping[str, Any], rank: InfraspecificRank) -> Optional[str]:
    # Accept both "infraspecificEpithet_variety" and plain "variety"
    value = clean_text(fields.get(rank.field_name))
    if value is None:
        value = clean_text(fields.get(rank.field_suffix))
    return value


def infraspecific_slot(fields: Mapping[str, Any]) -> Tuple[InfraspecificRank, Optional[str], bool]:
    """Determine the infraspecific rank and epithet of a record.

    Args:
        fields: Record fields with prefix-free names

    Returns:
        Tuple of (rank, epithet, ambiguous). When more than one slot is
        populated the rank is NONE, the epithet None and ``ambiguous`` True.
    """
    populated = []
    for rank in INFRASPECIFIC_PRECEDENCE:
        value = _slot_value(fields, rank)
        if value is not None:
            populated.append((rank, value))
    if not populated:
        return InfraspecificRank.NONE, None, False
    if len(populated) > 1:
        return InfraspecificRank.NONE, None, True
    rank, epithet = populated[0]
    return rank, epithet, False


def display_name(
    genus: Optional[str],
    specific_epithet: Optional[str],
    rank: InfraspecificRank,
    infraspecific_epithet: Optional[str],
    fallback: Optional[str] = None,
) -> Optional[str]:
    """Build the display name of a taxon.

    Falls back to the canonical form of ``fallback`` when the genus or the
    specific epithet is missing, and to None when that is missing too.
    """
    if genus and specific_epithet:
        parts = [genus, specific_epithet]
        if rank is not InfraspecificRank.NONE and infraspecific_epithet:
            parts.extend([rank.marker, infraspecific_epithet])
        return " ".join(parts)

    tokens = canonical_tokens(fallback)
    return " ".join(tokens) if tokens else None


def reconstruct(fields: Mapping[str, Any]) -> TaxonomicRecord:
    """Reconstruct a taxonomic record from raw upstream fields.

    Args:
        fields: Upstream record; field names may carry ``dwc:``/``dcterms:``
            prefixes and nested ``details`` mappings

    Returns:
        The reconstructed TaxonomicRecord
    """
    normalized = normalize_fields(fields)

    genus = clean_text(normalized.get("genus"))
    specific_epithet = clean_text(normalized.get("specificEpithet"))
    upstream_name = clean_text(normalized.get("scientificName"))
    scientific_name_id = clean_text(normalized.get("scientificNameID"))
    accepted_name_usage_id = clean_text(normalized.get("acceptedNameUsageID"))

    rank, infraspecific_epithet, ambiguous = infraspecific_slot(normalized)
    if ambiguous:
        message = (
            f"Record {scientific_name_id or upstream_name!r} has more than one "
            f"infraspecific epithet; using the binomial"
        )
        logger.warning(message)
        warnings.warn(message, AmbiguousRankWarning, stacklevel=2)

    scientific_name = display_name(genus, specific_epithet, rank, infraspecific_epithet, upstream_name)

    attributes: Dict[str, Any] = {}
    for key, value in normalized.items():
        if key in _AUTHORED_FIELDS:
            attributes[_AUTHORED_FIELDS[key]] = value
        elif key not in _CONSUMED_FIELDS:
            attributes[key] = value

    return TaxonomicRecord(
        genus=genus,
        specific_epithet=specific_epithet,
        infraspecific_rank=rank,
        infraspecific_epithet=infraspecific_epithet,
        scientific_name=scientific_name,
        scientific_name_id=scientific_name_id,
        accepted_name_usage_id=accepted_name_usage_id,
        needs_taxo_update=accepted_name_usage_id != scientific_name_id,
        ambiguous_rank=ambiguous,
        attributes=attributes,
    )
