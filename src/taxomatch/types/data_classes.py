"""Core data classes for TaxoMatch.

This module defines the immutable data classes that flow through the name
resolution workflow. Each class represents the output of one stage.

Design Principles:
- Immutability: All classes are frozen to prevent modification after creation
- Clear Data Flow: raw name -> CanonicalName -> MatchResult / TaxonomicRecord
  -> (TaxonomicRecord, GenusClassification)
- Provenance: Derived values keep a reference to the value they came from
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional


class NameRank(Enum):
    """Shape of a canonical name, resolved once by the canonicalizer."""

    GENUS = "genus"
    SPECIES = "species"


class SourceId(Enum):
    """Reference sources a record can come from."""

    DYNTAXA = "Dyntaxa"
    NORDIC = "Nordic"
    WORMS = "WoRMS"
    ALGAEBASE_SPECIES = "AlgaeBaseSpecies"
    ALGAEBASE_GENUS = "AlgaeBaseGenus"

    @property
    def label(self) -> str:
        """Return the label used in output column names."""
        return self.value


class InfraspecificRank(Enum):
    """Infraspecific rank of a reconstructed record, with its name marker."""

    def __init__(self, field_suffix: Optional[str], marker: Optional[str]):
        self.field_suffix = field_suffix
        self.marker = marker

    NONE = (None, None)
    FORMA = ("forma", "f.")
    SUBSPECIES = ("subspecies", "subsp.")
    VARIETY = ("variety", "var.")

    @property
    def field_name(self) -> Optional[str]:
        """Return the upstream field holding the epithet for this rank."""
        if self.field_suffix is None:
            return None
        return f"infraspecificEpithet_{self.field_suffix}"


# Precedence used when building display names
INFRASPECIFIC_PRECEDENCE = (
    InfraspecificRank.FORMA,
    InfraspecificRank.SUBSPECIES,
    InfraspecificRank.VARIETY,
)


def _freeze(mapping: Optional[Mapping[str, Any]]) -> Mapping[str, Any]:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True)
class CanonicalName:
    """A raw name reduced to genus, epithets and rank markers.

    The rank is derived from the word count: one word is a genus, anything
    longer is a species (or below).
    """

    value: str
    rank: NameRank
    word_count: int

    @property
    def is_genus(self) -> bool:
        """Return whether the name is a uninomial."""
        return self.rank is NameRank.GENUS

    @property
    def genus(self) -> str:
        """Return the genus part of the name."""
        return self.value.split(" ", 1)[0]


@dataclass(frozen=True)
class ReferenceRecord:
    """An immutable snapshot of one row from a reference source."""

    name: str
    source_id: SourceId
    attributes: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "attributes", _freeze(self.attributes))


@dataclass(frozen=True)
class MatchResult:
    """Outcome of the cascading matcher for one query.

    ``matched_record`` is None iff no source produced a candidate within the
    threshold; ``distance`` and ``source`` are None in that case too.
    """

    query: Optional[CanonicalName]
    matched_record: Optional[ReferenceRecord] = None
    distance: Optional[float] = None
    source: Optional[SourceId] = None

    @property
    def is_match(self) -> bool:
        """Return whether a source produced a match."""
        return self.matched_record is not None

    @property
    def matched_name(self) -> Optional[str]:
        """Return the matched name, if any."""
        return self.matched_record.name if self.matched_record else None


@dataclass(frozen=True)
class TaxonomicRecord:
    """A species-level record with its reconstructed display name."""

    genus: Optional[str] = None
    specific_epithet: Optional[str] = None
    infraspecific_rank: InfraspecificRank = InfraspecificRank.NONE
    infraspecific_epithet: Optional[str] = None
    scientific_name: Optional[str] = None
    scientific_name_id: Optional[str] = None
    accepted_name_usage_id: Optional[str] = None
    needs_taxo_update: bool = False

    # Set when more than one infraspecific slot was populated upstream
    ambiguous_rank: bool = False

    # Remaining upstream fields, prefixes stripped
    attributes: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "attributes", _freeze(self.attributes))

    def to_dict(self) -> Dict[str, Any]:
        """Convert the record to a flat dictionary using output column names."""
        return {
            "genus": self.genus,
            "specificEpithet": self.specific_epithet,
            "infraspecificRank": self.infraspecific_rank.field_suffix,
            "infraspecificEpithet": self.infraspecific_epithet,
            "scientificName": self.scientific_name,
            "scientificNameID": self.scientific_name_id,
            "acceptedNameUsageID": self.accepted_name_usage_id,
            "needsTaxoUpdate": self.needs_taxo_update,
            "ambiguousRank": self.ambiguous_rank,
        }


@dataclass(frozen=True)
class GenusClassification:
    """Higher classification of one genus."""

    genus: str
    kingdom: Optional[str] = None
    phylum: Optional[str] = None
    class_: Optional[str] = None  # Using class_ to avoid conflict with Python keyword
    order: Optional[str] = None
    family: Optional[str] = None

    def to_dict(self) -> Dict[str, Optional[str]]:
        """Convert the classification to a dictionary."""
        return {
            "kingdom": self.kingdom,
            "phylum": self.phylum,
            "class": self.class_,  # Convert class_ back to class
            "order": self.order,
            "family": self.family,
        }
