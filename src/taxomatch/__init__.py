"""TaxoMatch: resolve noisy scientific names against taxonomic reference sources.

Names are canonicalized, matched through an ordered cascade of reference
sources (checklist tables and remote services) under an edit-distance
threshold, and AlgaeBase species records are rebuilt and reconciled with the
classification of their genus.
"""

__version__ = "0.1.0"

from taxomatch.canonicalizer import canonicalize
from taxomatch.genus_reconciler import reconcile
from taxomatch.matcher import resolve
from taxomatch.reconstructor import reconstruct
from taxomatch.result_filter import accept
from taxomatch.types.data_classes import (
    CanonicalName,
    GenusClassification,
    MatchResult,
    ReferenceRecord,
    TaxonomicRecord,
)

__all__ = [
    "CanonicalName",
    "GenusClassification",
    "MatchResult",
    "ReferenceRecord",
    "TaxonomicRecord",
    "accept",
    "canonicalize",
    "reconcile",
    "reconstruct",
    "resolve",
]
