"""Batch pipelines producing TaxoMatch's output tables.

Every pipeline processes one name at a time and isolates failures: a
malformed name or an unavailable source degrades that name's row to nulls,
and the batch always yields at least one row per input.
"""

import json
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

import polars as pl
from tqdm import tqdm

from taxomatch.canonicalizer import canonicalize
from taxomatch.config import config
from taxomatch.constants import (
    CORRECTION_COLUMN_PREFIX,
    CORRECTION_QUERY_COLUMN,
    HIGHER_RANKS,
    NAME2ID_COLUMNS,
    SPECIES_RECORD_COLUMNS,
)
from taxomatch.exceptions import MalformedNameError, SourceUnavailableError
from taxomatch.genus_reconciler import reconcile
from taxomatch.matcher import candidates_within, cascade
from taxomatch.reconstructor import reconstruct
from taxomatch.result_filter import accept
from taxomatch.sources.algaebase import AlgaeBaseClient, AlgaeBaseSource
from taxomatch.sources.base import ReferenceSource
from taxomatch.types.data_classes import CanonicalName, GenusClassification, TaxonomicRecord
from taxomatch.utils import clean_text

logger = logging.getLogger(__name__)

_BOOLEAN_COLUMNS = {"needsTaxoUpdate", "ambiguousRank"}


def _progress(items: Sequence[Any], desc: str, show_progress: Optional[bool]):
    if show_progress is None:
        show_progress = config.show_progress
    return tqdm(items, desc=desc) if show_progress else items


def _try_canonicalize(raw: Optional[str]) -> Optional[CanonicalName]:
    try:
        return canonicalize(raw)
    except MalformedNameError as e:
        logger.warning(str(e))
        return None


def _to_cell(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def _build_frame(
    rows: List[Dict[str, Any]],
    schema: Mapping[str, pl.DataType],
    include_extra: bool = True,
) -> pl.DataFrame:
    """Build a DataFrame with fixed leading columns and optional extras.

    Extra columns follow in first-seen order and are stored as strings.
    """
    columns = list(schema)
    if include_extra:
        for row in rows:
            for key in row:
                if key not in schema and key not in columns:
                    columns.append(key)

    data = {}
    full_schema = {}
    for column in columns:
        values = [row.get(column) for row in rows]
        if column in schema:
            full_schema[column] = schema[column]
        else:
            values = [_to_cell(v) for v in values]
            full_schema[column] = pl.Utf8
        data[column] = values
    return pl.DataFrame(data, schema=full_schema)


def _species_schema(first_column: str = "parse_name") -> Dict[str, pl.DataType]:
    schema = {}
    for column in SPECIES_RECORD_COLUMNS:
        name = first_column if column == "parse_name" else column
        schema[name] = pl.Boolean if column in _BOOLEAN_COLUMNS else pl.Utf8
    return schema


def _species_row(
    record: Optional[TaxonomicRecord],
    classification: Optional[GenusClassification],
) -> Dict[str, Any]:
    row: Dict[str, Any] = {}
    if record is not None:
        row.update(record.attributes)
        row.update(record.to_dict())
    if classification is not None:
        row.update(classification.to_dict())
    else:
        # Ranks already on the record are kept
        for rank in HIGHER_RANKS:
            row.setdefault(rank, None)
    return row


def _unique_labels(sources: Sequence[ReferenceSource]) -> List[str]:
    labels = []
    for index, source in enumerate(sources, start=1):
        label = source.label
        if label in labels:
            label = f"{label}_{index}"
        labels.append(label)
    return labels


def correct_scientific_names(
    names: Iterable[Optional[str]],
    sources: Sequence[ReferenceSource],
    threshold: Optional[float] = None,
    show_progress: Optional[bool] = None,
) -> pl.DataFrame:
    """Correct scientific names through a cascade of reference sources.

    Args:
        names: Raw names, in order
        sources: Reference sources in priority order
        threshold: Maximum Levenshtein distance (defaults to
            ``config.correction_threshold``)
        show_progress: Whether to display a progress bar

    Returns:
        One row per name: the reported name, the corrected name from each
        source (``corrected_ScientificName_<Source>``, null for sources that
        did not match or were never consulted), the final
        corrected name, the source it came from and its distance
    """
    names = list(names)
    threshold = config.correction_threshold if threshold is None else threshold
    step_columns = [f"{CORRECTION_COLUMN_PREFIX}_{label}" for label in _unique_labels(sources)]

    rows = []
    for raw in _progress(names, "Correcting names", show_progress):
        row: Dict[str, Any] = {CORRECTION_QUERY_COLUMN: raw}
        result, step = cascade(_try_canonicalize(raw), sources, threshold)

        # Only the source that produced the match fills its step column
        for index, column in enumerate(step_columns):
            row[column] = result.matched_name if index == step else None

        row[CORRECTION_COLUMN_PREFIX] = result.matched_name
        row["matched_source"] = sources[step].label if step is not None else None
        row["match_distance"] = result.distance
        rows.append(row)

    schema: Dict[str, pl.DataType] = {CORRECTION_QUERY_COLUMN: pl.Utf8}
    schema.update({column: pl.Utf8 for column in step_columns})
    schema.update({
        CORRECTION_COLUMN_PREFIX: pl.Utf8,
        "matched_source": pl.Utf8,
        "match_distance": pl.Float64,
    })

    matched = sum(1 for row in rows if row[CORRECTION_COLUMN_PREFIX] is not None)
    logger.info(f"Corrected {matched} of {len(rows)} names")
    return _build_frame(rows, schema, include_extra=False)


def algaebase_name2id(
    names: Iterable[Optional[str]],
    client: AlgaeBaseClient,
    threshold: Optional[float] = None,
    show_progress: Optional[bool] = None,
) -> pl.DataFrame:
    """Look up AlgaeBase identifiers for genus or species names.

    Genus names are searched on the genus endpoint, species names on the
    species endpoint. Every returned record whose canonical name lies within
    ``threshold`` of the query is kept, so a name listed under several ids
    yields several rows.

    Returns:
        Table with ``raw_name``, ``scientificNameID`` and
        ``acceptedNameUsageID``; names without a surviving record keep one
        null row
    """
    names = list(names)
    threshold = config.record_threshold if threshold is None else threshold
    source = AlgaeBaseSource(client)

    rows = []
    for raw in _progress(names, "Looking up AlgaeBase ids", show_progress):
        query = _try_canonicalize(raw)
        kept = []
        if query is not None:
            try:
                kept = candidates_within(query.value, source.candidates(query), threshold)
            except SourceUnavailableError as e:
                logger.warning(f"AlgaeBase search failed for '{query.value}': {e}")

        if not kept:
            rows.append({"raw_name": raw, "scientificNameID": None, "acceptedNameUsageID": None})
        for record, _ in kept:
            rows.append({
                "raw_name": raw,
                "scientificNameID": clean_text(record.attributes.get("scientificNameID")),
                "acceptedNameUsageID": clean_text(record.attributes.get("acceptedNameUsageID")),
            })

    return _build_frame(rows, {column: pl.Utf8 for column in NAME2ID_COLUMNS}, include_extra=False)


def _classify(
    pairs: List[tuple],
    client: AlgaeBaseClient,
    add_taxo: bool,
) -> List[Dict[str, Any]]:
    """Turn (first column value, record) pairs into rows, joining genera."""
    records = [record for _, record in pairs if record is not None]
    classifications: List[Optional[GenusClassification]] = [None] * len(records)
    if add_taxo and records:
        classifications = [c for _, c in reconcile(records, client.genus_classification)]

    joined = iter(classifications)
    rows = []
    for first, record in pairs:
        classification = next(joined) if record is not None else None
        row = {"__first__": first}
        row.update(_species_row(record, classification))
        rows.append(row)
    return rows


def _rename_first(rows: List[Dict[str, Any]], column: str) -> List[Dict[str, Any]]:
    renamed = []
    for row in rows:
        row = dict(row)
        first = row.pop("__first__")
        renamed.append({column: first, **row})
    return renamed


def algaebase_records_species(
    names: Iterable[Optional[str]],
    client: AlgaeBaseClient,
    add_taxo: bool = True,
    threshold: Optional[float] = None,
    apply_filter: bool = True,
    offset: int = 0,
    count: Optional[int] = None,
    show_progress: Optional[bool] = None,
) -> pl.DataFrame:
    """Fetch AlgaeBase species records for a list of names.

    Args:
        names: Raw species names
        client: AlgaeBase client
        add_taxo: Whether to join genus classification columns
        threshold: Maximum Levenshtein distance between a record's display
            name and the query (defaults to ``config.record_threshold``)
        apply_filter: Whether to drop records farther than ``threshold``
        offset: Pagination offset for the species search
        count: Page size for the species search
        show_progress: Whether to display a progress bar

    Returns:
        Species record table; names without any surviving record keep one
        row with null fields
    """
    names = list(names)
    threshold = config.record_threshold if threshold is None else threshold

    pairs = []
    for raw in _progress(names, "Fetching species records", show_progress):
        query = _try_canonicalize(raw)
        kept: List[TaxonomicRecord] = []
        if query is not None:
            try:
                upstream = client.search_species(query.value, offset=offset, count=count)
            except SourceUnavailableError as e:
                logger.warning(f"Species search failed for '{query.value}': {e}")
                upstream = []
            for fields in upstream:
                record = reconstruct(fields)
                if not apply_filter or accept(record, query, threshold):
                    kept.append(record)
            logger.debug(f"Kept {len(kept)} of {len(upstream)} records for '{query.value}'")

        if kept:
            pairs.extend((raw, record) for record in kept)
        else:
            pairs.append((raw, None))

    rows = _rename_first(_classify(pairs, client, add_taxo), "parse_name")
    return _build_frame(rows, _species_schema("parse_name"))


def algaebase_records_ids(
    species_ids: Iterable[Any],
    client: AlgaeBaseClient,
    add_taxo: bool = True,
    show_progress: Optional[bool] = None,
) -> pl.DataFrame:
    """Fetch AlgaeBase species records by id.

    Returns:
        One row per id, headed by ``raw_ID``; unknown ids keep a null row
    """
    species_ids = list(species_ids)

    pairs = []
    for species_id in _progress(species_ids, "Fetching species by id", show_progress):
        record = None
        try:
            fields = client.species_by_id(species_id)
        except SourceUnavailableError as e:
            logger.warning(f"Species lookup failed for id {species_id}: {e}")
            fields = None
        if fields:
            record = reconstruct(fields)
        else:
            logger.info(f"No AlgaeBase species with id {species_id}")
        pairs.append((None if species_id is None else str(species_id), record))

    rows = _rename_first(_classify(pairs, client, add_taxo), "raw_ID")
    return _build_frame(rows, _species_schema("raw_ID"))


def algaebase_records_genus(
    genera: Iterable[Optional[str]],
    client: AlgaeBaseClient,
    show_progress: Optional[bool] = None,
) -> pl.DataFrame:
    """Fetch AlgaeBase genus records.

    Returns:
        Genus record table headed by ``parse_name``; every returned record is
        kept and genera without records keep one row
    """
    genera = list(genera)

    rows = []
    for raw in _progress(genera, "Fetching genus records", show_progress):
        query = _try_canonicalize(raw)
        records: List[Dict[str, Any]] = []
        if query is not None:
            try:
                records = client.search_genus(query.genus)
            except SourceUnavailableError as e:
                logger.warning(f"Genus search failed for '{query.genus}': {e}")
        if not records:
            rows.append({"parse_name": raw})
        for record in records:
            rows.append({"parse_name": raw, **record})

    return _build_frame(rows, {"parse_name": pl.Utf8})


def algaebase_records_creator(
    creators: Union[str, Iterable[str]],
    client: AlgaeBaseClient,
    offset: int = 0,
    count: int = 100000,
) -> pl.DataFrame:
    """Fetch AlgaeBase species records by creator name prefix.

    Args:
        creators: One creator or several
        client: AlgaeBase client
        offset: Pagination offset
        count: Page size

    Returns:
        One row per returned record with prefix-free field names, headed by
        the ``query_creator`` it was found by
    """
    if isinstance(creators, str):
        creators = [creators]

    rows = []
    for creator in creators:
        try:
            records = client.species_by_creator(creator, offset=offset, count=count)
        except SourceUnavailableError as e:
            logger.warning(f"Creator search failed for '{creator}': {e}")
            continue
        if not records:
            logger.info(f"No AlgaeBase records for creator '{creator}'")
        rows.extend({"query_creator": creator, **record} for record in records)

    return _build_frame(rows, {"query_creator": pl.Utf8})
