"""Reference checklist downloads.

Dyntaxa, the Nordic Microalgae checklist and the IOC-UNESCO HABs taxonomic
list are published as tab-delimited text. Downloads go through the download
cache and can optionally be written to a directory as well.
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import polars as pl
import requests

from taxomatch.cache_manager import cached
from taxomatch.config import config
from taxomatch.constants import (
    DYNTAXA_BIOTA_URL,
    HABS_TAXLIST_URL,
    HABS_TAXON_RANKS,
    NORDIC_MICROALGAE_URL,
)
from taxomatch.data_handler import parse_delimited_text
from taxomatch.exceptions import SourceUnavailableError
from taxomatch.sources.base import ReferenceSource
from taxomatch.sources.table import TableSource
from taxomatch.sources.worms import WoRMSClient, WoRMSSource
from taxomatch.types.data_classes import SourceId

logger = logging.getLogger(__name__)

DYNTAXA_FILENAME = "dyntaxa_Biota.txt"
NORDIC_MICROALGAE_FILENAME = "nordicmicroalgae_checklist_2024_apr_04.txt"
HABS_FILENAME = "HABs_taxlist.txt"

# Columns requested from the HABs export form
HABS_EXPORT_FIELDS = (
    "id", "dn", "auth", "tu_fossil", "RankName", "status_name", "qualitystatus_name",
    "modified", "lsid", "tu_parent", "tu_sp", "citation", "Classification",
    "Environment", "Accepted_taxon",
)


@cached(prefix="reference_text", key_args=["url", "method", "form"])
def fetch_reference_text(url: str, method: str = "GET", form: Optional[Dict[str, str]] = None) -> str:
    """Download a reference file as text.

    Args:
        url: File URL
        method: HTTP method, ``GET`` or ``POST``
        form: Form fields sent with a POST request

    Returns:
        The decoded response body

    Raises:
        SourceUnavailableError: If the download fails
    """
    logger.info(f"Downloading {url}")
    try:
        response = requests.request(method, url, data=form, timeout=config.request_timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        raise SourceUnavailableError(url, str(e)) from e
    return response.content.decode("utf-8", errors="replace")


def _save_text(text: str, save_dir, filename: str) -> Path:
    directory = Path(save_dir) if save_dir is not None else Path(config.cache_dir)
    directory.mkdir(parents=True, exist_ok=True)
    output_file = directory / filename
    output_file.write_text(text, encoding="utf-8")
    logger.info(f"Saved {output_file}")
    return output_file


def download_dyntaxa_biota(save_dir=None, write: bool = False, refresh_cache: bool = False) -> pl.DataFrame:
    """Download the Dyntaxa biota checklist.

    Args:
        save_dir: Directory to write the file to (defaults to the cache dir)
        write: Whether to write the raw file to ``save_dir``
        refresh_cache: Bypass the download cache

    Returns:
        The checklist, with a ``ScientificName`` column
    """
    text = fetch_reference_text(DYNTAXA_BIOTA_URL, refresh_cache=refresh_cache)
    if write:
        _save_text(text, save_dir, DYNTAXA_FILENAME)
    return parse_delimited_text(text)


def download_nordic_microalgae(save_dir=None, write: bool = False, refresh_cache: bool = False) -> pl.DataFrame:
    """Download the Nordic Microalgae checklist.

    Returns:
        The checklist, with a ``scientific_name`` column
    """
    text = fetch_reference_text(NORDIC_MICROALGAE_URL, refresh_cache=refresh_cache)
    if write:
        _save_text(text, save_dir, NORDIC_MICROALGAE_FILENAME)
    return parse_delimited_text(text)


def habs_form_data(output_type: str = "txt", p: str = "download", what: str = "taxlist",
                   **fields: bool) -> Dict[str, str]:
    """Build the form submitted to the HABs export page.

    Every field of HABS_EXPORT_FIELDS is requested unless set to False.
    """
    unknown = set(fields) - set(HABS_EXPORT_FIELDS)
    if unknown:
        raise ValueError(f"Unknown HABs export fields: {sorted(unknown)}")

    form = {"output_type": output_type, "submitted": "1", "p": p, "what": what}
    for name in HABS_EXPORT_FIELDS:
        form[name] = "1" if fields.get(name, True) else "0"
    return form


def download_habs_taxlist(save_dir=None, write: bool = False, refresh_cache: bool = False,
                          output_type: str = "txt", **fields: bool) -> pl.DataFrame:
    """Download the IOC-UNESCO HABs taxonomic list.

    Only Species, Variety and Forma rows are kept.

    Args:
        save_dir: Directory to write the file to (defaults to the cache dir)
        write: Whether to write the raw file to ``save_dir``
        refresh_cache: Bypass the download cache
        output_type: Export format requested from the server
        **fields: Export columns to switch off, e.g. ``citation=False``

    Returns:
        The filtered taxonomic list
    """
    form = habs_form_data(output_type=output_type, **fields)
    text = fetch_reference_text(HABS_TAXLIST_URL, method="POST", form=form, refresh_cache=refresh_cache)
    if write:
        _save_text(text, save_dir, HABS_FILENAME)

    df = parse_delimited_text(text)
    if "taxonRank" not in df.columns:
        logger.warning("HABs taxonomic list has no taxonRank column; returning it unfiltered")
        return df
    return df.filter(pl.col("taxonRank").is_in(HABS_TAXON_RANKS))


def default_sources(
    precedence: Optional[Sequence[str]] = None,
    worms_client: Optional[WoRMSClient] = None,
) -> List[ReferenceSource]:
    """Build the correction cascade from source labels.

    Args:
        precedence: Source labels in priority order (defaults to
            ``config.source_precedence``)
        worms_client: Client used by the WoRMS source

    Raises:
        ValueError: On an unknown source label
    """
    precedence = precedence or config.source_precedence
    sources: List[ReferenceSource] = []
    for label in precedence:
        if label == SourceId.DYNTAXA.label:
            sources.append(TableSource(download_dyntaxa_biota(), SourceId.DYNTAXA))
        elif label == SourceId.NORDIC.label:
            sources.append(TableSource(download_nordic_microalgae(), SourceId.NORDIC))
        elif label == SourceId.WORMS.label:
            sources.append(WoRMSSource(worms_client or WoRMSClient()))
        else:
            raise ValueError(f"Unknown reference source: {label}")
    return sources
