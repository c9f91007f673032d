"""AlgaeBase client and reference sources.

The AlgaeBase API (v1.3) authenticates every request with an ``abapikey``
header. Search endpoints wrap their records in a ``result`` list; the species
detail endpoint returns a single record with its Darwin Core fields nested
under ``details``. Field names are returned without their ``dwc:``/
``dcterms:`` prefixes.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

import requests

from taxomatch.canonicalizer import canonical_tokens
from taxomatch.config import config
from taxomatch.constants import HIGHER_RANKS
from taxomatch.exceptions import MissingApiKeyError, SourceUnavailableError
from taxomatch.sources.base import ReferenceSource
from taxomatch.types.data_classes import (
    CanonicalName,
    GenusClassification,
    NameRank,
    ReferenceRecord,
    SourceId,
)
from taxomatch.utils import clean_text, normalize_fields

logger = logging.getLogger(__name__)

SOURCE_LABEL = "AlgaeBase"


class AlgaeBaseClient:
    """Client for the AlgaeBase REST API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        """Initialize the client.

        Args:
            api_key: AlgaeBase API key (defaults to ``config.algaebase_api_key``,
                which reads ``ALGAEBASE_API_KEY``)
            base_url: API root URL
            timeout: Request timeout in seconds
            session: Optional requests session, mainly for testing

        Raises:
            MissingApiKeyError: If no API key is available
        """
        self.api_key = api_key if api_key is not None else config.algaebase_api_key
        if not self.api_key:
            raise MissingApiKeyError(
                "API key is required. Pass it explicitly or set the ALGAEBASE_API_KEY environment variable."
            )
        self.base_url = (base_url or config.algaebase_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else config.request_timeout
        self.session = session or requests.Session()
        self.session.headers.update({"abapikey": self.api_key})

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Optional[Any]:
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            raise SourceUnavailableError(SOURCE_LABEL, str(e)) from e

        if response.status_code in (204, 404):
            logger.debug(f"No AlgaeBase data for {url} {params or ''}")
            return None
        if not response.ok:
            raise SourceUnavailableError(SOURCE_LABEL, f"HTTP {response.status_code} from {url}")

        try:
            return response.json()
        except ValueError as e:
            raise SourceUnavailableError(SOURCE_LABEL, f"Invalid JSON: {e}") from e

    def _search(self, path: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        payload = self._get(path, params)
        if payload is None:
            return []
        if not isinstance(payload, dict):
            raise SourceUnavailableError(SOURCE_LABEL, "Unexpected response shape")
        results = payload.get("result") or []
        return [normalize_fields(record) for record in results if isinstance(record, dict)]

    def search_species(self, name: str, offset: int = 0, count: Optional[int] = None) -> List[Dict[str, Any]]:
        """Search species records by scientific name.

        Args:
            name: Canonical species name
            offset: Pagination offset
            count: Maximum number of records (defaults to ``config.page_count``)

        Returns:
            Records with prefix-free field names
        """
        params = {
            "scientificname": name,
            "offset": offset,
            "count": count if count is not None else config.page_count,
        }
        return self._search("species", params)

    def search_genus(self, name: str) -> List[Dict[str, Any]]:
        """Search genus records by scientific name."""
        return self._search("genus", {"scientificname": name})

    def species_by_id(self, species_id: Any) -> Optional[Dict[str, Any]]:
        """Fetch one species record by its AlgaeBase id.

        Returns:
            The record with prefix-free field names, or None if not found
        """
        payload = self._get(f"species/{species_id}")
        if not payload:
            return None
        if not isinstance(payload, dict):
            raise SourceUnavailableError(SOURCE_LABEL, "Unexpected response shape")
        return normalize_fields(payload)

    def species_by_creator(self, creator: str, offset: int = 0, count: int = 100000) -> List[Dict[str, Any]]:
        """Fetch species records whose creator begins with ``creator``."""
        params = {"creator": f"[bw]{creator}", "offset": offset, "count": count}
        return self._search("species", params)

    def genus_classification(self, genus: str) -> Optional[GenusClassification]:
        """Look up the higher classification of a genus.

        The record whose genus equals ``genus`` is preferred; otherwise the
        first returned record is used.

        Returns:
            The classification, or None when AlgaeBase has no such genus
        """
        records = self.search_genus(genus)
        if not records:
            return None

        record = next((r for r in records if clean_text(r.get("genus")) == genus), records[0])
        ranks = {rank: clean_text(record.get(rank)) for rank in HIGHER_RANKS}
        return GenusClassification(
            genus=genus,
            kingdom=ranks["kingdom"],
            phylum=ranks["phylum"],
            class_=ranks["class"],
            order=ranks["order"],
            family=ranks["family"],
        )


class AlgaeBaseSource(ReferenceSource):
    """AlgaeBase search results as matcher candidates.

    Genus-rank names are searched on the genus endpoint and species-rank
    names on the species endpoint. Candidate names are the canonical forms of
    the records' ``scientificName``.
    """

    def __init__(self, client: AlgaeBaseClient):
        super().__init__(SourceId.ALGAEBASE_SPECIES, label=SOURCE_LABEL)
        self.client = client

    def candidates(self, name: CanonicalName) -> Sequence[ReferenceRecord]:
        if name.rank is NameRank.GENUS:
            source_id = SourceId.ALGAEBASE_GENUS
            records = self.client.search_genus(name.value)
        else:
            source_id = SourceId.ALGAEBASE_SPECIES
            records = self.client.search_species(name.value)

        candidates = []
        for record in records:
            tokens = canonical_tokens(clean_text(record.get("scientificName")))
            if not tokens:
                continue
            candidates.append(ReferenceRecord(name=" ".join(tokens), source_id=source_id, attributes=record))
        return candidates
