"""WoRMS client and reference source.

Uses the WoRMS REST taxamatch endpoint (``AphiaRecordsByMatchNames``), which
returns, for every submitted name, a list of fuzzy-matched Aphia records.
Only the first record is used as the best candidate.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

import requests

from taxomatch.config import config
from taxomatch.exceptions import SourceUnavailableError
from taxomatch.sources.base import ReferenceSource
from taxomatch.types.data_classes import CanonicalName, ReferenceRecord, SourceId

logger = logging.getLogger(__name__)

# Status codes WoRMS uses for "nothing matched"
NO_CONTENT_STATUSES = (204, 404)


class WoRMSClient:
    """Thin client for the WoRMS REST service."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = (base_url or config.worms_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else config.request_timeout
        self.session = session or requests.Session()

    def match_names(self, names: Sequence[str], marine_only: bool = True) -> List[List[Dict[str, Any]]]:
        """Run taxamatch for a list of names.

        Args:
            names: Names to match
            marine_only: Restrict matches to marine taxa

        Returns:
            One list of Aphia records per submitted name (empty when the name
            had no match)

        Raises:
            SourceUnavailableError: On transport errors, unexpected statuses
                or payloads that are not JSON
        """
        if not names:
            return []

        url = f"{self.base_url}/AphiaRecordsByMatchNames"
        params = {
            "scientificnames[]": list(names),
            "marine_only": str(marine_only).lower(),
        }
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            raise SourceUnavailableError(SourceId.WORMS.label, str(e)) from e

        if response.status_code in NO_CONTENT_STATUSES:
            return [[] for _ in names]
        if not response.ok:
            raise SourceUnavailableError(
                SourceId.WORMS.label, f"HTTP {response.status_code} from {url}"
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise SourceUnavailableError(SourceId.WORMS.label, f"Invalid JSON: {e}") from e

        if not isinstance(payload, list):
            raise SourceUnavailableError(SourceId.WORMS.label, "Unexpected response shape")

        # WoRMS answers null for names without matches
        results = [list(entry) if entry else [] for entry in payload]
        results.extend([] for _ in range(len(names) - len(results)))
        return results

    def match_name(self, name: str, marine_only: bool = True) -> List[Dict[str, Any]]:
        """Run taxamatch for a single name."""
        return self.match_names([name], marine_only=marine_only)[0]


class WoRMSSource(ReferenceSource):
    """Remote reference source returning WoRMS' best taxamatch candidate."""

    def __init__(self, client: Optional[WoRMSClient] = None, marine_only: bool = True):
        super().__init__(SourceId.WORMS)
        self.client = client or WoRMSClient()
        self.marine_only = marine_only

    def candidates(self, name: CanonicalName) -> Sequence[ReferenceRecord]:
        records = self.client.match_name(name.value, marine_only=self.marine_only)
        for record in records:
            scientific_name = record.get("scientificname")
            if scientific_name:
                logger.debug(f"WoRMS matched '{name.value}' to '{scientific_name}'")
                return [ReferenceRecord(name=scientific_name, source_id=self.source_id, attributes=record)]
        return []
