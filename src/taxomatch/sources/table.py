"""Reference sources backed by in-memory checklist tables."""

import logging
from typing import Dict, List, Optional, Sequence

import polars as pl

from taxomatch.constants import INVALID_VALUES, NAME_COLUMN_CANDIDATES
from taxomatch.sources.base import ReferenceSource
from taxomatch.types.data_classes import CanonicalName, ReferenceRecord, SourceId

logger = logging.getLogger(__name__)


def find_name_column(df: pl.DataFrame, name_column: Optional[str] = None) -> str:
    """Return the column holding scientific names.

    Args:
        df: The checklist table
        name_column: Explicit column name, checked for existence if given

    Raises:
        ValueError: If no suitable column is present
    """
    if name_column is not None:
        if name_column not in df.columns:
            raise ValueError(f"Name column '{name_column}' not found in table columns {df.columns}")
        return name_column

    for candidate in NAME_COLUMN_CANDIDATES:
        if candidate in df.columns:
            return candidate
    raise ValueError(
        f"No scientific name column found; expected one of {list(NAME_COLUMN_CANDIDATES)}"
    )


class TableSource(ReferenceSource):
    """A reference source over a polars DataFrame.

    Every row with a usable name becomes a candidate; rows keep their table
    order. An index of exact names makes the exact-match check cheap.
    """

    def __init__(
        self,
        table: pl.DataFrame,
        source_id: SourceId,
        name_column: Optional[str] = None,
        label: Optional[str] = None,
    ):
        super().__init__(source_id, label)
        self.name_column = find_name_column(table, name_column)
        self._records: List[ReferenceRecord] = []
        self._index: Dict[str, ReferenceRecord] = {}

        for row in table.iter_rows(named=True):
            name = row.get(self.name_column)
            if name is None:
                continue
            name = str(name).strip()
            if name.lower() in INVALID_VALUES:
                continue
            record = ReferenceRecord(name=name, source_id=source_id, attributes=row)
            self._records.append(record)
            # First occurrence wins for duplicate names
            self._index.setdefault(name, record)

        logger.debug(f"Loaded {len(self._records)} candidate names into {self.label}")

    def __len__(self) -> int:
        return len(self._records)

    def exact(self, name: CanonicalName) -> Optional[ReferenceRecord]:
        """Return the record whose name equals ``name.value``, if any."""
        return self._index.get(name.value)

    def candidates(self, name: CanonicalName) -> Sequence[ReferenceRecord]:
        return self._records
