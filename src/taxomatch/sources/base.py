"""Base class for reference sources.

A reference source is anything the cascading matcher can ask for candidate
names: an in-memory checklist table or a remote name-matching service. Each
source returns candidates in its natural order, which the matcher uses to
break distance ties.
"""

from typing import Sequence

from taxomatch.types.data_classes import CanonicalName, ReferenceRecord, SourceId


class ReferenceSource:
    """Base class for reference sources.

    Subclasses implement ``candidates``. Transport and parsing failures must
    be raised as SourceUnavailableError so that callers can treat the source
    as having no match.
    """

    def __init__(self, source_id: SourceId, label: str = None):
        """Initialize the source.

        Args:
            source_id: Identifier of the source
            label: Label used in output column names (defaults to the
                source id label)
        """
        self.source_id = source_id
        self.label = label or source_id.label

    def candidates(self, name: CanonicalName) -> Sequence[ReferenceRecord]:
        """Return candidate records for a canonical name.

        Args:
            name: The canonical name to look up

        Returns:
            Zero or more candidate records, in the source's natural order

        Raises:
            SourceUnavailableError: If the source cannot be consulted
        """
        raise NotImplementedError("Subclasses must implement candidates")

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(label={self.label!r})"
