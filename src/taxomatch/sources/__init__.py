"""Reference source adapters for the cascading matcher."""

from taxomatch.sources.algaebase import AlgaeBaseClient, AlgaeBaseSource
from taxomatch.sources.base import ReferenceSource
from taxomatch.sources.table import TableSource, find_name_column
from taxomatch.sources.worms import WoRMSClient, WoRMSSource

__all__ = [
    "AlgaeBaseClient",
    "AlgaeBaseSource",
    "ReferenceSource",
    "TableSource",
    "WoRMSClient",
    "WoRMSSource",
    "find_name_column",
]
