from abc import ABC, abstractmethod
from typing import Iterable, Sequence

from ..records.assembler import Record


class SearchIndexBase(ABC):
    """
    Call surface of the remote search index.

    Implementations raise ``IndexOperationError`` for every failed call, except
    ``is_reachable`` which answers ``False`` instead.
    """

    @abstractmethod
    def upsert(self, index_name: str, records: Sequence[Record]) -> int:
        """Write records, replacing any with the same object id. Returns the count written."""
        pass

    @abstractmethod
    def delete_by_filter(self, index_name: str, filter_expr: str) -> int:
        pass

    @abstractmethod
    def delete_by_ids(self, index_name: str, ids: Iterable[str]) -> int:
        pass

    @abstractmethod
    def clear(self, index_name: str) -> None:
        pass

    @abstractmethod
    def is_reachable(self) -> bool:
        pass

    def ensure_index(self, index_name: str) -> None:
        pass

