"""
Generation replacement.

Replacing a document's records means deleting every record under its
distinct key and then writing the new set, so a document whose fragment
count shrank leaves nothing stale behind. Single-document syncs and bulk
reindex pages both go through ``RecordWriter.replace``.
"""

import threading
import weakref
from contextlib import ExitStack
from typing import List, Mapping, Sequence

from ..records.assembler import Record
from ..search_index.filters import chain_filters
from ..search_index.index_base import SearchIndexBase
from .logging_manager import LoggingManager

logger = LoggingManager.get_logger(__name__)

DISTINCT_KEY_ATTRIBUTE = 'distinct_key'


class RecordWriter:
    """
    Replaces whole record generations in the index.

    Calls for the same distinct key are serialized: the delete and the write
    of one call complete before another call touching that key starts.
    """

    def __init__(self, index: SearchIndexBase):
        self.index = index
        # Entries vanish once no caller holds the lock
        self._locks: "weakref.WeakValueDictionary[str, threading.Lock]" = weakref.WeakValueDictionary()
        self._locks_guard = threading.Lock()

    def _lock_for(self, key: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    def replace(self, index_name: str, generations: Mapping[str, Sequence[Record]], skip_delete: bool = False) -> int:
        """
        Make the index hold exactly ``generations[key]`` for every key given.

        Args:
            index_name: target index
            generations: distinct key -> new records (empty to remove the document)
            skip_delete: only valid right after the index was cleared

        Returns:
            Number of records written.

        Raises:
            IndexOperationError: the delete or the write failed; nothing after
                the failing call is attempted.
        """
        if not generations:
            return 0

        keys = list(generations)
        records: List[Record] = [record for key in keys for record in generations[key]]

        with ExitStack() as stack:
            # Sorted acquisition keeps overlapping batches from deadlocking
            for key in sorted(keys):
                stack.enter_context(self._lock_for(key))

            if not skip_delete:
                deleted = self.index.delete_by_filter(index_name, chain_filters(DISTINCT_KEY_ATTRIBUTE, keys))
                logger.debug(f"Deleted {deleted} records for {len(keys)} documents from {index_name}")

            if not records:
                return 0
            return self.index.upsert(index_name, records)
