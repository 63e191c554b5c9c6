"""
Bulk reindexing.

Walks the eligible corpus one page at a time in stable id order. Each page
is assembled into records and handed to ``RecordWriter.replace`` as a single
batch, so a page is the unit of progress and of cancellation: a run stopped
between pages leaves every document already reached fully replaced and every
other document untouched.

When the run is not preceded by a clear, the documents of a page are
replaced generation by generation (delete by distinct key, then write), and
documents that are no longer indexable have their records removed.
"""

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ..records.assembler import Record, RecordAssembler
from ..records.identity import document_distinct_key
from ..search_index.index_base import SearchIndexBase
from ..sources.document_source import Document, DocumentSource
from .config import SyncConfig
from .error_tracker import (
    ErrorTracker, ErrorSeverity, AssemblyError, ConfigurationError, DocumentFetchError,
    IndexOperationError, NotConnectedError,
)
from .logging_manager import LoggingManager
from .orchestrator import build_assembler
from .writer import RecordWriter

logger = LoggingManager.get_logger(__name__)

ProgressCallback = Callable[[int, int], None]


@dataclass
class ReindexReport:
    """Outcome of one bulk reindex run."""
    index_name: str
    processed: int = 0
    skipped: int = 0
    failed: int = 0
    records_written: int = 0
    pages: int = 0
    total: int = 0
    cancelled: bool = False
    aborted: bool = False
    processing_time: float = 0.0
    errors: List[str] = field(default_factory=list)

    def merge(self, other: 'ReindexReport') -> None:
        self.processed += other.processed
        self.skipped += other.skipped
        self.failed += other.failed
        self.records_written += other.records_written
        self.pages += other.pages
        self.total += other.total
        self.cancelled = self.cancelled or other.cancelled
        self.aborted = self.aborted or other.aborted
        self.processing_time += other.processing_time
        self.errors.extend(other.errors)

    def summary_line(self) -> str:
        line = (f"Reindexed {self.index_name}: {self.processed} processed, {self.skipped} skipped, "
                f"{self.failed} failed, {self.records_written} records written in {self.pages} pages")
        if self.cancelled:
            line += " (cancelled)"
        if self.aborted:
            line += " (aborted)"
        return line


_Assembled = Tuple[Document, Optional[List[Record]], Optional[AssemblyError]]


class BulkReindexer:
    """
    Reindexes the corpus of one document source.

    Args:
        config: sync configuration (index name, types, page size, workers)
        index: search index adapter
        source: document source to page through
        assembler: record assembler; built from ``config.splitter`` when omitted
        writer: shared ``RecordWriter``
    """

    def __init__(self, config: SyncConfig, index: SearchIndexBase, source: DocumentSource,
                 assembler: Optional[RecordAssembler] = None, writer: Optional[RecordWriter] = None,
                 error_tracker: Optional[ErrorTracker] = None):
        self.config = config
        self.index = index
        self.source = source
        self.assembler = assembler or build_assembler(config)
        self.writer = writer or RecordWriter(index)
        self.error_tracker = error_tracker or ErrorTracker()
        self.logging_manager = LoggingManager()
        self.logging_manager.configure(config.log_level, config.log_file)

    def _assemble_one(self, document: Document) -> _Assembled:
        try:
            return document, self.assembler.assemble(document), None
        except AssemblyError as e:
            return document, None, e

    def _assemble_page(self, documents: Sequence[Document]) -> List[_Assembled]:
        workers = self.config.max_assembly_workers
        if workers <= 1 or len(documents) <= 1:
            return [self._assemble_one(document) for document in documents]
        with ThreadPoolExecutor(max_workers=workers) as executor:
            # map keeps document order
            return list(executor.map(self._assemble_one, documents))

    def _process_page(self, index_name: str, documents: Sequence[Document], cleared: bool,
                      report: ReindexReport) -> None:
        generations: Dict[str, List[Record]] = {}

        for document, records, error in self._assemble_page(documents):
            if error is not None:
                report.failed += 1
                report.errors.append(error.message)
                self.error_tracker.report_exception(error)
                logger.error(f"Could not assemble {document.type} {document.id}: {error.message}")
                continue

            key = document_distinct_key(document)
            if document.is_revision or not records:
                report.skipped += 1
                if not cleared:
                    generations[key] = []
                continue
            generations[key] = records

        written_documents = sum(1 for records in generations.values() if records)
        try:
            report.records_written += self.writer.replace(index_name, generations, skip_delete=cleared)
        except IndexOperationError as e:
            report.failed += written_documents
            report.errors.append(e.message)
            self.error_tracker.report_exception(e)
            logger.error(f"Batch of page {report.pages + 1} abandoned: {e.message}",
                         extra={'details': {'index': index_name, 'documents': len(generations)}})

    def reindex(self, index_name: Optional[str] = None, types: Optional[Sequence[str]] = None,
                clear: bool = False, on_progress: Optional[ProgressCallback] = None,
                cancel_event: Optional[threading.Event] = None) -> ReindexReport:
        """
        Reindex every eligible document of the source.

        Args:
            index_name: target index, defaults to the configured one
            types: document types to reindex, defaults to the indexable types
            clear: clear the whole index before writing
            on_progress: called with (processed, total) after every page
            cancel_event: checked between pages; when set, the run stops

        Raises:
            ConfigurationError: no index name or no document types
            NotConnectedError: the index is not reachable
            IndexOperationError: the initial clear failed
        """
        index_name = index_name or self.config.index_name
        types = list(types or self.config.indexable_types)
        if not index_name:
            raise ConfigurationError("No index name configured")
        if not types:
            raise ConfigurationError("No document types to reindex",
                                     recovery_suggestion="Set indexable_types or pass --types")
        if not self.index.is_reachable():
            raise NotConnectedError("Search index is not reachable")

        report = ReindexReport(index_name=index_name)
        start_time = time.time()
        status = ','.join(self.config.publishable_statuses)

        self.index.ensure_index(index_name)
        if clear:
            logger.info(f"Clearing index {index_name} before reindexing")
            self.index.clear(index_name)

        logger.info(f"Reindexing {', '.join(types)} into {index_name}",
                    extra={'details': {'page_size': self.config.page_size, 'clear': clear}})

        page = 1
        while True:
            if cancel_event is not None and cancel_event.is_set():
                logger.info(f"Reindex cancelled after {report.pages} pages")
                report.cancelled = True
                break

            try:
                documents, total = self.source.query_documents(types, status, page, self.config.page_size)
            except DocumentFetchError as e:
                report.aborted = True
                report.errors.append(e.message)
                self.error_tracker.report_exception(e, severity=ErrorSeverity.CRITICAL)
                logger.error(f"Reading page {page} failed, stopping the run: {e.message}")
                break

            if not documents:
                break

            report.total = total
            self._process_page(index_name, documents, clear, report)
            report.processed += len(documents)
            report.pages += 1

            if on_progress:
                on_progress(report.processed, total)
            page += 1

        report.processing_time = time.time() - start_time
        logger.info(report.summary_line(), extra={'details': {'processing_time': report.processing_time}})
        return report

    def get_error_report(self):
        return self.error_tracker.generate_report()
