"""
Single-document sync.

Reacts to one document changing in the CMS:

1. Fetch the document and decide whether it may touch the index at all
   (indexable type, not a revision, index reachable). Ineligible documents
   end as ``skipped`` without any index call.
2. Build the new record generation: the assembled records when the status
   is publishable, nothing otherwise.
3. Replace the document's generation through ``RecordWriter``: delete every
   record under its distinct key, then write the new records.

Failures are reported in the returned ``SyncResult``; nothing is retried.
"""

from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Dict, List, Optional

from ..records.assembler import Record, RecordAssembler
from ..records.identity import distinct_key, document_distinct_key
from ..records.transforms import TransformRegistry
from ..document_parser.html_splitter import HtmlSplitter
from ..search_index.index_base import SearchIndexBase
from ..sources.document_source import Document, DocumentId, DocumentSource
from .config import SyncConfig
from .error_tracker import ErrorTracker, SyncException, AssemblyError, DocumentFetchError, IndexOperationError
from .logging_manager import LoggingManager
from .writer import RecordWriter

logger = LoggingManager.get_logger(__name__)


class SyncOutcome(str, Enum):
    SKIPPED = "skipped"
    DELETED = "deleted"
    REPLACED = "replaced"
    FAILED = "failed"


@dataclass
class SyncResult:
    """Result of syncing one document."""
    document_id: str
    outcome: SyncOutcome
    distinct_key: Optional[str] = None
    records_written: int = 0
    reason: Optional[str] = None
    error_message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['outcome'] = self.outcome.value
        return data


def build_assembler(config: SyncConfig, registry: Optional[TransformRegistry] = None) -> RecordAssembler:
    splitter = HtmlSplitter(
        content_limit=config.splitter.content_limit,
        heading_level=config.splitter.heading_level,
        transliterate=config.splitter.transliterate,
    )
    return RecordAssembler(registry=registry, splitter=splitter)


class DocumentSyncOrchestrator:
    """
    Keeps one document's records in the index equal to its current version.

    Args:
        config: sync configuration (index name, indexable types, statuses)
        index: search index adapter
        source: where documents are read from
        assembler: record assembler; built from ``config.splitter`` when omitted
        writer: shared ``RecordWriter``; pass the bulk reindexer's writer to
            serialize both paths on the same keys
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
        self._index_ready = False

    def _ensure_index(self) -> None:
        """Create the index with its mapping before the first write, once per orchestrator."""
        if not self._index_ready:
            self.index.ensure_index(self.config.index_name)
            self._index_ready = True

    def _ineligibility(self, document: Document) -> Optional[str]:
        if document.type not in self.config.indexable_types:
            return f"type '{document.type}' is not indexable"
        if document.is_revision:
            return "document is a revision"
        return None

    def _fail(self, document_id: DocumentId, key: Optional[str], exc: SyncException) -> SyncResult:
        self.error_tracker.report_exception(exc)
        logger.error(f"Sync of document {document_id} failed: {exc}",
                     extra={'details': {'document_id': str(document_id), 'distinct_key': key,
                                        'index': self.config.index_name}})
        return SyncResult(document_id=str(document_id), outcome=SyncOutcome.FAILED,
                          distinct_key=key, error_message=str(exc))

    def on_change(self, document_id: DocumentId) -> SyncResult:
        """Entry point for change notifications; a no-op when ``sync_on_change`` is off."""
        if not self.config.sync_on_change:
            logger.info(f"Ignoring change of document {document_id}: sync on change is disabled")
            return SyncResult(document_id=str(document_id), outcome=SyncOutcome.SKIPPED,
                              reason="sync on change is disabled")
        return self.sync_document(document_id)

    def sync_document(self, document_id: DocumentId) -> SyncResult:
        """Bring the index in line with the current version of one document."""
        try:
            document = self.source.get_document(document_id)
        except DocumentFetchError as e:
            return self._fail(document_id, None, e)

        if document is None:
            logger.info(f"Document {document_id} not found, nothing to sync")
            return SyncResult(document_id=str(document_id), outcome=SyncOutcome.SKIPPED, reason="document not found")

        key = document_distinct_key(document)
        reason = self._ineligibility(document)
        if reason:
            logger.info(f"Skipping document {document_id}: {reason}")
            return SyncResult(document_id=str(document_id), outcome=SyncOutcome.SKIPPED, distinct_key=key, reason=reason)

        if not self.index.is_reachable():
            logger.warning(f"Skipping document {document_id}: search index is not reachable")
            return SyncResult(document_id=str(document_id), outcome=SyncOutcome.SKIPPED, distinct_key=key,
                              reason="search index is not reachable")

        records: List[Record] = []
        if document.status in self.config.publishable_statuses:
            try:
                records = self.assembler.assemble(document) or []
            except AssemblyError as e:
                return self._fail(document_id, key, e)

        try:
            if records:
                self._ensure_index()
            written = self.writer.replace(self.config.index_name, {key: records})
        except IndexOperationError as e:
            return self._fail(document_id, key, e)

        if records:
            logger.info(f"Replaced document {document_id} with {written} records",
                        extra={'details': {'distinct_key': key, 'records': written}})
            return SyncResult(document_id=str(document_id), outcome=SyncOutcome.REPLACED,
                              distinct_key=key, records_written=written)

        if document.status in self.config.publishable_statuses:
            reason = "document produced no records"
        else:
            reason = f"status '{document.status}' is not indexed"
        logger.info(f"Removed document {document_id} from the index: {reason}",
                    extra={'details': {'distinct_key': key}})
        return SyncResult(document_id=str(document_id), outcome=SyncOutcome.DELETED, distinct_key=key, reason=reason)

    def delete_document(self, type_tag: str, document_id: DocumentId, site_id: Optional[str] = None) -> SyncResult:
        """Remove every record of a document that no longer exists in the CMS."""
        key = distinct_key(type_tag, document_id, site_id)
        if type_tag not in self.config.indexable_types:
            return SyncResult(document_id=str(document_id), outcome=SyncOutcome.SKIPPED, distinct_key=key,
                              reason=f"type '{type_tag}' is not indexable")

        if not self.index.is_reachable():
            logger.warning(f"Skipping delete of document {document_id}: search index is not reachable")
            return SyncResult(document_id=str(document_id), outcome=SyncOutcome.SKIPPED, distinct_key=key,
                              reason="search index is not reachable")

        try:
            self.writer.replace(self.config.index_name, {key: []})
        except IndexOperationError as e:
            return self._fail(document_id, key, e)

        logger.info(f"Deleted all records of document {document_id}", extra={'details': {'distinct_key': key}})
        return SyncResult(document_id=str(document_id), outcome=SyncOutcome.DELETED, distinct_key=key,
                          reason="document deleted")

    def get_error_report(self) -> Dict[str, Any]:
        return self.error_tracker.generate_report()
