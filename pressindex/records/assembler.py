"""
Record assembly.

Combines a document's metadata, its type transform's attributes and the
splitter's fragments into index-ready records. Attribute precedence, later
wins: document defaults (id, title, url, type, date), then transform
attributes, then the fragment's own subtitle and content. The identity fields
``object_id`` and ``distinct_key`` are never overridden.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..config import get_logger
from ..document_parser.html_splitter import Fragment, HtmlSplitter
from ..sources.document_source import Document
from ..sync.error_tracker import AssemblyError
from .identity import distinct_key, object_id
from .transforms import TransformRegistry, default_registry

logger = get_logger(__name__)


@dataclass
class Record:
    """One search-index record: a fragment plus its document's metadata."""
    object_id: str
    distinct_key: str
    content: str
    subtitle: Optional[str] = None
    attributes: Dict[str, Any] = field(default_factory=dict)

    def to_document(self) -> Dict[str, Any]:
        """Index body for this record."""
        body = dict(self.attributes)
        if self.subtitle is not None:
            body['subtitle'] = self.subtitle
        else:
            body.pop('subtitle', None)
        body['content'] = self.content
        body['object_id'] = self.object_id
        body['distinct_key'] = self.distinct_key
        return body


def document_defaults(document: Document) -> Dict[str, Any]:
    return {
        'id': document.id,
        'title': document.title,
        'url': document.permalink,
        'type': document.type,
        'date': document.date,
    }


class RecordAssembler:
    """
    Builds the records of one document.

    ``assemble`` returns ``None`` when the document is not indexable (no
    transform for its type, or the transform returned nothing) and raises
    ``AssemblyError`` when the transform fails or returns something that is
    not a mapping.
    """

    def __init__(self, registry: Optional[TransformRegistry] = None, splitter: Optional[HtmlSplitter] = None):
        self.registry = registry or default_registry()
        self.splitter = splitter or HtmlSplitter()

    def _attributes(self, document: Document) -> Optional[Dict[str, Any]]:
        transform = self.registry.resolve(document.type)
        if transform is None:
            logger.info(f"No transform registered for type '{document.type}'")
            return None

        try:
            attributes = transform(document)
        except Exception as e:
            raise AssemblyError(f"Transform for {document.type} {document.id} failed: {e}",
                                source_id=str(document.id))

        if not attributes:
            return None
        if not isinstance(attributes, dict):
            raise AssemblyError(
                f"Transform for {document.type} {document.id} returned {type(attributes).__name__}, expected a mapping",
                source_id=str(document.id))
        return dict(attributes)

    def assemble(self, document: Document) -> Optional[List[Record]]:
        attributes = self._attributes(document)
        if attributes is None:
            return None

        html = attributes.pop('content', None)
        if html is None:
            html = document.content
        attributes.pop('subtitle', None)

        merged = document_defaults(document)
        merged.update(attributes)
        merged.pop('object_id', None)
        merged.pop('distinct_key', None)

        try:
            fragments = self.splitter.split(html)
        except Exception as e:
            raise AssemblyError(f"Splitting {document.type} {document.id} failed: {e}", source_id=str(document.id))

        if not fragments:
            # Metadata-only record for documents without text
            fragments = [Fragment(content='')]

        key = distinct_key(document.type, document.id, document.site_id)
        return [
            Record(
                object_id=object_id(document.type, document.id, ordinal, document.site_id),
                distinct_key=key,
                content=fragment.content,
                subtitle=fragment.subtitle,
                attributes=dict(merged),
            )
            for ordinal, fragment in enumerate(fragments)
        ]
