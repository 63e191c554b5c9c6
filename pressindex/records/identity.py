"""
Record identity.

Every record of one document shares a distinct key; every record has its own
object id derived from the distinct key parts and the fragment ordinal. Both
are pure functions of the document's identity fields, so rebuilding records
for unchanged content reproduces the same ids.
"""

from typing import List, Optional

from ..sources.document_source import Document, DocumentId

DISTINCT_KEY_SEPARATOR = '#'
OBJECT_ID_SEPARATOR = '-'


def _identity_parts(type_tag: str, document_id: DocumentId, site_id: Optional[str] = None) -> List[str]:
    parts = [str(site_id)] if site_id else []
    return parts + [str(type_tag), str(document_id)]


def distinct_key(type_tag: str, document_id: DocumentId, site_id: Optional[str] = None) -> str:
    return DISTINCT_KEY_SEPARATOR.join(_identity_parts(type_tag, document_id, site_id))


def object_id(type_tag: str, document_id: DocumentId, ordinal: int, site_id: Optional[str] = None) -> str:
    if ordinal < 0:
        raise ValueError("ordinal must not be negative")
    return OBJECT_ID_SEPARATOR.join(_identity_parts(type_tag, document_id, site_id) + [str(ordinal)])


def document_distinct_key(document: Document) -> str:
    return distinct_key(document.type, document.id, document.site_id)
