from .document_source import Document, DocumentId, DocumentSource
from .wordpress import WordPressSource

__all__ = [
    'Document',
    'DocumentId',
    'DocumentSource',
    'WordPressSource',
]
