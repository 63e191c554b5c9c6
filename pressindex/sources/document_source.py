from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple, Union


DocumentId = Union[int, str]


@dataclass(frozen=True)
class Document:
    """
    One content item of the CMS (post, page or custom type).

    Owned by the CMS; the sync core only reads it.
    """
    id: DocumentId
    type: str
    title: str = ''
    content: str = ''
    status: str = 'publish'
    permalink: str = ''
    date: Optional[str] = None
    site_id: Optional[str] = None
    terms: Dict[str, List[str]] = field(default_factory=dict)
    is_revision: bool = False


class DocumentSource(ABC):
    """
    Read access to the CMS corpus.

    ``query_documents`` must return the same ordering for the same arguments
    as long as nothing writes to the corpus in between.
    """
    site_id: Optional[str] = None

    @abstractmethod
    def get_document(self, document_id: DocumentId) -> Optional[Document]:
        pass

    @abstractmethod
    def query_documents(self, types: Sequence[str], status: str, page: int, page_size: int) -> Tuple[List[Document], int]:
        """Return one page (1-based) of documents and the total match count."""
        pass

    def close(self) -> None:
        pass
