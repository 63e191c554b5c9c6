"""
WordPress REST document source.

Reads documents through ``/wp-json/wp/v2``. Each document type has its own
collection endpoint, so a query spanning several types walks them in sorted
order and uses the per-type totals (``X-WP-Total``) together with the
``offset`` parameter to cut one stable, disjoint page out of the combined
id-ordered listing.
"""

import html
from typing import Any, Dict, List, Optional, Sequence, Tuple

import requests

from ..config import get_logger
from ..sync.error_tracker import DocumentFetchError
from .document_source import Document, DocumentId, DocumentSource

logger = get_logger(__name__)

# Type tags whose REST collection name differs from the tag itself
REST_BASES = {
    'post': 'posts',
    'page': 'pages',
    'attachment': 'media',
}

# Upper bound the REST API accepts for per_page
MAX_PER_PAGE = 100


def _rendered(value: Any) -> str:
    if isinstance(value, dict):
        value = value.get('rendered', '')
    return value or ''


class WordPressSource(DocumentSource):
    """Document source backed by the WordPress REST API."""

    def __init__(self, base_url: str, types: Sequence[str], site_id: Optional[str] = None,
                 auth: Optional[tuple] = None, timeout: int = 30,
                 session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip('/')
        self.api_url = f"{self.base_url}/wp-json/wp/v2"
        self.types = sorted(types)
        self.site_id = site_id
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            'User-Agent': 'pressindex/0.1 (+search sync)',
            'Accept': 'application/json',
        })
        self.context = 'view'
        if auth:
            self.session.auth = auth
            self.context = 'edit'

    @staticmethod
    def rest_base(type_tag: str) -> str:
        return REST_BASES.get(type_tag, type_tag)

    def _get(self, path: str, params: Dict[str, Any]) -> requests.Response:
        url = f"{self.api_url}/{path}"
        try:
            return self.session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            raise DocumentFetchError(f"Request to {url} failed: {e}", source_id=self.site_id)

    def _raise_for_status(self, response: requests.Response) -> None:
        try:
            response.raise_for_status()
        except requests.HTTPError as e:
            raise DocumentFetchError(
                f"CMS responded with {response.status_code} for {response.url}: {e}",
                source_id=self.site_id,
                recovery_suggestion="Check WP_USERNAME_<ENV> / WP_APP_PASSWORD_<ENV> if the content is not public"
            )

    def _to_document(self, item: Dict[str, Any]) -> Document:
        terms: Dict[str, List[str]] = {}
        for group in item.get('_embedded', {}).get('wp:term', []):
            for term in group:
                taxonomy = term.get('taxonomy')
                if taxonomy:
                    terms.setdefault(taxonomy, []).append(html.unescape(term.get('name', '')))

        type_tag = item.get('type', '')
        return Document(
            id=item['id'],
            type=type_tag,
            title=html.unescape(_rendered(item.get('title'))),
            content=_rendered(item.get('content')),
            status=item.get('status', 'publish'),
            permalink=item.get('link', ''),
            date=item.get('date'),
            site_id=self.site_id,
            terms=terms,
            is_revision=type_tag == 'revision',
        )

    def get_document(self, document_id: DocumentId) -> Optional[Document]:
        """Probe every configured type's endpoint; ``None`` when no type knows the id."""
        params = {'context': self.context, '_embed': 'wp:term'}
        for type_tag in self.types:
            response = self._get(f"{self.rest_base(type_tag)}/{document_id}", params)
            if response.status_code == 404:
                continue
            if response.status_code in (401, 403):
                # The type is resolved before permissions, so the id belongs to
                # this type but is no longer public (draft, trash, private).
                logger.info(f"Document {document_id} is not public under '{type_tag}' ({response.status_code})")
                return Document(id=document_id, type=type_tag, status='private', site_id=self.site_id)
            self._raise_for_status(response)
            return self._to_document(response.json())
        logger.info(f"Document {document_id} not found under types: {', '.join(self.types)}")
        return None

    def _count(self, type_tag: str, status: str) -> int:
        response = self._get(self.rest_base(type_tag), {'status': status, 'per_page': 1, '_fields': 'id'})
        self._raise_for_status(response)
        return int(response.headers.get('X-WP-Total', 0))

    def query_documents(self, types: Sequence[str], status: str, page: int, page_size: int) -> Tuple[List[Document], int]:
        if page < 1:
            raise ValueError("page is 1-based")

        ordered_types = sorted(types)
        totals = {type_tag: self._count(type_tag, status) for type_tag in ordered_types}
        total = sum(totals.values())

        offset = (page - 1) * page_size
        remaining = page_size
        documents: List[Document] = []

        for type_tag in ordered_types:
            count = totals[type_tag]
            if offset >= count:
                offset -= count
                continue

            while remaining > 0 and offset < count:
                response = self._get(self.rest_base(type_tag), {
                    'status': status,
                    'per_page': min(remaining, MAX_PER_PAGE),
                    'offset': offset,
                    'orderby': 'id',
                    'order': 'asc',
                    'context': self.context,
                    '_embed': 'wp:term',
                })
                self._raise_for_status(response)
                items = response.json()
                if not items:
                    break
                documents.extend(self._to_document(item) for item in items)
                offset += len(items)
                remaining -= len(items)

            offset = 0
            if remaining <= 0:
                break

        return documents, total

    def close(self) -> None:
        self.session.close()
