"""
Change-notification webhook.

The CMS calls ``POST /documents/{id}/sync`` whenever a document is saved,
published, unpublished or trashed, and ``DELETE /documents/{type}/{id}``
once it is deleted for good. Documents that may not be indexed answer 200
with outcome ``skipped``.

Run with ``uvicorn pressindex.api.server:app``; ``PRESSINDEX_CONFIG`` and
``PRESSINDEX_ENVIRONMENT`` select the sync configuration and credentials.
"""

import os
import threading
from typing import Any, Callable, Dict, Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.responses import JSONResponse

from ..config import DEFAULT_CONFIG_PATH, DEFAULT_ENVIRONMENT, get_cms_credentials, get_logger
from ..search_index.index_es import ElasticsearchIndex
from ..sources.wordpress import WordPressSource
from ..sync.config import SyncConfig
from ..sync.error_tracker import ConfigurationError, NotConnectedError, SyncException
from ..sync.orchestrator import DocumentSyncOrchestrator, SyncOutcome, SyncResult
from ..sync.writer import RecordWriter

logger = get_logger(__name__)


class OrchestratorProvider:
    """Builds one orchestrator per site on first use and shares the index and writer between them."""

    def __init__(self, config_path: str, environment: str):
        self.config_path = config_path
        self.environment = environment
        self._lock = threading.Lock()
        self._config: Optional[SyncConfig] = None
        self._index: Optional[ElasticsearchIndex] = None
        self._writer: Optional[RecordWriter] = None
        self._orchestrators: Dict[Optional[str], DocumentSyncOrchestrator] = {}

    def __call__(self, site_id: Optional[str]) -> DocumentSyncOrchestrator:
        with self._lock:
            if self._config is None:
                self._config = SyncConfig.from_yaml(self.config_path)
                self._index = ElasticsearchIndex.from_environment(self.environment)
                self._writer = RecordWriter(self._index)

            if site_id not in self._orchestrators:
                site = self._config.get_site(site_id) if site_id is not None else self._config.sites[0]
                if site is None:
                    raise ConfigurationError(f"Unknown site: {site_id}")
                source = WordPressSource(site.base_url, types=self._config.indexable_types, site_id=site.id,
                                         auth=get_cms_credentials(self.environment))
                self._orchestrators[site_id] = DocumentSyncOrchestrator(
                    self._config, self._index, source, writer=self._writer)
            return self._orchestrators[site_id]


def _respond(result: SyncResult) -> JSONResponse:
    status_code = 502 if result.outcome == SyncOutcome.FAILED else 200
    return JSONResponse(status_code=status_code, content=result.to_dict())


def create_app(provider: Optional[Callable[[Optional[str]], DocumentSyncOrchestrator]] = None) -> FastAPI:
    if provider is None:
        provider = OrchestratorProvider(
            os.getenv('PRESSINDEX_CONFIG', str(DEFAULT_CONFIG_PATH)),
            os.getenv('PRESSINDEX_ENVIRONMENT', DEFAULT_ENVIRONMENT),
        )

    app = FastAPI(openapi_url=None, redirect_slashes=False)

    def orchestrator_for(site: Optional[str]) -> DocumentSyncOrchestrator:
        try:
            return provider(site)
        except ConfigurationError as e:
            logger.error(f"Webhook configuration error: {e.message}")
            raise HTTPException(status_code=503, detail=e.message)
        except NotConnectedError as e:
            logger.warning(f"Webhook cannot reach the index: {e.message}")
            raise HTTPException(status_code=503, detail=e.message)

    @app.post("/documents/{document_id}/sync")
    def sync_document_handler(document_id: str, site: Optional[str] = Query(None)):
        orchestrator = orchestrator_for(site)
        return _respond(orchestrator.on_change(document_id))

    @app.delete("/documents/{type_tag}/{document_id}")
    def delete_document_handler(type_tag: str, document_id: str, site: Optional[str] = Query(None)):
        orchestrator = orchestrator_for(site)
        site_id = site if site is not None else orchestrator.source.site_id
        return _respond(orchestrator.delete_document(type_tag, document_id, site_id))

    @app.get("/health")
    def health_handler() -> Dict[str, Any]:
        try:
            orchestrator = provider(None)
        except SyncException as e:
            return {"status": "unconfigured", "detail": e.message}
        return {"status": "ok", "index_reachable": orchestrator.index.is_reachable()}

    return app


app = create_app()
