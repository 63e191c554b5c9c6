from typing import Any, Dict, Iterable, Optional, Sequence

from elasticsearch import Elasticsearch, NotFoundError, helpers

from ..config import DEFAULT_ENVIRONMENT, ElasticsearchConfig, get_logger
from ..records.assembler import Record
from ..sync.error_tracker import IndexOperationError, NotConnectedError
from .index_base import SearchIndexBase

logger = get_logger(__name__)

INDEX_MAPPING = {
    "mappings": {
        "dynamic": True,
        "properties": {
            "object_id": {"type": "keyword"},
            "distinct_key": {"type": "keyword"},
            "type": {"type": "keyword"},
            "url": {"type": "keyword"},
            "tags": {"type": "keyword"},
            "date": {"type": "date", "ignore_malformed": True},
            "title": {
                "type": "text",
                "fields": {
                    "keyword": {
                        "type": "keyword",
                        "ignore_above": 256
                    }
                }
            },
            "subtitle": {"type": "text"},
            "content": {"type": "text"},
        }
    },
    "settings": {
        "analysis": {
            "analyzer": {
                "default": {
                    "type": "standard"
                }
            }
        }
    }
}


class ElasticsearchIndex(SearchIndexBase):
    """
    Search index backed by Elasticsearch.

    Records are stored with ``_id = object_id``. Filter expressions are run as
    ``query_string`` queries, so ``distinct_key:"post#12" OR distinct_key:"post#13"``
    selects every record of two documents.
    """

    def __init__(self, es_client: Elasticsearch):
        self.es_client = es_client

    @classmethod
    def from_environment(cls, environment: str = DEFAULT_ENVIRONMENT, timeout: Optional[int] = None) -> 'ElasticsearchIndex':
        """
        Build the client from ``ES_*_<ENV>`` variables.

        Raises:
            NotConnectedError: when the connection variables are missing
        """
        try:
            es_config = ElasticsearchConfig.from_environment(environment)
        except ValueError as e:
            raise NotConnectedError(str(e), recovery_suggestion="Set ES_HOST_<ENV> and either ES_API_KEY_<ENV> or ES_USERNAME_<ENV> with ES_PASSWORD_<ENV>")
        if timeout:
            es_config.timeout = timeout

        es_kwargs = es_config.to_elasticsearch_kwargs()
        logger.info(f"Connecting to Elasticsearch at {es_kwargs['hosts'][0]} for {environment} environment")
        return cls(Elasticsearch(**es_kwargs))

    def is_reachable(self) -> bool:
        try:
            return bool(self.es_client.ping())
        except Exception as e:
            logger.warning(f"Elasticsearch ping failed: {e}")
            return False

    def ensure_index(self, index_name: str) -> None:
        try:
            if not self.es_client.indices.exists(index=index_name):
                logger.info(f"Creating index: {index_name}")
                self.es_client.indices.create(index=index_name, **INDEX_MAPPING)
        except Exception as e:
            raise IndexOperationError(f"Could not create index {index_name}: {e}")

    def upsert(self, index_name: str, records: Sequence[Record]) -> int:
        if not records:
            return 0

        actions = [
            {
                "_op_type": "index",
                "_index": index_name,
                "_id": record.object_id,
                "_source": record.to_document(),
            }
            for record in records
        ]
        try:
            success, errors = helpers.bulk(self.es_client, actions, refresh="wait_for",
                                           raise_on_error=False, stats_only=False)
        except Exception as e:
            raise IndexOperationError(f"Bulk write of {len(actions)} records to {index_name} failed: {e}")

        if errors:
            failed_ids = [self._item_id(item) for item in errors]
            raise IndexOperationError(
                f"{len(errors)} of {len(actions)} records were rejected by {index_name}: {', '.join(failed_ids[:10])}")

        logger.info(f"Wrote {success} records to {index_name}")
        return success

    def delete_by_filter(self, index_name: str, filter_expr: str) -> int:
        try:
            result = self.es_client.delete_by_query(
                index=index_name,
                query={"query_string": {"query": filter_expr}},
                refresh=True,
                conflicts="proceed",
            )
        except NotFoundError:
            logger.info(f"Index {index_name} does not exist, nothing to delete")
            return 0
        except Exception as e:
            raise IndexOperationError(f"Delete by filter on {index_name} failed: {e}")
        return result['deleted']

    def delete_by_ids(self, index_name: str, ids: Iterable[str]) -> int:
        actions = [{"_op_type": "delete", "_index": index_name, "_id": object_id} for object_id in ids]
        if not actions:
            return 0
        try:
            success, errors = helpers.bulk(self.es_client, actions, refresh=True,
                                           raise_on_error=False, stats_only=False)
        except Exception as e:
            raise IndexOperationError(f"Bulk delete on {index_name} failed: {e}")

        # Already gone
        errors = [item for item in errors if self._item_status(item) != 404]
        if errors:
            raise IndexOperationError(f"{len(errors)} deletes failed on {index_name}")
        return success

    def clear(self, index_name: str) -> None:
        try:
            result = self.es_client.delete_by_query(
                index=index_name,
                query={"match_all": {}},
                refresh=True,
                conflicts="proceed",
            )
        except NotFoundError:
            logger.info(f"Index {index_name} does not exist, nothing to clear")
            return
        except Exception as e:
            raise IndexOperationError(f"Clearing {index_name} failed: {e}")
        logger.info(f"Cleared {result['deleted']} records from {index_name}")

    @staticmethod
    def _item_result(item: Dict[str, Any]) -> Dict[str, Any]:
        return next(iter(item.values()), {}) if item else {}

    def _item_id(self, item: Dict[str, Any]) -> str:
        return str(self._item_result(item).get('_id'))

    def _item_status(self, item: Dict[str, Any]) -> Optional[int]:
        return self._item_result(item).get('status')
