from .index_base import SearchIndexBase
from .index_es import ElasticsearchIndex
from .filters import create_filter, chain_filters, map_into_filters

__all__ = [
    'SearchIndexBase',
    'ElasticsearchIndex',
    'create_filter',
    'chain_filters',
    'map_into_filters',
]
