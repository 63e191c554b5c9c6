"""
Filter expressions for delete-by-filter calls.

Expressions use the ``attribute:"value"`` form, joined with ``OR``/``AND``.
The Elasticsearch adapter runs them as ``query_string`` queries.
"""

from typing import Any, Iterable, Mapping

OPERATORS = ('OR', 'AND')


def _escape(value: Any) -> str:
    return str(value).replace('\\', '\\\\').replace('"', '\\"')


def create_filter(attribute: str, value: Any) -> str:
    return f'{attribute}:"{_escape(value)}"'


def _join(filters: Iterable[str], operator: str) -> str:
    operator = operator.upper()
    if operator not in OPERATORS:
        raise ValueError(f"operator must be one of {', '.join(OPERATORS)}")
    filters = [f for f in filters if f]
    if not filters:
        raise ValueError("at least one filter is required")
    return f' {operator} '.join(filters)


def chain_filters(attribute: str, values: Iterable[Any], operator: str = 'OR') -> str:
    """``attribute:"a" OR attribute:"b"``"""
    return _join((create_filter(attribute, value) for value in values), operator)


def map_into_filters(mapping: Mapping[str, Any], operator: str = 'AND') -> str:
    """One ``key:"value"`` filter per mapping entry, joined with ``operator``."""
    return _join((create_filter(key, value) for key, value in mapping.items()), operator)
