"""
Per-type document transforms.

A transform turns a document into the type-specific attributes of its
records. Returning ``None`` (or an empty mapping) marks the document as not
indexable; a type without a registered transform is treated the same way.
"""

from typing import Any, Callable, Dict, List, Optional

from ..config import get_logger
from ..sources.document_source import Document

logger = get_logger(__name__)

Transform = Callable[[Document], Optional[Dict[str, Any]]]


class TransformRegistry:
    """Maps document type tags to transforms."""

    def __init__(self):
        self._transforms: Dict[str, Transform] = {}

    def register(self, type_tag: str, transform: Transform) -> None:
        if type_tag in self._transforms:
            logger.info(f"Replacing transform for type '{type_tag}'")
        self._transforms[type_tag] = transform

    def transform(self, type_tag: str) -> Callable[[Transform], Transform]:
        """Decorator form of ``register``."""
        def decorator(fn: Transform) -> Transform:
            self.register(type_tag, fn)
            return fn
        return decorator

    def resolve(self, type_tag: str) -> Optional[Transform]:
        return self._transforms.get(type_tag)

    def types(self) -> List[str]:
        return sorted(self._transforms)

    def __contains__(self, type_tag: str) -> bool:
        return type_tag in self._transforms


def page_transform(document: Document) -> Optional[Dict[str, Any]]:
    return {'type': document.type}


def post_transform(document: Document) -> Optional[Dict[str, Any]]:
    return {
        'type': document.type,
        'tags': list(document.terms.get('post_tag', [])),
    }


def default_registry() -> TransformRegistry:
    """Registry holding the built-in ``page`` and ``post`` transforms."""
    registry = TransformRegistry()
    registry.register('page', page_transform)
    registry.register('post', post_transform)
    return registry
