from .assembler import Record, RecordAssembler
from .identity import distinct_key, object_id, document_distinct_key
from .transforms import TransformRegistry, default_registry

__all__ = [
    'Record',
    'RecordAssembler',
    'TransformRegistry',
    'default_registry',
    'distinct_key',
    'object_id',
    'document_distinct_key',
]
