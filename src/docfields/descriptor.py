"""
Immutable field metadata consumed by the runtime.

FieldDescriptor is owned by the metadata layer: one per field name per
document type, shared by every document instance of that type and never
mutated at runtime.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Union
import logging

from docfields.lookup import LookupBinding
from docfields.values import FieldType

logger = logging.getLogger(__name__)

# Constant flag, or a predicate evaluated per document instance
Logic = Union[bool, Callable[[Any], bool]]


def evaluate_logic(logic: Logic, document: Any) -> bool:
    """Evaluate a constant or per-document logic expression."""
    if callable(logic):
        return bool(logic(document))
    return bool(logic)


@dataclass(frozen=True)
class DocumentPath:
    """Identity of one document instance (optionally a row of an included detail)."""
    document_type: str
    document_id: Any
    detail_id: Optional[str] = None
    row_id: Any = None

    def __str__(self) -> str:
        path = f"{self.document_type}/{self.document_id}"
        if self.detail_id is not None:
            path = f"{path}/{self.detail_id}/{self.row_id}"
        return path


@dataclass(frozen=True)
class FieldDescriptor:
    """Declared schema of one field: type, dynamic rules, lookup capability.

    Attributes:
        field_name: Name of the field within its document
        field_type: Semantic target type (decides the stored value class)
        mandatory_logic: Constant or document predicate; evaluated per instance
        readonly_logic: Constant or document predicate
        display_logic: Constant or document predicate
        lookup_binding_factory: Creates a fresh LookupBinding per field instance
        key: Field is (part of) the document key
        virtual_field: Field is not backed by a stored column
        calculated: Field value is computed, never edited directly
    """
    field_name: str
    field_type: FieldType
    caption: str = ''
    mandatory_logic: Logic = False
    readonly_logic: Logic = False
    display_logic: Logic = True
    lookup_binding_factory: Optional[Callable[[], LookupBinding]] = field(default=None, compare=False)
    key: bool = False
    virtual_field: bool = False
    calculated: bool = False

    def __post_init__(self):
        if self.field_type.is_lookup and self.lookup_binding_factory is None:
            logger.debug(f"Lookup field {self.field_name!r} declared without a lookup binding factory")

    @property
    def value_class(self) -> type:
        return self.field_type.value_class

    def create_lookup_binding(self) -> Optional[LookupBinding]:
        if self.lookup_binding_factory is None:
            return None
        return self.lookup_binding_factory()

    def is_mandatory(self, document: Any) -> bool:
        return evaluate_logic(self.mandatory_logic, document)

    def is_readonly(self, document: Any) -> bool:
        return evaluate_logic(self.readonly_logic, document)

    def is_displayed(self, document: Any) -> bool:
        return evaluate_logic(self.display_logic, document)
