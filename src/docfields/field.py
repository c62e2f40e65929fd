"""
DocumentField: the value and flag container for one named slot of a Document.

State (per document instance):
- _initial_value: baseline captured at load or last commit
- _value: current typed value (None or an instance of the declared value class)
- _mandatory / _readonly / _displayed: evaluated per-instance flags
- _valid: derived from the current rules (see _check_valid)
- _lookup_binding: exclusively owned; copied, never shared

Everything UI-observable is reported to the changes collector passed to the
mutation. Omitting it is the same as passing the null collector.
"""

from typing import Any, List, Optional, TYPE_CHECKING
import logging

from docfields.changes import ChangesCollector, ReasonSupplier, collector_or_null
from docfields.conversion import convert_to_value_type
from docfields.descriptor import FieldDescriptor
from docfields.errors import DocumentFieldNotLookupError
from docfields.lookup import LookupBinding
from docfields.values import FieldType, LookupValue, value_to_display_string, value_to_json

if TYPE_CHECKING:
    from docfields.document import Document

logger = logging.getLogger(__name__)


class DocumentField:
    """Value slot of one field in one document instance."""

    def __init__(self, descriptor: FieldDescriptor, document: 'Document'):
        self._descriptor = descriptor
        self._document = document
        self._lookup_binding: Optional[LookupBinding] = descriptor.create_lookup_binding()

        self._initial_value: Any = None
        self._value: Any = None
        self._mandatory = False
        self._readonly = False
        self._displayed = False
        self._valid = False

    def copy(self, document: 'Document') -> 'DocumentField':
        """Independent field owned by document, with identical value and flag state."""
        field_copy = DocumentField.__new__(DocumentField)
        field_copy._descriptor = self._descriptor
        field_copy._document = document
        field_copy._lookup_binding = self._lookup_binding.copy() if self._lookup_binding is not None else None
        field_copy._initial_value = self._initial_value
        field_copy._value = self._value
        field_copy._mandatory = self._mandatory
        field_copy._readonly = self._readonly
        field_copy._displayed = self._displayed
        field_copy._valid = self._valid
        return field_copy

    def __repr__(self) -> str:
        return (
            f"DocumentField(field_name={self.field_name!r}, value={self._value!r}, "
            f"initial_value={self._initial_value!r}, mandatory={self._mandatory}, "
            f"readonly={self._readonly}, displayed={self._displayed})"
        )

    # ==================== DESCRIPTOR ====================

    @property
    def descriptor(self) -> FieldDescriptor:
        return self._descriptor

    @property
    def document(self) -> 'Document':
        return self._document

    @property
    def field_name(self) -> str:
        return self._descriptor.field_name

    @property
    def field_type(self) -> FieldType:
        return self._descriptor.field_type

    def is_key(self) -> bool:
        return self._descriptor.key

    def is_virtual_field(self) -> bool:
        return self._descriptor.virtual_field

    def is_calculated(self) -> bool:
        return self._descriptor.calculated

    # ==================== VALUE ====================

    def _convert(self, value: Any, target_type: Optional[FieldType] = None) -> Any:
        return convert_to_value_type(
            value,
            target_type or self._descriptor.field_type,
            lookup_binding=self._lookup_binding,
            field_name=self.field_name,
        )

    @property
    def initial_value(self) -> Any:
        return self._initial_value

    @property
    def value(self) -> Any:
        return self._value

    def set_initial_value(self, value: Any, changes_collector: Optional[ChangesCollector] = None) -> None:
        """Coerce value and set it as both baseline and current value.

        Raises:
            ConversionError: value cannot be coerced to the declared type
        """
        value_conv = self._convert(value)
        self._initial_value = value_conv
        self._value = value_conv
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(f"Set {self.field_name}'s initial value: {value_conv!r}")

        self.update_valid(changes_collector)

    def set_value(
        self,
        value: Any,
        changes_collector: Optional[ChangesCollector] = None,
        reason: Optional[ReasonSupplier] = None,
    ) -> bool:
        """Coerce value and make it the current value.

        EARLY EXIT: if the coerced value equals the current one nothing happens
        (no validity recompute, no change event).

        Returns:
            True if the value actually changed.

        Raises:
            ConversionError: value cannot be coerced to the declared type
            DocumentFieldNotLookupError: lookup resolution needed but no binding
        """
        value_new = self._convert(value)
        value_old = self._value
        if value_new == value_old:
            return False

        self._value = value_new
        logger.debug(f"Changed {self.field_name}'s value: {value_old!r} -> {value_new!r}")

        changes_collector = collector_or_null(changes_collector)
        changes_collector.collect_value_changed(self, reason)
        self.update_valid(changes_collector, reason)
        return True

    def get_old_value(self) -> Any:
        # Callouts see the current value; no per-callout history is kept
        return self._value

    def get_value_as(self, target_type: FieldType) -> Any:
        """Current value coerced to another semantic type (no state change)."""
        return self._convert(self._value, target_type)

    def get_value_as_int(self, default_value: int = 0) -> int:
        value = self._value
        if isinstance(value, LookupValue):
            value = value.key
        value_int = convert_to_value_type(value, FieldType.INTEGER, field_name=self.field_name)
        return default_value if value_int is None else value_int

    def get_value_as_bool(self) -> bool:
        value_bool = convert_to_value_type(self._value, FieldType.BOOLEAN, field_name=self.field_name)
        return bool(value_bool)

    def get_value_as_json(self) -> Any:
        return value_to_json(self._value)

    def get_value_as_display_string(self) -> str:
        return value_to_display_string(self._value)

    def has_changes(self) -> bool:
        """True when the current value differs from the baseline."""
        return self._value != self._initial_value

    # ==================== FLAGS ====================

    def is_mandatory(self) -> bool:
        return self._mandatory

    def set_mandatory(
        self,
        mandatory: bool,
        changes_collector: Optional[ChangesCollector] = None,
        reason: Optional[ReasonSupplier] = None,
    ) -> bool:
        if self._mandatory == mandatory:
            return False

        self._mandatory = mandatory
        changes_collector = collector_or_null(changes_collector)
        changes_collector.collect_mandatory_changed(self, reason)
        self.update_valid(changes_collector, reason)
        return True

    def is_readonly(self) -> bool:
        return self._readonly

    def set_readonly(
        self,
        readonly: bool,
        changes_collector: Optional[ChangesCollector] = None,
        reason: Optional[ReasonSupplier] = None,
    ) -> bool:
        if self._readonly == readonly:
            return False

        self._readonly = readonly
        collector_or_null(changes_collector).collect_readonly_changed(self, reason)
        return True

    def is_displayed(self) -> bool:
        return self._displayed

    def set_displayed(
        self,
        displayed: bool,
        changes_collector: Optional[ChangesCollector] = None,
        reason: Optional[ReasonSupplier] = None,
    ) -> bool:
        if self._displayed == displayed:
            return False

        self._displayed = displayed
        collector_or_null(changes_collector).collect_displayed_changed(self, reason)
        return True

    # ==================== VALIDITY ====================

    def is_valid(self) -> bool:
        return self._valid

    def update_valid(
        self,
        changes_collector: Optional[ChangesCollector] = None,
        reason: Optional[ReasonSupplier] = None,
    ) -> bool:
        """Recompute validity; report only an actual flip.

        Returns:
            True if the valid flag flipped.
        """
        valid_old = self._valid
        valid_new = self._check_valid()
        if valid_old == valid_new:
            return False

        self._valid = valid_new
        logger.debug(f"Changed valid state {valid_old}->{valid_new} for {self!r}")
        collector_or_null(changes_collector).collect_valid_status_changed(self, reason)
        return True

    def _check_valid(self) -> bool:
        if self._mandatory and self._value is None:
            logger.debug(f"Not valid because mandatory field is not filled: {self.field_name}")
            return False

        return True

    # ==================== LOOKUP ====================

    @property
    def lookup_binding(self) -> Optional[LookupBinding]:
        return self._lookup_binding

    def is_lookup(self) -> bool:
        return self._lookup_binding is not None

    def is_lookup_with_numeric_key(self) -> bool:
        return self._lookup_binding is not None and self._lookup_binding.is_numeric_key()

    def is_lookup_values_stale(self) -> bool:
        return self._lookup_binding is not None and self._lookup_binding.is_staled()

    def set_lookup_values_staled(self, triggering_field_name: str) -> bool:
        """Mark lookup candidates stale if triggering_field_name is a declared trigger.

        Returns:
            True if staleness actually flipped; callers decide whether to report it.
        """
        if self._lookup_binding is None:
            return False
        return self._lookup_binding.set_staled(triggering_field_name)

    def _require_lookup_binding(self) -> LookupBinding:
        if self._lookup_binding is None:
            raise DocumentFieldNotLookupError(self.field_name)
        return self._lookup_binding

    def get_lookup_values(self, document: 'Document') -> List[LookupValue]:
        """First page of lookup candidates for document.

        Raises:
            DocumentFieldNotLookupError: field has no lookup binding
        """
        return self._require_lookup_binding().find_entities(document)

    def get_lookup_values_for_query(self, document: 'Document', query: str) -> List[LookupValue]:
        """First page of lookup candidates matching query.

        Raises:
            DocumentFieldNotLookupError: field has no lookup binding
        """
        return self._require_lookup_binding().find_entities(document, query=query)
