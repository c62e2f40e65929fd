"""
Document: runtime instance of a metadata-driven business record.

A Document owns one DocumentField per FieldDescriptor of its type and is the
single entry point for named value mutations:

    document.process_value_change("Country", "DE", reason, collector)
      -> field.set_value()             (coerce, store, recompute validity)
      -> _notify_dependents()          (one-hop lookup staleness)
      -> update_field_flags()          (re-evaluate mandatory/readonly/displayed)
      -> collector                     (every UI-observable transition)

Concurrency model: single writer per document instance, no internal locking.
Concurrent or optimistic edits work on copy() snapshots; committing the copy
replaces the old field graph.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple
import logging

from docfields.changes import ChangesCollector, ReasonSupplier, collector_or_null
from docfields.descriptor import DocumentPath, FieldDescriptor
from docfields.errors import ConversionError, DocumentFieldNotFoundError
from docfields.field import DocumentField
from docfields.values import LookupValue

logger = logging.getLogger(__name__)


class Document:
    """Dynamic bag of named DocumentFields shaped by descriptors.

    Core Attributes:
    - document_path: identity used by changes collectors
    - _fields: field name -> DocumentField (declaration order)
    - _dependents_by_trigger: trigger field name -> dependent lookup field names
      (static, derived once from lookup bindings; shared between copies)
    """

    def __init__(
        self,
        document_path: DocumentPath,
        descriptors: Iterable[FieldDescriptor],
        initial_values: Optional[Mapping[str, Any]] = None,
    ):
        """
        Initialize Document and load its baseline values.

        Args:
            document_path: Identity of this document instance
            descriptors: One FieldDescriptor per field of the document type
            initial_values: Raw baseline values by field name (missing -> None)

        Raises:
            ConversionError: an initial value cannot be coerced
        """
        self.document_path = document_path
        self._fields: Dict[str, DocumentField] = {}
        for descriptor in descriptors:
            if descriptor.field_name in self._fields:
                raise ValueError(f"Duplicate field {descriptor.field_name!r} in {document_path}")
            self._fields[descriptor.field_name] = DocumentField(descriptor, self)

        self._dependents_by_trigger: Dict[str, Tuple[str, ...]] = self._build_dependents_by_trigger(self._fields)

        self.set_initial_values(initial_values or {})

    @staticmethod
    def _build_dependents_by_trigger(fields: Mapping[str, DocumentField]) -> Dict[str, Tuple[str, ...]]:
        dependents: Dict[str, List[str]] = {}
        for field_name, document_field in fields.items():
            binding = document_field.lookup_binding
            if binding is None:
                continue
            for trigger_name in sorted(binding.depends_on_field_names):
                if trigger_name not in fields:
                    logger.warning(
                        f"Lookup of {field_name!r} depends on unknown field {trigger_name!r}"
                    )
                dependents.setdefault(trigger_name, []).append(field_name)
        return {trigger: tuple(names) for trigger, names in dependents.items()}

    def __repr__(self) -> str:
        return f"Document({self.document_path}, fields={list(self._fields)})"

    # ==================== FIELDS ====================

    def get_field(self, field_name: str) -> DocumentField:
        document_field = self._fields.get(field_name)
        if document_field is None:
            raise DocumentFieldNotFoundError(field_name, self.document_path)
        return document_field

    def has_field(self, field_name: str) -> bool:
        return field_name in self._fields

    def get_fields(self) -> List[DocumentField]:
        return list(self._fields.values())

    @property
    def field_names(self) -> List[str]:
        return list(self._fields)

    def get_value(self, field_name: str) -> Any:
        return self.get_field(field_name).value

    def get_dependent_field_names(self, trigger_field_name: str) -> Tuple[str, ...]:
        """Fields whose lookup must be staled when trigger_field_name changes."""
        return self._dependents_by_trigger.get(trigger_field_name, ())

    def get_current_values(self) -> Dict[str, Any]:
        return {name: document_field.value for name, document_field in self._fields.items()}

    # ==================== LOAD / COMMIT ====================

    def set_initial_values(self, initial_values: Mapping[str, Any]) -> None:
        """Set every field's baseline (load path). Unknown names are ignored with a warning."""
        unknown = set(initial_values) - set(self._fields)
        if unknown:
            logger.warning(f"Ignoring initial values for unknown fields {sorted(unknown)} in {self.document_path}")
        for field_name, document_field in self._fields.items():
            document_field.set_initial_value(initial_values.get(field_name))
        # Logic may depend on the loaded values
        self.update_field_flags()

    def save_baseline(self) -> None:
        """Commit current values as the new baseline (no changes afterwards)."""
        for document_field in self._fields.values():
            document_field.set_initial_value(document_field.value)
        logger.debug(f"Saved baseline for {self.document_path}")

    def copy(self) -> 'Document':
        """Copy-on-write snapshot with entirely new fields and lookup bindings."""
        document_copy = Document.__new__(Document)
        document_copy.document_path = self.document_path
        document_copy._fields = {
            name: document_field.copy(document_copy) for name, document_field in self._fields.items()
        }
        document_copy._dependents_by_trigger = self._dependents_by_trigger
        return document_copy

    # ==================== MUTATION ====================

    def process_value_change(
        self,
        field_name: str,
        value: Any,
        reason: Optional[ReasonSupplier] = None,
        changes_collector: Optional[ChangesCollector] = None,
    ) -> bool:
        """Apply one named raw value change.

        Returns:
            True if the field's value actually changed.

        Raises:
            DocumentFieldNotFoundError: no such field
            ConversionError: value cannot be coerced to the field's type
        """
        changes_collector = collector_or_null(changes_collector)
        document_field = self.get_field(field_name)

        if not document_field.set_value(value, changes_collector, reason):
            return False

        self._notify_dependents(field_name, changes_collector, reason)
        self.update_field_flags(changes_collector, reason)
        return True

    def process_value_changes(
        self,
        values: Mapping[str, Any],
        reason: Optional[ReasonSupplier] = None,
        changes_collector: Optional[ChangesCollector] = None,
        skip_invalid: bool = False,
    ) -> List[str]:
        """Apply several named raw value changes in order.

        Args:
            values: field name -> raw value
            skip_invalid: If True, conversion errors are logged and the field
                          skipped; if False (default) the first error propagates.

        Returns:
            Names of fields whose value actually changed.
        """
        changed: List[str] = []
        for field_name, value in values.items():
            try:
                if self.process_value_change(field_name, value, reason, changes_collector):
                    changed.append(field_name)
            except ConversionError as e:
                if not skip_invalid:
                    raise
                logger.warning(f"Skipping {field_name!r} in {self.document_path}: {e}")
        return changed

    def _notify_dependents(
        self,
        changed_field_name: str,
        changes_collector: ChangesCollector,
        reason: Optional[ReasonSupplier],
    ) -> None:
        """Stale lookups that declare changed_field_name as a trigger (one hop only)."""
        for dependent_name in self.get_dependent_field_names(changed_field_name):
            dependent_field = self._fields.get(dependent_name)
            if dependent_field is None or dependent_name == changed_field_name:
                continue
            if dependent_field.set_lookup_values_staled(changed_field_name):
                logger.debug(f"Lookup values staled: {dependent_name!r} (triggered by {changed_field_name!r})")
                changes_collector.collect_lookup_values_staled(dependent_field, reason)

    def update_field_flags(
        self,
        changes_collector: Optional[ChangesCollector] = None,
        reason: Optional[ReasonSupplier] = None,
    ) -> None:
        """Re-evaluate descriptor logic (mandatory/readonly/displayed) for every field."""
        changes_collector = collector_or_null(changes_collector)
        for document_field in self._fields.values():
            descriptor = document_field.descriptor
            document_field.set_mandatory(descriptor.is_mandatory(self), changes_collector, reason)
            document_field.set_readonly(descriptor.is_readonly(self), changes_collector, reason)
            document_field.set_displayed(descriptor.is_displayed(self), changes_collector, reason)

    # ==================== STATE ====================

    def is_valid(self) -> bool:
        return all(document_field.is_valid() for document_field in self._fields.values())

    def get_invalid_field_names(self) -> List[str]:
        return [name for name, document_field in self._fields.items() if not document_field.is_valid()]

    def has_changes(self) -> bool:
        return any(document_field.has_changes() for document_field in self._fields.values())

    @property
    def dirty_fields(self) -> List[str]:
        """Names of fields whose current value differs from the baseline."""
        return [name for name, document_field in self._fields.items() if document_field.has_changes()]

    # ==================== LOOKUP ====================

    def get_lookup_values(self, field_name: str) -> List[LookupValue]:
        return self.get_field(field_name).get_lookup_values(self)

    def get_lookup_values_for_query(self, field_name: str, query: str) -> List[LookupValue]:
        return self.get_field(field_name).get_lookup_values_for_query(self, query)
