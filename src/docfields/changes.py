"""
Change collection for UI synchronization.

A changes collector accumulates "field F of document D changed in way K"
events during one mutation batch. The transport layer drains it afterwards
to build the client-facing diff.

Semantics:
- Keyed by DocumentPath, then field name, then ChangeKind
- Set, not log: recording the same (document, field, kind) twice is idempotent
- Reasons are lazy (ReasonSupplier) and only evaluated when someone reads them
- Collectors merge by set union (collect_from_collector)

Thread safety: Not thread-safe. A collector is owned by one in-flight edit
operation and is either discarded or merged into its caller's collector.
"""

from abc import ABC, abstractmethod
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Dict, FrozenSet, Iterator, List, Mapping, Optional, Set, Tuple
import logging

logger = logging.getLogger(__name__)


class ReasonSupplier:
    """Deferred, memoized diagnostic text for a change.

    The wrapped thunk is evaluated at most once, and only when get() is called.
    """

    __slots__ = ('_supplier', '_reason', '_evaluated')

    def __init__(self, supplier: Callable[[], str]):
        self._supplier = supplier
        self._reason: Optional[str] = None
        self._evaluated = False

    @classmethod
    def of(cls, reason: str) -> 'ReasonSupplier':
        """Supplier for an already known reason."""
        supplier = cls(lambda: reason)
        supplier._reason = reason
        supplier._evaluated = True
        return supplier

    def get(self) -> str:
        if not self._evaluated:
            self._reason = self._supplier()
            self._evaluated = True
        return self._reason

    def is_evaluated(self) -> bool:
        return self._evaluated

    def add_prefix(self, prefix: str) -> 'ReasonSupplier':
        """New supplier yielding "prefix | reason", still lazy."""
        return ReasonSupplier(lambda: f"{prefix} | {self.get()}")

    def __repr__(self) -> str:
        if self._evaluated:
            return f"ReasonSupplier({self._reason!r})"
        return "ReasonSupplier(<not evaluated>)"


class ChangeKind(Enum):
    """Kind of UI-observable field state transition."""
    VALUE = 'value'
    READONLY = 'readonly'
    MANDATORY = 'mandatory'
    DISPLAYED = 'displayed'
    VALID_STATUS = 'valid_status'
    LOOKUP_VALUES_STALED = 'lookup_values_staled'


class DocumentFieldChange:
    """Change kinds recorded for one field of one document."""

    def __init__(self, field_name: str):
        self.field_name = field_name
        # kind -> first reason recorded for it
        self._reasons: Dict[ChangeKind, Optional[ReasonSupplier]] = {}

    def __repr__(self) -> str:
        kinds = ', '.join(kind.value for kind in self._reasons)
        return f"DocumentFieldChange({self.field_name!r}, kinds=[{kinds}])"

    @property
    def kinds(self) -> FrozenSet[ChangeKind]:
        return frozenset(self._reasons)

    def has_kind(self, kind: ChangeKind) -> bool:
        return kind in self._reasons

    def add(self, kind: ChangeKind, reason: Optional[ReasonSupplier]) -> bool:
        """Record kind; returns False if it was already recorded."""
        if kind in self._reasons:
            return False
        self._reasons[kind] = reason
        return True

    def get_reason(self, kind: ChangeKind) -> Optional[str]:
        """Materialize the reason recorded for kind (None if none was given)."""
        reason = self._reasons.get(kind)
        return reason.get() if reason is not None else None

    def merge_from(self, other: 'DocumentFieldChange') -> None:
        for kind, reason in other._reasons.items():
            self.add(kind, reason)


class DocumentChanges:
    """Per-document view of collected field changes, in first-recorded order."""

    def __init__(self, document_path: Any):
        self.document_path = document_path
        self._field_changes: Dict[str, DocumentFieldChange] = {}

    def __repr__(self) -> str:
        return f"DocumentChanges({self.document_path}, fields={list(self._field_changes)})"

    def is_empty(self) -> bool:
        return not self._field_changes

    def get_field_names(self) -> FrozenSet[str]:
        return frozenset(self._field_changes)

    def get_field_changes(self) -> List[DocumentFieldChange]:
        return list(self._field_changes.values())

    def get_field_change(self, field_name: str) -> Optional[DocumentFieldChange]:
        return self._field_changes.get(field_name)

    def field_change(self, field_name: str) -> DocumentFieldChange:
        """Get or create the change entry for field_name."""
        change = self._field_changes.get(field_name)
        if change is None:
            change = DocumentFieldChange(field_name)
            self._field_changes[field_name] = change
        return change


class ChangesCollector(ABC):
    """Protocol for accumulating UI-relevant field changes.

    Fields are duck-typed: they expose field_name and document.document_path.
    """

    __slots__ = ()

    @abstractmethod
    def collect_value_changed(self, document_field: Any, reason: Optional[ReasonSupplier] = None) -> None:
        """Record that the field's value changed."""

    @abstractmethod
    def collect_readonly_changed(self, document_field: Any, reason: Optional[ReasonSupplier] = None) -> None:
        """Record that the field's readonly flag changed."""

    @abstractmethod
    def collect_mandatory_changed(self, document_field: Any, reason: Optional[ReasonSupplier] = None) -> None:
        """Record that the field's mandatory flag changed."""

    @abstractmethod
    def collect_displayed_changed(self, document_field: Any, reason: Optional[ReasonSupplier] = None) -> None:
        """Record that the field's displayed flag changed."""

    @abstractmethod
    def collect_valid_status_changed(self, document_field: Any, reason: Optional[ReasonSupplier] = None) -> None:
        """Record that the field's valid flag flipped."""

    @abstractmethod
    def collect_lookup_values_staled(self, document_field: Any, reason: Optional[ReasonSupplier] = None) -> None:
        """Record that the field's lookup candidates became stale."""

    @abstractmethod
    def collect_from_document(self, document: Any, reason: Optional[ReasonSupplier] = None) -> bool:
        """Record value changes for every field of document that differs from its baseline.

        Returns:
            True if anything was recorded.
        """

    @abstractmethod
    def collect_from_collector(self, from_collector: 'ChangesCollector') -> None:
        """Merge another collector's events into this one (set union)."""

    @abstractmethod
    def is_empty(self) -> bool:
        """True if nothing was collected."""

    @abstractmethod
    def get_field_names(self, document_path: Any) -> FrozenSet[str]:
        """Names of changed fields for document_path."""

    @abstractmethod
    def get_document_changes_by_path(self) -> Mapping[Any, DocumentChanges]:
        """Read-only mapping of DocumentPath -> DocumentChanges."""


class DocumentChangesCollector(ChangesCollector):
    """Default collector: deduplicated, mergeable, drainable."""

    def __init__(self):
        self._documents: Dict[Any, DocumentChanges] = {}

    def __repr__(self) -> str:
        return f"DocumentChangesCollector(documents={list(self._documents)})"

    def _document_changes(self, document_path: Any) -> DocumentChanges:
        changes = self._documents.get(document_path)
        if changes is None:
            changes = DocumentChanges(document_path)
            self._documents[document_path] = changes
        return changes

    def _collect(self, document_field: Any, kind: ChangeKind, reason: Optional[ReasonSupplier]) -> None:
        document_path = document_field.document.document_path
        field_name = document_field.field_name
        added = self._document_changes(document_path).field_change(field_name).add(kind, reason)
        if added:
            logger.debug(f"Collected {kind.value} change: {document_path} {field_name!r}")

    def collect_value_changed(self, document_field: Any, reason: Optional[ReasonSupplier] = None) -> None:
        self._collect(document_field, ChangeKind.VALUE, reason)

    def collect_readonly_changed(self, document_field: Any, reason: Optional[ReasonSupplier] = None) -> None:
        self._collect(document_field, ChangeKind.READONLY, reason)

    def collect_mandatory_changed(self, document_field: Any, reason: Optional[ReasonSupplier] = None) -> None:
        self._collect(document_field, ChangeKind.MANDATORY, reason)

    def collect_displayed_changed(self, document_field: Any, reason: Optional[ReasonSupplier] = None) -> None:
        self._collect(document_field, ChangeKind.DISPLAYED, reason)

    def collect_valid_status_changed(self, document_field: Any, reason: Optional[ReasonSupplier] = None) -> None:
        self._collect(document_field, ChangeKind.VALID_STATUS, reason)

    def collect_lookup_values_staled(self, document_field: Any, reason: Optional[ReasonSupplier] = None) -> None:
        self._collect(document_field, ChangeKind.LOOKUP_VALUES_STALED, reason)

    def collect_from_document(self, document: Any, reason: Optional[ReasonSupplier] = None) -> bool:
        collected = False
        for document_field in document.get_fields():
            if not document_field.has_changes():
                continue
            self.collect_value_changed(document_field, reason)
            collected = True
        return collected

    def collect_from_collector(self, from_collector: ChangesCollector) -> None:
        if from_collector is self:
            return
        for document_path, from_changes in from_collector.get_document_changes_by_path().items():
            to_changes = self._document_changes(document_path)
            for from_field_change in from_changes.get_field_changes():
                to_changes.field_change(from_field_change.field_name).merge_from(from_field_change)

    def is_empty(self) -> bool:
        return all(changes.is_empty() for changes in self._documents.values())

    def get_field_names(self, document_path: Any) -> FrozenSet[str]:
        changes = self._documents.get(document_path)
        return changes.get_field_names() if changes is not None else frozenset()

    def get_document_changes_by_path(self) -> Mapping[Any, DocumentChanges]:
        return MappingProxyType(self._documents)

    def iter_changes(self) -> Iterator[Tuple[Any, str, ChangeKind]]:
        """Yield every collected (document path, field name, kind) tuple."""
        for document_path, changes in self._documents.items():
            for field_change in changes.get_field_changes():
                for kind in field_change.kinds:
                    yield document_path, field_change.field_name, kind

    def to_set(self) -> Set[Tuple[Any, str, ChangeKind]]:
        return set(self.iter_changes())

    def drain(self) -> Dict[Any, DocumentChanges]:
        """Return everything collected so far and reset the collector."""
        drained = self._documents
        self._documents = {}
        return drained


class NullDocumentChangesCollector(ChangesCollector):
    """Collector that records nothing.

    Use it to apply field mutations without producing any client-visible diff.
    Stateless; share the module-level instance.
    """

    __slots__ = ()

    instance: 'NullDocumentChangesCollector'

    def __repr__(self) -> str:
        return "NullDocumentChangesCollector"

    def collect_value_changed(self, document_field: Any, reason: Optional[ReasonSupplier] = None) -> None:
        pass

    def collect_readonly_changed(self, document_field: Any, reason: Optional[ReasonSupplier] = None) -> None:
        pass

    def collect_mandatory_changed(self, document_field: Any, reason: Optional[ReasonSupplier] = None) -> None:
        pass

    def collect_displayed_changed(self, document_field: Any, reason: Optional[ReasonSupplier] = None) -> None:
        pass

    def collect_valid_status_changed(self, document_field: Any, reason: Optional[ReasonSupplier] = None) -> None:
        pass

    def collect_lookup_values_staled(self, document_field: Any, reason: Optional[ReasonSupplier] = None) -> None:
        pass

    def collect_from_document(self, document: Any, reason: Optional[ReasonSupplier] = None) -> bool:
        return False  # nothing collected

    def collect_from_collector(self, from_collector: ChangesCollector) -> None:
        pass

    def is_empty(self) -> bool:
        return True

    def get_field_names(self, document_path: Any) -> FrozenSet[str]:
        return frozenset()

    def get_document_changes_by_path(self) -> Mapping[Any, DocumentChanges]:
        return _EMPTY_CHANGES_BY_PATH


_EMPTY_CHANGES_BY_PATH: Mapping[Any, DocumentChanges] = MappingProxyType({})

NullDocumentChangesCollector.instance = NullDocumentChangesCollector()
NULL_CHANGES_COLLECTOR = NullDocumentChangesCollector.instance


def collector_or_null(changes_collector: Optional[ChangesCollector]) -> ChangesCollector:
    return changes_collector if changes_collector is not None else NULL_CHANGES_COLLECTOR
