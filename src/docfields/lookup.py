"""
Lookup resolution and staleness tracking for lookup-typed fields.

A LookupBinding belongs to exactly one DocumentField. It wraps an external
LookupDataSource (the resolver) and tracks:
- staled: candidate list may be outdated and must be refreshed before use
- depends_on_field_names: fields whose value change sets staled (immutable)
- numeric_key: raw identifiers are parsed as integers before lookup

Bindings are copied, never shared, when their field is copied.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, FrozenSet, Iterable, List, Optional, Sequence
import logging

from docfields.config import get_runtime_config
from docfields.values import IntegerLookupValue, LookupValue, StringLookupValue

logger = logging.getLogger(__name__)


class LookupDataSource(ABC):
    """Synchronous resolver contract consumed by LookupBinding.

    Timeouts and retries are the resolver's own concern.
    """

    @abstractmethod
    def find_by_id(self, key: Any) -> Optional[LookupValue]:
        """Return the lookup value for key, or None if not found."""

    @abstractmethod
    def find_entities(
        self,
        document: Any,
        query: Optional[str] = None,
        first_row: int = 0,
        page_length: int = 10,
    ) -> List[LookupValue]:
        """Return an ordered page of candidates matching query for document."""


class InMemoryLookupDataSource(LookupDataSource):
    """LookupDataSource over a fixed list of values.

    Args:
        values: Candidate lookup values in display order
        document_filter: Optional (document, value) -> bool predicate used to
                         narrow candidates by the document's current state
                         (e.g. regions of the selected country)
    """

    def __init__(
        self,
        values: Iterable[LookupValue],
        document_filter: Optional[Callable[[Any, LookupValue], bool]] = None,
    ):
        self._values: List[LookupValue] = list(values)
        self._by_key = {value.key: value for value in self._values}
        self._document_filter = document_filter

    def find_by_id(self, key: Any) -> Optional[LookupValue]:
        return self._by_key.get(key)

    def find_entities(
        self,
        document: Any,
        query: Optional[str] = None,
        first_row: int = 0,
        page_length: int = 10,
    ) -> List[LookupValue]:
        candidates = self._values
        if self._document_filter is not None and document is not None:
            candidates = [v for v in candidates if self._document_filter(document, v)]
        if query:
            needle = query.lower()
            candidates = [v for v in candidates if needle in v.display_name.lower()]
        return list(candidates[first_row:first_row + page_length])


class LookupBinding:
    """Per-field lookup capability: resolver + staleness + trigger field names."""

    def __init__(
        self,
        data_source: LookupDataSource,
        depends_on_field_names: Iterable[str] = (),
        numeric_key: bool = False,
        staled: bool = False,
    ):
        self._data_source = data_source
        self._depends_on_field_names: FrozenSet[str] = frozenset(depends_on_field_names)
        self._numeric_key = numeric_key
        self._staled = staled

    def __repr__(self) -> str:
        return (
            f"LookupBinding(depends_on={sorted(self._depends_on_field_names)}, "
            f"numeric_key={self._numeric_key}, staled={self._staled})"
        )

    @property
    def data_source(self) -> LookupDataSource:
        return self._data_source

    @property
    def depends_on_field_names(self) -> FrozenSet[str]:
        return self._depends_on_field_names

    def is_numeric_key(self) -> bool:
        return self._numeric_key

    def is_staled(self) -> bool:
        return self._staled

    def set_staled(self, triggering_field_name: str) -> bool:
        """Mark candidates stale if triggering_field_name is a declared dependency.

        Returns:
            True if staleness actually flipped from False to True.
        """
        if triggering_field_name not in self._depends_on_field_names:
            return False
        if self._staled:
            return False
        self._staled = True
        return True

    def _normalize_key(self, key: Any) -> Any:
        if isinstance(key, LookupValue):
            key = key.key
        if self._numeric_key:
            return int(key)
        return str(key)

    def find_by_id(self, key: Any) -> Optional[LookupValue]:
        """Resolve a raw identifier to a lookup value of the binding's key kind."""
        normalized_key = self._normalize_key(key)
        found = self._data_source.find_by_id(normalized_key)
        if found is None:
            logger.debug(f"Lookup key {normalized_key!r} not found")
            return None
        if self._numeric_key:
            return IntegerLookupValue.of(found.key, found.display_name)
        return StringLookupValue.of(found.key, found.display_name)

    def find_entities(
        self,
        document: Any,
        query: Optional[str] = None,
        first_row: Optional[int] = None,
        page_length: Optional[int] = None,
    ) -> List[LookupValue]:
        """Fetch a page of candidates and clear the staleness flag."""
        config = get_runtime_config()
        if first_row is None:
            first_row = config.lookup_first_row
        if page_length is None:
            page_length = config.lookup_page_length
        values: Sequence[LookupValue] = self._data_source.find_entities(
            document, query=query, first_row=first_row, page_length=page_length
        )
        self._staled = False
        return list(values)

    def copy(self) -> 'LookupBinding':
        """Independent binding sharing the resolver, with staleness copied."""
        return LookupBinding(
            self._data_source,
            depends_on_field_names=self._depends_on_field_names,
            numeric_key=self._numeric_key,
            staled=self._staled,
        )
