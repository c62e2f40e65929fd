"""
Typed field values for metadata-driven documents.

This module defines the closed set of semantic target types a field can
declare, and the value classes stored for lookup-typed fields.

Design Philosophy: Correct by Construction
- FieldType is a closed enum; every type knows its Python value class
- Lookup values are immutable (frozen dataclass) and compare by value
- JSON helpers build lookup values directly from {key, caption} maps
"""

from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Mapping, Optional

JSON_KEY = 'key'
JSON_CAPTION = 'caption'
# Older clients send the display part as 'display'
JSON_CAPTION_ALIASES = (JSON_CAPTION, 'display')

BOOLEAN_TRUE_STRINGS = frozenset({'y', 'yes', 'true', '1', 'on'})
BOOLEAN_FALSE_STRINGS = frozenset({'n', 'no', 'false', '0', 'off', ''})


@dataclass(frozen=True)
class LookupValue:
    """Immutable (key, display name) pair referencing a lookup entity."""
    key: Any
    display_name: str = ''

    def __str__(self) -> str:
        return self.display_name

    @property
    def key_as_string(self) -> str:
        return str(self.key)

    def to_json_map(self) -> Dict[str, Any]:
        """Export to JSON-serializable {key, caption} map."""
        return {JSON_KEY: self.key_as_string, JSON_CAPTION: self.display_name}


@dataclass(frozen=True)
class StringLookupValue(LookupValue):
    """Lookup value with a textual key."""
    key: str

    @classmethod
    def of(cls, key: Any, display_name: Optional[str] = None) -> 'StringLookupValue':
        return cls(key=str(key), display_name=display_name if display_name is not None else '')

    @classmethod
    def from_json_map(cls, json_map: Mapping[str, Any]) -> 'StringLookupValue':
        return cls.of(json_map[JSON_KEY], _caption_from_json_map(json_map))


@dataclass(frozen=True)
class IntegerLookupValue(LookupValue):
    """Lookup value with a numeric key."""
    key: int

    @classmethod
    def of(cls, key: Any, display_name: Optional[str] = None) -> 'IntegerLookupValue':
        return cls(key=int(key), display_name=display_name if display_name is not None else '')

    @classmethod
    def from_json_map(cls, json_map: Mapping[str, Any]) -> 'IntegerLookupValue':
        return cls.of(json_map[JSON_KEY], _caption_from_json_map(json_map))


def _caption_from_json_map(json_map: Mapping[str, Any]) -> str:
    for name in JSON_CAPTION_ALIASES:
        caption = json_map.get(name)
        if caption is not None:
            return str(caption)
    return ''


class FieldType(Enum):
    """Semantic target type declared by a field descriptor."""
    TEXT = 'text'
    BOOLEAN = 'boolean'
    INTEGER = 'integer'
    DECIMAL = 'decimal'
    DATE = 'date'
    LOOKUP = 'lookup'
    INTEGER_LOOKUP = 'integer_lookup'

    @property
    def value_class(self) -> type:
        return _VALUE_CLASSES[self]

    @property
    def is_lookup(self) -> bool:
        return self in (FieldType.LOOKUP, FieldType.INTEGER_LOOKUP)

    def accepts(self, value: Any) -> bool:
        """True if value is already an instance of this type's value class."""
        # bool is an int subclass; never let it pass as an integer
        if isinstance(value, bool) and self is not FieldType.BOOLEAN:
            return False
        # NaN never equals itself, so it cannot be a stored value
        if isinstance(value, Decimal) and not value.is_finite():
            return False
        return isinstance(value, self.value_class)


_VALUE_CLASSES = {
    FieldType.TEXT: str,
    FieldType.BOOLEAN: bool,
    FieldType.INTEGER: int,
    FieldType.DECIMAL: Decimal,
    FieldType.DATE: datetime,
    FieldType.LOOKUP: StringLookupValue,
    FieldType.INTEGER_LOOKUP: IntegerLookupValue,
}


def to_boolean(value: Any, default: bool = False) -> bool:
    """Normalize Y/N, true/false, 1/0 style values to a bool."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float, Decimal)):
        return value != 0
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in BOOLEAN_TRUE_STRINGS:
            return True
        if normalized in BOOLEAN_FALSE_STRINGS:
            return False
    return default


def parse_datetime(text: str) -> datetime:
    """Parse an ISO-8601 date or date/time literal.

    Accepts a trailing 'Z' for UTC and plain dates ("2016-03-01").
    """
    text = text.strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    return datetime.fromisoformat(text)


def date_to_datetime(value: date) -> datetime:
    return datetime.combine(value, time())


def value_to_json(value: Any) -> Any:
    """Render a typed field value in a JSON-friendly form."""
    if value is None:
        return None
    if isinstance(value, LookupValue):
        return value.to_json_map()
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    return value


def value_to_display_string(value: Any) -> str:
    """Human readable rendering: empty for null, caption for lookups, Y/N for booleans."""
    if value is None:
        return ''
    if isinstance(value, str):
        return value
    if isinstance(value, LookupValue):
        return value.display_name
    if isinstance(value, bool):
        return 'Y' if value else 'N'
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)
