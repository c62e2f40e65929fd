"""
Value coercion engine.

Converts a raw incoming value (text, number, boolean, date, {key, caption} map
or an already typed value) into the Python value class of a field's declared
FieldType.

Dispatch is table driven over two closed sets:

    (FieldType, RawKind) -> rule

Resolution order:
    1. None -> None (no rule invoked)
    2. Identity: raw value already satisfies the target type -> unchanged
    3. Rule lookup in _RULES; missing rule -> ConversionError

Any exception raised by a rule is wrapped in ConversionError. Capability
errors (lookup target without a binding) propagate unchanged.
"""

from decimal import Decimal, InvalidOperation
from enum import Enum
from collections.abc import Mapping
from datetime import date, datetime
from typing import Any, Callable, Dict, Optional, Tuple, TYPE_CHECKING
import logging
import re

from docfields.errors import ConversionError, DocumentFieldNotLookupError
from docfields.values import (
    FieldType,
    IntegerLookupValue,
    LookupValue,
    StringLookupValue,
    date_to_datetime,
    parse_datetime,
    to_boolean,
)
from docfields.config import get_runtime_config

if TYPE_CHECKING:
    from docfields.lookup import LookupBinding

logger = logging.getLogger(__name__)

# Plain ASCII notation only: no digit separators, no NaN/Infinity
_INTEGER_PATTERN = re.compile(r'[+-]?\d+', re.ASCII)
_DECIMAL_PATTERN = re.compile(r'[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?', re.ASCII)


class RawKind(Enum):
    """Closed set of raw value representations."""
    NULL = 'null'
    TEXT = 'text'
    NUMBER = 'number'
    BOOLEAN = 'boolean'
    DATE = 'date'
    KEY_DISPLAY_PAIR = 'key_display_pair'
    LOOKUP_VALUE = 'lookup_value'
    OTHER = 'other'


def classify_raw(value: Any) -> RawKind:
    """Tag a raw value with its representation."""
    if value is None:
        return RawKind.NULL
    # bool before number: bool is an int subclass
    if isinstance(value, bool):
        return RawKind.BOOLEAN
    if isinstance(value, str):
        return RawKind.TEXT
    if isinstance(value, (int, float, Decimal)):
        return RawKind.NUMBER
    if isinstance(value, (date, datetime)):
        return RawKind.DATE
    if isinstance(value, LookupValue):
        return RawKind.LOOKUP_VALUE
    if isinstance(value, Mapping):
        return RawKind.KEY_DISPLAY_PAIR
    return RawKind.OTHER


Rule = Callable[[Any, Optional['LookupBinding'], str], Any]


# ==================== RULES ====================

def _parse_integer(text: str) -> int:
    if not _INTEGER_PATTERN.fullmatch(text):
        raise ValueError(f"{text!r} is not an integer")
    return int(text)


def _require_finite(value: Decimal) -> Decimal:
    if not value.is_finite():
        raise ValueError(f"{value!r} is not a finite decimal number")
    return value


def _to_text(value: Any, binding: Optional['LookupBinding'], field_name: str) -> str:
    return str(value)


def _to_boolean(value: Any, binding: Optional['LookupBinding'], field_name: str) -> bool:
    return to_boolean(value, default=False)


def _text_to_integer(value: str, binding: Optional['LookupBinding'], field_name: str) -> Optional[int]:
    text = value.strip()
    if not text:
        return None
    return _parse_integer(text)


def _number_to_integer(value: Any, binding: Optional['LookupBinding'], field_name: str) -> int:
    return int(value)


def _text_to_decimal(value: str, binding: Optional['LookupBinding'], field_name: str) -> Optional[Decimal]:
    text = value.strip()
    if not text:
        return None
    if not _DECIMAL_PATTERN.fullmatch(text):
        raise ValueError(f"{text!r} is not a decimal number")
    try:
        return Decimal(text)
    except InvalidOperation:
        raise ValueError(f"{text!r} is not a decimal number")


def _number_to_decimal(value: Any, binding: Optional['LookupBinding'], field_name: str) -> Decimal:
    if isinstance(value, Decimal):
        return _require_finite(value)
    # via str() so 0.1 stays 0.1 instead of its binary expansion
    return _require_finite(Decimal(str(value)))


def _text_to_date(value: str, binding: Optional['LookupBinding'], field_name: str) -> Optional[datetime]:
    if not value.strip():
        return None
    return parse_datetime(value)


def _date_to_date(value: date, binding: Optional['LookupBinding'], field_name: str) -> datetime:
    return date_to_datetime(value)


def _require_binding(binding: Optional['LookupBinding'], field_name: str) -> 'LookupBinding':
    if binding is None:
        raise DocumentFieldNotLookupError(field_name)
    return binding


def _resolve(binding: Optional['LookupBinding'], field_name: str, key: Any, value_class: type) -> Optional[LookupValue]:
    # Not found -> None; the binding decides what "not found" means
    found = _require_binding(binding, field_name).find_by_id(key)
    if found is None:
        return None
    # The field's type decides the key kind, not the binding
    return value_class.of(found.key, found.display_name)


def _map_to_string_lookup(value: Mapping, binding: Optional['LookupBinding'], field_name: str) -> StringLookupValue:
    return StringLookupValue.from_json_map(value)


def _map_to_integer_lookup(value: Mapping, binding: Optional['LookupBinding'], field_name: str) -> IntegerLookupValue:
    return IntegerLookupValue.from_json_map(value)


def _text_to_string_lookup(value: str, binding: Optional['LookupBinding'], field_name: str) -> Optional[StringLookupValue]:
    key = value.strip()
    if not key:
        return None
    return _resolve(binding, field_name, key, StringLookupValue)


def _text_to_integer_lookup(value: str, binding: Optional['LookupBinding'], field_name: str) -> Optional[IntegerLookupValue]:
    text = value.strip()
    if not text:
        return None
    return _resolve(binding, field_name, _parse_integer(text), IntegerLookupValue)


def _number_to_integer_lookup(value: Any, binding: Optional['LookupBinding'], field_name: str) -> Optional[IntegerLookupValue]:
    return _resolve(binding, field_name, int(value), IntegerLookupValue)


def _lookup_to_string_lookup(value: LookupValue, binding: Optional['LookupBinding'], field_name: str) -> StringLookupValue:
    return StringLookupValue.of(value.key, value.display_name)


def _lookup_to_integer_lookup(value: LookupValue, binding: Optional['LookupBinding'], field_name: str) -> IntegerLookupValue:
    return IntegerLookupValue.of(value.key, value.display_name)


def _build_rules() -> Dict[Tuple[FieldType, RawKind], Rule]:
    rules: Dict[Tuple[FieldType, RawKind], Rule] = {}

    # text: anything except {key, caption} maps (see convert_to_value_type)
    for kind in RawKind:
        if kind not in (RawKind.NULL, RawKind.KEY_DISPLAY_PAIR):
            rules[(FieldType.TEXT, kind)] = _to_text

    # boolean: arbitrary input, normalized
    for kind in RawKind:
        if kind is not RawKind.NULL:
            rules[(FieldType.BOOLEAN, kind)] = _to_boolean

    rules[(FieldType.INTEGER, RawKind.TEXT)] = _text_to_integer
    rules[(FieldType.INTEGER, RawKind.NUMBER)] = _number_to_integer

    rules[(FieldType.DECIMAL, RawKind.TEXT)] = _text_to_decimal
    rules[(FieldType.DECIMAL, RawKind.NUMBER)] = _number_to_decimal

    rules[(FieldType.DATE, RawKind.TEXT)] = _text_to_date
    rules[(FieldType.DATE, RawKind.DATE)] = _date_to_date

    rules[(FieldType.LOOKUP, RawKind.KEY_DISPLAY_PAIR)] = _map_to_string_lookup
    rules[(FieldType.LOOKUP, RawKind.TEXT)] = _text_to_string_lookup
    rules[(FieldType.LOOKUP, RawKind.LOOKUP_VALUE)] = _lookup_to_string_lookup

    rules[(FieldType.INTEGER_LOOKUP, RawKind.KEY_DISPLAY_PAIR)] = _map_to_integer_lookup
    rules[(FieldType.INTEGER_LOOKUP, RawKind.TEXT)] = _text_to_integer_lookup
    rules[(FieldType.INTEGER_LOOKUP, RawKind.NUMBER)] = _number_to_integer_lookup
    rules[(FieldType.INTEGER_LOOKUP, RawKind.LOOKUP_VALUE)] = _lookup_to_integer_lookup

    return rules


_RULES: Dict[Tuple[FieldType, RawKind], Rule] = _build_rules()


def find_rule(target_type: FieldType, raw_kind: RawKind) -> Optional[Rule]:
    """Return the conversion rule for a (target, representation) pair, if any."""
    return _RULES.get((target_type, raw_kind))


def convert_to_value_type(
    value: Any,
    target_type: FieldType,
    lookup_binding: Optional['LookupBinding'] = None,
    field_name: Optional[str] = None,
) -> Any:
    """Coerce a raw value to target_type's value class.

    Args:
        value: Raw value in any supported representation
        target_type: Declared semantic type of the field
        lookup_binding: Resolver used by lookup-typed targets for raw identifiers
        field_name: Used for error reporting only

    Returns:
        None or an instance of target_type.value_class

    Raises:
        ConversionError: No rule applies, or the applicable rule failed
        DocumentFieldNotLookupError: Lookup target requested without a binding
    """
    if value is None:
        return None

    if target_type.accepts(value):
        return value

    raw_kind = classify_raw(value)

    if target_type is FieldType.TEXT and raw_kind is RawKind.KEY_DISPLAY_PAIR:
        if get_runtime_config().strict_text_conversion:
            raise ConversionError(field_name, value, target_type, "maps are never converted to text")
        logger.warning(f"Stringifying map value for text field {field_name!r}: {value!r}")
        return str(value)

    rule = find_rule(target_type, raw_kind)
    if rule is None:
        raise ConversionError(field_name, value, target_type, f"no rule for {raw_kind.value} input")

    try:
        return rule(value, lookup_binding, field_name or '')
    except (ConversionError, DocumentFieldNotLookupError):
        raise
    except Exception as e:
        raise ConversionError(field_name, value, target_type, str(e)) from e
