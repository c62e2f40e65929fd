"""
Exceptions raised by the document field runtime.

Conversion and capability errors are always surfaced to the caller of the
mutation; they are never swallowed inside a field.
"""

from typing import Any, Optional


class DocumentFieldError(Exception):
    """Base class for all document field errors."""


class ConversionError(DocumentFieldError, ValueError):
    """A raw value cannot be coerced to the field's declared type."""

    def __init__(self, field_name: Optional[str], value: Any, target_type: Any, detail: Optional[str] = None):
        self.field_name = field_name
        self.value = value
        self.from_type = type(value)
        self.target_type = target_type
        message = (
            f"Cannot convert {field_name}'s value {value!r} "
            f"({self.from_type.__name__}) to {getattr(target_type, 'name', target_type)}"
        )
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class DocumentFieldNotLookupError(DocumentFieldError, TypeError):
    """A lookup operation was requested on a field without a lookup binding."""

    def __init__(self, field_name: str):
        self.field_name = field_name
        super().__init__(f"Field {field_name!r} is not a lookup field")


class DocumentFieldNotFoundError(DocumentFieldError, KeyError):
    """No field with the given name exists on the document."""

    def __init__(self, field_name: str, document_path: Any = None):
        self.field_name = field_name
        self.document_path = document_path
        super().__init__(f"No field {field_name!r} found in {document_path}")

    def __str__(self) -> str:
        # KeyError.__str__ would repr() the message
        return self.args[0]
