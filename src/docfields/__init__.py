"""
Field/document runtime for metadata-driven UI backends.

Documents are not statically typed classes but dynamic bags of named fields
whose shape is declared by FieldDescriptors. This package coerces raw incoming
values to each field's declared type, tracks validity and UI flags, stales
dependent lookups, and collects exactly the set of changes to push to the UI.

Key Features:
- Table-driven value coercion (FieldType x RawKind)
- Per-field validity, mandatory/readonly/displayed flags
- Lookup bindings with metadata-declared staleness triggers
- Deduplicating, mergeable changes collectors (plus a shared null collector)
- Copy-on-write document snapshots

Quick Start:
    >>> from docfields import (
    ...     Document, DocumentPath, FieldDescriptor, FieldType,
    ...     DocumentChangesCollector,
    ... )
    >>> descriptors = [
    ...     FieldDescriptor("Quantity", FieldType.DECIMAL, mandatory_logic=True),
    ... ]
    >>> document = Document(DocumentPath("SalesOrder", 1), descriptors)
    >>> collector = DocumentChangesCollector()
    >>> document.process_value_change("Quantity", "12.5", changes_collector=collector)
    True
    >>> collector.get_field_names(document.document_path)
    frozenset({'Quantity'})

Modules:
    - values: FieldType and lookup value classes
    - conversion: Value coercion engine
    - lookup: LookupBinding and lookup data sources
    - descriptor: FieldDescriptor and DocumentPath
    - field: DocumentField
    - changes: Changes collectors and lazy reasons
    - document: Document aggregate
    - descriptor_cache: Read-through metadata cache
    - config: Thread-local runtime configuration
"""

# Values
from docfields.values import (
    FieldType,
    LookupValue,
    StringLookupValue,
    IntegerLookupValue,
)

# Errors
from docfields.errors import (
    DocumentFieldError,
    ConversionError,
    DocumentFieldNotLookupError,
    DocumentFieldNotFoundError,
)

# Conversion
from docfields.conversion import RawKind, classify_raw, convert_to_value_type

# Lookup
from docfields.lookup import LookupDataSource, InMemoryLookupDataSource, LookupBinding

# Descriptor
from docfields.descriptor import DocumentPath, FieldDescriptor

# Field / Document
from docfields.field import DocumentField
from docfields.document import Document

# Changes
from docfields.changes import (
    ReasonSupplier,
    ChangeKind,
    DocumentFieldChange,
    DocumentChanges,
    ChangesCollector,
    DocumentChangesCollector,
    NullDocumentChangesCollector,
    NULL_CHANGES_COLLECTOR,
)

# Metadata cache
from docfields.descriptor_cache import DescriptorCache

# Configuration
from docfields.config import (
    FieldRuntimeConfig,
    get_runtime_config,
    set_runtime_config,
    reset_runtime_config,
    runtime_config,
)

__all__ = [
    # Values
    'FieldType',
    'LookupValue',
    'StringLookupValue',
    'IntegerLookupValue',
    # Errors
    'DocumentFieldError',
    'ConversionError',
    'DocumentFieldNotLookupError',
    'DocumentFieldNotFoundError',
    # Conversion
    'RawKind',
    'classify_raw',
    'convert_to_value_type',
    # Lookup
    'LookupDataSource',
    'InMemoryLookupDataSource',
    'LookupBinding',
    # Descriptor
    'DocumentPath',
    'FieldDescriptor',
    # Field / Document
    'DocumentField',
    'Document',
    # Changes
    'ReasonSupplier',
    'ChangeKind',
    'DocumentFieldChange',
    'DocumentChanges',
    'ChangesCollector',
    'DocumentChangesCollector',
    'NullDocumentChangesCollector',
    'NULL_CHANGES_COLLECTOR',
    # Metadata cache
    'DescriptorCache',
    # Configuration
    'FieldRuntimeConfig',
    'get_runtime_config',
    'set_runtime_config',
    'reset_runtime_config',
    'runtime_config',
]

__version__ = '1.0.0'
__description__ = 'Field/document runtime for metadata-driven UI backends'
