"""Pytest configuration and shared fixtures."""
import pytest

from docfields import (
    Document,
    DocumentPath,
    FieldDescriptor,
    FieldType,
    InMemoryLookupDataSource,
    IntegerLookupValue,
    LookupBinding,
    StringLookupValue,
    reset_runtime_config,
)


COUNTRIES = [
    StringLookupValue.of("DE", "Germany"),
    StringLookupValue.of("FR", "France"),
    StringLookupValue.of("CH", "Switzerland"),
]

REGIONS = [
    StringLookupValue.of("DE-BY", "Bavaria"),
    StringLookupValue.of("DE-BE", "Berlin"),
    StringLookupValue.of("FR-IDF", "Ile-de-France"),
]

WAREHOUSES = [
    IntegerLookupValue.of(100, "Main warehouse"),
    IntegerLookupValue.of(200, "Overflow warehouse"),
]


class RecordingLookupDataSource(InMemoryLookupDataSource):
    """In-memory data source that records find_by_id calls."""

    def __init__(self, values, document_filter=None):
        super().__init__(values, document_filter)
        self.find_by_id_calls = []

    def find_by_id(self, key):
        self.find_by_id_calls.append(key)
        return super().find_by_id(key)


def _region_of_selected_country(document, value):
    country = document.get_value("Country")
    return country is not None and value.key.startswith(f"{country.key}-")


@pytest.fixture(autouse=True)
def reset_config():
    """Reset the thread-local runtime config around each test."""
    reset_runtime_config()
    yield
    reset_runtime_config()


@pytest.fixture
def country_source():
    return RecordingLookupDataSource(COUNTRIES)


@pytest.fixture
def region_source():
    return RecordingLookupDataSource(REGIONS, document_filter=_region_of_selected_country)


@pytest.fixture
def warehouse_source():
    return RecordingLookupDataSource(WAREHOUSES)


@pytest.fixture
def sales_order_descriptors(country_source, region_source, warehouse_source):
    """Descriptors of a small sales order document type."""
    return [
        FieldDescriptor("DocumentNo", FieldType.TEXT, key=True),
        FieldDescriptor("Quantity", FieldType.DECIMAL, mandatory_logic=True),
        FieldDescriptor("LineCount", FieldType.INTEGER),
        FieldDescriptor("IsApproved", FieldType.BOOLEAN),
        FieldDescriptor("DatePromised", FieldType.DATE),
        FieldDescriptor(
            "Country", FieldType.LOOKUP,
            lookup_binding_factory=lambda: LookupBinding(country_source),
        ),
        FieldDescriptor(
            "Region", FieldType.LOOKUP,
            lookup_binding_factory=lambda: LookupBinding(region_source, depends_on_field_names={"Country"}),
            # Region is required once a country is chosen
            mandatory_logic=lambda document: document.get_value("Country") is not None,
        ),
        FieldDescriptor(
            "Warehouse", FieldType.INTEGER_LOOKUP,
            lookup_binding_factory=lambda: LookupBinding(warehouse_source, numeric_key=True),
            readonly_logic=lambda document: document.get_value("IsApproved") is True,
        ),
        FieldDescriptor("GrandTotal", FieldType.DECIMAL, calculated=True, virtual_field=True),
    ]


@pytest.fixture
def document_path():
    return DocumentPath("SalesOrder", 1000001)


@pytest.fixture
def sales_order(sales_order_descriptors, document_path):
    """Freshly loaded sales order document."""
    return Document(document_path, sales_order_descriptors, initial_values={"DocumentNo": "SO-1"})
