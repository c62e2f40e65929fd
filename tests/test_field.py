"""Tests for DocumentField value, flags, validity and lookup accessors."""
from datetime import datetime
from decimal import Decimal

import pytest

from docfields import (
    ChangeKind,
    ConversionError,
    Document,
    DocumentChangesCollector,
    DocumentFieldNotLookupError,
    DocumentPath,
    FieldDescriptor,
    FieldType,
    IntegerLookupValue,
    ReasonSupplier,
    StringLookupValue,
)


def kinds_of(collector, document_field):
    changes = collector.get_document_changes_by_path()[document_field.document.document_path]
    return changes.get_field_change(document_field.field_name).kinds


@pytest.fixture
def collector():
    return DocumentChangesCollector()


@pytest.fixture
def quantity(sales_order):
    return sales_order.get_field("Quantity")


class TestSetValue:

    def test_quantity_scenario(self, quantity, collector):
        """Mandatory decimal: "12.5" is valid, "" is null and invalid."""
        quantity.set_value("12.5", collector)
        assert quantity.value == Decimal("12.5")
        assert quantity.is_valid() is True

        collector = DocumentChangesCollector()
        quantity.set_value("", collector)

        assert quantity.value is None
        assert quantity.is_valid() is False
        assert collector.get_field_names(quantity.document.document_path) == frozenset({"Quantity"})
        assert ChangeKind.VALUE in kinds_of(collector, quantity)

    def test_equal_coerced_value_is_a_no_op(self, quantity, collector):
        assert quantity.set_value("12.5", collector) is True

        second = DocumentChangesCollector()
        assert quantity.set_value(Decimal("12.5"), second) is False
        assert quantity.set_value("12.50", second) is False
        assert second.is_empty()

    def test_value_is_always_declared_type(self, sales_order):
        line_count = sales_order.get_field("LineCount")
        line_count.set_value("3")
        assert line_count.value == 3 and isinstance(line_count.value, int)

        date_promised = sales_order.get_field("DatePromised")
        date_promised.set_value("2016-03-01")
        assert isinstance(date_promised.value, datetime)

    def test_conversion_error_propagates_and_keeps_value(self, quantity):
        quantity.set_value("1")
        with pytest.raises(ConversionError) as exc_info:
            quantity.set_value("one")

        assert exc_info.value.field_name == "Quantity"
        assert quantity.value == Decimal("1")

    def test_reason_is_attached_lazily(self, quantity, collector):
        calls = []

        def reason_text():
            calls.append(1)
            return "user edit"

        quantity.set_value("5", collector, ReasonSupplier(reason_text))
        assert calls == []

        changes = collector.get_document_changes_by_path()[quantity.document.document_path]
        assert changes.get_field_change("Quantity").get_reason(ChangeKind.VALUE) == "user edit"
        assert calls == [1]

    def test_no_collector_means_no_events(self, quantity):
        assert quantity.set_value("5") is True
        assert quantity.value == Decimal("5")


class TestInitialValueAndChanges:

    def test_set_initial_value_sets_both(self, quantity):
        quantity.set_initial_value("7")

        assert quantity.initial_value == Decimal("7")
        assert quantity.value == Decimal("7")
        assert quantity.has_changes() is False
        assert quantity.is_valid() is True

    def test_has_changes_after_edit(self, quantity):
        quantity.set_initial_value("7")
        quantity.set_value("8")

        assert quantity.has_changes() is True

    def test_back_to_baseline_has_no_changes(self, quantity):
        quantity.set_initial_value("7")
        quantity.set_value("8")
        quantity.set_value("7")

        assert quantity.has_changes() is False

    def test_old_value_is_current_value(self, quantity):
        quantity.set_value("9")
        assert quantity.get_old_value() == Decimal("9")


class TestValidity:

    def test_mandatory_null_is_invalid(self, sales_order):
        line_count = sales_order.get_field("LineCount")
        assert line_count.is_valid() is True

        line_count.set_mandatory(True)
        line_count.update_valid()

        assert line_count.is_valid() is False

    def test_non_null_value_restores_validity(self, sales_order, collector):
        line_count = sales_order.get_field("LineCount")
        line_count.set_mandatory(True)

        line_count.set_value(4, collector)

        assert line_count.is_valid() is True
        assert ChangeKind.VALID_STATUS in kinds_of(collector, line_count)

    def test_update_valid_reports_only_flips(self, quantity, collector):
        quantity.set_value("1")
        assert quantity.update_valid(collector) is False
        assert collector.is_empty()


class TestFlags:

    @pytest.mark.parametrize("setter, getter, kind", [
        ("set_mandatory", "is_mandatory", ChangeKind.MANDATORY),
        ("set_readonly", "is_readonly", ChangeKind.READONLY),
        ("set_displayed", "is_displayed", ChangeKind.DISPLAYED),
    ])
    def test_flip_is_reported(self, sales_order, collector, setter, getter, kind):
        line_count = sales_order.get_field("LineCount")
        new_flag = not getattr(line_count, getter)()

        assert getattr(line_count, setter)(new_flag, collector) is True
        assert getattr(line_count, getter)() is new_flag
        assert kind in kinds_of(collector, line_count)

    @pytest.mark.parametrize("setter, getter", [
        ("set_mandatory", "is_mandatory"),
        ("set_readonly", "is_readonly"),
        ("set_displayed", "is_displayed"),
    ])
    def test_unchanged_flag_is_a_no_op(self, sales_order, collector, setter, getter):
        line_count = sales_order.get_field("LineCount")
        current = getattr(line_count, getter)()

        assert getattr(line_count, setter)(current, collector) is False
        assert collector.is_empty()

    def test_mandatory_flip_rederives_validity(self, sales_order, collector):
        line_count = sales_order.get_field("LineCount")

        line_count.set_mandatory(True, collector)

        assert line_count.is_valid() is False
        assert kinds_of(collector, line_count) == frozenset({ChangeKind.MANDATORY, ChangeKind.VALID_STATUS})


class TestDescriptorAccess:

    def test_characteristics(self, sales_order):
        assert sales_order.get_field("DocumentNo").is_key() is True
        assert sales_order.get_field("GrandTotal").is_calculated() is True
        assert sales_order.get_field("GrandTotal").is_virtual_field() is True
        assert sales_order.get_field("Quantity").is_key() is False

    def test_field_name_and_type(self, quantity):
        assert quantity.field_name == "Quantity"
        assert quantity.field_type is FieldType.DECIMAL
        assert quantity.descriptor.value_class is Decimal


class TestTypedAccessors:

    def test_value_as_int(self, sales_order):
        quantity = sales_order.get_field("Quantity")
        assert quantity.get_value_as_int(-1) == -1
        quantity.set_value("12.9")
        assert quantity.get_value_as_int() == 12

    def test_value_as_int_of_numeric_lookup(self, sales_order):
        warehouse = sales_order.get_field("Warehouse")
        warehouse.set_value(200)
        assert warehouse.get_value_as_int() == 200

    def test_value_as_bool(self, sales_order):
        approved = sales_order.get_field("IsApproved")
        assert approved.get_value_as_bool() is False
        approved.set_value("Y")
        assert approved.get_value_as_bool() is True

    def test_value_as_other_type(self, sales_order):
        quantity = sales_order.get_field("Quantity")
        quantity.set_value("3")
        assert quantity.get_value_as(FieldType.TEXT) == "3"

    def test_value_as_json(self, sales_order):
        country = sales_order.get_field("Country")
        country.set_value({"key": "DE", "caption": "Germany"})
        assert country.get_value_as_json() == {"key": "DE", "caption": "Germany"}

        quantity = sales_order.get_field("Quantity")
        quantity.set_value("1.50")
        assert quantity.get_value_as_json() == "1.50"

    def test_value_as_display_string(self, sales_order):
        approved = sales_order.get_field("IsApproved")
        approved.set_value(True)
        assert approved.get_value_as_display_string() == "Y"
        assert sales_order.get_field("Country").get_value_as_display_string() == ""


class TestLookupField:

    def test_country_map_is_not_resolved(self, sales_order, country_source):
        """A {key, caption} map is stored directly; the resolver is not called."""
        country = sales_order.get_field("Country")

        country.set_value({"key": "DE", "display": "Germany"})

        assert country.value == StringLookupValue.of("DE", "Germany")
        assert country.value.key == "DE"
        assert country_source.find_by_id_calls == []

    def test_text_key_is_resolved(self, sales_order, country_source):
        country = sales_order.get_field("Country")
        country.set_value("CH")

        assert country.value == StringLookupValue.of("CH", "Switzerland")
        assert country_source.find_by_id_calls == ["CH"]

    def test_unknown_key_clears_value(self, sales_order):
        country = sales_order.get_field("Country")
        country.set_value("DE")
        country.set_value("XX")

        assert country.value is None

    def test_numeric_lookup(self, sales_order):
        warehouse = sales_order.get_field("Warehouse")
        assert warehouse.is_lookup_with_numeric_key() is True

        warehouse.set_value("100")
        assert warehouse.value == IntegerLookupValue.of(100, "Main warehouse")

    def test_staleness_only_for_declared_trigger(self, sales_order):
        region = sales_order.get_field("Region")

        assert region.set_lookup_values_staled("Quantity") is False
        assert region.is_lookup_values_stale() is False
        assert region.set_lookup_values_staled("Country") is True
        assert region.is_lookup_values_stale() is True

    def test_non_lookup_field_is_never_stale(self, quantity):
        assert quantity.is_lookup() is False
        assert quantity.set_lookup_values_staled("Country") is False
        assert quantity.is_lookup_values_stale() is False
        assert quantity.is_lookup_with_numeric_key() is False

    def test_lookup_values_on_non_lookup_field_raise(self, sales_order, quantity):
        with pytest.raises(DocumentFieldNotLookupError):
            quantity.get_lookup_values(sales_order)
        with pytest.raises(DocumentFieldNotLookupError):
            quantity.get_lookup_values_for_query(sales_order, "x")

    def test_lookup_values_for_query(self, sales_order):
        country = sales_order.get_field("Country")
        values = country.get_lookup_values_for_query(sales_order, "er")
        assert [v.key for v in values] == ["DE", "CH"]

    def test_lookup_type_without_binding_fails_loudly(self):
        descriptor = FieldDescriptor("Partner", FieldType.LOOKUP)
        document = Document(DocumentPath("Order", 1), [descriptor])

        with pytest.raises(DocumentFieldNotLookupError):
            document.get_field("Partner").set_value("P-1")


class TestCopy:

    def test_copy_has_same_state(self, sales_order):
        quantity = sales_order.get_field("Quantity")
        quantity.set_value("2")
        other = Document(DocumentPath("SalesOrder", 2), [quantity.descriptor])

        quantity_copy = quantity.copy(other)

        assert quantity_copy is not quantity
        assert quantity_copy.document is other
        assert quantity_copy.descriptor is quantity.descriptor
        assert quantity_copy.value == quantity.value
        assert quantity_copy.initial_value == quantity.initial_value
        assert quantity_copy.is_mandatory() is quantity.is_mandatory()
        assert quantity_copy.is_valid() is quantity.is_valid()

    def test_copy_does_not_share_lookup_binding(self, sales_order):
        region = sales_order.get_field("Region")
        region_copy = region.copy(sales_order)

        assert region_copy.lookup_binding is not region.lookup_binding
        region_copy.set_lookup_values_staled("Country")
        assert region.is_lookup_values_stale() is False

    def test_copy_does_not_share_values(self, sales_order):
        quantity = sales_order.get_field("Quantity")
        quantity_copy = quantity.copy(sales_order)

        quantity_copy.set_value("99")

        assert quantity.value is None
