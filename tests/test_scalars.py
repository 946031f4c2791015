"""Tests for the scalar map and filter operator groups."""

from gql_sdkgen.core.scalars import (
    FILTER_CONFIGS,
    ScalarMapping,
    ScalarRegistry,
    filter_operator_fields,
    scalar_to_filter_type,
)


class TestScalarRegistry:
    """Tests for ScalarRegistry."""

    def test_standard_scalars(self):
        registry = ScalarRegistry()
        assert registry.python_type("String") == "str"
        assert registry.python_type("Int") == "int"
        assert registry.python_type("Float") == "float"
        assert registry.python_type("Boolean") == "bool"
        assert registry.python_type("ID") == "str"

    def test_postgraphile_scalars(self):
        registry = ScalarRegistry()
        assert registry.python_type("UUID") == "str"
        assert registry.python_type("Datetime") == "str"
        assert registry.python_type("JSON") == "Any"
        assert registry.python_type("BigInt") == "str"

    def test_unknown_scalar_passes_through(self):
        registry = ScalarRegistry()
        assert registry.python_type("Mystery") == "Mystery"
        assert not registry.has("Mystery")

    def test_unknown_scalar_as_any(self):
        registry = ScalarRegistry(unknown_scalar="any")
        assert registry.python_type("Mystery") == "Any"

    def test_register_custom(self):
        registry = ScalarRegistry()
        registry.register("Money", ScalarMapping(python_type="str", filter_type="BigFloatFilter"))
        assert registry.python_type("Money") == "str"
        assert registry.filter_type("Money") == "BigFloatFilter"

    def test_override_keeps_filter_type(self):
        registry = ScalarRegistry(overrides={"UUID": "UUID"})
        assert registry.python_type("UUID") == "UUID"
        assert registry.filter_type("UUID") == "UUIDFilter"

    def test_filter_types(self):
        registry = ScalarRegistry()
        assert registry.filter_type("String") == "StringFilter"
        assert registry.filter_type("Time") == "StringFilter"
        assert registry.filter_type("Mystery") is None

    def test_list_filter_types(self):
        registry = ScalarRegistry()
        assert registry.filter_type("String", is_array=True) == "StringListFilter"
        assert registry.filter_type("ID", is_array=True) == "UUIDListFilter"
        # No list filter exists for booleans
        assert registry.filter_type("Boolean", is_array=True) is None


class TestModuleHelpers:
    """Tests for the default-registry helpers."""

    def test_scalar_to_filter_type(self):
        assert scalar_to_filter_type("UUID") == "UUIDFilter"
        assert scalar_to_filter_type("Int", is_array=True) == "IntListFilter"


class TestFilterOperators:
    """Tests for filter_operator_fields."""

    def _config(self, name):
        return next(config for config in FILTER_CONFIGS if config.name == name)

    def test_boolean_filter_is_equality_only(self):
        names = [name for name, _ in filter_operator_fields(self._config("BooleanFilter"))]
        assert names == ["isNull", "equalTo", "notEqualTo"]

    def test_string_filter_has_pattern_operators(self):
        fields = dict(filter_operator_fields(self._config("StringFilter")))
        assert fields["in"] == "List[str]"
        assert fields["likeInsensitive"] == "str"
        assert fields["greaterThan"] == "str"

    def test_list_filter_item_type(self):
        fields = dict(filter_operator_fields(self._config("IntListFilter")))
        assert fields["contains"] == "List[int]"
        assert fields["anyEqualTo"] == "int"

    def test_fulltext_filter(self):
        assert filter_operator_fields(self._config("FullTextFilter")) == [("matches", "str")]
