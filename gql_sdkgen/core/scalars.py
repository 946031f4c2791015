"""Scalar map for code generation.

Maps GraphQL wire scalars to the Python type names used in generated
TypedDicts, and to the filter input types the server exposes for them.

Example usage:
    from gql_sdkgen.core.scalars import ScalarMapping, ScalarRegistry

    registry = ScalarRegistry()
    registry.register("Money", ScalarMapping(python_type="str", filter_type="BigFloatFilter"))

    registry.python_type("Money")        # "str"
    registry.filter_type("Money")        # "BigFloatFilter"
    registry.python_type("Mystery")      # "Mystery" (pass-through)
"""

from dataclasses import dataclass

# Python type used when a type cannot be resolved
UNKNOWN_TYPE = "Any"

SCALAR_PY_MAP: dict[str, str] = {
    # Standard GraphQL scalars
    "String": "str",
    "Int": "int",
    "Float": "float",
    "Boolean": "bool",
    "ID": "str",
    # PostGraphile scalars
    "UUID": "str",
    "Datetime": "str",
    "Date": "str",
    "Time": "str",
    "JSON": "Any",
    "BigInt": "str",
    "BigFloat": "str",
    "Cursor": "str",
    "Interval": "str",
    "BitString": "str",
    "KeyValueHash": "Dict[str, Any]",
    # PostgreSQL specific
    "Inet": "str",
    "InternetAddress": "str",
    "TsVector": "str",
    "FullText": "str",
    "Geometry": "Dict[str, Any]",
    "GeoJSON": "Dict[str, Any]",
    # Common custom scalars
    "Email": "str",
    "Url": "str",
    "Upload": "Any",
}

SCALAR_FILTER_MAP: dict[str, str] = {
    "String": "StringFilter",
    "Int": "IntFilter",
    "Float": "FloatFilter",
    "Boolean": "BooleanFilter",
    "ID": "UUIDFilter",
    "UUID": "UUIDFilter",
    "Datetime": "DatetimeFilter",
    "Date": "DateFilter",
    "Time": "StringFilter",
    "JSON": "JSONFilter",
    "BigInt": "BigIntFilter",
    "BigFloat": "BigFloatFilter",
    "BitString": "BitStringFilter",
    "Interval": "StringFilter",
    "Inet": "InternetAddressFilter",
    "InternetAddress": "InternetAddressFilter",
    "FullText": "FullTextFilter",
    "TsVector": "FullTextFilter",
}

# Only these scalars have list filter types on the server
LIST_FILTER_SCALARS: dict[str, str] = {
    "String": "StringListFilter",
    "Int": "IntListFilter",
    "UUID": "UUIDListFilter",
    "ID": "UUIDListFilter",
}

SCALAR_NAMES: frozenset[str] = frozenset(SCALAR_PY_MAP)

BASE_FILTER_TYPE_NAMES: frozenset[str] = frozenset(
    set(SCALAR_FILTER_MAP.values()) | set(LIST_FILTER_SCALARS.values())
)


@dataclass(frozen=True)
class ScalarMapping:
    """How one wire scalar appears in generated code."""
    python_type: str
    filter_type: str | None = None
    list_filter_type: str | None = None


class ScalarRegistry:
    """Registry of scalar mappings with user overrides.

    Unknown scalars pass through as their own name unless the registry was
    created with ``unknown_scalar="any"``, in which case they collapse to
    ``Any``.
    """

    def __init__(
        self,
        overrides: dict[str, str] | None = None,
        unknown_scalar: str = "name",
    ):
        self._mappings: dict[str, ScalarMapping] = {}
        self.unknown_scalar = unknown_scalar
        self._register_defaults()
        for scalar_name, python_type in (overrides or {}).items():
            current = self._mappings.get(scalar_name)
            self.register(
                scalar_name,
                ScalarMapping(
                    python_type=python_type,
                    filter_type=current.filter_type if current else None,
                    list_filter_type=current.list_filter_type if current else None,
                ),
            )

    def _register_defaults(self):
        for scalar_name, python_type in SCALAR_PY_MAP.items():
            self.register(
                scalar_name,
                ScalarMapping(
                    python_type=python_type,
                    filter_type=SCALAR_FILTER_MAP.get(scalar_name),
                    list_filter_type=LIST_FILTER_SCALARS.get(scalar_name),
                ),
            )

    def register(self, scalar_name: str, mapping: ScalarMapping):
        """Register (or replace) the mapping for a scalar."""
        self._mappings[scalar_name] = mapping

    def get(self, scalar_name: str) -> ScalarMapping | None:
        return self._mappings.get(scalar_name)

    def has(self, scalar_name: str) -> bool:
        return scalar_name in self._mappings

    @property
    def names(self) -> frozenset[str]:
        return frozenset(self._mappings)

    def python_type(self, scalar_name: str) -> str:
        """Python type name for a scalar."""
        mapping = self._mappings.get(scalar_name)
        if mapping is not None:
            return mapping.python_type
        if self.unknown_scalar == "any":
            return UNKNOWN_TYPE
        return scalar_name

    def filter_type(self, scalar_name: str, is_array: bool = False) -> str | None:
        """Filter input type for a scalar column, or None if it has none."""
        mapping = self._mappings.get(scalar_name)
        if mapping is None:
            return None
        if is_array:
            return mapping.list_filter_type
        return mapping.filter_type


_DEFAULT_REGISTRY = ScalarRegistry()


def scalar_to_filter_type(scalar_name: str, is_array: bool = False) -> str | None:
    """Map a scalar to its filter type with the default table."""
    return _DEFAULT_REGISTRY.filter_type(scalar_name, is_array)


# =============================================================================
# Filter operator groups
# =============================================================================

EQUALITY = "equality"
DISTINCT = "distinct"
IN_ARRAY = "inArray"
COMPARISON = "comparison"
STRING = "string"
JSON = "json"
INET = "inet"
FULLTEXT = "fulltext"
LIST_ARRAY = "listArray"


@dataclass(frozen=True)
class FilterConfig:
    """A scalar filter type and the operator groups it supports."""
    name: str
    python_type: str
    operators: tuple[str, ...]


FILTER_CONFIGS: tuple[FilterConfig, ...] = (
    FilterConfig("StringFilter", "str", (EQUALITY, DISTINCT, IN_ARRAY, COMPARISON, STRING)),
    FilterConfig("IntFilter", "int", (EQUALITY, DISTINCT, IN_ARRAY, COMPARISON)),
    FilterConfig("FloatFilter", "float", (EQUALITY, DISTINCT, IN_ARRAY, COMPARISON)),
    FilterConfig("BooleanFilter", "bool", (EQUALITY,)),
    FilterConfig("UUIDFilter", "str", (EQUALITY, DISTINCT, IN_ARRAY)),
    FilterConfig("DatetimeFilter", "str", (EQUALITY, DISTINCT, IN_ARRAY, COMPARISON)),
    FilterConfig("DateFilter", "str", (EQUALITY, DISTINCT, IN_ARRAY, COMPARISON)),
    FilterConfig("JSONFilter", "Dict[str, Any]", (EQUALITY, DISTINCT, JSON)),
    FilterConfig("BigIntFilter", "str", (EQUALITY, DISTINCT, IN_ARRAY, COMPARISON)),
    FilterConfig("BigFloatFilter", "str", (EQUALITY, DISTINCT, IN_ARRAY, COMPARISON)),
    FilterConfig("BitStringFilter", "str", (EQUALITY,)),
    FilterConfig("InternetAddressFilter", "str", (EQUALITY, DISTINCT, IN_ARRAY, COMPARISON, INET)),
    FilterConfig("FullTextFilter", "str", (FULLTEXT,)),
    FilterConfig("StringListFilter", "List[str]", (EQUALITY, DISTINCT, COMPARISON, LIST_ARRAY)),
    FilterConfig("IntListFilter", "List[int]", (EQUALITY, DISTINCT, COMPARISON, LIST_ARRAY)),
    FilterConfig("UUIDListFilter", "List[str]", (EQUALITY, DISTINCT, COMPARISON, LIST_ARRAY)),
)

_STRING_OPERATORS = (
    "includes", "notIncludes", "includesInsensitive", "notIncludesInsensitive",
    "startsWith", "notStartsWith", "startsWithInsensitive", "notStartsWithInsensitive",
    "endsWith", "notEndsWith", "endsWithInsensitive", "notEndsWithInsensitive",
    "like", "notLike", "likeInsensitive", "notLikeInsensitive",
)


def filter_operator_fields(config: FilterConfig) -> list[tuple[str, str]]:
    """Return (operator, python type) pairs for a scalar filter type."""
    py_type = config.python_type
    props: list[tuple[str, str]] = []
    if EQUALITY in config.operators:
        props += [("isNull", "bool"), ("equalTo", py_type), ("notEqualTo", py_type)]
    if DISTINCT in config.operators:
        props += [("distinctFrom", py_type), ("notDistinctFrom", py_type)]
    if IN_ARRAY in config.operators:
        props += [("in", f"List[{py_type}]"), ("notIn", f"List[{py_type}]")]
    if COMPARISON in config.operators:
        props += [
            ("lessThan", py_type),
            ("lessThanOrEqualTo", py_type),
            ("greaterThan", py_type),
            ("greaterThanOrEqualTo", py_type),
        ]
    if STRING in config.operators:
        props += [(name, "str") for name in _STRING_OPERATORS]
    if JSON in config.operators:
        props += [
            ("contains", "Any"),
            ("containedBy", "Any"),
            ("containsKey", "str"),
            ("containsAllKeys", "List[str]"),
            ("containsAnyKeys", "List[str]"),
        ]
    if INET in config.operators:
        props += [("contains", "str"), ("containedBy", "str"), ("containsOrContainedBy", "str")]
    if FULLTEXT in config.operators:
        props.append(("matches", "str"))
    if LIST_ARRAY in config.operators:
        item_type = py_type[len("List["):-1] if py_type.startswith("List[") else py_type
        props += [
            ("contains", py_type),
            ("containedBy", py_type),
            ("overlaps", py_type),
            ("anyEqualTo", item_type),
            ("anyNotEqualTo", item_type),
            ("anyLessThan", item_type),
            ("anyLessThanOrEqualTo", item_type),
            ("anyGreaterThan", item_type),
            ("anyGreaterThanOrEqualTo", item_type),
        ]
    return props
