"""Intermediate Representation (IR) for table-oriented GraphQL schemas.

This module defines the dataclasses the generator consumes: recursive
type references, the resolved type registry, table descriptors with
their relations, and custom (non-CRUD) operations.

The IR is built once by a loader and treated as read-only afterwards.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping


# =============================================================================
# Type references
# =============================================================================


class TypeRef(ABC):
    """Base class for a recursive GraphQL type reference.

    Concrete nodes are the wrappers ``NonNullRef`` and ``ListRef`` (always
    wrapping exactly one inner node) and the named leaves ``ScalarRef``,
    ``ObjectRef``, ``InputObjectRef`` and ``EnumRef``. ``UnknownRef``
    stands in for a node that could not be read.
    """

    kind: str = "UNKNOWN"
    __slots__ = ()

    @abstractmethod
    def to_dict(self) -> dict[str, Any]:
        """Introspection-shaped dict, the inverse of ``type_ref_from_dict``."""


@dataclass(frozen=True)
class NonNullRef(TypeRef):
    of_type: TypeRef
    kind = "NON_NULL"

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "name": None, "ofType": self.of_type.to_dict()}


@dataclass(frozen=True)
class ListRef(TypeRef):
    of_type: TypeRef
    kind = "LIST"

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "name": None, "ofType": self.of_type.to_dict()}


@dataclass(frozen=True)
class _NamedRef(TypeRef):
    name: str

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "name": self.name}


@dataclass(frozen=True)
class ScalarRef(_NamedRef):
    kind = "SCALAR"


@dataclass(frozen=True)
class ObjectRef(_NamedRef):
    kind = "OBJECT"


@dataclass(frozen=True)
class InputObjectRef(_NamedRef):
    kind = "INPUT_OBJECT"


@dataclass(frozen=True)
class EnumRef(_NamedRef):
    kind = "ENUM"


@dataclass(frozen=True)
class UnknownRef(TypeRef):
    """A type reference that was missing its name or inner type."""

    kind = "UNKNOWN"

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "name": None}


NAMED_REF_BY_KIND: dict[str, type] = {
    "SCALAR": ScalarRef,
    "OBJECT": ObjectRef,
    "INPUT_OBJECT": InputObjectRef,
    "ENUM": EnumRef,
    # Interfaces and unions select like objects
    "INTERFACE": ObjectRef,
    "UNION": ObjectRef,
}


def type_ref_from_dict(data: Mapping[str, Any] | None) -> TypeRef:
    """Build a TypeRef tree from an introspection-shaped dict.

    Accepts ``{"kind": ..., "name": ..., "ofType": ...}``. Wrappers without
    ``ofType`` and leaves without ``name`` become ``UnknownRef``.
    """
    if not data:
        return UnknownRef()
    kind = data.get("kind")
    if kind in ("NON_NULL", "LIST"):
        inner = data.get("ofType")
        if not inner:
            return UnknownRef()
        wrapper = NonNullRef if kind == "NON_NULL" else ListRef
        return wrapper(type_ref_from_dict(inner))
    name = data.get("name")
    ref_cls = NAMED_REF_BY_KIND.get(kind)
    if ref_cls is None or not name:
        return UnknownRef()
    return ref_cls(name)


# =============================================================================
# Type registry
# =============================================================================


@dataclass
class ObjectField:
    """A field of an OBJECT or INPUT_OBJECT type in the registry."""
    name: str
    type: TypeRef
    description: str | None = None
    args: list["Argument"] = field(default_factory=list)


@dataclass
class EnumValue:
    name: str
    description: str | None = None


@dataclass
class ResolvedType:
    """A named type from the schema, keyed by name in the TypeRegistry."""
    kind: str
    name: str
    description: str | None = None
    fields: list[ObjectField] = field(default_factory=list)
    input_fields: list[ObjectField] = field(default_factory=list)
    enum_values: list[EnumValue] = field(default_factory=list)
    possible_types: list[str] = field(default_factory=list)


TypeRegistry = Mapping[str, ResolvedType]


def freeze_registry(types: Mapping[str, ResolvedType] | None) -> TypeRegistry:
    """Return a read-only view of a registry dict."""
    return MappingProxyType(dict(types or {}))


# =============================================================================
# Tables
# =============================================================================


@dataclass
class FieldType:
    """Wire type of a table column."""
    gql_type: str
    is_array: bool = False
    pg_type: str | None = None


@dataclass
class Field:
    """A scalar column of a table."""
    name: str
    type: FieldType
    description: str | None = None


@dataclass
class BelongsToRelation:
    field_name: str | None
    references_table: str
    is_unique: bool = False
    keys: list[str] = field(default_factory=list)


@dataclass
class HasOneRelation:
    field_name: str | None
    referenced_by_table: str
    keys: list[str] = field(default_factory=list)


@dataclass
class HasManyRelation:
    field_name: str | None
    referenced_by_table: str
    keys: list[str] = field(default_factory=list)


@dataclass
class ManyToManyRelation:
    field_name: str | None
    right_table: str
    junction_table: str | None = None


@dataclass
class Relations:
    belongs_to: list[BelongsToRelation] = field(default_factory=list)
    has_one: list[HasOneRelation] = field(default_factory=list)
    has_many: list[HasManyRelation] = field(default_factory=list)
    many_to_many: list[ManyToManyRelation] = field(default_factory=list)


@dataclass
class TableQueryNames:
    """Operation names reported by the server, overriding conventions."""
    all: str | None = None
    one: str | None = None
    create: str | None = None
    update: str | None = None
    delete: str | None = None


@dataclass
class TableInflection:
    """Naming overrides reported by the server for a table."""
    all_rows: str | None = None
    table_field_name: str | None = None
    table_type: str | None = None
    filter_type: str | None = None
    order_by_type: str | None = None
    condition_type: str | None = None
    create_input_type: str | None = None
    patch_type: str | None = None
    patch_field: str | None = None
    update_input_type: str | None = None
    delete_input_type: str | None = None
    connection: str | None = None


@dataclass
class Constraint:
    name: str
    fields: list[Field] = field(default_factory=list)


@dataclass
class TableConstraints:
    primary_key: list[Constraint] = field(default_factory=list)
    unique: list[Constraint] = field(default_factory=list)
    foreign_key: list[Constraint] = field(default_factory=list)


@dataclass
class Table:
    """An entity descriptor: a table with its fields and relations."""
    name: str
    fields: list[Field] = field(default_factory=list)
    relations: Relations = field(default_factory=Relations)
    description: str | None = None
    query: TableQueryNames | None = None
    inflection: TableInflection | None = None
    constraints: TableConstraints | None = None

    def get_field(self, name: str) -> Field | None:
        for table_field in self.fields:
            if table_field.name == name:
                return table_field
        return None


# =============================================================================
# Custom operations
# =============================================================================


@dataclass
class Argument:
    """An argument of a custom operation or field."""
    name: str
    type: TypeRef
    default_value: Any = None
    description: str | None = None


@dataclass
class Operation:
    """A custom (non-CRUD) query or mutation."""
    name: str
    kind: str  # 'query' or 'mutation'
    args: list[Argument] = field(default_factory=list)
    return_type: TypeRef = field(default_factory=UnknownRef)
    description: str | None = None
    is_deprecated: bool = False
    deprecation_reason: str | None = None


@dataclass
class CustomOperations:
    """Custom queries and mutations plus the registry their types live in."""
    queries: list[Operation] = field(default_factory=list)
    mutations: list[Operation] = field(default_factory=list)
    type_registry: TypeRegistry = field(default_factory=lambda: freeze_registry({}))

    @property
    def all_operations(self) -> list[Operation]:
        return self.queries + self.mutations


@dataclass
class SchemaInput:
    """Everything a generation run consumes, passed through pre-generate hooks."""
    tables: list[Table] = field(default_factory=list)
    custom_operations: CustomOperations = field(default_factory=CustomOperations)
