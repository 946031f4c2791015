"""Schema parser using graphql-core.

Builds the type registry and the custom operation list from SDL text
(``build_schema``) or an introspection result (``build_client_schema``).
Root fields that the table CRUD artifacts already cover are left out.
"""

import json
import logging
from pathlib import Path
from typing import Any, Iterable

from graphql import (
    GraphQLArgument,
    GraphQLEnumType,
    GraphQLError as GraphQLSyntaxError,
    GraphQLField,
    GraphQLInputObjectType,
    GraphQLInterfaceType,
    GraphQLList,
    GraphQLNamedType,
    GraphQLNonNull,
    GraphQLObjectType,
    GraphQLScalarType,
    GraphQLSchema,
    GraphQLUnionType,
    build_client_schema,
    build_schema,
)
from graphql.pyutils import Undefined

from .ir import (
    Argument,
    CustomOperations,
    EnumRef,
    EnumValue,
    InputObjectRef,
    ListRef,
    NonNullRef,
    ObjectField,
    ObjectRef,
    Operation,
    ResolvedType,
    ScalarRef,
    Table,
    TypeRef,
    UnknownRef,
    freeze_registry,
)
from .naming import (
    get_all_rows_query_name,
    get_create_mutation_name,
    get_delete_mutation_name,
    get_single_row_query_name,
    get_update_mutation_name,
)

logger = logging.getLogger(__name__)


class SchemaParseError(Exception):
    """Raised when a schema document cannot be parsed."""


def type_ref_from_graphql(gql_type: Any) -> TypeRef:
    """Convert a graphql-core type to a TypeRef tree."""
    if isinstance(gql_type, GraphQLNonNull):
        return NonNullRef(type_ref_from_graphql(gql_type.of_type))
    if isinstance(gql_type, GraphQLList):
        return ListRef(type_ref_from_graphql(gql_type.of_type))
    if isinstance(gql_type, GraphQLScalarType):
        return ScalarRef(gql_type.name)
    if isinstance(gql_type, GraphQLEnumType):
        return EnumRef(gql_type.name)
    if isinstance(gql_type, GraphQLInputObjectType):
        return InputObjectRef(gql_type.name)
    if isinstance(gql_type, (GraphQLObjectType, GraphQLInterfaceType, GraphQLUnionType)):
        return ObjectRef(gql_type.name)
    return UnknownRef()


def _arguments(args: dict[str, GraphQLArgument]) -> list[Argument]:
    return [
        Argument(
            name=name,
            type=type_ref_from_graphql(arg.type),
            default_value=None if arg.default_value is Undefined else arg.default_value,
            description=arg.description,
        )
        for name, arg in args.items()
    ]


def _resolved_type(named: GraphQLNamedType) -> ResolvedType | None:
    if isinstance(named, GraphQLScalarType):
        return ResolvedType(kind="SCALAR", name=named.name, description=named.description)
    if isinstance(named, GraphQLEnumType):
        return ResolvedType(
            kind="ENUM",
            name=named.name,
            description=named.description,
            enum_values=[EnumValue(name, value.description) for name, value in named.values.items()],
        )
    if isinstance(named, (GraphQLObjectType, GraphQLInterfaceType)):
        return ResolvedType(
            kind="OBJECT" if isinstance(named, GraphQLObjectType) else "INTERFACE",
            name=named.name,
            description=named.description,
            fields=[
                ObjectField(
                    name=name,
                    type=type_ref_from_graphql(gql_field.type),
                    description=gql_field.description,
                    args=_arguments(gql_field.args),
                )
                for name, gql_field in named.fields.items()
            ],
        )
    if isinstance(named, GraphQLInputObjectType):
        return ResolvedType(
            kind="INPUT_OBJECT",
            name=named.name,
            description=named.description,
            input_fields=[
                ObjectField(name=name, type=type_ref_from_graphql(input_field.type), description=input_field.description)
                for name, input_field in named.fields.items()
            ],
        )
    if isinstance(named, GraphQLUnionType):
        return ResolvedType(
            kind="UNION",
            name=named.name,
            description=named.description,
            possible_types=[t.name for t in named.types],
        )
    return None


def _operation(name: str, gql_field: GraphQLField, kind: str) -> Operation:
    return Operation(
        name=name,
        kind=kind,
        args=_arguments(gql_field.args),
        return_type=type_ref_from_graphql(gql_field.type),
        description=gql_field.description,
        is_deprecated=gql_field.deprecation_reason is not None,
        deprecation_reason=gql_field.deprecation_reason,
    )


def table_operation_names(tables: Iterable[Table]) -> tuple[set[str], set[str]]:
    """Root query and mutation names the table artifacts already cover."""
    queries: set[str] = set()
    mutations: set[str] = set()
    for table in tables:
        queries.add(get_all_rows_query_name(table))
        queries.add(get_single_row_query_name(table))
        mutations.add(get_create_mutation_name(table))
        mutations.add(get_update_mutation_name(table))
        mutations.add(get_delete_mutation_name(table))
    return queries, mutations


class SchemaParser:
    """Parses a GraphQL schema into the type registry and custom operations."""

    def __init__(self, schema: GraphQLSchema):
        self.schema = schema

    @classmethod
    def from_sdl(cls, sdl: str) -> "SchemaParser":
        try:
            return cls(build_schema(sdl))
        except (GraphQLSyntaxError, TypeError) as e:
            raise SchemaParseError(f"Invalid schema: {e}") from e

    @classmethod
    def from_introspection(cls, data: dict[str, Any]) -> "SchemaParser":
        data = data.get("data", data)
        try:
            return cls(build_client_schema(data))
        except (GraphQLSyntaxError, TypeError, KeyError) as e:
            raise SchemaParseError(f"Invalid introspection result: {e}") from e

    @classmethod
    def from_path(cls, path: str | Path) -> "SchemaParser":
        """``.json`` files are introspection results; anything else is SDL."""
        path = Path(path)
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise SchemaParseError(f"Cannot read {path}: {e}") from e
        if path.suffix == ".json":
            try:
                return cls.from_introspection(json.loads(text))
            except ValueError as e:
                raise SchemaParseError(f"Invalid JSON in {path}: {e}") from e
        return cls.from_sdl(text)

    def type_registry(self):
        types = {}
        for name, named in self.schema.type_map.items():
            if name.startswith("__"):
                continue
            resolved = _resolved_type(named)
            if resolved is not None:
                types[name] = resolved
        return freeze_registry(types)

    def operations(self, kind: str) -> list[Operation]:
        root = self.schema.query_type if kind == "query" else self.schema.mutation_type
        if root is None:
            return []
        return [_operation(name, gql_field, kind) for name, gql_field in root.fields.items()]

    def custom_operations(self, tables: Iterable[Table] = ()) -> CustomOperations:
        """Root operations minus the table CRUD ones."""
        table_queries, table_mutations = table_operation_names(tables)
        queries = [op for op in self.operations("query") if op.name not in table_queries]
        mutations = [op for op in self.operations("mutation") if op.name not in table_mutations]
        logger.info("found %d custom queries and %d custom mutations", len(queries), len(mutations))
        return CustomOperations(queries=queries, mutations=mutations, type_registry=self.type_registry())
