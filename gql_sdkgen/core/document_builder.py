"""Document builder for table CRUD and custom operations.

Builds GraphQL request documents as graphql-core AST nodes and prints
them with ``print_ast``, together with the variable bindings to send.
Only values the caller supplied are declared as variables; omitted
arguments never reach the wire as explicit nulls.

Example:
    doc = build_find_many_document(
        "User", "users", {"id": True, "name": True},
        FindManyArgs(first=10), filter_type="UserFilter", order_by_type="UsersOrderBy",
    )
    doc.text       # 'query UserQuery($first: Int) { users(first: $first) { nodes { id name } ...'
    doc.variables  # {"first": 10}
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Sequence

from graphql import (
    ArgumentNode,
    BooleanValueNode,
    DocumentNode,
    EnumValueNode,
    FieldNode,
    FloatValueNode,
    InlineFragmentNode,
    IntValueNode,
    ListTypeNode,
    ListValueNode,
    NamedTypeNode,
    NameNode,
    NonNullTypeNode,
    NullValueNode,
    ObjectFieldNode,
    ObjectValueNode,
    OperationDefinitionNode,
    OperationType,
    SelectionSetNode,
    StringValueNode,
    TypeNode,
    ValueNode,
    VariableDefinitionNode,
    VariableNode,
    print_ast,
)

from .ir import ListRef, NonNullRef, TypeRef
from .naming import uc_first
from .select import CONNECTION, PAGE_INFO_FIELDS, SelectionError, ShapeIndex
from .type_resolver import base_name

CURSOR_TYPE = "Cursor"


@dataclass
class Document:
    """A printed request document and its variable bindings."""
    text: str
    variables: dict[str, Any]
    operation_name: str
    operation_type: str = "query"
    node: DocumentNode | None = field(default=None, repr=False, compare=False)

    def __str__(self) -> str:
        return self.text


@dataclass
class FindManyArgs:
    """Arguments of a list query. ``None`` means "not supplied"."""
    where: Mapping[str, Any] | None = None
    order_by: Sequence[str] | None = None
    first: int | None = None
    last: int | None = None
    after: str | None = None
    before: str | None = None
    offset: int | None = None


# =============================================================================
# AST helpers
# =============================================================================


def _name(value: str) -> NameNode:
    return NameNode(value=value)


def _field(
    name: str,
    arguments: Sequence[ArgumentNode] = (),
    selections: Sequence[FieldNode] | None = None,
) -> FieldNode:
    return FieldNode(
        alias=None,
        name=_name(name),
        arguments=tuple(arguments),
        directives=(),
        selection_set=SelectionSetNode(selections=tuple(selections)) if selections else None,
    )


def _variable(name: str) -> VariableNode:
    return VariableNode(name=_name(name))


def _argument(name: str, value: ValueNode) -> ArgumentNode:
    return ArgumentNode(name=_name(name), value=value)


def named_type(name: str, required: bool = False) -> TypeNode:
    """``Name`` or ``Name!`` as a type node."""
    node: TypeNode = NamedTypeNode(name=_name(name))
    return NonNullTypeNode(type=node) if required else node


def list_type(item: TypeNode, required: bool = False) -> TypeNode:
    node: TypeNode = ListTypeNode(type=item)
    return NonNullTypeNode(type=node) if required else node


def type_ref_to_type_node(ref: TypeRef) -> TypeNode:
    """Convert a TypeRef tree to a graphql-core type node."""
    if isinstance(ref, NonNullRef):
        return NonNullTypeNode(type=type_ref_to_type_node(ref.of_type))
    if isinstance(ref, ListRef):
        return ListTypeNode(type=type_ref_to_type_node(ref.of_type))
    return NamedTypeNode(name=_name(base_name(ref) or "String"))


def _variable_definition(name: str, type_node: TypeNode) -> VariableDefinitionNode:
    return VariableDefinitionNode(
        variable=_variable(name),
        type=type_node,
        default_value=None,
        directives=(),
    )


def value_to_ast(value: Any) -> ValueNode:
    """Convert a Python value to a GraphQL literal.

    Python ``Enum`` members become enum literals; strings stay strings.
    """
    if value is None:
        return NullValueNode()
    if isinstance(value, bool):
        return BooleanValueNode(value=value)
    if isinstance(value, Enum):
        return EnumValueNode(value=str(value.value))
    if isinstance(value, int):
        return IntValueNode(value=str(value))
    if isinstance(value, float):
        return FloatValueNode(value=repr(value))
    if isinstance(value, str):
        return StringValueNode(value=value, block=False)
    if isinstance(value, Mapping):
        return ObjectValueNode(
            fields=tuple(
                ObjectFieldNode(name=_name(str(key)), value=value_to_ast(item))
                for key, item in value.items()
            )
        )
    if isinstance(value, (list, tuple)):
        return ListValueNode(values=tuple(value_to_ast(item) for item in value))
    raise TypeError(f"Cannot convert {type(value).__name__} to a GraphQL literal")


def _enum_list(values: Sequence[Any]) -> ListValueNode:
    return ListValueNode(
        values=tuple(
            EnumValueNode(value=str(v.value) if isinstance(v, Enum) else str(v)) for v in values
        )
    )


def _document(
    operation: OperationType,
    operation_name: str,
    definitions: Sequence[VariableDefinitionNode],
    root: FieldNode,
) -> DocumentNode:
    return DocumentNode(
        definitions=(
            OperationDefinitionNode(
                operation=operation,
                name=_name(operation_name),
                variable_definitions=tuple(definitions),
                directives=(),
                selection_set=SelectionSetNode(selections=(root,)),
            ),
        )
    )


def _finish(node: DocumentNode, variables: dict[str, Any], operation_name: str, operation_type: str) -> Document:
    return Document(
        text=print_ast(node),
        variables=variables,
        operation_name=operation_name,
        operation_type=operation_type,
        node=node,
    )


class _Variables:
    """Accumulates variable definitions, call arguments and bindings."""

    def __init__(self):
        self.definitions: list[VariableDefinitionNode] = []
        self.arguments: list[ArgumentNode] = []
        self.values: dict[str, Any] = {}

    def add(self, var_name: str, type_node: TypeNode, value: Any, arg_name: str | None = None):
        if value is None:
            return
        self.definitions.append(_variable_definition(var_name, type_node))
        self.arguments.append(_argument(arg_name or var_name, _variable(var_name)))
        self.values[var_name] = value


# =============================================================================
# Selections
# =============================================================================


def page_info_selections() -> list[FieldNode]:
    return [_field(name) for name in PAGE_INFO_FIELDS]


def connection_selections(node_selections: Sequence[FieldNode]) -> list[FieldNode]:
    """``nodes { ... } totalCount pageInfo { ... }``"""
    return [
        _field("nodes", selections=node_selections),
        _field("totalCount"),
        _field("pageInfo", selections=page_info_selections()),
    ]


def build_selections(
    select: Mapping[str, Any],
    shapes: ShapeIndex | None = None,
    entity: str | None = None,
) -> list[FieldNode]:
    """Turn a selection mapping into field nodes.

    With ``shapes`` the builder knows which relations are connections;
    without them a nested config carrying ``first``/``filter`` or
    ``connection: True`` is treated as one.
    """
    fields: list[FieldNode] = []
    entity_shape = shapes.get(entity) if shapes is not None and entity else None

    for key, value in select.items():
        if value is None or value is False:
            continue
        if value is True:
            fields.append(_field(key))
            continue
        if not isinstance(value, Mapping):
            raise SelectionError(entity or "selection", [f"{key}: expected True, False or a nested config"])
        nested = value.get("select")
        if not isinstance(nested, Mapping):
            raise SelectionError(
                entity or "selection",
                [f'{key}: nested selections must include a "select" mapping'],
            )

        field_shape = entity_shape.get(key) if entity_shape is not None else None
        target = field_shape.target if field_shape is not None else None
        nested_fields = build_selections(nested, shapes, target)
        if field_shape is not None:
            is_connection = field_shape.kind == CONNECTION
        else:
            is_connection = (
                value.get("connection") is True or "first" in value or "filter" in value
            )

        arguments = []
        if value.get("first") is not None:
            arguments.append(_argument("first", value_to_ast(value["first"])))
        if value.get("filter"):
            arguments.append(_argument("filter", value_to_ast(value["filter"])))
        if value.get("orderBy"):
            arguments.append(_argument("orderBy", _enum_list(value["orderBy"])))

        selections = connection_selections(nested_fields) if is_connection else nested_fields
        fields.append(_field(key, arguments, selections))

    return fields


def _entity_selections(
    select: Mapping[str, Any] | None,
    shapes: ShapeIndex | None,
    entity: str,
    fallback: str = "id",
) -> list[FieldNode]:
    if select:
        selections = build_selections(select, shapes, entity)
        if selections:
            return selections
    return [_field(fallback)]


# =============================================================================
# Queries
# =============================================================================


def build_find_many_document(
    type_name: str,
    query_field: str,
    select: Mapping[str, Any] | None,
    args: FindManyArgs | None,
    filter_type: str,
    order_by_type: str,
    shapes: ShapeIndex | None = None,
) -> Document:
    """List query returning a connection (nodes, totalCount, pageInfo)."""
    args = args or FindManyArgs()
    selections = _entity_selections(select, shapes, type_name)

    variables = _Variables()
    variables.add("where", named_type(filter_type), args.where, arg_name="filter")
    variables.add(
        "orderBy",
        list_type(named_type(order_by_type, required=True)),
        list(args.order_by) if args.order_by else None,
    )
    variables.add("first", named_type("Int"), args.first)
    variables.add("last", named_type("Int"), args.last)
    variables.add("after", named_type(CURSOR_TYPE), args.after)
    variables.add("before", named_type(CURSOR_TYPE), args.before)
    variables.add("offset", named_type("Int"), args.offset)

    operation_name = f"{type_name}Query"
    root = _field(query_field, variables.arguments, connection_selections(selections))
    node = _document(OperationType.QUERY, operation_name, variables.definitions, root)
    return _finish(node, variables.values, operation_name, "query")


def build_find_first_document(
    type_name: str,
    query_field: str,
    select: Mapping[str, Any] | None,
    where: Mapping[str, Any] | None,
    filter_type: str,
    shapes: ShapeIndex | None = None,
) -> Document:
    """List query limited to one row; the caller takes the first node."""
    selections = _entity_selections(select, shapes, type_name)

    variables = _Variables()
    variables.add("first", named_type("Int"), 1)
    variables.add("where", named_type(filter_type), where, arg_name="filter")

    operation_name = f"{type_name}Query"
    root = _field(query_field, variables.arguments, [_field("nodes", selections=selections)])
    node = _document(OperationType.QUERY, operation_name, variables.definitions, root)
    return _finish(node, variables.values, operation_name, "query")


def build_find_one_document(
    type_name: str,
    query_field: str,
    id: Any,
    select: Mapping[str, Any] | None,
    id_arg: str,
    id_type: str,
    shapes: ShapeIndex | None = None,
) -> Document:
    """Single row by primary key: ``query XQuery($id: UUID!) { x(id: $id) {...} }``."""
    selections = _entity_selections(select, shapes, type_name, fallback=id_arg)

    operation_name = f"{type_name}Query"
    root = _field(query_field, [_argument(id_arg, _variable(id_arg))], selections)
    node = _document(
        OperationType.QUERY,
        operation_name,
        [_variable_definition(id_arg, named_type(id_type, required=True))],
        root,
    )
    return _finish(node, {id_arg: id}, operation_name, "query")


# =============================================================================
# Mutations
# =============================================================================


def _mutation_name(mutation_field: str) -> str:
    return f"{uc_first(mutation_field)}Mutation"


def build_create_document(
    type_name: str,
    mutation_field: str,
    entity_field: str,
    select: Mapping[str, Any] | None,
    data: Mapping[str, Any],
    input_type: str,
    shapes: ShapeIndex | None = None,
) -> Document:
    """``create<T>(input: $input) { <entity> { ... } }`` with ``{input: {<entity>: data}}``."""
    selections = _entity_selections(select, shapes, type_name)

    operation_name = _mutation_name(mutation_field)
    root = _field(
        mutation_field,
        [_argument("input", _variable("input"))],
        [_field(entity_field, selections=selections)],
    )
    node = _document(
        OperationType.MUTATION,
        operation_name,
        [_variable_definition("input", named_type(input_type, required=True))],
        root,
    )
    return _finish(node, {"input": {entity_field: dict(data)}}, operation_name, "mutation")


def build_update_document(
    type_name: str,
    mutation_field: str,
    entity_field: str,
    select: Mapping[str, Any] | None,
    id: Any,
    patch: Mapping[str, Any],
    id_field: str,
    id_type: str,
    patch_type: str,
    patch_field: str = "patch",
    shapes: ShapeIndex | None = None,
) -> Document:
    """Update by primary key.

    The key and the patch are two separate variables; the call site
    combines them into the ``input`` object the server expects.
    """
    selections = _entity_selections(select, shapes, type_name)

    operation_name = _mutation_name(mutation_field)
    input_value = ObjectValueNode(
        fields=(
            ObjectFieldNode(name=_name(id_field), value=_variable(id_field)),
            ObjectFieldNode(name=_name(patch_field), value=_variable(patch_field)),
        )
    )
    root = _field(
        mutation_field,
        [_argument("input", input_value)],
        [_field(entity_field, selections=selections)],
    )
    node = _document(
        OperationType.MUTATION,
        operation_name,
        [
            _variable_definition(id_field, named_type(id_type, required=True)),
            _variable_definition(patch_field, named_type(patch_type, required=True)),
        ],
        root,
    )
    return _finish(node, {id_field: id, patch_field: dict(patch)}, operation_name, "mutation")


def build_delete_document(
    type_name: str,
    mutation_field: str,
    entity_field: str,
    id: Any,
    id_field: str,
    id_type: str,
    select: Mapping[str, Any] | None = None,
    shapes: ShapeIndex | None = None,
) -> Document:
    """Delete by primary key.

    With a selection the deleted row is echoed back under
    ``<entity_field>``; without one only ``clientMutationId`` is requested.
    """
    if select:
        payload = [_field(entity_field, selections=build_selections(select, shapes, type_name))]
    else:
        payload = [_field("clientMutationId")]

    operation_name = _mutation_name(mutation_field)
    input_value = ObjectValueNode(
        fields=(ObjectFieldNode(name=_name(id_field), value=_variable(id_field)),)
    )
    root = _field(mutation_field, [_argument("input", input_value)], payload)
    node = _document(
        OperationType.MUTATION,
        operation_name,
        [_variable_definition(id_field, named_type(id_type, required=True))],
        root,
    )
    return _finish(node, {id_field: id}, operation_name, "mutation")


# =============================================================================
# Custom operations
# =============================================================================


def build_custom_document(
    operation_type: str,
    operation_name: str,
    field_name: str,
    select: Mapping[str, Any] | None,
    variables: Mapping[str, Any] | None,
    variable_types: Sequence[tuple[str, TypeRef]],
    connection: bool = False,
    shapes: ShapeIndex | None = None,
    entity: str | None = None,
    fragments: Mapping[str, Mapping[str, Any]] | None = None,
) -> Document:
    """Custom query or mutation.

    Every declared argument becomes a variable of its declared type;
    only supplied values are bound. Operations returning scalars or
    enums pass ``select=None`` and get no selection set. Union returns
    pass ``fragments`` (member type to selection) and select
    ``__typename`` plus one inline fragment per member.
    """
    definitions = [_variable_definition(name, type_ref_to_type_node(ref)) for name, ref in variable_types]
    arguments = [_argument(name, _variable(name)) for name, _ in variable_types]

    if fragments is not None:
        selections = union_selections(fragments, shapes)
    else:
        selections = build_selections(select, shapes, entity) if select else []
    if connection and selections:
        selections = connection_selections(selections)

    op = OperationType.MUTATION if operation_type == "mutation" else OperationType.QUERY
    root = _field(field_name, arguments, selections or None)
    node = _document(op, operation_name, definitions, root)
    bound = {key: value for key, value in (variables or {}).items() if value is not None}
    return _finish(node, bound, operation_name, operation_type)


def union_selections(
    fragments: Mapping[str, Mapping[str, Any]],
    shapes: ShapeIndex | None = None,
) -> list:
    """``__typename`` plus ``... on Member { ... }`` for each non-empty member selection."""
    selections: list = [_field("__typename")]
    for member, select in fragments.items():
        if not select:
            continue
        selections.append(
            InlineFragmentNode(
                type_condition=NamedTypeNode(name=_name(member)),
                directives=(),
                selection_set=SelectionSetNode(selections=tuple(build_selections(select, shapes, member))),
            )
        )
    return selections
