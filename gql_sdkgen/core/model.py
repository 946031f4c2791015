"""Runtime bases for generated models and custom operation clients.

A generated model only declares its ``ModelSpec`` and typed wrapper
methods; building documents, checking selections and unpacking
responses happens here.
"""

from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from .document_builder import (
    FindManyArgs,
    build_create_document,
    build_custom_document,
    build_delete_document,
    build_find_first_document,
    build_find_many_document,
    build_find_one_document,
    build_update_document,
)
from .executor import GraphQLExecutor
from .ir import TypeRef
from .operation import OperationBuilder
from .select import DEFAULT_STRICT_DEPTH, ShapeIndex, resolve_selection


@dataclass(frozen=True)
class ModelSpec:
    """Server-side names of one table's operations and types."""
    type_name: str
    query_all: str
    query_one: str
    create_mutation: str
    update_mutation: str
    delete_mutation: str
    entity_field: str
    filter_type: str
    order_by_type: str
    create_input_type: str
    patch_type: str
    patch_field: str = "patch"
    pk_name: str = "id"
    pk_gql_type: str = "UUID"


def _first_node(field_name: str):
    def transform(data: dict[str, Any]) -> Any:
        nodes = (data.get(field_name) or {}).get("nodes") or []
        return nodes[0] if nodes else None
    return transform


def _field(field_name: str, nested: str | None = None):
    def transform(data: dict[str, Any]) -> Any:
        value = data.get(field_name)
        if nested is not None:
            return (value or {}).get(nested)
        return value
    return transform


class EntityModel:
    """Base class of generated table models."""

    spec: ModelSpec

    def __init__(
        self,
        executor: GraphQLExecutor,
        shapes: ShapeIndex,
        strict_depth: int = DEFAULT_STRICT_DEPTH,
    ):
        self._executor = executor
        self._shapes = shapes
        self._strict_depth = strict_depth

    def _selection(self, select: Mapping[str, Any] | None) -> dict[str, Any]:
        return resolve_selection(
            self._shapes, self.spec.type_name, select, self.spec.pk_name, self._strict_depth
        )

    def _find_many(
        self,
        select: Mapping[str, Any] | None = None,
        where: Mapping[str, Any] | None = None,
        order_by: Sequence[str] | None = None,
        first: int | None = None,
        last: int | None = None,
        after: str | None = None,
        before: str | None = None,
        offset: int | None = None,
    ) -> OperationBuilder:
        spec = self.spec
        document = build_find_many_document(
            spec.type_name,
            spec.query_all,
            self._selection(select),
            FindManyArgs(where, order_by, first, last, after, before, offset),
            spec.filter_type,
            spec.order_by_type,
            self._shapes,
        )
        return OperationBuilder(self._executor, document, _field(spec.query_all))

    def _find_first(
        self,
        select: Mapping[str, Any] | None = None,
        where: Mapping[str, Any] | None = None,
    ) -> OperationBuilder:
        spec = self.spec
        document = build_find_first_document(
            spec.type_name, spec.query_all, self._selection(select), where, spec.filter_type, self._shapes
        )
        return OperationBuilder(self._executor, document, _first_node(spec.query_all))

    def _find_one(self, id: Any, select: Mapping[str, Any] | None = None) -> OperationBuilder:
        spec = self.spec
        document = build_find_one_document(
            spec.type_name,
            spec.query_one,
            id,
            self._selection(select),
            spec.pk_name,
            spec.pk_gql_type,
            self._shapes,
        )
        return OperationBuilder(self._executor, document, _field(spec.query_one))

    def _create(self, data: Mapping[str, Any], select: Mapping[str, Any] | None = None) -> OperationBuilder:
        spec = self.spec
        document = build_create_document(
            spec.type_name,
            spec.create_mutation,
            spec.entity_field,
            self._selection(select),
            data,
            spec.create_input_type,
            self._shapes,
        )
        return OperationBuilder(self._executor, document, _field(spec.create_mutation, spec.entity_field))

    def _update(
        self,
        id: Any,
        patch: Mapping[str, Any],
        select: Mapping[str, Any] | None = None,
    ) -> OperationBuilder:
        spec = self.spec
        document = build_update_document(
            spec.type_name,
            spec.update_mutation,
            spec.entity_field,
            self._selection(select),
            id,
            patch,
            spec.pk_name,
            spec.pk_gql_type,
            spec.patch_type,
            spec.patch_field,
            self._shapes,
        )
        return OperationBuilder(self._executor, document, _field(spec.update_mutation, spec.entity_field))

    def _delete(self, id: Any, select: Mapping[str, Any] | None = None) -> OperationBuilder:
        spec = self.spec
        selection = self._selection(select) if select is not None else None
        document = build_delete_document(
            spec.type_name,
            spec.delete_mutation,
            spec.entity_field,
            id,
            spec.pk_name,
            spec.pk_gql_type,
            selection,
            self._shapes,
        )
        return OperationBuilder(self._executor, document, _field(spec.delete_mutation))


# =============================================================================
# Custom operations
# =============================================================================


@dataclass(frozen=True)
class CustomOperationSpec:
    """A root query or mutation field outside the table CRUD set.

    ``entity`` names the shape of the returned object (the node type for
    connections); it is None for scalar, enum and union returns. Union
    returns carry ``fragments``: the selection of each member type.
    """
    name: str
    kind: str
    operation_name: str
    variable_types: tuple[tuple[str, TypeRef], ...] = ()
    entity: str | None = None
    connection: bool = False
    default_select: Mapping[str, Any] | None = None
    fragments: Mapping[str, Mapping[str, Any]] | None = None


class CustomOperationsClient:
    """Base class of the generated custom query/mutation clients."""

    def __init__(
        self,
        executor: GraphQLExecutor,
        shapes: ShapeIndex,
        strict_depth: int = DEFAULT_STRICT_DEPTH,
    ):
        self._executor = executor
        self._shapes = shapes
        self._strict_depth = strict_depth

    def _operation(
        self,
        spec: CustomOperationSpec,
        variables: Mapping[str, Any] | None = None,
        select: Mapping[str, Any] | None = None,
    ) -> OperationBuilder:
        selection = None
        if spec.entity is not None:
            if select is None and spec.default_select:
                select = spec.default_select
            selection = resolve_selection(self._shapes, spec.entity, select, max_depth=self._strict_depth)
        document = build_custom_document(
            spec.kind,
            spec.operation_name,
            spec.name,
            selection,
            variables,
            spec.variable_types,
            connection=spec.connection,
            shapes=self._shapes,
            entity=spec.entity,
            fragments=spec.fragments,
        )
        return OperationBuilder(self._executor, document, _field(spec.name))
