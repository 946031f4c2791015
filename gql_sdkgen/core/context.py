"""Shared state of one generation run.

Built once from the (hook-filtered) input and handed to every emitter.
Nothing in here is mutated after ``build_context`` returns.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable

from .config import GeneratorConfig
from .ir import CustomOperations, Operation, ResolvedType, Table, TypeRegistry, TypeRef
from .naming import crud_type_names
from .scalars import FILTER_CONFIGS, ScalarRegistry
from .select import EntityShape, build_registry_shapes, build_table_shapes, connection_node_type
from .type_resolver import SKIP_TYPE_TRACKING, base_kind, base_name

logger = logging.getLogger(__name__)

_FILTER_NAMES = frozenset(config.name for config in FILTER_CONFIGS)


@dataclass
class EmitContext:
    tables: list[Table]
    custom: CustomOperations
    config: GeneratorConfig
    scalars: ScalarRegistry
    shapes: dict[str, EntityShape] = field(default_factory=dict)
    table_names: frozenset[str] = frozenset()
    crud_names: frozenset[str] = frozenset()
    # Registry types reachable from custom operations, sorted
    schema_types: list[str] = field(default_factory=list)
    # Referenced names missing from the registry, sorted
    missing_types: list[str] = field(default_factory=list)

    @property
    def registry(self) -> TypeRegistry:
        return self.custom.type_registry

    @property
    def queries(self) -> list[Operation]:
        return self.custom.queries

    @property
    def mutations(self) -> list[Operation]:
        return self.custom.mutations

    @property
    def interactive(self) -> bool:
        return self.config.hooks

    @property
    def centralized_keys(self) -> bool:
        return self.config.query_keys.centralized

    def resolved(self, name: str | None) -> ResolvedType | None:
        if not name:
            return None
        return self.registry.get(name)

    def is_enum(self, name: str | None) -> bool:
        resolved = self.resolved(name)
        return resolved is not None and resolved.kind == "ENUM"

    def enum_names(self) -> list[str]:
        """Enums used by table columns or by custom operation types."""
        names = {t for t in self.schema_types if self.is_enum(t)}
        for table in self.tables:
            for table_field in table.fields:
                if self.is_enum(table_field.type.gql_type):
                    names.add(table_field.type.gql_type)
        return sorted(names)

    def scalar_aliases(self) -> list[str]:
        """Scalars with no Python mapping; emitted as ``Name = Any``."""
        if self.config.codegen.unknown_scalar == "any":
            return []
        names = set()
        for table in self.tables:
            for table_field in table.fields:
                gql_type = table_field.type.gql_type
                if not self.scalars.has(gql_type) and not self.is_enum(gql_type):
                    names.add(gql_type)
        for resolved in self.registry.values():
            if resolved.kind == "SCALAR" and not self.scalars.has(resolved.name):
                names.add(resolved.name)
        return sorted(names)

    def module_for(self, name: str) -> str | None:
        """Generated module defining ``name``, or None for names it does not know."""
        if name in ("ConnectionResult", "PageInfo"):
            return "input_types"
        if name in self.enum_names():
            return "enums"
        if name in self.table_names or name in _FILTER_NAMES or name in self.scalar_aliases():
            return "types"
        if name in self.crud_names:
            return "input_types"
        if name in self.schema_types or name in self.missing_types:
            return "schema_types"
        return None


def _type_refs_of(resolved: ResolvedType) -> Iterable[TypeRef]:
    for obj_field in resolved.fields:
        yield obj_field.type
    for input_field in resolved.input_fields:
        yield input_field.type


def _operation_roots(operations: Iterable[Operation]) -> Iterable[str]:
    for op in operations:
        for arg in op.args:
            name = base_name(arg.type)
            if name:
                yield name
        name = base_name(op.return_type)
        if name:
            yield name


def collect_schema_types(
    registry: TypeRegistry,
    operations: Iterable[Operation],
    table_names: frozenset[str],
    scalars: ScalarRegistry,
) -> tuple[list[str], list[str]]:
    """Walk the registry from custom operation arguments and return types.

    Table types are not descended into; their shapes come from the table
    metadata. Returns ``(reachable, missing)``.
    """
    queue = list(_operation_roots(operations))
    seen: set[str] = set()
    reachable: list[str] = []
    missing: list[str] = []
    while queue:
        name = queue.pop(0)
        if name in seen or name in SKIP_TYPE_TRACKING:
            continue
        seen.add(name)
        if name in table_names:
            continue
        resolved = registry.get(name)
        if resolved is None:
            if not scalars.has(name):
                missing.append(name)
            continue
        reachable.append(name)
        for ref in _type_refs_of(resolved):
            if base_kind(ref) != "UNKNOWN":
                queue.append(base_name(ref))
        queue.extend(resolved.possible_types)
    return sorted(reachable), sorted(missing)


def build_context(
    tables: list[Table],
    custom: CustomOperations,
    config: GeneratorConfig,
) -> EmitContext:
    scalars = ScalarRegistry(config.scalars, unknown_scalar=config.codegen.unknown_scalar)
    table_names = frozenset(table.name for table in tables)
    crud_names: set[str] = set()
    for table in tables:
        crud_names |= crud_type_names(table)

    shapes = build_table_shapes(tables, scalars)
    roots = []
    for op in custom.all_operations:
        name = base_name(op.return_type)
        roots.append(connection_node_type(custom.type_registry, name) if name else None)
        roots.append(name)
        resolved = custom.type_registry.get(name) if name else None
        if resolved is not None and resolved.kind == "UNION":
            roots.extend(resolved.possible_types)
    shapes.update(
        build_registry_shapes(
            custom.type_registry,
            [root for root in roots if root],
            existing=shapes,
            scalars=scalars,
            skip_query_field=config.codegen.skip_query_field,
        )
    )

    reachable, missing = collect_schema_types(
        custom.type_registry, custom.all_operations, table_names, scalars
    )
    for name in missing:
        logger.warning("type %s is referenced but not in the schema", name)

    return EmitContext(
        tables=tables,
        custom=custom,
        config=config,
        scalars=scalars,
        shapes=shapes,
        table_names=table_names,
        crud_names=frozenset(crud_names),
        schema_types=reachable,
        missing_types=missing,
    )
