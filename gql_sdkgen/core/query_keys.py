"""Hierarchical query keys, mutation keys and cache invalidation helpers.

Keys are tuples. Each entity's keys start with its lower-cased type name,
so invalidating ``("post",)`` reaches every post query. When an entity
has a configured parent, ``by_<parent>(fk)`` keys carry the foreign key:

    post_keys.all              # ("post",)
    post_keys.by_user("u1")    # ("post", {"userId": "u1"})
    post_keys.list({"first": 10}, {"userId": "u1"})
                               # ("post", {"userId": "u1"}, "list", {"first": 10})

This module plans the keys from the relationship config and emits the
``query_keys.py``, ``mutation_keys.py`` and ``invalidation.py`` artifacts.
"""

from collections import deque
from dataclasses import dataclass
from typing import Mapping, Sequence

from .config import EntityRelationship, QueryKeyConfig
from .ir import Operation, Table
from .naming import (
    get_generated_file_header,
    get_primary_key_info,
    get_table_names,
    lc_first,
    safe_param_name,
    to_snake_case,
)

Relationships = Mapping[str, EntityRelationship]


# =============================================================================
# Planning
# =============================================================================


def entity_key(type_name: str) -> str:
    return type_name.lower()


def get_ancestors(entity: str, relationships: Relationships) -> list[str]:
    """Ancestors of an entity, nearest first.

    An explicit ``ancestors`` list wins; otherwise ``parent`` links are
    followed until they run out or loop.
    """
    relationship = relationships.get(entity.lower())
    if relationship is None:
        return []
    if relationship.ancestors:
        return list(relationship.ancestors)

    ancestors: list[str] = []
    seen = {entity.lower()}
    current: str | None = relationship.parent
    while current and current.lower() not in seen:
        ancestors.append(current)
        seen.add(current.lower())
        parent_rel = relationships.get(current.lower())
        current = parent_rel.parent if parent_rel else None
    return ancestors


@dataclass(frozen=True)
class ScopeLink:
    """One entry of an entity's scope chain."""
    parent: str
    foreign_key: str

    @property
    def method_name(self) -> str:
        return f"by_{to_snake_case(self.parent)}"

    @property
    def param_name(self) -> str:
        return safe_param_name(to_snake_case(self.foreign_key))


def _foreign_key_for(ancestor: str, relationships: Relationships) -> str:
    for relationship in relationships.values():
        if relationship.parent.lower() == ancestor.lower():
            return relationship.foreign_key
    return f"{lc_first(ancestor)}Id"


def get_scope_chain(entity: str, relationships: Relationships) -> list[ScopeLink]:
    """Direct parent first, then the remaining ancestors, without repeats."""
    relationship = relationships.get(entity.lower())
    if relationship is None:
        return []

    chain = [ScopeLink(relationship.parent, relationship.foreign_key)]
    seen = {relationship.parent.lower()}
    for ancestor in get_ancestors(entity, relationships):
        if ancestor.lower() in seen:
            continue
        seen.add(ancestor.lower())
        chain.append(ScopeLink(ancestor, _foreign_key_for(ancestor, relationships)))
    return chain


@dataclass(frozen=True)
class EntityKeyPlan:
    type_name: str
    entity_key: str
    root: tuple[str, ...]
    scope: tuple[ScopeLink, ...] = ()

    @property
    def scoped(self) -> bool:
        return bool(self.scope)

    @property
    def attr_name(self) -> str:
        return to_snake_case(self.type_name)

    @property
    def keys_name(self) -> str:
        return f"{self.attr_name}_keys"

    @property
    def class_name(self) -> str:
        return f"_{self.type_name}Keys"

    @property
    def scope_type_name(self) -> str:
        return f"{self.type_name}Scope"

    def scope_link(self, parent: str) -> ScopeLink | None:
        for link in self.scope:
            if link.parent.lower() == parent.lower():
                return link
        return None


def build_entity_key_plan(
    table: Table,
    relationships: Relationships,
    scoped: bool = True,
    prefix: str | None = None,
) -> EntityKeyPlan:
    key = entity_key(table.name)
    root = (prefix, key) if prefix else (key,)
    scope = tuple(get_scope_chain(table.name, relationships)) if scoped else ()
    return EntityKeyPlan(type_name=table.name, entity_key=key, root=root, scope=scope)


def build_children_map(relationships: Relationships) -> dict[str, list[str]]:
    children: dict[str, list[str]] = {}
    for child, relationship in relationships.items():
        children.setdefault(relationship.parent.lower(), []).append(child.lower())
    return children


def get_descendants(entity: str, children: Mapping[str, Sequence[str]]) -> list[str]:
    """Every descendant entity key, breadth first, each listed once."""
    descendants: list[str] = []
    queue = deque([entity.lower()])
    seen = {entity.lower()}
    while queue:
        current = queue.popleft()
        for child in children.get(current, ()):
            if child in seen:
                continue
            seen.add(child)
            descendants.append(child)
            queue.append(child)
    return descendants


# =============================================================================
# Emission helpers
# =============================================================================


def _tuple_literal(items: Sequence[str]) -> str:
    """Render already-formatted items as a tuple expression."""
    if len(items) == 1:
        return f"({items[0]},)"
    return f"({', '.join(items)})"


def _root_items(plan: EntityKeyPlan) -> list[str]:
    return [repr(part) for part in plan.root]


def _custom_query_root(name: str, prefix: str | None) -> list[str]:
    return [repr(prefix), repr(name)] if prefix else [repr(name)]


def _has_required_args(op: Operation) -> bool:
    return any(arg.type.kind == "NON_NULL" for arg in op.args)


def _scope_type_lines(plan: EntityKeyPlan) -> list[str]:
    members = ", ".join(f'"{link.foreign_key}": Any' for link in plan.scope)
    return [f'{plan.scope_type_name} = TypedDict("{plan.scope_type_name}", {{{members}}}, total=False)']


def _entity_keys_lines(plan: EntityKeyPlan) -> list[str]:
    names = plan.type_name
    lines = [
        f"class {plan.class_name}:",
        f'    """Query keys for {names}."""',
        "",
        f"    all: Tuple[Any, ...] = {_tuple_literal(_root_items(plan))}",
        "",
    ]

    if plan.scoped:
        scope_type = f"Optional[{plan.scope_type_name}]"
        for link in plan.scope:
            scope_dict = "{" + repr(link.foreign_key) + ": " + link.param_name + "}"
            lines += [
                f"    def {link.method_name}(self, {link.param_name}: Any) -> Tuple[Any, ...]:",
                f'        """{names} queries scoped to one {link.parent}."""',
                f"        return {_tuple_literal(_root_items(plan) + [scope_dict])}",
                "",
            ]
        lines += [
            f"    def scoped(self, scope: {scope_type} = None) -> Tuple[Any, ...]:",
            '        """Most specific scope key, or ``all`` without a scope."""',
            "        scope = scope or {}",
        ]
        for link in plan.scope:
            lines += [
                f"        if scope.get({link.foreign_key!r}):",
                f"            return self.{link.method_name}(scope[{link.foreign_key!r}])",
            ]
        lines += [
            "        return self.all",
            "",
            f"    def lists(self, scope: {scope_type} = None) -> Tuple[Any, ...]:",
            '        return (*self.scoped(scope), "list")',
            "",
            f"    def list(self, variables: Optional[Dict[str, Any]] = None, scope: {scope_type} = None) -> Tuple[Any, ...]:",
            "        return (*self.lists(scope), variables or {})",
            "",
            f"    def details(self, scope: {scope_type} = None) -> Tuple[Any, ...]:",
            '        return (*self.scoped(scope), "detail")',
            "",
            f"    def detail(self, id: Any, scope: {scope_type} = None) -> Tuple[Any, ...]:",
            "        return (*self.details(scope), id)",
            "",
        ]
    else:
        lines += [
            "    def lists(self) -> Tuple[Any, ...]:",
            '        return (*self.all, "list")',
            "",
            "    def list(self, variables: Optional[Dict[str, Any]] = None) -> Tuple[Any, ...]:",
            "        return (*self.lists(), variables or {})",
            "",
            "    def details(self) -> Tuple[Any, ...]:",
            '        return (*self.all, "detail")',
            "",
            "    def detail(self, id: Any) -> Tuple[Any, ...]:",
            "        return (*self.details(), id)",
            "",
        ]

    lines += ["", f"{plan.keys_name} = {plan.class_name}()", "", ""]
    return lines


def custom_query_key_lines(operations: Sequence[Operation], prefix: str | None = None) -> list[str]:
    """Methods of the custom query key factory, one per query."""
    lines: list[str] = []
    for op in operations:
        method = safe_param_name(to_snake_case(op.name))
        root = _custom_query_root(op.name, prefix)
        if op.args:
            default = "" if _has_required_args(op) else " = None"
            annotation = "Dict[str, Any]" if _has_required_args(op) else "Optional[Dict[str, Any]]"
            lines += [
                f"    def {method}(self, variables: {annotation}{default}) -> Tuple[Any, ...]:",
                f"        return {_tuple_literal(root + ['variables or {}'])}",
                "",
            ]
        else:
            lines += [
                f"    def {method}(self) -> Tuple[Any, ...]:",
                f"        return {_tuple_literal(root)}",
                "",
            ]
    return lines


# =============================================================================
# Artifacts
# =============================================================================


def plan_entity_keys(tables: Sequence[Table], config: QueryKeyConfig, prefix: str | None = None) -> list[EntityKeyPlan]:
    return [
        build_entity_key_plan(table, config.relationships, config.generate_scoped_keys, prefix)
        for table in tables
    ]


def generate_query_keys_module(
    tables: Sequence[Table],
    custom_queries: Sequence[Operation],
    config: QueryKeyConfig,
    prefix: str | None = None,
) -> str:
    """Render ``query_keys.py``."""
    plans = plan_entity_keys(tables, config, prefix)
    lines = [
        get_generated_file_header("Centralized query key factory"),
        "from typing import Any, Dict, Literal, Optional, Tuple, TypedDict",
        "",
        "",
    ]

    scoped = [plan for plan in plans if plan.scoped]
    if scoped:
        lines += ["# Scope types", ""]
        for plan in scoped:
            lines += _scope_type_lines(plan)
        lines += ["", ""]

    for plan in plans:
        lines += _entity_keys_lines(plan)

    store = [(plan.attr_name, plan.keys_name) for plan in plans]
    if custom_queries:
        lines += [
            "class _CustomQueryKeys:",
            '    """Query keys for custom queries."""',
            "",
        ]
        lines += custom_query_key_lines(custom_queries, prefix)
        lines += ["", "custom_query_keys = _CustomQueryKeys()", "", ""]
        store.append(("custom", "custom_query_keys"))

    lines += [
        "class QueryKeys:",
        '    """Unified query key store.',
        "",
        "    Example:",
        "        cache.invalidate(query_keys.user.all)",
        "        cache.invalidate(query_keys.user.detail(user_id))",
        '    """',
        "",
    ]
    if store:
        lines += [f"    {attr} = {name}" for attr, name in store]
    else:
        lines.append("    pass")
    lines += ["", "", "query_keys = QueryKeys()", ""]

    scopes = ", ".join(repr(attr) for attr, _ in store)
    lines.append(f"QueryKeyScope = Literal[{scopes}]" if scopes else "QueryKeyScope = str")
    lines.append("")
    return "\n".join(lines)


def generate_mutation_keys_module(
    tables: Sequence[Table],
    custom_mutations: Sequence[Operation],
    prefix: str | None = None,
) -> str:
    """Render ``mutation_keys.py``: keys identifying in-flight mutations."""
    lines = [
        get_generated_file_header("Centralized mutation keys"),
        "from typing import Any, Tuple",
        "",
        "",
    ]
    head = [repr(prefix), '"mutation"'] if prefix else ['"mutation"']
    store: list[tuple[str, str]] = []

    for table in tables:
        attr = to_snake_case(table.name)
        class_name = f"_{table.name}MutationKeys"
        root = head + [repr(entity_key(table.name))]
        lines += [
            f"class {class_name}:",
            f'    """Mutation keys for {table.name}."""',
            "",
            f"    all: Tuple[Any, ...] = {_tuple_literal(root)}",
            "",
            "    def create(self) -> Tuple[Any, ...]:",
            '        return (*self.all, "create")',
            "",
            "    def update(self, id: Any) -> Tuple[Any, ...]:",
            '        return (*self.all, "update", id)',
            "",
            "    def delete(self, id: Any) -> Tuple[Any, ...]:",
            '        return (*self.all, "delete", id)',
            "",
            "",
            f"{attr}_mutation_keys = {class_name}()",
            "",
            "",
        ]
        store.append((attr, f"{attr}_mutation_keys"))

    if custom_mutations:
        lines += [
            "class _CustomMutationKeys:",
            '    """Mutation keys for custom mutations."""',
            "",
        ]
        for op in custom_mutations:
            method = safe_param_name(to_snake_case(op.name))
            lines += [
                f"    def {method}(self) -> Tuple[Any, ...]:",
                f"        return {_tuple_literal(head + [repr(op.name)])}",
                "",
            ]
        lines += ["", "custom_mutation_keys = _CustomMutationKeys()", "", ""]
        store.append(("custom", "custom_mutation_keys"))

    lines += ["class MutationKeys:", '    """Unified mutation key store."""', ""]
    if store:
        lines += [f"    {attr} = {name}" for attr, name in store]
    else:
        lines.append("    pass")
    lines += ["", "", "mutation_keys = MutationKeys()", ""]
    return "\n".join(lines)


def _cascade_lines(plan: EntityKeyPlan, plans_by_key: Mapping[str, EntityKeyPlan], descendants: Sequence[str]) -> list[str]:
    id_param = "id"
    lines = [
        "",
        f"    def with_children(self, cache: QueryCache, {id_param}: Any) -> None:",
        f'        """Invalidate one {plan.type_name} and every dependent entity.',
        "",
        f"        Cascades to: {', '.join(descendants)}",
        '        """',
        f"        cache.invalidate({plan.keys_name}.detail({id_param}))",
        f"        cache.invalidate({plan.keys_name}.lists())",
    ]
    for descendant in descendants:
        child = plans_by_key.get(descendant)
        if child is None:
            continue
        link = child.scope_link(plan.type_name)
        if link is not None:
            lines.append(f"        cache.invalidate({child.keys_name}.{link.method_name}({id_param}))")
        else:
            lines.append(f"        cache.invalidate({child.keys_name}.all)")
    return lines


def generate_invalidation_module(
    tables: Sequence[Table],
    config: QueryKeyConfig,
    prefix: str | None = None,
) -> str:
    """Render ``invalidation.py``: cache invalidation and removal helpers."""
    plans = plan_entity_keys(tables, config, prefix)
    plans_by_key = {plan.entity_key: plan for plan in plans}
    children = build_children_map(config.relationships)

    imports = ", ".join(plan.keys_name for plan in plans)
    scope_types = ", ".join(plan.scope_type_name for plan in plans if plan.scoped)
    lines = [
        get_generated_file_header("Cache invalidation helpers"),
        "from typing import Any, Optional",
        "",
        "from gql_sdkgen.core.query_cache import QueryCache",
        "",
    ]
    if imports:
        lines.append(f"from .query_keys import {imports}")
    if scope_types:
        lines.append(f"from .query_keys import {scope_types}")
    lines += ["", ""]

    store: list[tuple[str, str]] = []
    for plan in plans:
        class_name = f"_{plan.type_name}Invalidation"
        scope_param = f", scope: Optional[{plan.scope_type_name}] = None" if plan.scoped else ""
        scope_arg = "scope" if plan.scoped else ""
        detail_arg = "id, scope" if plan.scoped else "id"
        lines += [
            f"class {class_name}:",
            f'    """Invalidate {plan.type_name} queries."""',
            "",
            "    def all(self, cache: QueryCache) -> None:",
            f"        cache.invalidate({plan.keys_name}.all)",
            "",
            f"    def lists(self, cache: QueryCache{scope_param}) -> None:",
            f"        cache.invalidate({plan.keys_name}.lists({scope_arg}))",
            "",
            f"    def detail(self, cache: QueryCache, id: Any{scope_param}) -> None:",
            f"        cache.invalidate({plan.keys_name}.detail({detail_arg}))",
            "",
            f"    def remove(self, cache: QueryCache, id: Any{scope_param}) -> None:",
            '        """Drop a deleted row from the cache instead of refetching it."""',
            f"        cache.remove({plan.keys_name}.detail({detail_arg}))",
        ]
        descendants = get_descendants(plan.entity_key, children)
        if config.generate_cascade_helpers and descendants:
            lines += _cascade_lines(plan, plans_by_key, descendants)
        lines += ["", "", f"{plan.attr_name}_invalidation = {class_name}()", "", ""]
        store.append((plan.attr_name, f"{plan.attr_name}_invalidation"))

    lines += [
        "class Invalidate:",
        '    """Type-safe invalidation helpers.',
        "",
        "    Example:",
        "        invalidate.user.lists(cache)",
        "        invalidate.user.detail(cache, user_id)",
        '    """',
        "",
    ]
    if store:
        lines += [f"    {attr} = {name}" for attr, name in store]
    else:
        lines.append("    pass")
    lines += ["", "", "invalidate = Invalidate()", ""]
    return "\n".join(lines)


# =============================================================================
# Inline keys (flat style)
# =============================================================================


def inline_entity_keys(table: Table, prefix: str | None = None) -> list[str]:
    """Module-level key helpers for an accessor module when keys are not centralized."""
    key = entity_key(table.name)
    root = _tuple_literal([repr(prefix), repr(key)] if prefix else [repr(key)])
    pk = get_primary_key_info(table)[0].name
    names = get_table_names(table)
    return [
        f"# Query keys for {names.type_name}",
        f"{to_snake_case(table.name).upper()}_KEY: Tuple[Any, ...] = {root}",
        "",
        "",
        "def _list_key(variables: Optional[Dict[str, Any]] = None) -> Tuple[Any, ...]:",
        f'    return (*{to_snake_case(table.name).upper()}_KEY, "list", variables or {{}})',
        "",
        "",
        f"def _detail_key({safe_param_name(to_snake_case(pk))}: Any) -> Tuple[Any, ...]:",
        f'    return (*{to_snake_case(table.name).upper()}_KEY, "detail", {safe_param_name(to_snake_case(pk))})',
        "",
        "",
    ]
