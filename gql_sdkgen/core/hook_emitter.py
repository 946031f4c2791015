"""Emitters for the interactive accessors (``hooks/``).

An accessor pairs a model call with a ``QueryCache``: query accessors
read through the cache under the entity's query keys, mutation accessors
execute and then invalidate the keys the mutation made stale. With
centralized keys the accessors use ``query_keys``/``invalidation``;
with the flat style each module carries its own key helpers.
"""

import logging

from .context import EmitContext
from .ir import Table
from .model_emitter import (
    custom_class_name,
    custom_module_name,
    model_class_name,
    model_module_name,
    operation_call_args,
    operation_params,
    param_name,
    plan_custom_operation,
)
from .naming import (
    get_filter_type_name,
    get_generated_file_header,
    get_order_by_type_name,
    get_patch_type_name,
    get_primary_key_info,
    get_select_type_name,
    get_table_names,
    has_valid_primary_key,
    to_snake_case,
)
from .query_keys import build_children_map, build_entity_key_plan, entity_key, get_descendants, inline_entity_keys
from .type_emitter import imports_for, names_in
from .type_resolver import TypeTracker, get_operation_hook_name, is_list, is_required, resolve_nullable

logger = logging.getLogger(__name__)


def hook_module_name(table: Table) -> str:
    return to_snake_case(table.name)


def _header_lines(description: str) -> list[str]:
    return [
        get_generated_file_header(description).rstrip("\n"),
        "",
        "from __future__ import annotations",
        "",
        "from typing import Any, Dict, List, Optional, Sequence, Tuple",
        "",
    ]


def _collect_names(lines: list[str]) -> set[str]:
    used: set[str] = set()
    for line in lines:
        if '"""' not in line:
            used |= names_in(line)
    return used


# =============================================================================
# Table accessors
# =============================================================================


class _KeyExpressions:
    """Key and invalidation expressions for one table's accessors."""

    def __init__(self, table: Table, ctx: EmitContext):
        config = ctx.config.query_keys
        prefix = ctx.config.query_key_prefix
        self.centralized = ctx.centralized_keys
        self.plan = build_entity_key_plan(table, config.relationships, config.generate_scoped_keys, prefix)
        self.scoped = self.centralized and self.plan.scoped
        self.cascade = (
            self.centralized
            and config.generate_cascade_helpers
            and bool(get_descendants(entity_key(table.name), build_children_map(config.relationships)))
        )
        self.const = f"{to_snake_case(table.name).upper()}_KEY"
        self.keys = self.plan.keys_name
        self.invalidation = f"invalidate.{self.plan.attr_name}"

    @property
    def scope_param(self) -> list[str]:
        return [f"scope: Optional[{self.plan.scope_type_name}] = None"] if self.scoped else []

    def list_key(self, variables: str) -> str:
        if not self.centralized:
            return f"_list_key({variables})"
        if self.scoped:
            return f"{self.keys}.list({variables}, scope)"
        return f"{self.keys}.list({variables})"

    def detail_key(self, pk: str) -> str:
        if not self.centralized:
            return f"_detail_key({pk})"
        if self.scoped:
            return f"{self.keys}.detail({pk}, scope)"
        return f"{self.keys}.detail({pk})"

    def after_create(self) -> list[str]:
        if not self.centralized:
            return [f'cache.invalidate((*{self.const}, "list"))']
        # Scoped list keys sit under their scope, not under lists()
        if self.scoped:
            return [f"{self.invalidation}.all(cache)"]
        return [f"{self.invalidation}.lists(cache)"]

    def after_update(self, pk: str) -> list[str]:
        if not self.centralized:
            return [f'cache.invalidate((*{self.const}, "list"))', f"cache.invalidate(_detail_key({pk}))"]
        if self.scoped:
            return [f"{self.invalidation}.all(cache)"]
        return [f"{self.invalidation}.lists(cache)", f"{self.invalidation}.detail(cache, {pk})"]

    def after_delete(self, pk: str) -> list[str]:
        if not self.centralized:
            return [f'cache.invalidate((*{self.const}, "list"))', f"cache.remove(_detail_key({pk}))"]
        lines = [f"{self.invalidation}.remove(cache, {pk}{', scope' if self.scoped else ''})"]
        if self.cascade:
            lines.append(f"{self.invalidation}.with_children(cache, {pk})")
        if self.scoped:
            lines.append(f"{self.invalidation}.all(cache)")
        elif not self.cascade:
            lines.append(f"{self.invalidation}.lists(cache)")
        return lines


def _find_many_params(table: Table) -> list[str]:
    return [
        f"select: Optional[{get_select_type_name(table.name)}] = None",
        f"where: Optional[{get_filter_type_name(table)}] = None",
        f"order_by: Optional[List[{get_order_by_type_name(table)}]] = None",
        "first: Optional[int] = None",
        "last: Optional[int] = None",
        "after: Optional[str] = None",
        "before: Optional[str] = None",
        "offset: Optional[int] = None",
    ]


_FIND_MANY_CALL = (
    "model.find_many(select=select, where=where, order_by=order_by, "
    "first=first, last=last, after=after, before=before, offset=offset)"
)


def _signature(name: str, params: list[str], returns: str) -> list[str]:
    lines = [f"async def {name}("]
    lines += [f"    {param}," for param in params]
    lines.append(f") -> {returns}:")
    return lines


def generate_table_hooks_module(table: Table, ctx: EmitContext) -> str:
    """Render ``hooks/<table>.py``."""
    names = get_table_names(table)
    singular = to_snake_case(names.singular_name)
    plural = to_snake_case(names.plural_name)
    model = model_class_name(table)
    row_type = f"{table.name}WithRelations"
    select_param = f"select: Optional[{get_select_type_name(table.name)}] = None"
    keys = _KeyExpressions(table, ctx)
    base = ["cache: QueryCache", f"model: {model}"]

    body: list[str] = []
    if not keys.centralized:
        body += inline_entity_keys(table, ctx.config.query_key_prefix)

    body += _signature(
        f"use_{plural}_query",
        base + _find_many_params(table) + keys.scope_param,
        f"ConnectionResult[{row_type}]",
    )
    body += [
        f'    """Fetch a page of {names.plural_name} through the cache."""',
        f"    op = {_FIND_MANY_CALL}",
        f"    key = {keys.list_key('key_variables(op.variables, select)')}",
        "    return await cache.fetch(key, op.unwrap)",
        "",
        "",
    ]
    body += _signature(
        f"prefetch_{plural}_query",
        base + _find_many_params(table) + keys.scope_param,
        "None",
    )
    body += [
        f'    """Warm the cache for a page of {names.plural_name} without returning it."""',
        f"    op = {_FIND_MANY_CALL}",
        f"    key = {keys.list_key('key_variables(op.variables, select)')}",
        "    await cache.fetch(key, op.unwrap)",
        "",
        "",
    ]

    body += _signature(
        f"use_create_{singular}_mutation",
        base + [f"data: {table.name}CreateData", select_param],
        row_type,
    )
    body += [
        "    result = await model.create(data, select).unwrap()",
        *[f"    {line}" for line in keys.after_create()],
        "    return result",
        "",
        "",
    ]

    if has_valid_primary_key(table):
        pk = get_primary_key_info(table)[0]
        pk_param = param_name(pk.name)
        pk_type = ctx.scalars.python_type(pk.gql_type)
        body += _signature(
            f"use_{singular}_query",
            base + [f"{pk_param}: {pk_type}", select_param] + keys.scope_param,
            f"Optional[{row_type}]",
        )
        body += [
            f"    op = model.find_one({pk_param}, select)",
            f"    return await cache.fetch({keys.detail_key(pk_param)}, op.unwrap)",
            "",
            "",
        ]
        body += _signature(
            f"use_update_{singular}_mutation",
            base + [f"{pk_param}: {pk_type}", f"patch: {get_patch_type_name(table)}", select_param],
            row_type,
        )
        body += [
            f"    result = await model.update({pk_param}, patch, select).unwrap()",
            *[f"    {line}" for line in keys.after_update(pk_param)],
            "    return result",
            "",
            "",
        ]
        delete_params = base + [f"{pk_param}: {pk_type}", select_param]
        if keys.scoped:
            delete_params += keys.scope_param
        body += _signature(f"use_delete_{singular}_mutation", delete_params, "Dict[str, Any]")
        body += [
            f'    """Delete one {table.name} and drop it from the cache."""',
            f"    result = await model.delete({pk_param}, select).unwrap()",
            *[f"    {line}" for line in keys.after_delete(pk_param)],
            "    return result",
            "",
            "",
        ]

    lines = _header_lines(f"{table.name} accessors with query caching")
    lines += [
        "from gql_sdkgen.core.query_cache import QueryCache, key_variables",
        "",
    ]
    lines += imports_for(ctx, _collect_names(body), package="..")
    lines.append(f"from ..models.{model_module_name(table)} import {model}")
    if keys.centralized:
        key_imports = [keys.keys] + ([keys.plan.scope_type_name] if keys.scoped else [])
        lines.append(f"from ..query_keys import {', '.join(sorted(key_imports))}")
        lines.append("from ..invalidation import invalidate")
    lines += ["", ""] + body
    return "\n".join(lines).rstrip("\n") + "\n"


# =============================================================================
# Custom operation accessors
# =============================================================================


def _custom_key(plan, ctx: EmitContext) -> str:
    op = plan.op
    variables = "key_variables(op.variables, select)" if plan.has_selection else "op.variables"
    if ctx.centralized_keys:
        if op.args:
            return f"custom_query_keys.{plan.method_name}({variables})"
        root = f"*custom_query_keys.{plan.method_name}()"
    else:
        prefix = ctx.config.query_key_prefix
        root = ", ".join(repr(part) for part in ((prefix, op.name) if prefix else (op.name,)))
    if op.args:
        return f"({root}, {variables})"
    if plan.has_selection:
        # Selection is part of the key
        return f"({root}, key_variables(None, select))"
    return f"({root},)"


def _custom_return(plan, ctx: EmitContext, tracker: TypeTracker) -> str:
    op = plan.op
    if not plan.has_selection:
        return resolve_nullable(op.return_type, tracker, ctx.scalars)
    annotation = plan.result_type_name
    if plan.connection:
        annotation = f"ConnectionResult[{annotation}]"
    elif is_list(op.return_type):
        annotation = f"List[{annotation}]"
    if not is_required(op.return_type):
        annotation = f"Optional[{annotation}]"
    return annotation


def generate_custom_hooks_module(kind: str, ctx: EmitContext) -> str:
    """Render ``hooks/custom_queries.py`` or ``hooks/custom_mutations.py``."""
    operations = ctx.queries if kind == "query" else ctx.mutations
    client_class = custom_class_name(kind)
    tracker = TypeTracker(ctx.table_names)
    result_types: set[str] = set()

    body: list[str] = []
    for op in operations:
        plan = plan_custom_operation(op, ctx)
        params = operation_params(plan, ctx, tracker)
        returns = _custom_return(plan, ctx, tracker)
        if plan.has_selection:
            result_types.add(plan.result_type_name)
        call = f"client.{plan.method_name}({operation_call_args(plan)})"
        if kind == "query":
            body += _signature(
                get_operation_hook_name(op.name, "query"),
                ["cache: QueryCache", f"client: {client_class}"] + params,
                returns,
            )
            body += [
                f"    op = {call}",
                f"    return await cache.fetch({_custom_key(plan, ctx)}, op.unwrap)",
                "",
                "",
            ]
        else:
            body += _signature(
                get_operation_hook_name(op.name, "mutation"),
                ["cache: QueryCache", f"client: {client_class}"] + params + ["invalidates: Sequence[Any] = ()"],
                returns,
            )
            body += [
                '    """Run the mutation, then invalidate every key in ``invalidates``."""',
                f"    result = await {call}.unwrap()",
                "    for key in invalidates:",
                "        cache.invalidate(key)",
                "    return result",
                "",
                "",
            ]

    label = "queries" if kind == "query" else "mutations"
    lines = _header_lines(f"Custom {label} with query caching")
    lines += ["from gql_sdkgen.core.query_cache import QueryCache, key_variables", ""]
    lines += imports_for(ctx, set(tracker.referenced) | _collect_names(body), package="..")
    module = custom_module_name(kind)
    lines.append(f"from ..{module} import {', '.join(sorted(result_types | {client_class}))}")
    if kind == "query" and ctx.centralized_keys:
        lines.append("from ..query_keys import custom_query_keys")
    lines += ["", ""] + body
    return "\n".join(lines).rstrip("\n") + "\n"


def generate_hooks_init(tables: list[Table], ctx: EmitContext) -> str:
    lines = [get_generated_file_header("Interactive accessors").rstrip("\n"), ""]
    for table in tables:
        lines.append(f"from .{hook_module_name(table)} import *  # noqa: F401,F403")
    if ctx.queries:
        lines.append("from .custom_queries import *  # noqa: F401,F403")
    if ctx.mutations:
        lines.append("from .custom_mutations import *  # noqa: F401,F403")
    lines.append("")
    return "\n".join(lines)
