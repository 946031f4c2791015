"""Emitters for model modules and custom operation clients.

Each table becomes ``models/<table>.py`` with a thin ``<T>Model`` whose
typed methods forward to ``EntityModel``. Custom queries and mutations
become ``custom_queries.py`` / ``custom_mutations.py``: one
``CustomOperationSpec`` constant, one result TypedDict and one client
method per operation.
"""

import logging
from dataclasses import dataclass
from typing import Any

from .context import EmitContext
from .ir import Argument, Operation, Table
from .naming import (
    get_create_input_type_name,
    get_create_mutation_name,
    get_delete_mutation_name,
    get_filter_type_name,
    get_generated_file_header,
    get_order_by_type_name,
    get_patch_field_name,
    get_patch_type_name,
    get_primary_key_info,
    get_select_type_name,
    get_single_row_query_name,
    get_table_names,
    get_update_mutation_name,
    has_valid_primary_key,
    safe_param_name,
    to_snake_case,
)
from .select import connection_node_type, expand_selection, project, typed_dict_definitions
from .type_emitter import imports_for, names_in, safe_doc, typed_dict_lines
from .type_resolver import (
    TypeTracker,
    base_kind,
    base_name,
    describe,
    get_operation_const_name,
    get_operation_graphql_name,
    get_operation_method_name,
    get_operation_result_type_name,
    is_list,
    is_required,
    resolve,
    resolve_nullable,
)

logger = logging.getLogger(__name__)

# Parameter names the generated methods and accessors use themselves
_RESERVED_PARAMS = frozenset({"self", "select", "cache", "client", "model", "scope", "invalidates"})

_REF_TYPE_NAMES = frozenset(
    {"NonNullRef", "ListRef", "ScalarRef", "ObjectRef", "InputObjectRef", "EnumRef", "UnknownRef"}
)


def model_class_name(table: Table) -> str:
    return f"{table.name}Model"


def model_module_name(table: Table) -> str:
    return to_snake_case(table.name)


# =============================================================================
# Table models
# =============================================================================


def _model_spec_lines(table: Table, ctx: EmitContext) -> list[str]:
    names = get_table_names(table)
    pk = get_primary_key_info(table)[0]
    values = [
        ("type_name", table.name),
        ("query_all", names.plural_name),
        ("query_one", get_single_row_query_name(table)),
        ("create_mutation", get_create_mutation_name(table)),
        ("update_mutation", get_update_mutation_name(table)),
        ("delete_mutation", get_delete_mutation_name(table)),
        ("entity_field", names.singular_name),
        ("filter_type", get_filter_type_name(table)),
        ("order_by_type", get_order_by_type_name(table)),
        ("create_input_type", get_create_input_type_name(table)),
        ("patch_type", get_patch_type_name(table)),
        ("patch_field", get_patch_field_name(table)),
        ("pk_name", pk.name),
        ("pk_gql_type", pk.gql_type),
    ]
    lines = ["    spec = ModelSpec("]
    lines += [f"        {key}={value!r}," for key, value in values]
    lines.append("    )")
    return lines


def generate_model_module(table: Table, ctx: EmitContext) -> str:
    """Render ``models/<table>.py``."""
    type_name = table.name
    select_type = get_select_type_name(type_name)
    filter_type = get_filter_type_name(table)
    order_by_type = get_order_by_type_name(table)
    row_type = f"{type_name}WithRelations"
    has_pk = has_valid_primary_key(table)
    pk = get_primary_key_info(table)[0]
    pk_param = param_name(pk.name)
    pk_type = ctx.scalars.python_type(pk.gql_type)

    select_arg = f"select: Optional[{select_type}] = None"
    body = [
        f"class {model_class_name(table)}(EntityModel):",
        f'    """Typed accessors for {type_name} rows.',
        "",
        "    Every method returns a lazy ``OperationBuilder``; nothing is sent",
        "    until it is executed.",
        '    """',
        "",
    ]
    body += _model_spec_lines(table, ctx)
    body += [
        "",
        "    def find_many(",
        "        self,",
        f"        {select_arg},",
        f"        where: Optional[{filter_type}] = None,",
        f"        order_by: Optional[List[{order_by_type}]] = None,",
        "        first: Optional[int] = None,",
        "        last: Optional[int] = None,",
        "        after: Optional[str] = None,",
        "        before: Optional[str] = None,",
        "        offset: Optional[int] = None,",
        f"    ) -> OperationBuilder[ConnectionResult[{row_type}]]:",
        "        return self._find_many(select, where, order_by, first, last, after, before, offset)",
        "",
        "    def find_first(",
        "        self,",
        f"        {select_arg},",
        f"        where: Optional[{filter_type}] = None,",
        f"    ) -> OperationBuilder[Optional[{row_type}]]:",
        "        return self._find_first(select, where)",
        "",
        f"    def create(self, data: {type_name}CreateData, {select_arg}) -> OperationBuilder[{row_type}]:",
        "        return self._create(data, select)",
    ]
    if has_pk:
        patch_type = get_patch_type_name(table)
        body += [
            "",
            f"    def find_one(self, {pk_param}: {pk_type}, {select_arg}) -> OperationBuilder[Optional[{row_type}]]:",
            f"        return self._find_one({pk_param}, select)",
            "",
            "    def update(",
            "        self,",
            f"        {pk_param}: {pk_type},",
            f"        patch: {patch_type},",
            f"        {select_arg},",
            f"    ) -> OperationBuilder[{row_type}]:",
            f"        return self._update({pk_param}, patch, select)",
            "",
            f"    def delete(self, {pk_param}: {pk_type}, {select_arg}) -> OperationBuilder[Dict[str, Any]]:",
            '        """Delete by primary key; pass ``select`` to echo the deleted row."""',
            f"        return self._delete({pk_param}, select)",
        ]
    else:
        logger.warning("table %s has no usable primary key; skipping find_one/update/delete", type_name)

    used = set()
    for line in body:
        if '"""' not in line:
            used |= names_in(line)

    lines = [get_generated_file_header(f"{type_name} model").rstrip("\n"), ""]
    lines += ["from __future__ import annotations", ""]
    lines += ["from typing import Any, Dict, List, Optional", ""]
    lines += [
        "from gql_sdkgen.core.model import EntityModel, ModelSpec",
        "from gql_sdkgen.core.operation import OperationBuilder",
        "",
    ]
    lines += imports_for(ctx, used, package="..")
    lines += ["", ""] + body + [""]
    return "\n".join(lines)


def generate_models_init(tables: list[Table], ctx: EmitContext) -> str:
    lines = [get_generated_file_header("Table models").rstrip("\n"), ""]
    for table in tables:
        lines.append(f"from .{model_module_name(table)} import {model_class_name(table)}")
    lines += ["", "__all__ = ["]
    lines += [f'    "{model_class_name(table)}",' for table in tables]
    lines += ["]", ""]
    return "\n".join(lines)


# =============================================================================
# Custom operations
# =============================================================================


@dataclass
class CustomOperationPlan:
    """How one custom operation is emitted."""
    op: Operation
    method_name: str
    constant_name: str
    operation_name: str
    result_type_name: str
    entity: str | None = None
    connection: bool = False
    default_select: dict[str, Any] | None = None
    # Union returns: member type -> selection
    fragments: dict[str, dict[str, Any]] | None = None

    @property
    def has_selection(self) -> bool:
        return self.entity is not None


def plan_custom_operation(op: Operation, ctx: EmitContext) -> CustomOperationPlan:
    plan = CustomOperationPlan(
        op=op,
        method_name=get_operation_method_name(op.name),
        constant_name=get_operation_const_name(op.name, op.kind),
        operation_name=get_operation_graphql_name(op.name, op.kind),
        result_type_name=get_operation_result_type_name(op.name, op.kind),
    )
    if base_kind(op.return_type) != "OBJECT":
        return plan
    name = base_name(op.return_type)
    resolved = ctx.resolved(name)
    if resolved is not None and resolved.kind == "UNION":
        depth = ctx.config.codegen.max_field_depth
        plan.fragments = {
            member: expand_selection(ctx.shapes, member, depth)
            for member in resolved.possible_types
            if member in ctx.shapes
        }
        if not plan.fragments:
            logger.warning(
                "union %s returned by %s has no selectable members; selecting __typename only", name, op.name
            )
        return plan
    node_type = connection_node_type(ctx.registry, name) if name else None
    if node_type and node_type in ctx.shapes:
        plan.entity, plan.connection = node_type, True
    elif name in ctx.shapes:
        plan.entity = name
    if plan.entity is not None:
        plan.default_select = expand_selection(ctx.shapes, plan.entity, ctx.config.codegen.max_field_depth)
    return plan


def param_name(arg_name: str) -> str:
    param = safe_param_name(to_snake_case(arg_name))
    if param in _RESERVED_PARAMS:
        param += "_"
    return param


def _result_lines(plan: CustomOperationPlan, ctx: EmitContext, tracker: TypeTracker) -> tuple[list[str], str]:
    """Result TypedDicts and the method's return annotation."""
    op = plan.op
    if not plan.has_selection:
        return [], resolve_nullable(op.return_type, tracker, ctx.scalars)

    projection = project(ctx.shapes, plan.entity, plan.default_select, ctx.config.codegen.strict_select_depth)
    lines: list[str] = []
    for class_name, members in typed_dict_definitions(projection, plan.result_type_name):
        lines += typed_dict_lines(class_name, members)

    annotation = plan.result_type_name
    if plan.connection:
        annotation = f"ConnectionResult[{annotation}]"
    elif is_list(op.return_type):
        annotation = f"List[{annotation}]"
    if not is_required(op.return_type):
        annotation = f"Optional[{annotation}]"
    return lines, annotation


def _spec_lines(plan: CustomOperationPlan) -> list[str]:
    op = plan.op
    lines = [
        f"{plan.constant_name} = CustomOperationSpec(",
        f"    name={op.name!r},",
        f"    kind={op.kind!r},",
        f"    operation_name={plan.operation_name!r},",
    ]
    if op.args:
        lines.append("    variable_types=(")
        lines += [f"        ({arg.name!r}, {arg.type!r})," for arg in op.args]
        lines.append("    ),")
    if plan.entity is not None:
        lines.append(f"    entity={plan.entity!r},")
    if plan.connection:
        lines.append("    connection=True,")
    if plan.default_select:
        lines.append(f"    default_select={plan.default_select!r},")
    if plan.fragments is not None:
        lines.append(f"    fragments={plan.fragments!r},")
    lines += [")", "", ""]
    return lines


def ordered_args(op: Operation) -> list[Argument]:
    """Required arguments first, then optional ones, each in schema order."""
    return [arg for arg in op.args if is_required(arg.type)] + [
        arg for arg in op.args if not is_required(arg.type)
    ]


def operation_params(plan: CustomOperationPlan, ctx: EmitContext, tracker: TypeTracker) -> list[str]:
    """Typed parameters of a custom operation method, ``select`` last."""
    params = []
    for arg in ordered_args(plan.op):
        if is_required(arg.type):
            params.append(f"{param_name(arg.name)}: {resolve(arg.type, tracker, ctx.scalars)}")
        else:
            params.append(f"{param_name(arg.name)}: {resolve_nullable(arg.type, tracker, ctx.scalars)} = None")
    if plan.has_selection:
        params.append("select: Optional[Dict[str, Any]] = None")
    return params


def operation_call_args(plan: CustomOperationPlan) -> str:
    """Keyword arguments forwarding every parameter of ``operation_params``."""
    args = [f"{param_name(arg.name)}={param_name(arg.name)}" for arg in ordered_args(plan.op)]
    if plan.has_selection:
        args.append("select=select")
    return ", ".join(args)


def _method_lines(plan: CustomOperationPlan, ctx: EmitContext, tracker: TypeTracker, annotation: str) -> list[str]:
    op = plan.op
    params = ["self"] + operation_params(plan, ctx, tracker)

    lines = [f"    def {plan.method_name}("]
    lines += [f"        {param}," for param in params]
    lines.append(f"    ) -> OperationBuilder[{annotation}]:")
    doc = safe_doc(op.description)
    if op.is_deprecated:
        doc = f"{doc} Deprecated: {safe_doc(op.deprecation_reason) or 'no reason given'}.".strip()
    if doc:
        lines.append(f'        """{doc}"""')

    variables = ", ".join(f"{arg.name!r}: {param_name(arg.name)}" for arg in ordered_args(op))
    select_arg = ", select" if plan.has_selection else ""
    lines.append(f"        return self._operation({plan.constant_name}, {{{variables}}}{select_arg})")
    lines.append("")
    return lines


def generate_custom_operations_module(kind: str, ctx: EmitContext) -> str:
    """Render ``custom_queries.py`` (kind ``query``) or ``custom_mutations.py``."""
    operations = ctx.queries if kind == "query" else ctx.mutations
    class_name = custom_class_name(kind)
    tracker = TypeTracker(ctx.table_names)

    specs: list[str] = []
    results: list[str] = []
    methods: list[str] = []
    for op in operations:
        try:
            plan = plan_custom_operation(op, ctx)
            op_results, annotation = _result_lines(plan, ctx, tracker)
            op_methods = _method_lines(plan, ctx, tracker, annotation)
        except Exception:
            logger.error(
                "failed to generate custom %s %s (%d args, returns %s)",
                kind,
                op.name,
                len(op.args),
                describe(op.return_type),
            )
            raise
        specs += _spec_lines(plan)
        results += op_results
        methods += op_methods

    body = results + specs
    body += [
        f"class {class_name}(CustomOperationsClient):",
        f'    """Custom {kind} operations."""',
        "",
    ]
    body += methods

    used = set(tracker.referenced)
    for line in results + methods:
        if '"""' not in line:
            used |= names_in(line)
    ref_types = sorted(names_in("\n".join(specs)) & _REF_TYPE_NAMES)

    label = "queries" if kind == "query" else "mutations"
    lines = [get_generated_file_header(f"Custom {label}").rstrip("\n"), ""]
    lines += ["from __future__ import annotations", ""]
    lines += ["from typing import Any, Dict, List, Optional, TypedDict", ""]
    if ref_types:
        lines.append(f"from gql_sdkgen.core.ir import {', '.join(ref_types)}")
    lines += [
        "from gql_sdkgen.core.model import CustomOperationSpec, CustomOperationsClient",
        "from gql_sdkgen.core.operation import OperationBuilder",
        "",
    ]
    lines += imports_for(ctx, used)
    lines += ["", ""] + body
    return "\n".join(lines).rstrip("\n") + "\n"


def custom_class_name(kind: str) -> str:
    return "CustomQueries" if kind == "query" else "CustomMutations"


def custom_module_name(kind: str) -> str:
    return "custom_queries" if kind == "query" else "custom_mutations"

