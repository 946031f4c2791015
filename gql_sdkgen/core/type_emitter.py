"""Emitters for the type artifacts.

Produces ``types.py`` (entities and scalar filters), ``input_types.py``
(relations, selects, table filters, order-by literals and CRUD inputs),
``schema_types.py`` (custom operation inputs and payloads) and
``shapes.py`` (runtime selection shapes).

Generated TypedDicts use class syntax when every key is a valid Python
identifier and the functional syntax (with quoted annotations)
otherwise, so keys such as ``in`` and ``not`` survive.
"""

import logging
import pprint
import re
from typing import Iterable, Sequence

from .context import EmitContext
from .ir import Field, Table
from .naming import (
    get_condition_type_name,
    get_create_input_type_name,
    get_delete_input_type_name,
    get_filter_type_name,
    get_generated_file_header,
    get_order_by_type_name,
    get_patch_field_name,
    get_patch_type_name,
    get_primary_key_info,
    get_scalar_fields,
    get_select_type_name,
    get_table_names,
    get_update_input_type_name,
    is_identifier,
    to_screaming_snake,
)
from .scalars import FILTER_CONFIGS, filter_operator_fields
from .select import CONNECTION, OBJECT, shapes_to_dict
from .type_resolver import TypeTracker, is_required, resolve_nullable, should_skip_field

logger = logging.getLogger(__name__)

# Fields the server fills in; never part of create/patch input
SERVER_MANAGED_FIELDS = frozenset({"id", "createdAt", "updatedAt", "nodeId"})

_IDENT_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")

_TYPING_NAMES = frozenset(
    {"Any", "Dict", "Generic", "List", "Literal", "Optional", "Required", "TypedDict", "TypeVar", "Union"}
)
_BUILTIN_NAMES = frozenset({"str", "int", "float", "bool", "None"})


# =============================================================================
# Emission helpers
# =============================================================================


def names_in(annotation: str) -> set[str]:
    """Identifiers used in a type expression."""
    return set(_IDENT_RE.findall(annotation)) - _TYPING_NAMES - _BUILTIN_NAMES


def safe_doc(text: str | None) -> str:
    if not text:
        return ""
    text = " ".join(text.split()).replace('"""', "'''").replace("\\", "\\\\")
    if text.endswith('"'):
        text += " "
    return text


def typed_dict_lines(
    name: str,
    members: Sequence[tuple[str, str]],
    total: bool = False,
    doc: str | None = None,
) -> list[str]:
    """Lines defining a TypedDict, followed by two blank lines."""
    total_arg = "" if total else ", total=False"
    if all(is_identifier(key) for key, _ in members):
        lines = [f"class {name}(TypedDict{total_arg}):"]
        if doc:
            lines.append(f'    """{safe_doc(doc)}"""')
        for key, annotation in members:
            lines.append(f"    {key}: {annotation}")
        if not members and not doc:
            lines.append("    pass")
        return lines + ["", ""]

    lines = [f'{name} = TypedDict("{name}", {{']
    for key, annotation in members:
        lines.append(f"    {key!r}: {annotation!r},")
    lines.append(f"}}{total_arg})")
    return lines + ["", ""]


def import_lines(module: str, names: Iterable[str]) -> list[str]:
    names = sorted(set(names))
    if not names:
        return []
    if len(names) <= 4:
        return [f"from {module} import {', '.join(names)}"]
    return [f"from {module} import ("] + [f"    {name}," for name in names] + [")"]


def imports_for(ctx: EmitContext, names: Iterable[str], package: str = ".", skip: str | None = None) -> list[str]:
    """Import lines for generated names, grouped by the module defining them."""
    by_module: dict[str, set[str]] = {}
    for name in names:
        module = ctx.module_for(name)
        if module is not None and module != skip:
            by_module.setdefault(module, set()).add(name)
    lines: list[str] = []
    for module in sorted(by_module):
        lines += import_lines(f"{package}{module}", by_module[module])
    return lines


def field_python_type(table_field: Field, ctx: EmitContext) -> str:
    py_type = ctx.scalars.python_type(table_field.type.gql_type)
    if table_field.type.is_array:
        py_type = f"List[{py_type}]"
    return py_type


def _header(description: str, future: bool = True) -> list[str]:
    lines = [get_generated_file_header(description).rstrip("\n")]
    if future:
        lines += ["", "from __future__ import annotations"]
    return lines + [""]


# =============================================================================
# types.py
# =============================================================================


def generate_types_module(ctx: EmitContext) -> str:
    enums = ctx.enum_names()
    aliases = ctx.scalar_aliases()
    body: list[str] = []

    if aliases:
        body += ["# Scalars without a Python mapping"]
        body += [f"{alias} = Any" for alias in aliases]
        body += ["", ""]

    body += ["# " + "=" * 76, "# Entity types", "# " + "=" * 76, "", ""]
    for table in ctx.tables:
        members = [
            (f.name, f"Optional[{field_python_type(f, ctx)}]") for f in get_scalar_fields(table)
        ]
        body += typed_dict_lines(table.name, members, doc=table.description or f"{table.name} entity")

    body += ["# " + "=" * 76, "# Scalar filter types", "# " + "=" * 76, "", ""]
    for config in FILTER_CONFIGS:
        body += typed_dict_lines(config.name, filter_operator_fields(config))

    used_enums = [name for name in enums if any(name in names_in(line) for line in body)]
    lines = _header("Entity types and scalar filters")
    lines += ["from typing import Any, Dict, List, Optional, TypedDict", ""]
    if used_enums:
        lines += import_lines(".enums", used_enums) + [""]
    lines += [""] + body
    return "\n".join(lines).rstrip("\n") + "\n"


# =============================================================================
# input_types.py
# =============================================================================


def _relation_members(table: Table, ctx: EmitContext) -> list[tuple[str, str]]:
    shape = ctx.shapes.get(table.name)
    members = []
    if shape is None:
        return members
    for field_shape in shape.fields.values():
        if field_shape.kind == OBJECT:
            members.append((field_shape.name, f"Optional[{field_shape.target}]"))
        elif field_shape.kind == CONNECTION:
            members.append((field_shape.name, f"ConnectionResult[{field_shape.target}]"))
    return members


def _select_members(table: Table, ctx: EmitContext) -> list[tuple[str, str]]:
    shape = ctx.shapes.get(table.name)
    members = []
    if shape is None:
        return members
    for field_shape in shape.fields.values():
        if field_shape.kind == OBJECT:
            members.append((field_shape.name, f"{field_shape.target}SelectRelation"))
        elif field_shape.kind == CONNECTION:
            members.append((field_shape.name, f"{field_shape.target}SelectConnection"))
        else:
            members.append((field_shape.name, "bool"))
    return members


def _filter_members(table: Table, ctx: EmitContext) -> list[tuple[str, str]]:
    filter_name = get_filter_type_name(table)
    members = []
    for table_field in get_scalar_fields(table):
        filter_type = ctx.scalars.filter_type(table_field.type.gql_type, table_field.type.is_array)
        if filter_type:
            members.append((table_field.name, filter_type))
    members += [
        ("and", f"List[{filter_name}]"),
        ("or", f"List[{filter_name}]"),
        ("not", filter_name),
    ]
    return members


def _order_by_values(table: Table) -> list[str]:
    values = ["NATURAL", "PRIMARY_KEY_ASC", "PRIMARY_KEY_DESC"]
    for table_field in get_scalar_fields(table):
        column = to_screaming_snake(table_field.name)
        values += [f"{column}_ASC", f"{column}_DESC"]
    return values


def _input_fields(table: Table, ctx: EmitContext) -> list[tuple[str, str]]:
    return [
        (f.name, field_python_type(f, ctx))
        for f in get_scalar_fields(table)
        if f.name not in SERVER_MANAGED_FIELDS
    ]


def _table_input_lines(table: Table, ctx: EmitContext) -> list[str]:
    names = get_table_names(table)
    pk = get_primary_key_info(table)[0]
    pk_type = ctx.scalars.python_type(pk.gql_type)
    entity_field = names.singular_name
    create_data = f"{table.name}CreateData"
    patch_type = get_patch_type_name(table)

    lines: list[str] = []
    lines += typed_dict_lines(
        get_select_type_name(table.name), _select_members(table, ctx), doc=f"Fields to select on {table.name}"
    )
    lines += typed_dict_lines(f"{table.name}SelectRelation", [("select", get_select_type_name(table.name))])
    lines += typed_dict_lines(
        f"{table.name}SelectConnection",
        [
            ("select", get_select_type_name(table.name)),
            ("first", "int"),
            ("filter", get_filter_type_name(table)),
            ("orderBy", f"List[{get_order_by_type_name(table)}]"),
        ],
    )
    lines += typed_dict_lines(get_filter_type_name(table), _filter_members(table, ctx))
    lines += typed_dict_lines(
        get_condition_type_name(table),
        [(f.name, field_python_type(f, ctx)) for f in get_scalar_fields(table)],
    )
    values = ", ".join(f'"{value}"' for value in _order_by_values(table))
    lines += [f"{get_order_by_type_name(table)} = Literal[{values}]", "", ""]

    lines += typed_dict_lines(create_data, _input_fields(table, ctx))
    lines += typed_dict_lines(
        get_create_input_type_name(table),
        [("clientMutationId", "str"), (entity_field, f"Required[{create_data}]")],
    )
    lines += typed_dict_lines(patch_type, _input_fields(table, ctx))
    lines += typed_dict_lines(
        get_update_input_type_name(table),
        [
            ("clientMutationId", "str"),
            (pk.name, f"Required[{pk_type}]"),
            (get_patch_field_name(table), f"Required[{patch_type}]"),
        ],
    )
    lines += typed_dict_lines(
        get_delete_input_type_name(table),
        [("clientMutationId", "str"), (pk.name, f"Required[{pk_type}]")],
    )
    return lines


def generate_input_types_module(ctx: EmitContext) -> str:
    body: list[str] = [
        'T = TypeVar("T")',
        "",
        "",
        "class PageInfo(TypedDict, total=False):",
        "    hasNextPage: bool",
        "    hasPreviousPage: bool",
        "    startCursor: Optional[str]",
        "    endCursor: Optional[str]",
        "",
        "",
        "class ConnectionResult(TypedDict, Generic[T]):",
        '    """A page of related rows."""',
        "    nodes: List[T]",
        "    totalCount: int",
        "    pageInfo: PageInfo",
        "",
        "",
        "# " + "=" * 76,
        "# Relations",
        "# " + "=" * 76,
        "",
        "",
    ]
    for table in ctx.tables:
        body += typed_dict_lines(f"{table.name}Relations", _relation_members(table, ctx))
        body += [
            f"class {table.name}WithRelations({table.name}, {table.name}Relations):",
            "    pass",
            "",
            "",
        ]

    for table in ctx.tables:
        body += ["# " + "=" * 76, f"# {table.name} inputs", "# " + "=" * 76, "", ""]
        body += _table_input_lines(table, ctx)

    used = set()
    for line in body:
        used |= names_in(line)
    filter_names = {config.name for config in FILTER_CONFIGS} & used
    enums = [name for name in ctx.enum_names() if name in used]
    aliases = [name for name in ctx.scalar_aliases() if name in used]

    lines = _header("Relation helpers, select types, filters and CRUD inputs")
    lines += [
        "from typing import Any, Dict, Generic, List, Literal, Optional, Required, TypedDict, TypeVar",
        "",
    ]
    if enums:
        lines += import_lines(".enums", enums)
    lines += import_lines(".types", list(ctx.table_names) + list(filter_names) + aliases)
    lines += ["", ""] + body
    return "\n".join(lines).rstrip("\n") + "\n"


# =============================================================================
# schema_types.py
# =============================================================================


def _schema_type_lines(name: str, ctx: EmitContext, tracker: TypeTracker) -> list[str]:
    resolved = ctx.resolved(name)
    if resolved.kind == "INPUT_OBJECT":
        members = []
        for input_field in resolved.input_fields:
            annotation = resolve_nullable(input_field.type, tracker, ctx.scalars)
            if is_required(input_field.type):
                annotation = f"Required[{annotation}]"
            members.append((input_field.name, annotation))
        return typed_dict_lines(name, members, doc=resolved.description)

    if resolved.kind in ("OBJECT", "INTERFACE"):
        members = []
        for obj_field in resolved.fields:
            if should_skip_field(obj_field.name, ctx.config.codegen.skip_query_field):
                continue
            members.append((obj_field.name, resolve_nullable(obj_field.type, tracker, ctx.scalars)))
        return typed_dict_lines(name, members, doc=resolved.description)

    if resolved.kind == "UNION":
        for member in resolved.possible_types:
            tracker.track(member)
        options = ", ".join(f'"{member}"' for member in resolved.possible_types) or "Any"
        return [f"{name} = Union[{options}]", "", ""]

    return []


def generate_schema_types_module(ctx: EmitContext) -> str:
    tracker = TypeTracker(ctx.table_names)
    body: list[str] = []

    for name in ctx.schema_types:
        resolved = ctx.resolved(name)
        if resolved is None or resolved.kind in ("ENUM", "SCALAR"):
            continue
        if name in ctx.crud_names:
            logger.debug("skipping %s: generated with the table inputs", name)
            continue
        body += _schema_type_lines(name, ctx, tracker)

    for name in ctx.missing_types:
        body += [f"{name} = Any  # unresolved: not in schema", "", ""]

    referenced = set(tracker.referenced)
    for line in body:
        referenced |= names_in(line)

    lines = _header("Custom operation input and payload types")
    lines += ["from typing import Any, Dict, List, Optional, Required, TypedDict, Union", ""]
    lines += imports_for(ctx, referenced, skip="schema_types")
    lines += ["", ""]
    if not body:
        body = ["# No custom operation types", ""]
    lines += body
    return "\n".join(lines).rstrip("\n") + "\n"


# =============================================================================
# shapes.py
# =============================================================================


def generate_shapes_module(ctx: EmitContext) -> str:
    data = pprint.pformat(shapes_to_dict(ctx.shapes), indent=1, width=100, sort_dicts=False)
    lines = _header("Selection shapes used for runtime selection checks", future=False)
    lines += [
        "from gql_sdkgen.core.select import shapes_from_dict",
        "",
        f"STRICT_SELECT_DEPTH = {ctx.config.codegen.strict_select_depth}",
        "",
        f"SHAPES = shapes_from_dict({data})",
        "",
    ]
    return "\n".join(lines)
