"""Naming conventions for generated code.

Operation and type names prefer the overrides a table carries
(``table.query`` / ``table.inflection``) and fall back to the
PostGraphile conventions. Python-side names (modules, methods,
variables) are derived with the snake/pascal helpers.
"""

import re
from dataclasses import dataclass

from .ir import Field, Table

GENERATOR_NAME = "gql-sdkgen"

# Python reserved keywords that cannot be used as identifiers
PYTHON_KEYWORDS = {
    'False', 'None', 'True', 'and', 'as', 'assert', 'async', 'await',
    'break', 'class', 'continue', 'def', 'del', 'elif', 'else', 'except',
    'finally', 'for', 'from', 'global', 'if', 'import', 'in', 'is',
    'lambda', 'nonlocal', 'not', 'or', 'pass', 'raise', 'return', 'try',
    'while', 'with', 'yield'
}


# =============================================================================
# Case helpers
# =============================================================================


def lc_first(text: str) -> str:
    return text[:1].lower() + text[1:]


def uc_first(text: str) -> str:
    return text[:1].upper() + text[1:]


def to_camel_case(text: str) -> str:
    """Convert snake-case or kebab-case to camelCase."""
    return lc_first(re.sub(r"[-_](.)", lambda m: m.group(1).upper(), text))


def to_pascal_case(text: str) -> str:
    """Convert snake-case, kebab-case or camelCase to PascalCase."""
    return uc_first(re.sub(r"[-_](.)", lambda m: m.group(1).upper(), text))


def to_snake_case(name: str) -> str:
    """Convert camelCase or PascalCase to snake_case."""
    s1 = re.sub("(.)([A-Z][a-z]+)", r"\1_\2", name)
    return re.sub("([a-z0-9])([A-Z])", r"\1_\2", s1).replace("-", "_").lower()


def to_screaming_snake(text: str) -> str:
    """Convert camelCase to SCREAMING_SNAKE_CASE."""
    return to_snake_case(text).upper()


def safe_param_name(name: str) -> str:
    """Make a parameter name safe for Python by suffixing keywords with underscore."""
    if name in PYTHON_KEYWORDS:
        return f"{name}_"
    return name


def safe_identifier(name: str) -> str:
    """Make an arbitrary string usable as a Python identifier."""
    ident = re.sub(r"\W", "_", name)
    if not ident or ident[0].isdigit():
        ident = f"_{ident}"
    return safe_param_name(ident)


def is_identifier(name: str) -> bool:
    return name.isidentifier() and name not in PYTHON_KEYWORDS


# =============================================================================
# Inflection
# =============================================================================

_IRREGULAR_PLURALS = {
    "person": "people",
    "child": "children",
    "man": "men",
    "woman": "women",
    "mouse": "mice",
    "goose": "geese",
    "datum": "data",
    "index": "indices",
}
_IRREGULAR_SINGULARS = {plural: singular for singular, plural in _IRREGULAR_PLURALS.items()}
_UNCOUNTABLE = {"data", "information", "equipment", "series", "species", "metadata", "news"}


def _match_case(template: str, word: str) -> str:
    if template[:1].isupper():
        return uc_first(word)
    return word


def pluralize(name: str) -> str:
    """Pluralize the last word of a camelCase or PascalCase name."""
    if not name:
        return name
    head, last = _split_last_word(name)
    lower = last.lower()
    if lower in _UNCOUNTABLE:
        return name
    if lower in _IRREGULAR_PLURALS:
        return head + _match_case(last, _IRREGULAR_PLURALS[lower])
    if lower.endswith("y") and lower[-2:] not in ("ay", "ey", "iy", "oy", "uy"):
        return head + last[:-1] + "ies"
    if lower.endswith(("s", "x", "z", "ch", "sh")):
        return head + last + "es"
    return head + last + "s"


def singularize(name: str) -> str:
    """Reverse of pluralize for the common English endings."""
    if not name:
        return name
    head, last = _split_last_word(name)
    lower = last.lower()
    if lower in _UNCOUNTABLE:
        return name
    if lower in _IRREGULAR_SINGULARS:
        return head + _match_case(last, _IRREGULAR_SINGULARS[lower])
    if lower.endswith("ies") and len(lower) > 3:
        return head + last[:-3] + "y"
    if lower.endswith(("ses", "xes", "zes", "ches", "shes")):
        return head + last[:-2]
    if lower.endswith("s") and not lower.endswith("ss"):
        return head + last[:-1]
    return name


def _split_last_word(name: str) -> tuple[str, str]:
    parts = re.findall(r"[A-Z]?[a-z0-9]*|[A-Z]+(?![a-z])", name)
    parts = [part for part in parts if part]
    if len(parts) <= 1:
        return "", name
    last = parts[-1]
    return name[: len(name) - len(last)], last


# =============================================================================
# Table names
# =============================================================================


@dataclass(frozen=True)
class TableNames:
    """Naming variants derived from a table."""
    type_name: str        # "Car"
    singular_name: str    # "car"
    plural_name: str      # "cars"
    plural_type_name: str  # "Cars"
    module_name: str      # "car"


def get_table_names(table: Table) -> TableNames:
    type_name = table.name
    inflection = table.inflection
    singular = (inflection.table_field_name if inflection else None) or lc_first(type_name)
    plural = get_all_rows_query_name(table)
    return TableNames(
        type_name=type_name,
        singular_name=singular,
        plural_name=plural,
        plural_type_name=uc_first(plural),
        module_name=to_snake_case(type_name),
    )


def get_all_rows_query_name(table: Table) -> str:
    if table.query and table.query.all:
        return table.query.all
    if table.inflection and table.inflection.all_rows:
        return table.inflection.all_rows
    return lc_first(pluralize(table.name))


def get_single_row_query_name(table: Table) -> str:
    if table.query and table.query.one:
        return table.query.one
    if table.inflection and table.inflection.table_field_name:
        return table.inflection.table_field_name
    return lc_first(table.name)


def get_create_mutation_name(table: Table) -> str:
    return (table.query.create if table.query else None) or f"create{table.name}"


def get_update_mutation_name(table: Table) -> str:
    return (table.query.update if table.query else None) or f"update{table.name}"


def get_delete_mutation_name(table: Table) -> str:
    return (table.query.delete if table.query else None) or f"delete{table.name}"


# =============================================================================
# Type names
# =============================================================================


def _inflected(table: Table, attr: str) -> str | None:
    if table.inflection is None:
        return None
    return getattr(table.inflection, attr)


def get_filter_type_name(table: Table) -> str:
    return _inflected(table, "filter_type") or f"{table.name}Filter"


def get_order_by_type_name(table: Table) -> str:
    return _inflected(table, "order_by_type") or f"{pluralize(table.name)}OrderBy"


def get_condition_type_name(table: Table) -> str:
    return _inflected(table, "condition_type") or f"{table.name}Condition"


def get_create_input_type_name(table: Table) -> str:
    return _inflected(table, "create_input_type") or f"Create{table.name}Input"


def get_patch_type_name(table: Table) -> str:
    return _inflected(table, "patch_type") or f"{table.name}Patch"


def get_patch_field_name(table: Table) -> str:
    return _inflected(table, "patch_field") or "patch"


def get_update_input_type_name(table: Table) -> str:
    return _inflected(table, "update_input_type") or f"Update{table.name}Input"


def get_delete_input_type_name(table: Table) -> str:
    return _inflected(table, "delete_input_type") or f"Delete{table.name}Input"


def get_select_type_name(type_name: str) -> str:
    return f"{type_name}Select"


def crud_type_names(table: Table) -> set[str]:
    """Every type name the CRUD artifacts generate for a table."""
    return {
        table.name,
        f"{table.name}Relations",
        f"{table.name}WithRelations",
        get_select_type_name(table.name),
        get_filter_type_name(table),
        get_order_by_type_name(table),
        get_condition_type_name(table),
        get_create_input_type_name(table),
        f"{table.name}CreateData",
        get_patch_type_name(table),
        get_update_input_type_name(table),
        get_delete_input_type_name(table),
    }


# =============================================================================
# Fields and keys
# =============================================================================


def relation_field_names(table: Table) -> set[str]:
    relations = table.relations
    names = set()
    for group in (relations.belongs_to, relations.has_one, relations.has_many, relations.many_to_many):
        names.update(rel.field_name for rel in group if rel.field_name)
    return names


def get_scalar_fields(table: Table) -> list[Field]:
    """Fields that are not relations."""
    relation_names = relation_field_names(table)
    return [f for f in table.fields if f.name not in relation_names]


@dataclass(frozen=True)
class PrimaryKeyField:
    name: str
    gql_type: str


def get_primary_key_info(table: Table) -> list[PrimaryKeyField]:
    """Primary key fields; composite keys return more than one entry."""
    constraints = table.constraints
    pk = constraints.primary_key[0] if constraints and constraints.primary_key else None
    if pk is None or not pk.fields:
        for table_field in table.fields:
            if table_field.name.lower() == "id":
                return [PrimaryKeyField(table_field.name, table_field.type.gql_type)]
        # Last resort: assume a UUID id
        return [PrimaryKeyField("id", "UUID")]
    return [PrimaryKeyField(f.name, f.type.gql_type) for f in pk.fields]


def has_valid_primary_key(table: Table) -> bool:
    """True if the table has a single-field primary key or an ``id`` field."""
    constraints = table.constraints
    if constraints and constraints.primary_key and len(constraints.primary_key[0].fields) == 1:
        return True
    return any(f.name.lower() == "id" for f in table.fields)


def get_generated_file_header(description: str) -> str:
    """Module docstring placed at the top of every generated file."""
    description = description.replace('"""', "'''").strip()
    return (
        f'"""{description}\n'
        f"\n"
        f"@generated by {GENERATOR_NAME}. DO NOT EDIT - changes will be overwritten.\n"
        f'"""\n'
    )
