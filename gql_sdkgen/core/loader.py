"""Load table metadata into the IR.

Table metadata is JSON as produced by schema introspection, with
camelCase keys:

    [
        {
            "name": "User",
            "fields": [{"name": "id", "type": {"gqlType": "UUID", "isArray": false}}],
            "relations": {"hasMany": [{"fieldName": "posts", "referencedByTable": "Post"}]},
            "query": {"all": "users", "one": "user", "create": "createUser"}
        }
    ]

A top-level object with a ``"tables"`` list is accepted as well.
"""

import json
import logging
from pathlib import Path
from typing import Any, Iterable, Mapping

from .ir import (
    BelongsToRelation,
    Constraint,
    Field,
    FieldType,
    HasManyRelation,
    HasOneRelation,
    ManyToManyRelation,
    Relations,
    Table,
    TableConstraints,
    TableInflection,
    TableQueryNames,
)

logger = logging.getLogger(__name__)


class LoaderError(Exception):
    """Raised when table metadata cannot be read."""


def _field(data: Mapping[str, Any]) -> Field:
    type_data = data.get("type") or {}
    if isinstance(type_data, str):
        field_type = FieldType(gql_type=type_data)
    else:
        field_type = FieldType(
            gql_type=type_data.get("gqlType") or "String",
            is_array=bool(type_data.get("isArray", False)),
            pg_type=type_data.get("pgType"),
        )
    return Field(name=data["name"], type=field_type, description=data.get("description"))


def _key_names(keys: Iterable[Any] | None) -> list[str]:
    names = []
    for key in keys or ():
        names.append(key["name"] if isinstance(key, Mapping) else str(key))
    return names


def _relations(data: Mapping[str, Any] | None) -> Relations:
    data = data or {}
    return Relations(
        belongs_to=[
            BelongsToRelation(
                field_name=rel.get("fieldName"),
                references_table=rel["referencesTable"],
                is_unique=bool(rel.get("isUnique", False)),
                keys=_key_names(rel.get("keys")),
            )
            for rel in data.get("belongsTo", [])
        ],
        has_one=[
            HasOneRelation(
                field_name=rel.get("fieldName"),
                referenced_by_table=rel["referencedByTable"],
                keys=_key_names(rel.get("keys")),
            )
            for rel in data.get("hasOne", [])
        ],
        has_many=[
            HasManyRelation(
                field_name=rel.get("fieldName"),
                referenced_by_table=rel["referencedByTable"],
                keys=_key_names(rel.get("keys")),
            )
            for rel in data.get("hasMany", [])
        ],
        many_to_many=[
            ManyToManyRelation(
                field_name=rel.get("fieldName"),
                right_table=rel["rightTable"],
                junction_table=rel.get("junctionTable"),
            )
            for rel in data.get("manyToMany", [])
        ],
    )


def _query_names(data: Mapping[str, Any] | None) -> TableQueryNames | None:
    if not data:
        return None
    return TableQueryNames(
        all=data.get("all"),
        one=data.get("one"),
        create=data.get("create"),
        update=data.get("update"),
        delete=data.get("delete"),
    )


def _inflection(data: Mapping[str, Any] | None) -> TableInflection | None:
    if not data:
        return None
    return TableInflection(
        all_rows=data.get("allRows"),
        table_field_name=data.get("tableFieldName"),
        table_type=data.get("tableType"),
        filter_type=data.get("filterType"),
        order_by_type=data.get("orderByType"),
        condition_type=data.get("conditionType"),
        create_input_type=data.get("createInputType"),
        patch_type=data.get("patchType"),
        patch_field=data.get("patchField"),
        update_input_type=data.get("updateInputType"),
        delete_input_type=data.get("deleteInputType"),
        connection=data.get("connection"),
    )


def _constraints(data: Mapping[str, Any] | None) -> TableConstraints | None:
    if not data:
        return None

    def constraints(items: Iterable[Mapping[str, Any]]) -> list[Constraint]:
        return [
            Constraint(name=item.get("name", ""), fields=[_field(f) for f in item.get("fields", [])])
            for item in items
        ]

    return TableConstraints(
        primary_key=constraints(data.get("primaryKey", [])),
        unique=constraints(data.get("unique", [])),
        foreign_key=constraints(data.get("foreignKey", [])),
    )


def table_from_dict(data: Mapping[str, Any]) -> Table:
    return Table(
        name=data["name"],
        fields=[_field(f) for f in data.get("fields", [])],
        relations=_relations(data.get("relations")),
        description=data.get("description"),
        query=_query_names(data.get("query")),
        inflection=_inflection(data.get("inflection")),
        constraints=_constraints(data.get("constraints")),
    )


def tables_from_dicts(data: Any) -> list[Table]:
    """Build tables from decoded JSON (a list, or an object with ``tables``)."""
    if isinstance(data, Mapping):
        data = data.get("tables", [])
    if not isinstance(data, list):
        raise LoaderError("Table metadata must be a list of tables")
    try:
        tables = [table_from_dict(item) for item in data]
    except (KeyError, TypeError, AttributeError) as e:
        raise LoaderError(f"Malformed table metadata: {e!r}") from e
    logger.debug("loaded %d tables", len(tables))
    return tables


def load_tables(path: str | Path) -> list[Table]:
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise LoaderError(f"Cannot read {path}: {e}") from e
    except ValueError as e:
        raise LoaderError(f"Invalid JSON in {path}: {e}") from e
    return tables_from_dicts(data)
