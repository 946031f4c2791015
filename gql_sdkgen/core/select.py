"""Select types: entity shapes, selection validation and projection.

A *selection* is a sparse mapping from field name to either ``True``
(include), ``False`` (exclude) or, for relation fields, a nested config
``{"select": {...}, "first": 10, "filter": {...}, "orderBy": [...]}``.

Applying a selection to an ``EntityShape`` yields a ``ProjectedShape``
describing exactly which fields the response will carry. The strict
check in ``validate_selection`` rejects unknown keys at every depth,
including keys mixed in with valid ones.

Example:
    shapes = build_table_shapes(tables)
    projection = project(shapes, "User", {"id": True, "name": True})
    projection.keys()  # ["id", "name"]
"""

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from .ir import Table, TypeRegistry
from .naming import get_primary_key_info, get_scalar_fields, has_valid_primary_key
from .scalars import ScalarRegistry
from .type_resolver import base_kind, base_name, is_list, is_required, resolve

SCALAR = "scalar"
OBJECT = "object"
CONNECTION = "connection"

# Default depth for the strict selection check
DEFAULT_STRICT_DEPTH = 10

OBJECT_RELATION_KEYS = frozenset({"select"})
CONNECTION_RELATION_KEYS = frozenset({"select", "first", "filter", "orderBy"})

CONNECTION_FIELDS = ("nodes", "totalCount", "pageInfo")
PAGE_INFO_FIELDS = ("hasNextPage", "hasPreviousPage", "startCursor", "endCursor")

# Types that never get a shape of their own
NON_SELECT_TYPES = frozenset({"Query", "Mutation", "Subscription", "PageInfo"})


class SelectionError(ValueError):
    """Raised when a selection does not match its entity shape."""

    def __init__(self, entity: str, errors: list[str]):
        self.entity = entity
        self.errors = errors
        super().__init__(f"Invalid selection for {entity}: " + "; ".join(errors))


# =============================================================================
# Shapes
# =============================================================================


@dataclass(frozen=True)
class FieldShape:
    """One field of an entity shape.

    For scalar fields ``type`` is the Python type; for relations it is
    the related entity name, also stored in ``target``.
    """
    name: str
    type: str
    kind: str = SCALAR
    nullable: bool = True
    is_list: bool = False
    target: str | None = None

    @property
    def is_relation(self) -> bool:
        return self.kind != SCALAR

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.type, "kind": self.kind, "nullable": self.nullable}
        if self.is_list:
            data["is_list"] = True
        if self.target:
            data["target"] = self.target
        return data

    @classmethod
    def from_dict(cls, name: str, data: Mapping[str, Any]) -> "FieldShape":
        return cls(
            name=name,
            type=data["type"],
            kind=data.get("kind", SCALAR),
            nullable=data.get("nullable", True),
            is_list=data.get("is_list", False),
            target=data.get("target"),
        )


@dataclass
class EntityShape:
    """The full selectable shape of an entity, in field order."""
    name: str
    fields: dict[str, FieldShape] = field(default_factory=dict)
    primary_key: str | None = None

    def keys(self) -> list[str]:
        return list(self.fields)

    def get(self, name: str) -> FieldShape | None:
        return self.fields.get(name)

    def scalar_fields(self) -> list[FieldShape]:
        return [f for f in self.fields.values() if not f.is_relation]

    def to_dict(self) -> dict[str, Any]:
        return {
            "primary_key": self.primary_key,
            "fields": {name: f.to_dict() for name, f in self.fields.items()},
        }

    @classmethod
    def from_dict(cls, name: str, data: Mapping[str, Any]) -> "EntityShape":
        return cls(
            name=name,
            primary_key=data.get("primary_key"),
            fields={
                field_name: FieldShape.from_dict(field_name, field_data)
                for field_name, field_data in data.get("fields", {}).items()
            },
        )


ShapeIndex = Mapping[str, EntityShape]


def shapes_from_dict(data: Mapping[str, Mapping[str, Any]]) -> dict[str, EntityShape]:
    """Rebuild a shape index from its serialized form (see ``shapes_to_dict``)."""
    return {name: EntityShape.from_dict(name, entity) for name, entity in data.items()}


def shapes_to_dict(shapes: ShapeIndex) -> dict[str, dict[str, Any]]:
    return {name: shape.to_dict() for name, shape in shapes.items()}


def build_table_shapes(
    tables: Iterable[Table],
    scalars: ScalarRegistry | None = None,
) -> dict[str, EntityShape]:
    """Derive entity shapes from table descriptors.

    belongs_to and has_one relations become nullable object fields,
    has_many and many_to_many become connection fields. Relations to
    tables outside the given set are left out.
    """
    scalars = scalars or ScalarRegistry()
    tables = list(tables)
    known = {table.name for table in tables}
    shapes: dict[str, EntityShape] = {}

    for table in tables:
        fields: dict[str, FieldShape] = {}
        for table_field in get_scalar_fields(table):
            py_type = scalars.python_type(table_field.type.gql_type)
            if table_field.type.is_array:
                py_type = f"List[{py_type}]"
            fields[table_field.name] = FieldShape(
                name=table_field.name,
                type=py_type,
                is_list=table_field.type.is_array,
            )

        relations = table.relations
        single = [(r.field_name, r.references_table) for r in relations.belongs_to]
        single += [(r.field_name, r.referenced_by_table) for r in relations.has_one]
        for field_name, target in single:
            if field_name and target in known:
                fields[field_name] = FieldShape(
                    name=field_name, type=target, kind=OBJECT, target=target
                )
        many = [(r.field_name, r.referenced_by_table) for r in relations.has_many]
        many += [(r.field_name, r.right_table) for r in relations.many_to_many]
        for field_name, target in many:
            if field_name and target in known:
                fields[field_name] = FieldShape(
                    name=field_name,
                    type=target,
                    kind=CONNECTION,
                    nullable=False,
                    is_list=True,
                    target=target,
                )

        primary_key = None
        if has_valid_primary_key(table):
            primary_key = get_primary_key_info(table)[0].name
        shapes[table.name] = EntityShape(name=table.name, fields=fields, primary_key=primary_key)

    return shapes


def build_registry_shapes(
    registry: TypeRegistry,
    roots: Iterable[str],
    existing: ShapeIndex | None = None,
    scalars: ScalarRegistry | None = None,
    skip_query_field: bool = True,
) -> dict[str, EntityShape]:
    """Derive shapes for registry OBJECT types reachable from ``roots``.

    Types already present in ``existing`` (usually the table shapes) are
    referenced but not rebuilt. A ``<X>Connection`` type with a ``nodes``
    field is treated as a connection to the node type.
    """
    existing = existing or {}
    shapes: dict[str, EntityShape] = {}
    queue = [name for name in roots if name]
    seen: set[str] = set()

    while queue:
        type_name = queue.pop(0)
        if type_name in seen or type_name in existing or type_name in NON_SELECT_TYPES:
            continue
        seen.add(type_name)
        resolved = registry.get(type_name)
        if resolved is None or resolved.kind not in ("OBJECT", "INTERFACE"):
            continue

        fields: dict[str, FieldShape] = {}
        for obj_field in resolved.fields:
            if obj_field.name == "__typename" or (skip_query_field and obj_field.name == "query"):
                continue
            kind = base_kind(obj_field.type)
            target = base_name(obj_field.type)
            nullable = not is_required(obj_field.type)
            if kind in ("SCALAR", "ENUM", "UNKNOWN") or target is None:
                fields[obj_field.name] = FieldShape(
                    name=obj_field.name,
                    type=resolve(obj_field.type, scalars=scalars),
                    nullable=nullable,
                    is_list=is_list(obj_field.type),
                )
                continue
            if target in NON_SELECT_TYPES:
                continue
            node_type = connection_node_type(registry, target)
            if node_type is not None:
                fields[obj_field.name] = FieldShape(
                    name=obj_field.name,
                    type=node_type,
                    kind=CONNECTION,
                    nullable=nullable,
                    is_list=True,
                    target=node_type,
                )
                queue.append(node_type)
            else:
                fields[obj_field.name] = FieldShape(
                    name=obj_field.name,
                    type=target,
                    kind=OBJECT,
                    nullable=nullable,
                    is_list=is_list(obj_field.type),
                    target=target,
                )
                queue.append(target)

        primary_key = next((name for name in ("id", "nodeId") if name in fields), None)
        shapes[type_name] = EntityShape(name=type_name, fields=fields, primary_key=primary_key)

    # Drop relation fields whose target never got a shape
    known = set(existing) | set(shapes)
    for shape in shapes.values():
        shape.fields = {
            name: f for name, f in shape.fields.items() if not f.is_relation or f.target in known
        }
    return shapes


def connection_node_type(registry: TypeRegistry, type_name: str) -> str | None:
    if not type_name.endswith("Connection"):
        return None
    resolved = registry.get(type_name)
    if resolved is None:
        return None
    for obj_field in resolved.fields:
        if obj_field.name == "nodes":
            return base_name(obj_field.type)
    return None


# =============================================================================
# Strict validation
# =============================================================================


def validate_selection(
    shapes: ShapeIndex,
    entity: str,
    selection: Any,
    max_depth: int = DEFAULT_STRICT_DEPTH,
) -> list[str]:
    """Check a selection against an entity shape.

    Returns a list of error messages, empty when the selection is valid.
    Every key must be a field of the shape at its depth; relation fields
    need a nested ``{"select": ...}`` config. Nesting deeper than
    ``max_depth`` is not inspected.
    """
    errors: list[str] = []
    _validate(shapes, entity, selection, entity, 0, max_depth, errors)
    return errors


def _validate(
    shapes: ShapeIndex,
    entity: str,
    selection: Any,
    path: str,
    depth: int,
    max_depth: int,
    errors: list[str],
):
    shape = shapes.get(entity)
    if shape is None:
        errors.append(f"{path}: unknown entity {entity!r}")
        return
    if not isinstance(selection, Mapping):
        errors.append(f"{path}: selection must be a mapping, got {type(selection).__name__}")
        return

    for key, value in selection.items():
        field_path = f"{path}.{key}"
        field_shape = shape.fields.get(key)
        if field_shape is None:
            errors.append(f"{field_path}: unknown field")
            continue
        if value is None or value is False:
            continue
        if not field_shape.is_relation:
            if not isinstance(value, bool):
                errors.append(f"{field_path}: scalar fields take True or False")
            continue
        if isinstance(value, bool):
            errors.append(f"{field_path}: relation fields need a nested {{'select': ...}}")
            continue
        if not isinstance(value, Mapping):
            errors.append(f"{field_path}: expected a nested selection config")
            continue

        allowed = CONNECTION_RELATION_KEYS if field_shape.kind == CONNECTION else OBJECT_RELATION_KEYS
        for option in sorted(set(value) - allowed):
            errors.append(f"{field_path}.{option}: unknown option")
        nested = value.get("select")
        if not isinstance(nested, Mapping):
            errors.append(f"{field_path}: nested selections must include a 'select' mapping")
            continue
        if depth + 1 < max_depth:
            _validate(shapes, field_shape.target, nested, field_path, depth + 1, max_depth, errors)


def assert_valid_selection(
    shapes: ShapeIndex,
    entity: str,
    selection: Any,
    max_depth: int = DEFAULT_STRICT_DEPTH,
):
    """Raise ``SelectionError`` if the selection is not valid."""
    errors = validate_selection(shapes, entity, selection, max_depth)
    if errors:
        raise SelectionError(entity, errors)


# =============================================================================
# Default selection
# =============================================================================


def default_selection(
    shape: EntityShape,
    pk_name: str | None = None,
    shapes: ShapeIndex | None = None,
    depth: int = 0,
) -> dict[str, Any]:
    """Minimal selection used when the caller supplies none.

    Picks the primary key (or an ``id``/``nodeId`` field), else the first
    scalar field. Shapes with only relation fields select the first
    relation with its own default, a few levels deep at most.
    """
    candidates = [name for name in (pk_name, shape.primary_key, "id", "nodeId") if name]
    for name in candidates:
        field_shape = shape.fields.get(name)
        if field_shape is not None and not field_shape.is_relation:
            return {name: True}
    for field_shape in shape.fields.values():
        if not field_shape.is_relation:
            return {field_shape.name: True}
    if shapes and depth < 3:
        for field_shape in shape.fields.values():
            target = shapes.get(field_shape.target or "")
            if target is not None:
                nested = default_selection(target, shapes=shapes, depth=depth + 1)
                if nested:
                    return {field_shape.name: {"select": nested}}
    return {}


def expand_selection(
    shapes: ShapeIndex,
    entity: str,
    max_depth: int = 2,
    depth: int = 0,
) -> dict[str, Any]:
    """Every scalar field, plus relations expanded up to ``max_depth`` levels.

    Used as the default selection of custom operations, whose payloads
    are usually small wrapper objects.
    """
    shape = shapes.get(entity)
    if shape is None:
        return {}
    selection: dict[str, Any] = {}
    for field_shape in shape.fields.values():
        if not field_shape.is_relation:
            selection[field_shape.name] = True
        elif depth < max_depth and field_shape.target:
            nested = expand_selection(shapes, field_shape.target, max_depth, depth + 1)
            if nested:
                selection[field_shape.name] = {"select": nested}
    if not selection:
        return default_selection(shape, shapes=shapes)
    return selection


def resolve_selection(
    shapes: ShapeIndex,
    entity: str,
    selection: Mapping[str, Any] | None,
    pk_name: str | None = None,
    max_depth: int = DEFAULT_STRICT_DEPTH,
) -> dict[str, Any]:
    """Validate a caller selection, or fall back to the default one."""
    if selection is None:
        shape = shapes.get(entity)
        if shape is None:
            raise SelectionError(entity, [f"{entity}: unknown entity {entity!r}"])
        return default_selection(shape, pk_name, shapes)
    assert_valid_selection(shapes, entity, selection, max_depth)
    return dict(selection)


# =============================================================================
# Projection
# =============================================================================


@dataclass(frozen=True)
class ProjectedField:
    """A field that survives projection.

    ``shape`` holds the nested projection for relations; for connections
    it is the projection of the ``nodes`` element type.
    """
    name: str
    type: str
    kind: str = SCALAR
    nullable: bool = True
    is_list: bool = False
    shape: "ProjectedShape | None" = None


@dataclass(frozen=True)
class ProjectedShape:
    """The result shape of applying a selection to an entity."""
    entity: str
    fields: tuple[ProjectedField, ...] = ()

    def keys(self) -> list[str]:
        return [f.name for f in self.fields]

    def __contains__(self, name: object) -> bool:
        return any(f.name == name for f in self.fields)

    def __getitem__(self, name: str) -> ProjectedField:
        for projected in self.fields:
            if projected.name == name:
                return projected
        raise KeyError(name)

    def describe(self) -> dict[str, Any]:
        """Nested description: Python types for scalars, dicts for relations."""
        result: dict[str, Any] = {}
        for projected in self.fields:
            if projected.shape is None:
                annotation = projected.type
                if projected.nullable:
                    annotation = f"Optional[{annotation}]"
                result[projected.name] = annotation
            elif projected.kind == CONNECTION:
                result[projected.name] = {
                    "nodes": [projected.shape.describe()],
                    "totalCount": "int",
                    "pageInfo": "PageInfo",
                }
            elif projected.is_list:
                result[projected.name] = [projected.shape.describe()]
            else:
                result[projected.name] = projected.shape.describe()
        return result


def project(
    shapes: ShapeIndex,
    entity: str,
    selection: Mapping[str, Any],
    max_depth: int = DEFAULT_STRICT_DEPTH,
) -> ProjectedShape:
    """Apply a selection to an entity shape.

    Raises ``SelectionError`` for selections the strict check rejects.
    """
    assert_valid_selection(shapes, entity, selection, max_depth)
    return _project(shapes, entity, selection)


def _project(shapes: ShapeIndex, entity: str, selection: Mapping[str, Any]) -> ProjectedShape:
    shape = shapes[entity]
    projected: list[ProjectedField] = []
    for name, field_shape in shape.fields.items():
        value = selection.get(name)
        if value is None or value is False:
            continue
        nested_shape = None
        if field_shape.is_relation:
            nested = value.get("select") if isinstance(value, Mapping) else None
            if not isinstance(nested, Mapping):
                raise SelectionError(entity, [f'{entity}.{name}: relations need a "select" mapping'])
            nested_shape = _project(shapes, field_shape.target, nested)
        projected.append(
            ProjectedField(
                name=name,
                type=field_shape.type,
                kind=field_shape.kind,
                nullable=field_shape.nullable,
                is_list=field_shape.is_list,
                shape=nested_shape,
            )
        )
    return ProjectedShape(entity=entity, fields=tuple(projected))


def typed_dict_definitions(projection: ProjectedShape, name: str) -> list[tuple[str, list[tuple[str, str]]]]:
    """Flatten a projection into TypedDict definitions, innermost first.

    Returns ``[(class_name, [(field, annotation), ...]), ...]``; nested
    relations get classes named ``<name><Field>``.
    """
    definitions: list[tuple[str, list[tuple[str, str]]]] = []
    members: list[tuple[str, str]] = []
    for projected in projection.fields:
        if projected.shape is None:
            annotation = projected.type
        else:
            nested_name = f"{name}{projected.name[:1].upper()}{projected.name[1:]}"
            definitions.extend(typed_dict_definitions(projected.shape, nested_name))
            if projected.kind == CONNECTION:
                annotation = f"ConnectionResult[{nested_name}]"
            elif projected.is_list:
                annotation = f"List[{nested_name}]"
            else:
                annotation = nested_name
        if projected.nullable:
            annotation = f"Optional[{annotation}]"
        members.append((projected.name, annotation))
    definitions.append((name, members))
    return definitions
