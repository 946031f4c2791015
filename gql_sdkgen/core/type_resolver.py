"""Type resolution: GraphQL type references to Python type expressions.

``resolve`` walks a TypeRef tree and produces the Python annotation used in
generated code, registering every named non-scalar type it meets with an
optional ``TypeTracker`` so the emitter knows what to import.

Resolution is total: malformed trees resolve to ``Any`` instead of raising.
"""

from .ir import ListRef, NonNullRef, TypeRef, UnknownRef
from .naming import safe_param_name, to_screaming_snake, to_snake_case, uc_first
from .scalars import SCALAR_NAMES, UNKNOWN_TYPE, ScalarRegistry

SKIP_TYPE_TRACKING = frozenset(
    set(SCALAR_NAMES)
    | {
        # GraphQL built-ins
        "Query",
        "Mutation",
        "Subscription",
        "__Schema",
        "__Type",
        "__Field",
        "__InputValue",
        "__EnumValue",
        "__Directive",
        # Pagination envelope, emitted with the relation helpers
        "PageInfo",
    }
)

_DEFAULT_SCALARS = ScalarRegistry()


class TypeTracker:
    """Collects the named types referenced while building one artifact.

    Types in ``table_type_names`` are reported separately from other
    schema types (enums, payloads, inputs) because they live in a
    different generated module.
    """

    def __init__(self, table_type_names: set[str] | frozenset[str] | None = None):
        self.table_type_names = frozenset(table_type_names or ())
        self.referenced: set[str] = set()

    def track(self, type_name: str | None):
        if type_name and type_name not in SKIP_TYPE_TRACKING:
            self.referenced.add(type_name)

    def importable_types(self) -> list[str]:
        """Referenced schema types that are not table entities, sorted."""
        return sorted(name for name in self.referenced if name not in self.table_type_names)

    def table_types(self) -> list[str]:
        """Referenced table entity types, sorted."""
        return sorted(name for name in self.referenced if name in self.table_type_names)


def resolve(
    ref: TypeRef | None,
    tracker: TypeTracker | None = None,
    scalars: ScalarRegistry | None = None,
) -> str:
    """Resolve a TypeRef to a Python type expression, ignoring nullability."""
    if ref is None:
        return UNKNOWN_TYPE
    kind = ref.kind
    if kind == "NON_NULL":
        return resolve(getattr(ref, "of_type", None), tracker, scalars)
    if kind == "LIST":
        return f"List[{resolve(getattr(ref, 'of_type', None), tracker, scalars)}]"
    name = getattr(ref, "name", None)
    if not name:
        return UNKNOWN_TYPE
    if kind == "SCALAR":
        return (scalars or _DEFAULT_SCALARS).python_type(name)
    if kind in ("ENUM", "OBJECT", "INPUT_OBJECT"):
        if tracker is not None:
            tracker.track(name)
        return name
    return UNKNOWN_TYPE


def resolve_nullable(
    ref: TypeRef | None,
    tracker: TypeTracker | None = None,
    scalars: ScalarRegistry | None = None,
) -> str:
    """Like ``resolve`` but wraps non-required types in ``Optional``."""
    base = resolve(ref, tracker, scalars)
    if is_required(ref):
        return base
    return f"Optional[{base}]"


def is_required(ref: TypeRef | None) -> bool:
    return ref is not None and ref.kind == "NON_NULL"


def is_list(ref: TypeRef | None) -> bool:
    if ref is None:
        return False
    if isinstance(ref, ListRef):
        return True
    return isinstance(ref, NonNullRef) and isinstance(ref.of_type, ListRef)


def base_name(ref: TypeRef | None) -> str | None:
    """Innermost named type, or None if the tree has no name."""
    while ref is not None:
        name = getattr(ref, "name", None)
        if name:
            return name
        ref = getattr(ref, "of_type", None)
    return None


def base_kind(ref: TypeRef | None) -> str:
    """Kind of the innermost node."""
    if ref is None:
        return UnknownRef.kind
    while isinstance(ref, (NonNullRef, ListRef)):
        ref = ref.of_type
    return ref.kind


def to_graphql_type(ref: TypeRef | None) -> str:
    """Render a TypeRef in GraphQL notation, e.g. ``[String!]!``."""
    if isinstance(ref, NonNullRef):
        return f"{to_graphql_type(ref.of_type)}!"
    if isinstance(ref, ListRef):
        return f"[{to_graphql_type(ref.of_type)}]"
    return base_name(ref) or "Unknown"


def describe(ref: TypeRef | None) -> str:
    """Short ``KIND/name`` descriptor used in log messages."""
    return f"{base_kind(ref)}/{base_name(ref)}"


# =============================================================================
# Type filtering
# =============================================================================


def should_skip_field(field_name: str, skip_query_field: bool) -> bool:
    """Fields that never appear in generated payload types."""
    if skip_query_field and field_name == "query":
        return True
    return field_name in ("nodeId", "__typename")


# =============================================================================
# Operation names
# =============================================================================


def _kind_suffix(kind: str) -> str:
    return "Query" if kind == "query" else "Mutation"


def operation_name_to_pascal(name: str) -> str:
    return uc_first(name)


def get_operation_method_name(operation_name: str) -> str:
    """Python method name for a custom operation, e.g. ``current_user``."""
    return safe_param_name(to_snake_case(operation_name))


def get_operation_result_type_name(operation_name: str, kind: str) -> str:
    return f"{operation_name_to_pascal(operation_name)}{_kind_suffix(kind)}Result"


def get_operation_graphql_name(operation_name: str, kind: str) -> str:
    """Name of the GraphQL operation in the document, e.g. ``CurrentUserQuery``."""
    return f"{operation_name_to_pascal(operation_name)}{_kind_suffix(kind)}"


def get_operation_hook_name(operation_name: str, kind: str) -> str:
    return f"use_{to_snake_case(operation_name)}_{kind}"


def get_operation_const_name(operation_name: str, kind: str) -> str:
    """Module constant holding an operation's spec, e.g. ``CURRENT_USER_QUERY``."""
    return f"{to_screaming_snake(operation_name)}_{kind.upper()}"
