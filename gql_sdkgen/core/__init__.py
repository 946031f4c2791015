"""Core modules for SDK code generation and the runtime generated code imports."""

from .config import (
    CodegenOptions,
    ConfigError,
    EntityRelationship,
    GeneratorConfig,
    NamePatterns,
    QueryKeyConfig,
    load_config,
)
from .document_builder import (
    Document,
    FindManyArgs,
    build_create_document,
    build_custom_document,
    build_delete_document,
    build_find_first_document,
    build_find_many_document,
    build_find_one_document,
    build_update_document,
)
from .executor import GraphQLError, GraphQLExecutor, GraphQLRequestError
from .generator import (
    CodeGenerator,
    GeneratedFile,
    GenerateResult,
    GenerateStats,
    GenerationError,
    generate,
)
from .hooks import (
    AddHeaderHook,
    FilterTablesHook,
    HookRunner,
    PostGenerateHook,
    PreGenerateHook,
)
from .ir import (
    Argument,
    CustomOperations,
    EnumRef,
    Field,
    FieldType,
    InputObjectRef,
    ListRef,
    NonNullRef,
    ObjectRef,
    Operation,
    ResolvedType,
    ScalarRef,
    SchemaInput,
    Table,
    TypeRef,
    UnknownRef,
)
from .loader import LoaderError, load_tables, tables_from_dicts
from .operation import OperationBuilder, QueryResult
from .parser import SchemaParseError, SchemaParser
from .query_cache import QueryCache
from .scalars import ScalarMapping, ScalarRegistry
from .select import SelectionError, project, validate_selection
from .type_resolver import TypeTracker, resolve
from .writer import write_files

__all__ = [
    # Config
    "CodegenOptions",
    "ConfigError",
    "EntityRelationship",
    "GeneratorConfig",
    "NamePatterns",
    "QueryKeyConfig",
    "load_config",
    # Documents
    "Document",
    "FindManyArgs",
    "build_create_document",
    "build_custom_document",
    "build_delete_document",
    "build_find_first_document",
    "build_find_many_document",
    "build_find_one_document",
    "build_update_document",
    # Runtime
    "GraphQLError",
    "GraphQLExecutor",
    "GraphQLRequestError",
    "OperationBuilder",
    "QueryCache",
    "QueryResult",
    # Generator
    "CodeGenerator",
    "GeneratedFile",
    "GenerateResult",
    "GenerateStats",
    "GenerationError",
    "generate",
    "write_files",
    # Hooks
    "AddHeaderHook",
    "FilterTablesHook",
    "HookRunner",
    "PostGenerateHook",
    "PreGenerateHook",
    # IR
    "Argument",
    "CustomOperations",
    "EnumRef",
    "Field",
    "FieldType",
    "InputObjectRef",
    "ListRef",
    "NonNullRef",
    "ObjectRef",
    "Operation",
    "ResolvedType",
    "ScalarRef",
    "SchemaInput",
    "Table",
    "TypeRef",
    "UnknownRef",
    # Loading
    "LoaderError",
    "SchemaParseError",
    "SchemaParser",
    "load_tables",
    "tables_from_dicts",
    # Types and selections
    "ScalarMapping",
    "ScalarRegistry",
    "SelectionError",
    "TypeTracker",
    "project",
    "resolve",
    "validate_selection",
]
