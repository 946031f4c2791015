"""Code generator orchestration.

Turns tables and custom operations into the ordered list of files that
make up a generated SDK package. Simple modules are rendered from Jinja2
templates; the rest are built by the emitter modules.

Supports custom templates via ``GeneratorConfig.template_dir``. Template
lookup order:
1. User's template directory (if provided)
2. Package default templates

Available templates to override:
    - client.py.j2 - module-level executor configuration
    - enums.py.j2 - Enum generation
    - package_init.py.j2 - the package ``__init__`` with ``create_client``
"""

import ast
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Sequence

from jinja2 import ChoiceLoader, Environment, FileSystemLoader, PackageLoader, TemplateError, select_autoescape

from .config import GeneratorConfig
from .context import EmitContext, build_context
from .hook_emitter import generate_custom_hooks_module, generate_hooks_init, generate_table_hooks_module, hook_module_name
from .hooks import HookRunner, hook_from_config
from .ir import CustomOperations, SchemaInput, Table
from .model_emitter import (
    custom_module_name,
    generate_custom_operations_module,
    generate_model_module,
    generate_models_init,
    model_class_name,
    model_module_name,
)
from .naming import get_generated_file_header, safe_identifier, to_snake_case
from .query_keys import generate_invalidation_module, generate_mutation_keys_module, generate_query_keys_module
from .type_emitter import (
    generate_input_types_module,
    generate_schema_types_module,
    generate_shapes_module,
    generate_types_module,
    safe_doc,
)

logger = logging.getLogger(__name__)


class GenerationError(Exception):
    """Generation failed; nothing should be written."""


@dataclass
class GeneratedFile:
    path: str
    content: str


@dataclass
class GenerateStats:
    tables: int = 0
    model_files: int = 0
    interactive_files: int = 0
    custom_queries: int = 0
    custom_mutations: int = 0
    total_files: int = 0


@dataclass
class GenerateResult:
    files: list[GeneratedFile] = field(default_factory=list)
    stats: GenerateStats = field(default_factory=GenerateStats)

    def get(self, path: str) -> GeneratedFile | None:
        for generated in self.files:
            if generated.path == path:
                return generated
        return None


def _enum_members(values) -> list[dict[str, str]]:
    members = []
    seen: set[str] = set()
    for value in values:
        name = safe_identifier(value.name)
        if name.startswith("_"):
            name = f"VALUE{name}"
        while name in seen:
            name += "_"
        seen.add(name)
        members.append({"name": name, "value": value.name})
    return members


class CodeGenerator:
    """Renders one generation run.

    Example:
        generator = CodeGenerator(config, template_dir="./my_templates")
        result = generator.generate(tables, custom_operations)
    """

    def __init__(self, config: GeneratorConfig, template_dir: str | None = None):
        self.config = config
        self.template_dir = template_dir or config.template_dir

        # Build template loader - custom templates take precedence
        loaders = []
        if self.template_dir:
            template_path = Path(self.template_dir)
            if template_path.is_dir():
                loaders.append(FileSystemLoader(str(template_path)))
            else:
                logger.warning("template directory %s does not exist; using defaults", template_path)
        loaders.append(PackageLoader("gql_sdkgen", "templates"))

        self.env = Environment(
            loader=ChoiceLoader(loaders),
            autoescape=select_autoescape(),
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )
        self.env.filters["snake_case"] = to_snake_case
        self.env.filters["repr"] = repr
        self.env.filters["safe_docstring"] = safe_doc

    def _render(self, template_name: str, context: dict[str, Any]) -> str:
        try:
            return self.env.get_template(template_name).render(context)
        except TemplateError as e:
            raise GenerationError(f"Cannot render {template_name}: {e}") from e

    def _enums(self, ctx: EmitContext) -> str:
        enums = []
        for name in ctx.enum_names():
            resolved = ctx.resolved(name)
            enums.append({
                "name": name,
                "description": resolved.description,
                "members": _enum_members(resolved.enum_values),
            })
        return self._render("enums.py.j2", {
            "header": get_generated_file_header("Enum types"),
            "enums": enums,
        })

    def _package_init(self, ctx: EmitContext) -> str:
        models = [
            {"class_name": model_class_name(table), "attr_name": to_snake_case(table.name)}
            for table in ctx.tables
        ]
        return self._render("package_init.py.j2", {
            "header": get_generated_file_header("Generated SDK package"),
            "models": models,
            "custom_queries": bool(ctx.queries),
            "custom_mutations": bool(ctx.mutations),
            "centralized_keys": ctx.centralized_keys,
            "mutation_keys": ctx.config.query_keys.generate_mutation_keys,
        })

    def emit(self, ctx: EmitContext) -> list[GeneratedFile]:
        """Every artifact, in output order."""
        config = ctx.config
        prefix = config.query_key_prefix
        files = [
            GeneratedFile("client.py", self._render("client.py.j2", {
                "header": get_generated_file_header("Executor configuration"),
                "endpoint": config.endpoint,
            })),
            GeneratedFile("enums.py", self._enums(ctx)),
            GeneratedFile("types.py", generate_types_module(ctx)),
            GeneratedFile("input_types.py", generate_input_types_module(ctx)),
            GeneratedFile("schema_types.py", generate_schema_types_module(ctx)),
            GeneratedFile("shapes.py", generate_shapes_module(ctx)),
        ]

        if ctx.centralized_keys:
            files.append(GeneratedFile(
                "query_keys.py", generate_query_keys_module(ctx.tables, ctx.queries, config.query_keys, prefix)
            ))
            if config.query_keys.generate_mutation_keys:
                files.append(GeneratedFile(
                    "mutation_keys.py", generate_mutation_keys_module(ctx.tables, ctx.mutations, prefix)
                ))
            files.append(GeneratedFile(
                "invalidation.py", generate_invalidation_module(ctx.tables, config.query_keys, prefix)
            ))

        for table in ctx.tables:
            files.append(GeneratedFile(f"models/{model_module_name(table)}.py", generate_model_module(table, ctx)))
        files.append(GeneratedFile("models/__init__.py", generate_models_init(ctx.tables, ctx)))

        for kind, operations in (("query", ctx.queries), ("mutation", ctx.mutations)):
            if operations:
                files.append(GeneratedFile(
                    f"{custom_module_name(kind)}.py", generate_custom_operations_module(kind, ctx)
                ))

        if ctx.interactive:
            for table in ctx.tables:
                files.append(GeneratedFile(
                    f"hooks/{hook_module_name(table)}.py", generate_table_hooks_module(table, ctx)
                ))
            for kind, operations in (("query", ctx.queries), ("mutation", ctx.mutations)):
                if operations:
                    files.append(GeneratedFile(
                        f"hooks/{custom_module_name(kind)}.py", generate_custom_hooks_module(kind, ctx)
                    ))
            files.append(GeneratedFile("hooks/__init__.py", generate_hooks_init(ctx.tables, ctx)))

        files.append(GeneratedFile("__init__.py", self._package_init(ctx)))
        return files

    def generate(
        self,
        tables: Sequence[Table],
        custom_operations: CustomOperations | None = None,
        hooks: HookRunner | None = None,
    ) -> GenerateResult:
        runner = HookRunner()
        runner.add_pre_hook(hook_from_config(self.config))
        if hooks is not None:
            runner.pre_hooks.extend(hooks.pre_hooks)
            runner.post_hooks.extend(hooks.post_hooks)

        schema_input = runner.run_pre_hooks(
            SchemaInput(tables=list(tables), custom_operations=custom_operations or CustomOperations())
        )
        ctx = build_context(schema_input.tables, schema_input.custom_operations, self.config)

        files = []
        for generated in self.emit(ctx):
            content = runner.run_post_hooks(generated.path, generated.content)
            if generated.path.endswith(".py"):
                try:
                    ast.parse(content)
                except SyntaxError as e:
                    raise GenerationError(f"Generated invalid Python for {generated.path}: {e}") from e
            files.append(GeneratedFile(generated.path, content))

        stats = GenerateStats(
            tables=len(ctx.tables),
            model_files=sum(1 for f in files if f.path.startswith("models/") and f.path != "models/__init__.py"),
            interactive_files=sum(1 for f in files if f.path.startswith("hooks/")),
            custom_queries=len(ctx.queries),
            custom_mutations=len(ctx.mutations),
            total_files=len(files),
        )
        logger.info(
            "generated %d files: %d tables, %d custom queries, %d custom mutations",
            stats.total_files,
            stats.tables,
            stats.custom_queries,
            stats.custom_mutations,
        )
        return GenerateResult(files=files, stats=stats)


def generate(
    tables: Sequence[Table],
    custom_operations: CustomOperations | None = None,
    config: GeneratorConfig | None = None,
    hooks: HookRunner | None = None,
) -> GenerateResult:
    """Generate an SDK package for ``tables`` and ``custom_operations``."""
    return CodeGenerator(config or GeneratorConfig()).generate(tables, custom_operations, hooks)


__all__ = [
    "CodeGenerator",
    "GenerateResult",
    "GenerateStats",
    "GeneratedFile",
    "GenerationError",
    "generate",
]
