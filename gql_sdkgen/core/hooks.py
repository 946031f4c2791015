"""Pre- and post-generate hooks.

A pre-generate hook gets the ``SchemaInput`` (tables plus custom
operations) and returns the input to generate from. A post-generate hook
gets each emitted file as ``(path, content)`` and returns the content to
keep; the generator re-parses ``.py`` output afterwards.

Example:
    class DropAuditTables:
        def pre_generate(self, schema_input):
            schema_input.tables = [t for t in schema_input.tables if not t.name.startswith("Audit")]
            return schema_input

    runner = HookRunner()
    runner.add_pre_hook(DropAuditTables())
    runner.add_post_hook(AddHeaderHook("# Copyright Example Corp"))
    generate(tables, custom_operations, hooks=runner)
"""

import logging
from dataclasses import replace
from fnmatch import fnmatchcase
from typing import Protocol, Sequence, runtime_checkable

from .config import GeneratorConfig, NamePatterns
from .ir import CustomOperations, SchemaInput, Table

logger = logging.getLogger(__name__)


@runtime_checkable
class PreGenerateHook(Protocol):
    """Rewrites the generation input before any context is built."""

    def pre_generate(self, schema_input: SchemaInput) -> SchemaInput:
        ...


@runtime_checkable
class PostGenerateHook(Protocol):
    """Transforms one generated file.

    Example:
        class FormatWithBlack:
            def post_generate(self, path: str, content: str) -> str:
                import black
                return black.format_str(content, mode=black.FileMode())
    """

    def post_generate(self, path: str, content: str) -> str:
        """Return the content to write for ``path``.

        Args:
            path: File path relative to the generated package root
            content: Emitted source

        Returns:
            The source to keep
        """
        ...


class AddHeaderHook:
    """Prepends a fixed header (license, lint pragmas) to every generated ``.py`` file."""

    def __init__(self, header: str):
        self.header = header

    def post_generate(self, path: str, content: str) -> str:
        if not path.endswith(".py"):
            return content
        header = self.header if self.header.endswith("\n") else self.header + "\n"
        return f"{header}\n{content}"


def _matches_any(name: str, patterns: Sequence[str]) -> bool:
    return any(fnmatchcase(name, pattern) for pattern in patterns)


class FilterTablesHook:
    """Built-in hook to filter tables, operations and fields by glob pattern.

    Example:
        # Keep every table except the internal ones
        hook = FilterTablesHook(tables=NamePatterns(exclude=["_*"]))
    """

    def __init__(
        self,
        tables: NamePatterns | None = None,
        queries: NamePatterns | None = None,
        mutations: NamePatterns | None = None,
        exclude_fields: Sequence[str] = (),
    ):
        self.tables = tables or NamePatterns()
        self.queries = queries or NamePatterns()
        self.mutations = mutations or NamePatterns()
        self.exclude_fields = list(exclude_fields)

    def _filter_fields(self, table: Table) -> Table:
        if not self.exclude_fields:
            return table
        fields = [f for f in table.fields if not _matches_any(f.name, self.exclude_fields)]
        return replace(table, fields=fields)

    def pre_generate(self, schema_input: SchemaInput) -> SchemaInput:
        """Filter tables and operations from the input."""
        tables = [
            self._filter_fields(table)
            for table in schema_input.tables
            if self.tables.matches(table.name)
        ]
        dropped = len(schema_input.tables) - len(tables)
        if dropped:
            logger.debug("filtered out %d tables", dropped)

        custom = schema_input.custom_operations
        filtered = CustomOperations(
            queries=[op for op in custom.queries if self.queries.matches(op.name)],
            mutations=[op for op in custom.mutations if self.mutations.matches(op.name)],
            type_registry=custom.type_registry,
        )
        return SchemaInput(tables=tables, custom_operations=filtered)


def hook_from_config(config: GeneratorConfig) -> FilterTablesHook:
    """The filtering hook described by a config's name patterns."""
    return FilterTablesHook(
        tables=config.tables,
        queries=config.queries,
        mutations=config.mutations,
        exclude_fields=config.exclude_fields,
    )


class HookRunner:
    """Ordered pre- and post-generate hooks of one run."""

    def __init__(self):
        self.pre_hooks: list[PreGenerateHook] = []
        self.post_hooks: list[PostGenerateHook] = []

    def add_pre_hook(self, hook: PreGenerateHook):
        self.pre_hooks.append(hook)

    def add_post_hook(self, hook: PostGenerateHook):
        self.post_hooks.append(hook)

    def run_pre_hooks(self, schema_input: SchemaInput) -> SchemaInput:
        for hook in self.pre_hooks:
            logger.debug("pre-generate hook %s", type(hook).__name__)
            schema_input = hook.pre_generate(schema_input)
        return schema_input

    def run_post_hooks(self, path: str, content: str) -> str:
        """Pipe ``content`` through every post hook; each sees the previous output."""
        for hook in self.post_hooks:
            content = hook.post_generate(path, content)
        return content
