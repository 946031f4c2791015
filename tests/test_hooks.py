"""Tests for generation hooks."""

import pytest

from gql_sdkgen.core.config import GeneratorConfig, NamePatterns
from gql_sdkgen.core.hooks import (
    AddHeaderHook,
    FilterTablesHook,
    HookRunner,
    PostGenerateHook,
    PreGenerateHook,
    hook_from_config,
)
from gql_sdkgen.core.ir import CustomOperations, Operation, SchemaInput, Table


@pytest.fixture
def sample_input(tables):
    """Schema input with internal tables and operations mixed in."""
    return SchemaInput(
        tables=tables + [Table(name="_Migration"), Table(name="AuditLog")],
        custom_operations=CustomOperations(
            queries=[Operation(name="currentUser", kind="query"), Operation(name="_debug", kind="query")],
            mutations=[Operation(name="login", kind="mutation"), Operation(name="resetAll", kind="mutation")],
        ),
    )


class TestAddHeaderHook:
    """Tests for AddHeaderHook."""

    def test_adds_header(self):
        hook = AddHeaderHook("# Auto-generated")
        result = hook.post_generate("types.py", "class User:\n    pass")
        assert result.startswith("# Auto-generated\n\n")

    def test_preserves_content(self):
        hook = AddHeaderHook("# Header")
        content = "class User:\n    pass"
        result = hook.post_generate("types.py", content)
        assert content in result

    def test_handles_header_with_newline(self):
        hook = AddHeaderHook("# Header\n")
        result = hook.post_generate("test.py", "code")
        # Should not double-up newlines
        assert result == "# Header\n\ncode"

    def test_skips_non_python_files(self):
        hook = AddHeaderHook("# Header")
        assert hook.post_generate("README.md", "text") == "text"


class TestFilterTablesHook:
    """Tests for FilterTablesHook."""

    def test_exclude_prefix(self, sample_input):
        hook = FilterTablesHook(tables=NamePatterns(exclude=["_*"]))
        result = hook.pre_generate(sample_input)

        table_names = [t.name for t in result.tables]
        assert "User" in table_names
        assert "AuditLog" in table_names
        assert "_Migration" not in table_names

    def test_exclude_suffix(self, sample_input):
        hook = FilterTablesHook(tables=NamePatterns(exclude=["*Log"]))
        result = hook.pre_generate(sample_input)
        assert "AuditLog" not in [t.name for t in result.tables]

    def test_include_subset(self, sample_input):
        hook = FilterTablesHook(tables=NamePatterns(include=["User", "Post"]))
        result = hook.pre_generate(sample_input)
        assert [t.name for t in result.tables] == ["User", "Post"]

    def test_filters_operations(self, sample_input):
        hook = FilterTablesHook(
            queries=NamePatterns(system_exclude=["_debug"]),
            mutations=NamePatterns(exclude=["reset*"]),
        )
        result = hook.pre_generate(sample_input)
        assert [op.name for op in result.custom_operations.queries] == ["currentUser"]
        assert [op.name for op in result.custom_operations.mutations] == ["login"]

    def test_excludes_fields(self, sample_input):
        hook = FilterTablesHook(exclude_fields=["created*"])
        result = hook.pre_generate(sample_input)
        user = result.tables[0]
        assert user.get_field("createdAt") is None
        assert user.get_field("name") is not None
        # The input tables are left untouched
        assert sample_input.tables[0].get_field("createdAt") is not None

    def test_from_config(self, sample_input):
        config = GeneratorConfig(tables=NamePatterns(exclude=["_*", "Audit*"]))
        result = hook_from_config(config).pre_generate(sample_input)
        assert [t.name for t in result.tables] == ["User", "Post", "Comment"]


class TestHookRunner:
    """Tests for HookRunner."""

    def test_run_pre_hooks(self, sample_input):
        runner = HookRunner()
        runner.add_pre_hook(FilterTablesHook(tables=NamePatterns(exclude=["_*"])))

        result = runner.run_pre_hooks(sample_input)
        assert "_Migration" not in [t.name for t in result.tables]

    def test_run_post_hooks(self):
        runner = HookRunner()
        runner.add_post_hook(AddHeaderHook("# Header"))

        result = runner.run_post_hooks("test.py", "code")
        assert result.startswith("# Header")

    def test_multiple_pre_hooks(self, sample_input):
        runner = HookRunner()
        runner.add_pre_hook(FilterTablesHook(tables=NamePatterns(exclude=["_*", "*Log"])))

        class CountTablesHook:
            def pre_generate(self, schema_input):
                self.count = len(schema_input.tables)
                return schema_input

        counter = CountTablesHook()
        runner.add_pre_hook(counter)

        runner.run_pre_hooks(sample_input)
        assert counter.count == 3  # User, Post and Comment (after filtering)

    def test_multiple_post_hooks(self):
        runner = HookRunner()
        runner.add_post_hook(AddHeaderHook("# Line 1"))
        runner.add_post_hook(AddHeaderHook("# Line 0"))

        result = runner.run_post_hooks("test.py", "code")
        # Second hook wraps the first
        assert result.index("# Line 0") < result.index("# Line 1")


class TestProtocolCompliance:
    """Tests for protocol compliance."""

    def test_add_header_is_post_hook(self):
        assert isinstance(AddHeaderHook("header"), PostGenerateHook)

    def test_filter_tables_is_pre_hook(self):
        assert isinstance(FilterTablesHook(), PreGenerateHook)

    def test_custom_pre_hook(self):
        class CustomPreHook:
            def pre_generate(self, schema_input):
                return schema_input

        assert isinstance(CustomPreHook(), PreGenerateHook)

    def test_custom_post_hook(self):
        class CustomPostHook:
            def post_generate(self, path, content):
                return content

        assert isinstance(CustomPostHook(), PostGenerateHook)
