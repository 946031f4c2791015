"""Tests for the command-line interface."""

import json

import pytest
from click.testing import CliRunner

from gql_sdkgen.cli import main

TABLES = [
    {
        "name": "User",
        "fields": [
            {"name": "id", "type": {"gqlType": "UUID"}},
            {"name": "name", "type": {"gqlType": "String"}},
        ],
    },
    {
        "name": "Post",
        "fields": [
            {"name": "id", "type": {"gqlType": "UUID"}},
            {"name": "title", "type": {"gqlType": "String"}},
        ],
    },
]


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def tables_file(tmp_path):
    path = tmp_path / "tables.json"
    path.write_text(json.dumps(TABLES))
    return path


@pytest.fixture
def schema_file(tmp_path, schema_sdl):
    path = tmp_path / "schema.graphql"
    path.write_text(schema_sdl)
    return path


class TestGenerate:
    def test_writes_package(self, runner, tmp_path, tables_file):
        out = tmp_path / "sdk"
        result = runner.invoke(main, ["generate", "-t", str(tables_file), "-o", str(out)])
        assert result.exit_code == 0, result.output
        assert "Done! Generated" in result.output
        assert (out / "__init__.py").exists()
        assert (out / "models" / "user.py").exists()
        assert not (out / "hooks").exists()

    def test_dry_run_writes_nothing(self, runner, tmp_path, tables_file, schema_file):
        out = tmp_path / "sdk"
        result = runner.invoke(
            main,
            ["generate", "-t", str(tables_file), "-s", str(schema_file), "-o", str(out), "--dry-run"],
        )
        assert result.exit_code == 0, result.output
        assert "would write custom_queries.py" in result.output
        assert "Dry run:" in result.output
        assert not out.exists()

    def test_hooks_flag(self, runner, tmp_path, tables_file):
        out = tmp_path / "sdk"
        result = runner.invoke(main, ["generate", "-t", str(tables_file), "-o", str(out), "--hooks"])
        assert result.exit_code == 0, result.output
        assert (out / "hooks" / "user.py").exists()

    def test_config_file(self, runner, tmp_path, tables_file):
        out = tmp_path / "from-config"
        config_path = tmp_path / "gql-sdkgen.json"
        config_path.write_text(json.dumps({"output": str(out), "tables": {"exclude": ["Post"]}}))
        result = runner.invoke(main, ["generate", "-t", str(tables_file), "-c", str(config_path)])
        assert result.exit_code == 0, result.output
        assert (out / "models" / "user.py").exists()
        assert not (out / "models" / "post.py").exists()

    def test_verbose_counts(self, runner, tables_file, schema_file):
        result = runner.invoke(
            main, ["generate", "-t", str(tables_file), "-s", str(schema_file), "--dry-run", "-v"]
        )
        assert result.exit_code == 0, result.output
        assert "Custom mutations: 2" in result.output

    def test_invalid_config(self, runner, tmp_path, tables_file):
        config_path = tmp_path / "bad.json"
        config_path.write_text(json.dumps({"notAnOption": True}))
        result = runner.invoke(main, ["generate", "-t", str(tables_file), "-c", str(config_path)])
        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_invalid_tables(self, runner, tmp_path):
        path = tmp_path / "tables.json"
        path.write_text("{not json")
        result = runner.invoke(main, ["generate", "-t", str(path), "--dry-run"])
        assert result.exit_code == 1
        assert "Invalid JSON" in result.output

    def test_missing_tables_option(self, runner):
        result = runner.invoke(main, ["generate"])
        assert result.exit_code == 2


class TestInspect:
    def test_summary(self, runner, tables_file, schema_file):
        result = runner.invoke(main, ["inspect", "-t", str(tables_file), "-s", str(schema_file)])
        assert result.exit_code == 0, result.output
        assert "Tables: 2" in result.output
        assert "Custom queries: 4" in result.output
        assert "currentUser" not in result.output

    def test_verbose_lists_operations(self, runner, tables_file, schema_file):
        result = runner.invoke(main, ["inspect", "-t", str(tables_file), "-s", str(schema_file), "-v"])
        assert result.exit_code == 0, result.output
        assert "  User (2 fields)" in result.output
        assert "  currentUser" in result.output
        assert "  login" in result.output

    def test_bad_schema(self, runner, tmp_path, tables_file):
        path = tmp_path / "schema.graphql"
        path.write_text("type Query {")
        result = runner.invoke(main, ["inspect", "-t", str(tables_file), "-s", str(path)])
        assert result.exit_code == 1
        assert "Error:" in result.output
