"""Command-line interface for gql-sdkgen."""

import logging
from pathlib import Path

import click

from .core.config import ConfigError, GeneratorConfig, load_config
from .core.generator import CodeGenerator, GenerationError
from .core.ir import CustomOperations
from .core.loader import LoaderError, load_tables
from .core.parser import SchemaParseError, SchemaParser
from .core.writer import write_files


def _setup_logging(verbose: bool):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _load_inputs(tables_path: str, schema_path: str | None):
    tables = load_tables(tables_path)
    custom = CustomOperations()
    if schema_path:
        custom = SchemaParser.from_path(schema_path).custom_operations(tables)
    return tables, custom


@click.group()
@click.version_option(package_name="gql-sdkgen")
def main():
    """Typed Python SDK generator for table-oriented GraphQL APIs.

    Generates models, cache keys and select types from table metadata
    and an optional GraphQL schema.
    """
    pass


@main.command()
@click.option(
    "--tables",
    "-t",
    required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="Path to the table metadata JSON.",
)
@click.option(
    "--schema",
    "-s",
    type=click.Path(exists=True, dir_okay=False),
    help="GraphQL SDL file or introspection JSON with the custom operations.",
)
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    help="Generator config (.json or .toml).",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(file_okay=False),
    help="Output directory (overrides the config).",
)
@click.option(
    "--hooks/--no-hooks",
    default=None,
    help="Generate the interactive accessors (overrides the config).",
)
@click.option(
    "--template-dir",
    type=click.Path(exists=True, file_okay=False),
    help="Directory with template overrides.",
)
@click.option("--dry-run", is_flag=True, help="Generate without writing files.")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
def generate(
    tables: str,
    schema: str | None,
    config_path: str | None,
    output: str | None,
    hooks: bool | None,
    template_dir: str | None,
    dry_run: bool,
    verbose: bool,
):
    """Generate an SDK package.

    Examples:

        gql-sdkgen generate --tables tables.json --output ./generated

        gql-sdkgen generate -t tables.json -s schema.graphql -c gql-sdkgen.json --hooks
    """
    _setup_logging(verbose)
    try:
        config = load_config(config_path) if config_path else GeneratorConfig()
        overrides = {}
        if output:
            overrides["output"] = output
        if hooks is not None:
            overrides["hooks"] = hooks
        if overrides:
            config = config.model_copy(update=overrides)

        click.echo("Loading schema...")
        table_list, custom = _load_inputs(tables, schema)
        if verbose:
            click.echo(f"  Tables: {len(table_list)}")
            click.echo(f"  Custom queries: {len(custom.queries)}")
            click.echo(f"  Custom mutations: {len(custom.mutations)}")

        click.echo("Generating code...")
        result = CodeGenerator(config, template_dir=template_dir).generate(table_list, custom)
    except (ConfigError, LoaderError, SchemaParseError, GenerationError) as e:
        raise click.ClickException(str(e)) from e

    stats = result.stats
    click.echo(f"  Tables: {stats.tables}")
    click.echo(f"  Model files: {stats.model_files}")
    click.echo(f"  Interactive files: {stats.interactive_files}")
    click.echo(f"  Custom queries: {stats.custom_queries}")
    click.echo(f"  Custom mutations: {stats.custom_mutations}")

    if dry_run:
        for generated in result.files:
            click.echo(f"  would write {generated.path}")
        click.echo(f"Dry run: {stats.total_files} files not written.")
        return

    output_path = Path(config.output).resolve()
    write_files(result.files, output_path)
    click.echo(f"Done! Generated {stats.total_files} files in {output_path}")


@main.command()
@click.option(
    "--tables",
    "-t",
    required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="Path to the table metadata JSON.",
)
@click.option(
    "--schema",
    "-s",
    type=click.Path(exists=True, dir_okay=False),
    help="GraphQL SDL file or introspection JSON.",
)
@click.option("--verbose", "-v", is_flag=True, help="List every table and operation.")
def inspect(tables: str, schema: str | None, verbose: bool):
    """Print what a generation run would cover."""
    _setup_logging(False)
    try:
        table_list, custom = _load_inputs(tables, schema)
    except (LoaderError, SchemaParseError) as e:
        raise click.ClickException(str(e)) from e

    click.echo(f"Tables: {len(table_list)}")
    if verbose:
        for table in table_list:
            click.echo(f"  {table.name} ({len(table.fields)} fields)")
    click.echo(f"Custom queries: {len(custom.queries)}")
    if verbose:
        for op in custom.queries:
            click.echo(f"  {op.name}")
    click.echo(f"Custom mutations: {len(custom.mutations)}")
    if verbose:
        for op in custom.mutations:
            click.echo(f"  {op.name}")


if __name__ == "__main__":
    main()
