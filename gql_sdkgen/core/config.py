"""Generator configuration.

Config files are JSON or TOML and may spell keys in camelCase (as the
table metadata does) or snake_case:

    {
        "output": "./generated",
        "tables": {"include": ["*"], "exclude": ["_*"]},
        "reactQuery": true,
        "queryKeys": {
            "relationships": {
                "post": {"parent": "user", "foreignKey": "userId"}
            }
        }
    }
"""

import json
import tomllib
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel


class ConfigError(Exception):
    """Raised when a config file cannot be read or validated."""


class _ConfigModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class EntityRelationship(_ConfigModel):
    """Parent link of one entity, keyed by the lower-cased entity name."""
    parent: str
    foreign_key: str
    ancestors: list[str] = Field(default_factory=list)


class QueryKeyConfig(_ConfigModel):
    style: Literal["hierarchical", "flat"] = "hierarchical"
    relationships: dict[str, EntityRelationship] = Field(default_factory=dict)
    generate_scoped_keys: bool = True
    generate_cascade_helpers: bool = True
    generate_mutation_keys: bool = True

    @property
    def centralized(self) -> bool:
        return self.style == "hierarchical"


class NamePatterns(_ConfigModel):
    """Glob include/exclude lists for table and operation names."""
    include: list[str] = Field(default_factory=lambda: ["*"])
    exclude: list[str] = Field(default_factory=list)
    system_exclude: list[str] = Field(default_factory=list)

    def matches(self, name: str) -> bool:
        if any(fnmatchcase(name, pattern) for pattern in self.system_exclude):
            return False
        if any(fnmatchcase(name, pattern) for pattern in self.exclude):
            return False
        return any(fnmatchcase(name, pattern) for pattern in self.include)


class CodegenOptions(_ConfigModel):
    max_field_depth: int = 2
    skip_query_field: bool = True
    strict_select_depth: int = 10
    unknown_scalar: Literal["name", "any"] = "name"


class GeneratorConfig(_ConfigModel):
    """Top-level generator configuration."""
    output: str = "./generated"
    # Default endpoint baked into the generated client module
    endpoint: str = "http://localhost:5000/graphql"
    tables: NamePatterns = Field(default_factory=NamePatterns)
    queries: NamePatterns = Field(
        default_factory=lambda: NamePatterns(system_exclude=["_meta", "query"])
    )
    mutations: NamePatterns = Field(default_factory=NamePatterns)
    exclude_fields: list[str] = Field(default_factory=list)
    # Interactive accessors (cache-aware query/mutation helpers)
    hooks: bool = Field(default=False, alias="reactQuery")
    query_keys: QueryKeyConfig = Field(default_factory=QueryKeyConfig)
    codegen: CodegenOptions = Field(default_factory=CodegenOptions)
    scalars: dict[str, str] = Field(default_factory=dict)
    query_key_prefix: str | None = None
    template_dir: str | None = None


def load_config(path: str | Path) -> GeneratorConfig:
    """Load a config file (``.json`` or ``.toml``)."""
    path = Path(path)
    try:
        raw = path.read_bytes()
    except OSError as e:
        raise ConfigError(f"Cannot read config {path}: {e}") from e

    try:
        if path.suffix == ".toml":
            data = tomllib.loads(raw.decode("utf-8"))
        else:
            data = json.loads(raw)
    except (ValueError, UnicodeDecodeError) as e:
        raise ConfigError(f"Cannot parse config {path}: {e}") from e

    return config_from_dict(data, source=str(path))


def config_from_dict(data: dict, source: str = "<config>") -> GeneratorConfig:
    try:
        return GeneratorConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config {source}:\n{e}") from e
