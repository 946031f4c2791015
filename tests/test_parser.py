"""Tests for schema parsing with graphql-core."""

import json

import pytest
from graphql import build_schema, introspection_from_schema

from gql_sdkgen.core.ir import EnumRef, InputObjectRef, ListRef, NonNullRef, ObjectRef, ScalarRef
from gql_sdkgen.core.parser import SchemaParseError, SchemaParser, table_operation_names


class TestCustomOperations:
    """Tests for separating custom operations from table CRUD."""

    def test_table_operations_are_excluded(self, custom_operations):
        assert [op.name for op in custom_operations.queries] == [
            "currentUser",
            "searchUsers",
            "serverVersion",
            "roles",
        ]
        assert [op.name for op in custom_operations.mutations] == ["login", "logout"]

    def test_without_tables_everything_is_custom(self, schema_parser):
        custom = schema_parser.custom_operations()
        assert "users" in [op.name for op in custom.queries]
        assert "createUser" in [op.name for op in custom.mutations]

    def test_exact_names_only(self, user_table):
        queries, mutations = table_operation_names([user_table])
        assert queries == {"users", "user"}
        assert mutations == {"createUser", "updateUser", "deleteUser"}

    def test_operation_details(self, custom_operations):
        search = next(op for op in custom_operations.queries if op.name == "searchUsers")
        assert search.kind == "query"
        assert search.description == "Full-text user search"
        assert [arg.name for arg in search.args] == ["term", "first"]
        assert search.args[0].type == NonNullRef(ScalarRef("String"))
        assert search.return_type == ObjectRef("UsersConnection")

    def test_list_of_enums(self, custom_operations):
        roles = next(op for op in custom_operations.queries if op.name == "roles")
        assert roles.return_type == NonNullRef(ListRef(NonNullRef(EnumRef("Role"))))

    def test_input_argument(self, custom_operations):
        login = custom_operations.mutations[0]
        assert login.args[0].type == NonNullRef(InputObjectRef("LoginInput"))

    def test_deprecation(self):
        parser = SchemaParser.from_sdl('type Query { old: Int @deprecated(reason: "use new") }')
        op = parser.operations("query")[0]
        assert op.is_deprecated
        assert op.deprecation_reason == "use new"


class TestTypeRegistry:
    """Tests for the resolved type registry."""

    def test_kinds(self, schema_parser):
        registry = schema_parser.type_registry()
        assert registry["Role"].kind == "ENUM"
        assert [v.name for v in registry["Role"].enum_values] == ["ADMIN", "MEMBER"]
        assert registry["LoginInput"].kind == "INPUT_OBJECT"
        assert [f.name for f in registry["LoginInput"].input_fields] == ["email", "password"]
        assert registry["Session"].kind == "OBJECT"
        assert registry["UUID"].kind == "SCALAR"

    def test_introspection_types_are_skipped(self, schema_parser):
        assert not any(name.startswith("__") for name in schema_parser.type_registry())

    def test_registry_is_read_only(self, schema_parser):
        registry = schema_parser.type_registry()
        with pytest.raises(TypeError):
            registry["Extra"] = registry["Role"]

    def test_union(self):
        parser = SchemaParser.from_sdl(
            "type A { id: ID } type B { id: ID } union AB = A | B type Query { ab: AB }"
        )
        registry = parser.type_registry()
        assert registry["AB"].kind == "UNION"
        assert registry["AB"].possible_types == ["A", "B"]
        assert parser.operations("query")[0].return_type == ObjectRef("AB")

    def test_no_mutation_type(self):
        parser = SchemaParser.from_sdl("type Query { ping: String }")
        assert parser.operations("mutation") == []


class TestSources:
    """Tests for SDL and introspection inputs."""

    def test_invalid_sdl(self):
        with pytest.raises(SchemaParseError):
            SchemaParser.from_sdl("type Query {")

    def test_introspection_result(self, schema_sdl, user_table):
        data = {"data": introspection_from_schema(build_schema(schema_sdl))}
        custom = SchemaParser.from_introspection(data).custom_operations([user_table])
        assert [op.name for op in custom.mutations] == ["login", "logout"]

    def test_from_path_sdl(self, tmp_path, schema_sdl):
        path = tmp_path / "schema.graphql"
        path.write_text(schema_sdl)
        assert SchemaParser.from_path(path).operations("query")

    def test_from_path_json(self, tmp_path, schema_sdl):
        path = tmp_path / "schema.json"
        path.write_text(json.dumps(introspection_from_schema(build_schema(schema_sdl))))
        assert SchemaParser.from_path(path).type_registry()["Role"].kind == "ENUM"

    def test_from_path_missing(self, tmp_path):
        with pytest.raises(SchemaParseError, match="Cannot read"):
            SchemaParser.from_path(tmp_path / "missing.graphql")

    def test_invalid_introspection(self):
        with pytest.raises(SchemaParseError):
            SchemaParser.from_introspection({"data": {}})
