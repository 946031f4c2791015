"""Tests for loading table metadata."""

import json

import pytest

from gql_sdkgen.core.loader import LoaderError, load_tables, tables_from_dicts


@pytest.fixture
def table_data():
    return [
        {
            "name": "User",
            "description": "A registered user",
            "fields": [
                {"name": "id", "type": {"gqlType": "UUID", "isArray": False, "pgType": "uuid"}},
                {"name": "nicknames", "type": {"gqlType": "String", "isArray": True}},
                {"name": "bio", "type": "String"},
            ],
            "relations": {
                "hasMany": [{"fieldName": "posts", "referencedByTable": "Post", "keys": [{"name": "userId"}]}],
                "manyToMany": [{"fieldName": "groups", "rightTable": "Group", "junctionTable": "Membership"}],
            },
            "query": {"all": "allUsers", "one": "userById"},
            "inflection": {"filterType": "UserFilter", "patchField": "userPatch"},
            "constraints": {"primaryKey": [{"name": "user_pkey", "fields": [{"name": "id", "type": "UUID"}]}]},
        },
        {
            "name": "Post",
            "fields": [{"name": "id", "type": {"gqlType": "UUID"}}],
            "relations": {"belongsTo": [{"fieldName": "user", "referencesTable": "User", "keys": ["userId"]}]},
        },
    ]


class TestTablesFromDicts:
    """Tests for tables_from_dicts."""

    def test_fields(self, table_data):
        user = tables_from_dicts(table_data)[0]
        assert user.name == "User"
        assert user.description == "A registered user"
        assert user.get_field("id").type.pg_type == "uuid"
        assert user.get_field("nicknames").type.is_array
        assert user.get_field("bio").type.gql_type == "String"
        assert user.get_field("missing") is None

    def test_relations(self, table_data):
        user, post = tables_from_dicts(table_data)
        assert user.relations.has_many[0].referenced_by_table == "Post"
        assert user.relations.has_many[0].keys == ["userId"]
        assert user.relations.many_to_many[0].junction_table == "Membership"
        assert post.relations.belongs_to[0].references_table == "User"
        assert post.relations.belongs_to[0].keys == ["userId"]

    def test_server_names(self, table_data):
        user, post = tables_from_dicts(table_data)
        assert user.query.all == "allUsers"
        assert user.query.create is None
        assert user.inflection.patch_field == "userPatch"
        assert post.query is None
        assert post.inflection is None

    def test_constraints(self, table_data):
        user = tables_from_dicts(table_data)[0]
        assert user.constraints.primary_key[0].fields[0].name == "id"

    def test_tables_wrapper_object(self, table_data):
        assert len(tables_from_dicts({"tables": table_data})) == 2

    def test_not_a_list(self):
        with pytest.raises(LoaderError, match="must be a list"):
            tables_from_dicts("User")

    def test_missing_name(self):
        with pytest.raises(LoaderError, match="Malformed"):
            tables_from_dicts([{"fields": []}])


class TestLoadTables:
    """Tests for load_tables."""

    def test_reads_file(self, tmp_path, table_data):
        path = tmp_path / "tables.json"
        path.write_text(json.dumps(table_data))
        assert [t.name for t in load_tables(path)] == ["User", "Post"]

    def test_missing_file(self, tmp_path):
        with pytest.raises(LoaderError, match="Cannot read"):
            load_tables(tmp_path / "nope.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "tables.json"
        path.write_text("[{")
        with pytest.raises(LoaderError, match="Invalid JSON"):
            load_tables(path)
