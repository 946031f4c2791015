"""Tests for entity shapes, strict selection checks and projection."""

import pytest

from gql_sdkgen.core.parser import SchemaParser
from gql_sdkgen.core.select import (
    CONNECTION,
    OBJECT,
    SelectionError,
    build_registry_shapes,
    build_table_shapes,
    default_selection,
    expand_selection,
    project,
    resolve_selection,
    shapes_from_dict,
    shapes_to_dict,
    typed_dict_definitions,
    validate_selection,
)


TEAM_SDL = """
type Member {
  id: ID!
  handle: String
}

type MembersConnection {
  nodes: [Member]!
  totalCount: Int!
}

type Team {
  id: ID!
  members: MembersConnection!
}

type Query {
  team: Team
}
"""


@pytest.fixture
def shapes(tables):
    return build_table_shapes(tables)


# =============================================================================
# Shapes
# =============================================================================


class TestTableShapes:
    """Tests for build_table_shapes."""

    def test_scalar_fields(self, shapes):
        user = shapes["User"]
        assert user.keys()[:4] == ["id", "name", "email", "createdAt"]
        assert user.primary_key == "id"
        assert user.get("name").type == "str"

    def test_array_field(self, shapes):
        tags = shapes["Post"].get("tags")
        assert tags.type == "List[str]"
        assert tags.is_list

    def test_belongs_to_is_object(self, shapes):
        user = shapes["Post"].get("user")
        assert user.kind == OBJECT
        assert user.target == "User"
        assert user.nullable

    def test_has_many_is_connection(self, shapes):
        posts = shapes["User"].get("posts")
        assert posts.kind == CONNECTION
        assert posts.target == "Post"
        assert not posts.nullable

    def test_relations_to_missing_tables_are_dropped(self, user_table, post_table):
        shapes = build_table_shapes([user_table, post_table])
        assert shapes["Post"].get("comments") is None
        assert shapes["User"].get("posts") is not None

    def test_serialized_form_rebuilds(self, shapes):
        rebuilt = shapes_from_dict(shapes_to_dict(shapes))
        assert rebuilt == shapes


class TestRegistryShapes:
    """Tests for build_registry_shapes."""

    def test_payload_types_reachable_from_roots(self, schema_parser, shapes):
        registry = schema_parser.type_registry()
        extra = build_registry_shapes(registry, ["LoginPayload"], existing=shapes)
        assert set(extra) == {"LoginPayload", "Session"}
        session = extra["Session"]
        assert session.get("token").type == "str"
        assert not session.get("token").nullable
        # User already has a table shape and is referenced, not rebuilt
        assert session.get("user").target == "User"

    def test_root_types_have_no_shape(self, schema_parser):
        registry = schema_parser.type_registry()
        assert build_registry_shapes(registry, ["Query", "Mutation"]) == {}

    def test_connection_type_becomes_connection_field(self):
        registry = SchemaParser.from_sdl(TEAM_SDL).type_registry()
        extra = build_registry_shapes(registry, ["Team"])
        members = extra["Team"].get("members")
        assert members.kind == CONNECTION
        assert members.target == "Member"
        assert "Member" in extra
        assert "MembersConnection" not in extra


# =============================================================================
# Strict validation
# =============================================================================


class TestValidateSelection:
    """Tests for the strict selection check."""

    def test_valid_selection(self, shapes):
        selection = {"id": True, "name": True, "posts": {"select": {"title": True}, "first": 5}}
        assert validate_selection(shapes, "User", selection) == []

    def test_unknown_field_rejected(self, shapes):
        errors = validate_selection(shapes, "User", {"id": True, "bogusField": True})
        assert errors == ["User.bogusField: unknown field"]

    def test_unknown_nested_field_rejected(self, shapes):
        selection = {"posts": {"select": {"title": True, "nope": True}}}
        assert validate_selection(shapes, "User", selection) == ["User.posts.nope: unknown field"]

    def test_relation_needs_nested_select(self, shapes):
        errors = validate_selection(shapes, "Post", {"user": True})
        assert len(errors) == 1
        assert "nested" in errors[0]

    def test_object_relation_rejects_connection_options(self, shapes):
        errors = validate_selection(shapes, "Post", {"user": {"select": {"id": True}, "first": 1}})
        assert errors == ["Post.user.first: unknown option"]

    def test_scalar_takes_bool(self, shapes):
        errors = validate_selection(shapes, "User", {"name": {"select": {}}})
        assert errors == ["User.name: scalar fields take True or False"]

    def test_false_and_none_are_allowed(self, shapes):
        assert validate_selection(shapes, "User", {"id": True, "name": False, "email": None}) == []

    def test_unknown_entity(self, shapes):
        assert validate_selection(shapes, "Ghost", {"id": True}) == ["Ghost: unknown entity 'Ghost'"]

    def test_depth_limit_stops_inspection(self, shapes):
        selection = {"posts": {"select": {"bogus": True}}}
        assert validate_selection(shapes, "User", selection, max_depth=1) == []


class TestSelectionDefaults:
    """Tests for default, expanded and resolved selections."""

    def test_default_is_primary_key(self, shapes):
        assert default_selection(shapes["User"]) == {"id": True}

    def test_default_without_id_uses_first_scalar(self, shapes):
        shape = shapes_from_dict({"Tag": {"fields": {"label": {"type": "str", "kind": "scalar"}}}})["Tag"]
        assert default_selection(shape) == {"label": True}

    def test_expand_selection(self, shapes):
        selection = expand_selection(shapes, "Post", max_depth=1)
        assert selection["title"] is True
        assert selection["user"]["select"]["name"] is True
        assert "posts" not in selection["user"]["select"]

    def test_resolve_none_uses_default(self, shapes):
        assert resolve_selection(shapes, "User", None) == {"id": True}

    def test_resolve_rejects_invalid(self, shapes):
        with pytest.raises(SelectionError) as exc_info:
            resolve_selection(shapes, "User", {"bogusField": True})
        assert exc_info.value.entity == "User"
        assert "bogusField" in str(exc_info.value)


# =============================================================================
# Projection
# =============================================================================


class TestProjection:
    """Tests for project and typed_dict_definitions."""

    def test_projection_keeps_selected_fields(self, shapes):
        projection = project(shapes, "User", {"id": True, "name": True, "email": False})
        assert projection.keys() == ["id", "name"]
        assert "email" not in projection

    def test_nested_projection(self, shapes):
        projection = project(shapes, "Post", {"title": True, "user": {"select": {"name": True}}})
        assert projection["user"].shape.keys() == ["name"]

    def test_describe(self, shapes):
        projection = project(shapes, "User", {"id": True, "posts": {"select": {"title": True}}})
        assert projection.describe() == {
            "id": "Optional[str]",
            "posts": {
                "nodes": [{"title": "Optional[str]"}],
                "totalCount": "int",
                "pageInfo": "PageInfo",
            },
        }

    def test_projection_rejects_invalid(self, shapes):
        with pytest.raises(SelectionError):
            project(shapes, "User", {"bogusField": True})

    def test_bare_relation_past_depth_limit(self, shapes):
        with pytest.raises(SelectionError, match='"select" mapping'):
            project(shapes, "Post", {"user": {"select": {"posts": True}}}, max_depth=1)

    def test_typed_dict_definitions(self, shapes):
        projection = project(
            shapes,
            "User",
            {"id": True, "posts": {"select": {"title": True, "user": {"select": {"name": True}}}}},
        )
        definitions = typed_dict_definitions(projection, "UserResult")
        names = [name for name, _ in definitions]
        assert names == ["UserResultPostsUser", "UserResultPosts", "UserResult"]
        assert dict(definitions[-1][1]) == {
            "id": "Optional[str]",
            "posts": "ConnectionResult[UserResultPosts]",
        }
        assert dict(definitions[1][1])["user"] == "Optional[UserResultPostsUser]"
