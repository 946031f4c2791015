"""Tests for query key planning and the emitted key modules."""

import ast

import pytest

from gql_sdkgen.core.config import EntityRelationship, QueryKeyConfig
from gql_sdkgen.core.ir import Argument, NonNullRef, Operation, ScalarRef
from gql_sdkgen.core.query_keys import (
    build_children_map,
    build_entity_key_plan,
    generate_invalidation_module,
    generate_mutation_keys_module,
    generate_query_keys_module,
    get_ancestors,
    get_descendants,
    get_scope_chain,
    inline_entity_keys,
)


def run_module(source: str) -> dict:
    """Execute emitted module source and return its namespace."""
    namespace: dict = {}
    exec(compile(source, "<generated>", "exec"), namespace)
    return namespace


@pytest.fixture
def relationships():
    return {
        "post": EntityRelationship(parent="User", foreign_key="userId"),
        "comment": EntityRelationship(parent="Post", foreign_key="postId"),
    }


@pytest.fixture
def key_config(relationships):
    return QueryKeyConfig(relationships=relationships)


@pytest.fixture
def keys(tables, key_config):
    return run_module(generate_query_keys_module(tables, [], key_config))


# =============================================================================
# Planning
# =============================================================================


class TestPlanning:
    """Tests for ancestor chains and scope planning."""

    def test_ancestors_follow_parents(self, relationships):
        assert get_ancestors("Comment", relationships) == ["Post", "User"]
        assert get_ancestors("Post", relationships) == ["User"]
        assert get_ancestors("User", relationships) == []

    def test_explicit_ancestors_win(self):
        relationships = {"comment": EntityRelationship(parent="Post", foreign_key="postId", ancestors=["Post", "Org"])}
        assert get_ancestors("comment", relationships) == ["Post", "Org"]

    def test_parent_loop_terminates(self):
        relationships = {
            "a": EntityRelationship(parent="B", foreign_key="bId"),
            "b": EntityRelationship(parent="A", foreign_key="aId"),
        }
        assert get_ancestors("A", relationships) == ["B"]

    def test_scope_chain_deduplicates_parent(self, relationships):
        chain = get_scope_chain("Comment", relationships)
        assert [(link.parent, link.foreign_key) for link in chain] == [("Post", "postId"), ("User", "userId")]
        assert chain[0].method_name == "by_post"
        assert chain[0].param_name == "post_id"

    def test_plan_without_scopes(self, post_table, relationships):
        plan = build_entity_key_plan(post_table, relationships, scoped=False)
        assert not plan.scoped
        assert plan.root == ("post",)

    def test_plan_with_prefix(self, user_table):
        plan = build_entity_key_plan(user_table, {}, prefix="blog")
        assert plan.root == ("blog", "user")
        assert plan.keys_name == "user_keys"

    def test_descendants(self, relationships):
        children = build_children_map(relationships)
        assert get_descendants("User", children) == ["post", "comment"]
        assert get_descendants("Comment", children) == []


# =============================================================================
# query_keys.py
# =============================================================================


class TestQueryKeysModule:
    """Tests for the emitted query key factory."""

    def test_root_keys(self, keys):
        assert keys["user_keys"].all == ("user",)
        assert keys["query_keys"].user is keys["user_keys"]

    def test_unscoped_list_and_detail(self, keys):
        user_keys = keys["user_keys"]
        assert user_keys.lists() == ("user", "list")
        assert user_keys.list({"first": 10}) == ("user", "list", {"first": 10})
        assert user_keys.list() == ("user", "list", {})
        assert user_keys.detail("u1") == ("user", "detail", "u1")

    def test_scoped_keys(self, keys):
        post_keys = keys["post_keys"]
        assert post_keys.by_user("u1") == ("post", {"userId": "u1"})
        assert post_keys.scoped({"userId": "u1"}) == post_keys.by_user("u1")
        assert post_keys.scoped({}) == post_keys.all
        assert post_keys.scoped() == ("post",)
        assert post_keys.list({"first": 10}, {"userId": "u1"}) == ("post", {"userId": "u1"}, "list", {"first": 10})

    def test_most_specific_scope_wins(self, keys):
        comment_keys = keys["comment_keys"]
        assert comment_keys.scoped({"postId": "p1", "userId": "u1"}) == ("comment", {"postId": "p1"})
        assert comment_keys.scoped({"userId": "u1"}) == ("comment", {"userId": "u1"})
        assert comment_keys.detail("c1", {"postId": "p1"}) == ("comment", {"postId": "p1"}, "detail", "c1")

    def test_scoped_keys_share_entity_prefix(self, keys):
        post_keys = keys["post_keys"]
        scoped = post_keys.list(None, {"userId": "u1"})
        assert scoped[: len(post_keys.all)] == post_keys.all

    def test_custom_query_keys(self, tables, key_config):
        ops = [
            Operation(name="currentUser", kind="query"),
            Operation(
                name="searchUsers",
                kind="query",
                args=[Argument("term", NonNullRef(ScalarRef("String")))],
            ),
        ]
        keys = run_module(generate_query_keys_module(tables, ops, key_config, prefix="blog"))
        custom = keys["custom_query_keys"]
        assert custom.current_user() == ("blog", "currentUser")
        assert custom.search_users({"term": "ad"}) == ("blog", "searchUsers", {"term": "ad"})
        assert keys["query_keys"].custom is custom

    def test_scopes_literal(self, tables, key_config):
        source = generate_query_keys_module(tables, [], key_config)
        assert "QueryKeyScope = Literal['user', 'post', 'comment']" in source

    def test_empty_module_is_valid(self):
        source = generate_query_keys_module([], [], QueryKeyConfig())
        ast.parse(source)
        assert "QueryKeyScope = str" in source


# =============================================================================
# mutation_keys.py and invalidation.py
# =============================================================================


class TestMutationKeysModule:
    """Tests for the emitted mutation keys."""

    def test_entity_mutation_keys(self, tables):
        keys = run_module(generate_mutation_keys_module(tables, []))
        user = keys["user_mutation_keys"]
        assert user.create() == ("mutation", "user", "create")
        assert user.update("u1") == ("mutation", "user", "update", "u1")
        assert user.delete("u1") == ("mutation", "user", "delete", "u1")

    def test_custom_mutation_keys(self, tables):
        keys = run_module(generate_mutation_keys_module(tables, [Operation(name="login", kind="mutation")], "blog"))
        assert keys["mutation_keys"].custom.login() == ("blog", "mutation", "login")


class TestInvalidationModule:
    """Tests for the emitted invalidation helpers."""

    def test_module_parses(self, tables, key_config):
        ast.parse(generate_invalidation_module(tables, key_config))

    def test_cascade_reaches_descendants(self, tables, key_config):
        source = generate_invalidation_module(tables, key_config)
        assert "def with_children(self, cache: QueryCache, id: Any) -> None:" in source
        assert "Cascades to: post, comment" in source
        assert "cache.invalidate(post_keys.by_user(id))" in source
        assert "cache.invalidate(comment_keys.by_user(id))" in source
        assert "cache.invalidate(comment_keys.by_post(id))" in source

    def test_cascade_helpers_can_be_disabled(self, tables, relationships):
        config = QueryKeyConfig(relationships=relationships, generate_cascade_helpers=False)
        assert "with_children" not in generate_invalidation_module(tables, config)

    def test_scoped_entities_take_scope(self, tables, key_config):
        source = generate_invalidation_module(tables, key_config)
        assert "def lists(self, cache: QueryCache, scope: Optional[PostScope] = None) -> None:" in source
        assert "from .query_keys import PostScope, CommentScope" in source


def test_inline_entity_keys(post_table):
    source = "\n".join(["from typing import Any, Dict, Optional, Tuple", ""] + inline_entity_keys(post_table, "blog"))
    keys = run_module(source)
    assert keys["POST_KEY"] == ("blog", "post")
    assert keys["_list_key"]({"first": 1}) == ("blog", "post", "list", {"first": 1})
    assert keys["_detail_key"]("p1") == ("blog", "post", "detail", "p1")
