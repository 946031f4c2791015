"""Shared fixtures: a small blog schema with users, posts and comments."""

import pytest

from gql_sdkgen.core.config import GeneratorConfig, config_from_dict
from gql_sdkgen.core.ir import (
    BelongsToRelation,
    Field,
    FieldType,
    HasManyRelation,
    Relations,
    Table,
)
from gql_sdkgen.core.parser import SchemaParser


def make_field(name: str, gql_type: str = "String", is_array: bool = False) -> Field:
    return Field(name=name, type=FieldType(gql_type=gql_type, is_array=is_array))


@pytest.fixture
def user_table():
    return Table(
        name="User",
        fields=[
            make_field("id", "UUID"),
            make_field("name"),
            make_field("email"),
            make_field("createdAt", "Datetime"),
        ],
        relations=Relations(
            has_many=[HasManyRelation(field_name="posts", referenced_by_table="Post", keys=["userId"])]
        ),
        description="A registered user",
    )


@pytest.fixture
def post_table():
    return Table(
        name="Post",
        fields=[
            make_field("id", "UUID"),
            make_field("title"),
            make_field("body"),
            make_field("tags", "String", is_array=True),
            make_field("userId", "UUID"),
        ],
        relations=Relations(
            belongs_to=[BelongsToRelation(field_name="user", references_table="User", keys=["userId"])],
            has_many=[HasManyRelation(field_name="comments", referenced_by_table="Comment", keys=["postId"])],
        ),
    )


@pytest.fixture
def comment_table():
    return Table(
        name="Comment",
        fields=[
            make_field("id", "UUID"),
            make_field("text"),
            make_field("postId", "UUID"),
        ],
        relations=Relations(
            belongs_to=[BelongsToRelation(field_name="post", references_table="Post", keys=["postId"])]
        ),
    )


@pytest.fixture
def tables(user_table, post_table, comment_table):
    return [user_table, post_table, comment_table]


@pytest.fixture
def config():
    return GeneratorConfig()


@pytest.fixture
def scoped_config():
    """Config with post -> user and comment -> post -> user key scopes."""
    return config_from_dict(
        {
            "reactQuery": True,
            "queryKeys": {
                "relationships": {
                    "post": {"parent": "User", "foreignKey": "userId"},
                    "comment": {"parent": "Post", "foreignKey": "postId", "ancestors": ["Post", "User"]},
                }
            },
        }
    )


SCHEMA_SDL = '''
scalar UUID
scalar Cursor
scalar Datetime

enum Role {
  ADMIN
  MEMBER
}

type PageInfo {
  hasNextPage: Boolean!
  hasPreviousPage: Boolean!
  startCursor: Cursor
  endCursor: Cursor
}

type User {
  id: UUID!
  name: String
  email: String
  createdAt: Datetime
}

type UsersConnection {
  nodes: [User]!
  totalCount: Int!
  pageInfo: PageInfo!
}

type Session {
  token: String!
  role: Role
  user: User
}

input LoginInput {
  email: String!
  password: String!
}

type LoginPayload {
  clientMutationId: String
  session: Session
}

type Query {
  users(first: Int): UsersConnection
  user(id: UUID!): User
  currentUser: User
  "Full-text user search"
  searchUsers(term: String!, first: Int): UsersConnection
  serverVersion: String!
  roles: [Role!]!
}

type Mutation {
  createUser(name: String): User
  login(input: LoginInput!): LoginPayload
  logout: Boolean
}
'''


@pytest.fixture
def schema_sdl():
    return SCHEMA_SDL


@pytest.fixture
def schema_parser(schema_sdl):
    return SchemaParser.from_sdl(schema_sdl)


@pytest.fixture
def custom_operations(schema_parser, user_table):
    return schema_parser.custom_operations([user_table])
