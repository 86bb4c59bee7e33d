"""
Integration tests for compiling complete schemas.

Tests cover:
- End-to-end compile of realistic schemas
- Determinism of both outputs
- Storage rules observed through the public API
- The CLI writing compiled schemas to disk
"""

import logging

import pytest
from graphql import parse

from schemagen import (
    GraphQLCoreBackend,
    GenerationError,
    NoSchemaError,
    SchemaGenError,
    compile_schema,
)
from schemagen.tools.schema_cli import main

BLOG = """
interface Node {
    id: ID!
}

enum PostStatus {
    DRAFT
    PUBLISHED
}

type Author implements Node {
    id: ID!
    name: String! @search(by: [hash])
    email: String @search(by: [exact])
    posts: [Post] @hasInverse(field: "author")
}

type Post implements Node {
    id: ID!
    title: String! @search(by: [term, fulltext])
    text: String @search(by: [fulltext])
    status: PostStatus
    score: Float @search
    published: DateTime @search(by: [day])
    author: Author! @hasInverse(field: "posts")
    related: [Post]
}

type Comment implements Node {
    id: ID!
    text: String
    on: Post!
    by: Author
}
"""


def predicate_lines(text):
    return [line for line in text.splitlines() if line.endswith(" .")]


class TestCompileFlow:
    """End-to-end tests for compile_schema."""

    def test_blog_dgraph_schema(self):
        """A realistic schema compiles to the expected Dgraph schema."""
        compiled = compile_schema(BLOG)

        assert compiled.definitions == ("Node", "PostStatus", "Author", "Post", "Comment")
        assert compiled.dgraph_schema == (
            "type Node {\n"
            "}\n"
            "type Author {\n"
            "  name: string\n"
            "  email: string\n"
            "  posts: [uid]\n"
            "}\n"
            "type Post {\n"
            "  title: string\n"
            "  text: string\n"
            "  status: string\n"
            "  score: float\n"
            "  published: dateTime\n"
            "  author: uid\n"
            "  related: [uid]\n"
            "}\n"
            "type Comment {\n"
            "  text: string\n"
            "  on: uid\n"
            "  by: uid\n"
            "}\n"
            "author: uid .\n"
            "by: uid .\n"
            "email: string @index(exact) .\n"
            "name: string @index(hash) .\n"
            "on: uid .\n"
            "posts: [uid] .\n"
            "published: dateTime @index(day) .\n"
            "related: [uid] .\n"
            "score: float @index(float) .\n"
            "status: string @index(exact) .\n"
            "text: string @index(fulltext) .\n"
            "title: string @index(fulltext,term) .\n"
        )

    def test_blog_graphql_schema(self):
        """The GraphQL schema holds the user types and the generated API."""
        compiled = compile_schema(BLOG)
        text = compiled.graphql_schema

        assert "  getPost(id: ID!): Post\n" in text
        assert "  addComment(input: [AddCommentInput!]!): AddCommentPayload\n" in text
        assert "  title: StringFullTextFilter_StringTermFilter\n" in text
        assert "  status: PostStatus\n" not in text.split("input PostFilter {")[1].split("}")[0]

        schema = GraphQLCoreBackend().validate(parse(text))
        assert schema.get_type("PostFilter") is not None

    def test_deterministic(self):
        """Compiling twice gives byte-identical output."""
        first = compile_schema(BLOG)
        second = compile_schema(BLOG)

        assert first.dgraph_schema == second.dgraph_schema
        assert first.graphql_schema == second.graphql_schema

    def test_predicates_sorted(self):
        """Predicates and their indexes are sorted."""
        compiled = compile_schema(BLOG)
        lines = predicate_lines(compiled.dgraph_schema)
        names = [line.split(":")[0] for line in lines]

        assert names == sorted(names)
        for line in lines:
            if "@index(" in line:
                kinds = line.split("@index(")[1].split(")")[0].split(",")
                assert kinds == sorted(kinds)

    def test_id_never_stored(self):
        """ID fields never appear in the Dgraph schema."""
        compiled = compile_schema(BLOG)

        assert "id:" not in compiled.dgraph_schema

    def test_person_example(self):
        """The Person schema compiles to its exact Dgraph schema."""
        compiled = compile_schema("type Person { name: String @search(by: [exact]) age: Int }")

        assert "type Person {\n  name: string\n  age: int\n}\n" in compiled.dgraph_schema
        assert "name: string @index(exact) ." in predicate_lines(compiled.dgraph_schema)
        assert "age: int ." in predicate_lines(compiled.dgraph_schema)

    def test_shared_title_example(self):
        """A predicate shared by two types merges their indexes."""
        compiled = compile_schema(
            """
            type Post { title: String @search(by: [term]) }
            type Book { title: String }
            """
        )

        assert predicate_lines(compiled.dgraph_schema) == ["title: string @index(term) ."]

    def test_enum_always_exact(self):
        """Enum predicates carry the exact index without @search."""
        compiled = compile_schema("enum Size { S M L } type Shirt { size: Size }")

        assert predicate_lines(compiled.dgraph_schema) == ["size: string @index(exact) ."]

    def test_conflicting_predicates_fail(self):
        """Conflicting storage types fail instead of picking one."""
        with pytest.raises(GenerationError):
            compile_schema("type Post { rank: Int } type Team { rank: Float }")

    def test_empty_input(self):
        """Empty input yields a single error."""
        with pytest.raises(NoSchemaError) as exc_info:
            compile_schema("")

        assert len(exc_info.value.errors) == 1
        assert str(exc_info.value) == "No schema specified"

    @pytest.mark.parametrize(
        "sdl",
        [
            "type {",
            "scalar Email",
            "type Person { name: String } type Person { age: Int }",
            "type Person { name: String @search(by: [int]) }",
        ],
    )
    def test_no_partial_output(self, sdl):
        """Every failure raises; nothing is returned."""
        with pytest.raises(SchemaGenError):
            compile_schema(sdl)

    def test_logs_summary(self, caplog):
        """A successful compile logs a summary."""
        with caplog.at_level(logging.INFO, logger="schemagen"):
            compile_schema("type Person { name: String }")

        assert any("Compiled schema with 1 definition(s)" in r.message for r in caplog.records)

    def test_logs_conflict(self, caplog):
        """Predicate conflicts are logged as errors."""
        with caplog.at_level(logging.ERROR, logger="schemagen"):
            with pytest.raises(GenerationError):
                compile_schema("type Post { rank: Int } type Team { rank: Float }")

        assert any(r.levelno == logging.ERROR for r in caplog.records)


class TestCLIFlow:
    """End-to-end tests for the CLI."""

    @pytest.fixture(autouse=True)
    def restore_logging(self):
        """Restore the root logger after main() configures logging."""
        logger = logging.getLogger()
        handlers, level = list(logger.handlers), logger.level
        yield
        logger.handlers = handlers
        logger.setLevel(level)

    def test_compile_to_directory(self, tmp_path, monkeypatch):
        """Compiled schemas written by the CLI match the library output."""
        monkeypatch.setenv("SCHEMAGEN_DGRAPH_FILENAME", "blog.dgraph")
        source = tmp_path / "blog.graphql"
        source.write_text(BLOG)
        out_dir = tmp_path / "out"

        code = main(["--log-level", "warning", "compile", str(source), "--out-dir", str(out_dir)])

        compiled = compile_schema(BLOG)
        assert code == 0
        assert (out_dir / "blog.dgraph").read_text() == compiled.dgraph_schema
        assert (out_dir / "schema.graphql").read_text() == compiled.graphql_schema

    def test_check_then_fix(self, tmp_path, capsys):
        """check reports errors until the schema is fixed."""
        source = tmp_path / "schema.graphql"
        source.write_text("type Person { name: String @search(by: [hash, exact]) }")

        assert main(["check", str(source)]) == 1
        assert "can't be used together" in capsys.readouterr().out

        source.write_text("type Person { name: String @search(by: [exact]) }")

        assert main(["check", str(source)]) == 0
        assert capsys.readouterr().out == "Schema is valid\n"
