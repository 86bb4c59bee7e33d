"""
Unit tests for the schemagen CLI.

Tests cover:
- compile and check commands
- Text and JSON output
- Exit codes for schema and internal errors
- Reading from stdin and writing to a directory
"""

import io
import json
import logging

import pytest

from schemagen.config import Settings
from schemagen.errors import PreValidationError, PredicateConflictError
from schemagen.tools.schema_cli import (
    EXIT_INTERNAL_ERROR,
    EXIT_OK,
    EXIT_SCHEMA_ERROR,
    SchemaCLI,
    error_report,
    main,
)

PERSON = "type Person { name: String @search(by: [exact]) age: Int }\n"
CONFLICT = "type Post { count: Int } type Tag { count: String }\n"


@pytest.fixture(autouse=True)
def restore_logging():
    """Restore the root logger after main() configures logging."""
    logger = logging.getLogger()
    handlers, level = list(logger.handlers), logger.level
    yield
    logger.handlers = handlers
    logger.setLevel(level)


@pytest.fixture
def schema_file(tmp_path):
    """Write schema text to a file and return its path."""

    def write(text, name="schema.graphql"):
        path = tmp_path / name
        path.write_text(text)
        return str(path)

    return write


class TestSchemaCLI:
    """Tests for the SchemaCLI class."""

    def test_render(self):
        """render selects the requested schema."""
        cli = SchemaCLI(Settings())
        compiled = cli.compile(PERSON)

        assert cli.render(compiled, "dgraph") == compiled.dgraph_schema
        assert cli.render(compiled, "graphql") == compiled.graphql_schema
        both = cli.render(compiled, "both")
        assert both.startswith(compiled.graphql_schema)
        assert both.endswith(compiled.dgraph_schema)

    def test_check_returns_errors(self):
        """check returns the error for a bad schema."""
        cli = SchemaCLI(Settings())
        assert cli.check(PERSON) is None
        error = cli.check("type Query { a: Int }")
        assert isinstance(error, PreValidationError)
        assert error.messages() == [
            "1:6: You don't need to define the GraphQL Query type. "
            "Those are built automatically for you."
        ]

    def test_check_raises_internal_errors(self):
        """Internal errors aren't reported as schema errors."""
        with pytest.raises(PredicateConflictError):
            SchemaCLI(Settings()).check(CONFLICT)

    def test_write(self, tmp_path):
        """write uses the configured file names."""
        cli = SchemaCLI(Settings(graphql_filename="api.graphql", dgraph_filename="db.schema"))
        compiled = cli.compile(PERSON)

        paths = cli.write(compiled, str(tmp_path / "out"), "both")

        assert [p.name for p in paths] == ["api.graphql", "db.schema"]
        assert (tmp_path / "out" / "db.schema").read_text() == compiled.dgraph_schema

    def test_error_report(self):
        """Error reports are JSON friendly and positioned."""
        cli = SchemaCLI(Settings())
        with pytest.raises(PreValidationError) as exc_info:
            cli.compile("type Person {\n  name: Strin\n}")

        report = error_report(exc_info.value)
        assert report["ok"] is False
        assert report["code"] == "PRE_VALIDATION"
        assert report["errors"][0]["locations"] == [{"line": 2, "column": 9}]
        json.dumps(report)


class TestCompileCommand:
    """Tests for `schemagen compile`."""

    def test_compile_dgraph(self, schema_file, capsys):
        """compile prints the requested schema."""
        code = main(["compile", schema_file(PERSON), "--emit", "dgraph"])

        assert code == EXIT_OK
        assert capsys.readouterr().out == (
            "type Person {\n"
            "  name: string\n"
            "  age: int\n"
            "}\n"
            "age: int .\n"
            "name: string @index(exact) .\n"
        )

    def test_compile_json(self, schema_file, capsys):
        """JSON output holds both schemas."""
        code = main(["compile", schema_file(PERSON), "--format", "json"])

        assert code == EXIT_OK
        output = json.loads(capsys.readouterr().out)
        assert output["ok"] is True
        assert output["definitions"] == ["Person"]
        assert "name: string @index(exact) ." in output["dgraph_schema"]
        assert "# Input Schema" in output["graphql_schema"]

    def test_compile_stdin(self, monkeypatch, capsys):
        """- reads the schema from stdin."""
        monkeypatch.setattr("sys.stdin", io.StringIO(PERSON))

        code = main(["compile", "-", "--emit", "graphql"])

        assert code == EXIT_OK
        assert "type Person {" in capsys.readouterr().out

    def test_compile_out_dir(self, schema_file, tmp_path, capsys):
        """--out-dir writes both schemas."""
        out_dir = tmp_path / "build"

        code = main(["compile", schema_file(PERSON), "--out-dir", str(out_dir)])

        assert code == EXIT_OK
        assert "age: int ." in (out_dir / "schema.dgraph").read_text()
        assert "type Query {" in (out_dir / "schema.graphql").read_text()
        assert "Schema written to" in capsys.readouterr().out

    def test_compile_error_writes_nothing(self, schema_file, tmp_path, capsys):
        """Failed compiles write no files."""
        out_dir = tmp_path / "build"

        code = main(["compile", schema_file("scalar Email\n"), "--out-dir", str(out_dir)])

        assert code == EXIT_SCHEMA_ERROR
        assert not out_dir.exists()
        assert "You can't add scalar definitions" in capsys.readouterr().err

    def test_compile_internal_error(self, schema_file, capsys):
        """Internal errors exit with a distinct code."""
        code = main(["compile", schema_file(CONFLICT)])

        assert code == EXIT_INTERNAL_ERROR
        assert "Internal error: Predicate 'count'" in capsys.readouterr().err

    def test_missing_file(self, tmp_path, capsys):
        """Unreadable schema files are reported."""
        code = main(["compile", str(tmp_path / "missing.graphql")])

        assert code == EXIT_SCHEMA_ERROR
        assert "Can't read schema" in capsys.readouterr().err


class TestCheckCommand:
    """Tests for `schemagen check`."""

    def test_valid_schema(self, schema_file, capsys):
        """Valid schemas pass."""
        code = main(["check", schema_file(PERSON)])

        assert code == EXIT_OK
        assert capsys.readouterr().out == "Schema is valid\n"

    def test_errors_listed(self, schema_file, capsys):
        """Every error is listed with its position."""
        code = main(["check", schema_file("scalar Email\ntype Query { a: Int }\n")])

        assert code == EXIT_SCHEMA_ERROR
        out = capsys.readouterr().out
        assert "Schema error: Schema pre-validation failed with 2 error(s)" in out
        assert "  - 1:1: You can't add scalar definitions" in out
        assert "  - 2:6: You don't need to define the GraphQL Query type" in out

    def test_empty_schema(self, schema_file, capsys):
        """Empty files report a missing schema."""
        code = main(["check", schema_file("   \n")])

        assert code == EXIT_SCHEMA_ERROR
        assert capsys.readouterr().out == "Schema error: No schema specified\n"

    def test_enum_only_schema(self, schema_file, capsys):
        """Schemas without types are schema errors, not internal ones."""
        code = main(["check", schema_file("enum Color { RED }\n")])

        assert code == EXIT_SCHEMA_ERROR
        assert "  - 1:1: The schema needs at least one type or interface definition." in (
            capsys.readouterr().out
        )

    def test_internal_error(self, schema_file, capsys):
        """Internal errors exit with a distinct code."""
        code = main(["check", schema_file(CONFLICT)])

        assert code == EXIT_INTERNAL_ERROR
        assert "Internal error: Predicate 'count'" in capsys.readouterr().out

    def test_json_errors(self, schema_file, capsys):
        """JSON output lists errors with locations."""
        code = main(["check", schema_file("type Person {"), "--format", "json"])

        assert code == EXIT_SCHEMA_ERROR
        report = json.loads(capsys.readouterr().out)
        assert report["code"] == "PARSE_ERROR"
        assert len(report["errors"]) == 1
        assert report["errors"][0]["locations"] == [{"line": 1, "column": 14}]
