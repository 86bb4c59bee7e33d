"""
Schema CLI tool for schemagen.

This tool compiles GraphQL schemas for Dgraph:
- compile: Print (or write) the full GraphQL schema and the Dgraph schema
- check: Run every validation stage and report all errors

Usage:
    schemagen compile schema.graphql
    schemagen compile schema.graphql --emit dgraph
    schemagen compile schema.graphql --out-dir build/
    cat schema.graphql | schemagen check - --format json

Invariants:
    - Exit code 0 on success, 1 for errors in the input schema, 2 when
      schemagen itself fails on a valid schema
    - Nothing is written unless both schemas compiled
    - Logs go to stderr; stdout only carries schemas and reports

How to change safely:
    - Add new commands, don't modify existing ones
    - Keep the JSON output keys stable for CI parsing
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from ..config import Settings, get_settings
from ..errors import InternalSchemaError, SchemaGenError
from ..logging_config import setup_logging
from ..schema import CompiledSchema, GraphQLBackend, compile_schema

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_SCHEMA_ERROR = 1
EXIT_INTERNAL_ERROR = 2

EMIT_GRAPHQL = "graphql"
EMIT_DGRAPH = "dgraph"
EMIT_BOTH = "both"


def error_report(error: SchemaGenError) -> Dict[str, Any]:
    """JSON-serializable description of a failed compile."""
    return {
        "ok": False,
        "code": error.code,
        "message": error.message,
        "errors": [
            {
                "message": e.message,
                "locations": [{"line": loc.line, "column": loc.column} for loc in e.locations or ()],
            }
            for e in error.errors
        ],
    }


def exit_code_for(error: SchemaGenError) -> int:
    return EXIT_INTERNAL_ERROR if isinstance(error, InternalSchemaError) else EXIT_SCHEMA_ERROR


class SchemaCLI:
    """CLI tool for schema compilation.

    Provides commands for:
    - Compiling a schema to its GraphQL and Dgraph forms
    - Writing both schemas to an output directory
    - Checking a schema without producing output

    Example:
        >>> cli = SchemaCLI()
        >>> compiled = cli.compile("type Person { name: String }")
        >>> cli.render(compiled, "dgraph")
        'type Person {\\n  name: string\\n}\\nname: string .\\n'
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        backend: Optional[GraphQLBackend] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.backend = backend

    def compile(self, source: str) -> CompiledSchema:
        """Compile schema text.

        Raises:
            SchemaGenError: If the schema doesn't compile
        """
        return compile_schema(source, backend=self.backend)

    def check(self, source: str) -> Optional[SchemaGenError]:
        """Validate schema text.

        Args:
            source: Schema text

        Returns:
            The error describing what is wrong with the schema, or None if
            it compiles

        Raises:
            InternalSchemaError: If compilation fails on a valid schema
        """
        try:
            self.compile(source)
        except InternalSchemaError:
            raise
        except SchemaGenError as e:
            return e
        return None

    def render(self, compiled: CompiledSchema, emit: str = EMIT_BOTH) -> str:
        """Text output for the selected schemas."""
        if emit == EMIT_GRAPHQL:
            return compiled.graphql_schema
        if emit == EMIT_DGRAPH:
            return compiled.dgraph_schema
        return compiled.graphql_schema + "\n" + compiled.dgraph_schema

    def to_json(self, compiled: CompiledSchema, emit: str = EMIT_BOTH) -> str:
        output: Dict[str, Any] = {"ok": True, "definitions": list(compiled.definitions)}
        if emit in (EMIT_GRAPHQL, EMIT_BOTH):
            output["graphql_schema"] = compiled.graphql_schema
        if emit in (EMIT_DGRAPH, EMIT_BOTH):
            output["dgraph_schema"] = compiled.dgraph_schema
        return json.dumps(output, indent=2, sort_keys=True)

    def write(self, compiled: CompiledSchema, out_dir: str, emit: str = EMIT_BOTH) -> List[Path]:
        """Write the selected schemas into out_dir.

        Args:
            compiled: Compiled schemas
            out_dir: Directory to write into (created if missing)
            emit: Which schemas to write

        Returns:
            Paths written
        """
        directory = Path(out_dir)
        directory.mkdir(parents=True, exist_ok=True)

        outputs = []
        if emit in (EMIT_GRAPHQL, EMIT_BOTH):
            outputs.append((directory / self.settings.graphql_filename, compiled.graphql_schema))
        if emit in (EMIT_DGRAPH, EMIT_BOTH):
            outputs.append((directory / self.settings.dgraph_filename, compiled.dgraph_schema))

        for path, text in outputs:
            path.write_text(text, encoding="utf-8")
            logger.info(f"Wrote {path}")
        return [path for path, _ in outputs]


def _read_source(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    with open(path, encoding="utf-8") as f:
        return f.read()


def _print_failure(error: SchemaGenError, output_format: str, stream) -> None:
    if output_format == "json":
        print(json.dumps(error_report(error), indent=2, sort_keys=True), file=stream)
        return
    label = "Internal error" if isinstance(error, InternalSchemaError) else "Schema error"
    print(f"{label}: {error.message}", file=stream)
    for message in error.messages():
        if message != error.message:
            print(f"  - {message}", file=stream)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="schemagen", description="Compile GraphQL schemas for Dgraph"
    )
    parser.add_argument("--log-level", help="Log level (overrides SCHEMAGEN_LOG_LEVEL)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # compile command
    compile_parser = subparsers.add_parser(
        "compile", help="Compile a schema to GraphQL and Dgraph schemas"
    )
    compile_parser.add_argument("schema", help="Schema file (- for stdin)")
    compile_parser.add_argument(
        "--emit",
        choices=[EMIT_GRAPHQL, EMIT_DGRAPH, EMIT_BOTH],
        default=EMIT_BOTH,
        help="Which schema to output",
    )
    compile_parser.add_argument("--out-dir", "-o", help="Write schemas to this directory")
    compile_parser.add_argument(
        "--format", choices=["text", "json"], default="text", help="Output format"
    )

    # check command
    check_parser = subparsers.add_parser("check", help="Validate a schema")
    check_parser.add_argument("schema", help="Schema file (- for stdin)")
    check_parser.add_argument(
        "--format", choices=["text", "json"], default="text", help="Output format"
    )

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """CLI entry point for schemagen."""
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = get_settings()
    setup_logging(settings, level_override=args.log_level)
    cli = SchemaCLI(settings)

    try:
        source = _read_source(args.schema)
    except OSError as e:
        print(f"Can't read schema {args.schema}: {e}", file=sys.stderr)
        return EXIT_SCHEMA_ERROR

    if args.command == "compile":
        try:
            compiled = cli.compile(source)
        except SchemaGenError as e:
            _print_failure(e, args.format, sys.stderr)
            return exit_code_for(e)

        if args.out_dir:
            paths = cli.write(compiled, args.out_dir, args.emit)
            if args.format == "json":
                print(json.dumps({"ok": True, "written": [str(p) for p in paths]}, indent=2))
            else:
                for path in paths:
                    print(f"Schema written to {path}")
        elif args.format == "json":
            print(cli.to_json(compiled, args.emit))
        else:
            sys.stdout.write(cli.render(compiled, args.emit))
        return EXIT_OK

    elif args.command == "check":
        try:
            error = cli.check(source)
        except InternalSchemaError as e:
            _print_failure(e, args.format, sys.stdout)
            return EXIT_INTERNAL_ERROR

        if error is not None:
            _print_failure(error, args.format, sys.stdout)
            return EXIT_SCHEMA_ERROR

        if args.format == "json":
            print(json.dumps({"ok": True, "errors": []}, indent=2))
        else:
            print("Schema is valid")
        return EXIT_OK

    return EXIT_SCHEMA_ERROR


if __name__ == "__main__":
    sys.exit(main())
