"""
Schema compilation pipeline.

compile_schema turns the user's schema text into the two schemas a Dgraph
GraphQL deployment needs:

    text -> parse -> pre_validate -> expand_schema -> validate
         -> post_validate -> (generate_dgraph_schema, stringify)

Any stage that fails raises and nothing is returned, so callers always get
both schemas or neither.

Invariants:
    - Blank input is rejected before the parser is called
    - Validation stages report every error they find; parsing stops at the
      first error
    - User errors raise SchemaValidationError, SchemaParseError or
      NoSchemaError; InternalSchemaError means the pipeline itself is wrong
    - No state is kept between calls
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from graphql import DocumentNode

from ..errors import NoSchemaError, PostValidationError, PreValidationError
from .backend import GraphQLBackend, GraphQLCoreBackend
from .dgraph import generate_dgraph_schema
from .expand import expand_schema
from .rules import SUPPORTED_DEFINITIONS, post_validate, pre_validate
from .stringify import stringify

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompiledSchema:
    """Result of a successful compile.

    Attributes:
        graphql_schema: Complete GraphQL schema text
        dgraph_schema: Dgraph schema text
        definitions: Names of the user's definitions, in source order
    """

    graphql_schema: str
    dgraph_schema: str
    definitions: Tuple[str, ...]


def original_definitions(document: DocumentNode) -> Tuple[str, ...]:
    """Names of the user's type, interface and enum definitions, in order."""
    return tuple(
        d.name.value for d in document.definitions if isinstance(d, SUPPORTED_DEFINITIONS)
    )


def compile_schema(source: str, backend: Optional[GraphQLBackend] = None) -> CompiledSchema:
    """Compile a user schema into the full GraphQL schema and the Dgraph schema.

    Args:
        source: The user's GraphQL SDL
        backend: Parser and validator to use (defaults to graphql-core)

    Returns:
        CompiledSchema with both schema texts

    Raises:
        NoSchemaError: If source is empty or only whitespace
        SchemaParseError: If source doesn't parse
        PreValidationError: If the definitions can't be expanded
        GraphQLValidationError: If the expanded schema isn't valid GraphQL
        PostValidationError: If the schema breaks the Dgraph mapping rules
        InternalSchemaError: If expansion or generation fails on valid input

    Example:
        >>> compiled = compile_schema("type Person { name: String @search(by: [exact]) }")
        >>> print(compiled.dgraph_schema)
        type Person {
          name: string
        }
        name: string @index(exact) .
    """
    if source is None or not source.strip():
        raise NoSchemaError()

    backend = backend or GraphQLCoreBackend()

    document = backend.parse(source)
    logger.debug(f"Parsed {len(document.definitions)} definition(s)")

    errors = pre_validate(document)
    if errors:
        raise PreValidationError(errors)

    definitions = original_definitions(document)

    expanded = expand_schema(document)
    schema = backend.validate(expanded)
    logger.debug("Expanded schema passed GraphQL validation")

    errors = post_validate(schema, definitions)
    if errors:
        raise PostValidationError(errors)

    dgraph_schema = generate_dgraph_schema(schema, definitions)
    graphql_schema = stringify(schema, definitions)

    logger.info(
        f"Compiled schema with {len(definitions)} definition(s): "
        f"{len(dgraph_schema.splitlines())} Dgraph line(s), "
        f"{len(graphql_schema.splitlines())} GraphQL line(s)"
    )
    return CompiledSchema(
        graphql_schema=graphql_schema,
        dgraph_schema=dgraph_schema,
        definitions=definitions,
    )
