"""
GraphQL parser and validator used by the compile pipeline.

The pipeline only needs two things from a GraphQL implementation: turn text
into a document, and turn a document into a validated schema.  Both sit
behind the GraphQLBackend protocol so the pipeline can be tested against
hand-built fixtures.

Invariants:
    - parse raises SchemaParseError holding exactly one error
    - validate raises GraphQLValidationError holding every error found
    - Neither method keeps state between calls
"""

from __future__ import annotations

import logging
from typing import List, Protocol

from graphql import (
    DocumentNode,
    GraphQLError,
    GraphQLSchema,
    GraphQLSyntaxError,
    Source,
    build_ast_schema,
    parse,
    validate_schema,
)
from graphql.validation.validate import validate_sdl

from ..errors import GraphQLValidationError, SchemaParseError

logger = logging.getLogger(__name__)

SOURCE_NAME = "schema.graphql"


class GraphQLBackend(Protocol):
    """Parser and generic validator consumed by compile_schema."""

    def parse(self, source: str) -> DocumentNode:
        ...

    def validate(self, document: DocumentNode) -> GraphQLSchema:
        ...


class GraphQLCoreBackend:
    """GraphQLBackend implemented with graphql-core.

    Validation runs in two steps: the SDL rules (unknown types, unknown
    directives, duplicate names, ...) on the document, then the schema
    rules (interfaces implemented correctly, root types, ...) on the built
    schema.  The schema is only built once the SDL rules pass, since
    graphql-core refuses to build a schema that references unknown types.
    """

    def parse(self, source: str) -> DocumentNode:
        try:
            return parse(Source(source, SOURCE_NAME))
        except GraphQLSyntaxError as exc:
            raise SchemaParseError(exc) from exc

    def validate(self, document: DocumentNode) -> GraphQLSchema:
        errors: List[GraphQLError] = list(validate_sdl(document))
        if errors:
            logger.debug(f"SDL validation found {len(errors)} error(s)")
            raise GraphQLValidationError(errors)

        schema = build_ast_schema(document, assume_valid_sdl=True)
        errors = list(validate_schema(schema))
        if errors:
            logger.debug(f"Schema validation found {len(errors)} error(s)")
            raise GraphQLValidationError(errors)
        return schema
