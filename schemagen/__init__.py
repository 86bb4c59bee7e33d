"""
schemagen - GraphQL schema compiler for Dgraph.

Compiles a GraphQL schema made of types, interfaces and enums into the
full GraphQL API schema and the Dgraph schema that stores it:
- @search(by: [...]) on a field adds Dgraph indexes and query filters
- @hasInverse(field: ...) links the two directions of an edge
- Query and Mutation are generated for every type

Example:
    >>> from schemagen import compile_schema
    >>>
    >>> compiled = compile_schema('''
    ...     type Person {
    ...         name: String @search(by: [exact])
    ...         age: Int
    ...     }
    ... ''')
    >>> print(compiled.dgraph_schema)
    type Person {
      name: string
      age: int
    }
    age: int .
    name: string @index(exact) .

Invariants:
    - Both schemas are produced together or not at all
    - Output is deterministic for a given input

Version: 0.1.0
"""

__version__ = "0.1.0"

from .errors import (
    ExpansionError,
    GenerationError,
    GraphQLValidationError,
    InternalSchemaError,
    NoSchemaError,
    PostValidationError,
    PredicateConflictError,
    PreValidationError,
    SchemaGenError,
    SchemaParseError,
    SchemaValidationError,
    format_error,
)
from .schema import (
    CompiledSchema,
    GraphQLBackend,
    GraphQLCoreBackend,
    compile_schema,
)

__all__ = [
    "__version__",
    # Compile
    "compile_schema",
    "CompiledSchema",
    "GraphQLBackend",
    "GraphQLCoreBackend",
    # Errors
    "SchemaGenError",
    "NoSchemaError",
    "SchemaParseError",
    "SchemaValidationError",
    "PreValidationError",
    "GraphQLValidationError",
    "PostValidationError",
    "InternalSchemaError",
    "ExpansionError",
    "GenerationError",
    "PredicateConflictError",
    "format_error",
]
