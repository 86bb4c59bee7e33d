"""
Schema compilation for schemagen.

This module turns a user's GraphQL type definitions into:
- The complete GraphQL schema (user types plus generated inputs, payloads,
  Query and Mutation)
- The Dgraph schema (type blocks and predicate declarations)

Invariants:
    - A compile either returns both schemas or raises
    - Compiling the same text twice gives byte-identical output
    - Index tables in indexes.py are read-only

How to change safely:
    - New @search modifiers go in indexes.py only; the other stages read
      the tables
    - New generated definitions must be listed in expand.scaffolding_names
    - New user-facing checks go in rules.py and must collect, not raise
"""

from .backend import GraphQLBackend, GraphQLCoreBackend
from .dgraph import Predicate, generate_dgraph_schema
from .expand import expand_schema, generate_scaffolding, is_expanded, scaffolding_names
from .handler import CompiledSchema, compile_schema, original_definitions
from .indexes import (
    SCHEMA_EXTRAS,
    SUPPORTED_SEARCHES,
    default_index_for,
    index_kind_for,
)
from .rules import post_validate, pre_validate
from .stringify import stringify

__all__ = [
    # Pipeline
    "CompiledSchema",
    "compile_schema",
    "original_definitions",
    # Backend
    "GraphQLBackend",
    "GraphQLCoreBackend",
    # Stages
    "pre_validate",
    "expand_schema",
    "generate_scaffolding",
    "is_expanded",
    "scaffolding_names",
    "post_validate",
    "Predicate",
    "generate_dgraph_schema",
    "stringify",
    # Index catalog
    "SCHEMA_EXTRAS",
    "SUPPORTED_SEARCHES",
    "index_kind_for",
    "default_index_for",
]
