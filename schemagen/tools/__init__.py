"""
CLI tools for schemagen.

This module provides command-line tools for:
- compile: Produce the GraphQL and Dgraph schemas from a schema file
- check: Validate a schema file and list every error

Invariants:
    - Tools work offline (no Dgraph instance required)
    - Output is deterministic for a given input
"""

from .schema_cli import SchemaCLI, main

__all__ = ["SchemaCLI", "main"]
