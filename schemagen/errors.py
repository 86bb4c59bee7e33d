"""
Error types for schemagen.

This module defines every exception raised by the compile pipeline:
- SchemaGenError: Base exception
- NoSchemaError: Empty input
- SchemaParseError: The GraphQL parser rejected the input
- SchemaValidationError: A validation stage rejected the input
  (PreValidationError, GraphQLValidationError, PostValidationError)
- InternalSchemaError: An internal invariant was broken
  (ExpansionError, GenerationError, PredicateConflictError)

Invariants:
    - All errors inherit from SchemaGenError
    - Every error carries a non-empty list of GraphQLError items
    - Parse errors carry exactly one item; validation errors carry all
      violations found by their stage
    - Internal errors are never raised for input a validator should reject
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from graphql import GraphQLError


def format_error(error: GraphQLError) -> str:
    """Render an error as ``line:column: message``.

    Errors without a source location render as the bare message.
    """
    if error.locations:
        loc = error.locations[0]
        return f"{loc.line}:{loc.column}: {error.message}"
    return error.message


class SchemaGenError(Exception):
    """Base exception for all schemagen errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        errors: The individual, positioned errors
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        errors: Optional[Sequence[GraphQLError]] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or "SCHEMAGEN_ERROR"
        self.errors: List[GraphQLError] = list(errors) if errors else [GraphQLError(message)]
        self.details = details or {}
        super().__init__(self._render())

    def _render(self) -> str:
        if len(self.errors) == 1 and self.errors[0].message == self.message:
            return format_error(self.errors[0])
        lines = [self.message]
        lines.extend(f"  - {format_error(e)}" for e in self.errors)
        return "\n".join(lines)

    def messages(self) -> List[str]:
        """Formatted message for every contained error."""
        return [format_error(e) for e in self.errors]


class NoSchemaError(SchemaGenError):
    """No schema text was given. Raised before any parsing happens."""

    def __init__(self) -> None:
        super().__init__("No schema specified", code="NO_SCHEMA")


class SchemaParseError(SchemaGenError):
    """The GraphQL parser rejected the input.

    Parsing is not recoverable mid-stream, so this always holds exactly
    one error: the first one the parser hit.
    """

    def __init__(self, error: GraphQLError) -> None:
        super().__init__(error.message, code="PARSE_ERROR", errors=[error])


class SchemaValidationError(SchemaGenError):
    """A validation stage rejected the input.

    Attributes:
        stage: Name of the stage that produced the errors
    """

    stage = "validation"

    def __init__(self, errors: Sequence[GraphQLError], code: str) -> None:
        errors = list(errors)
        super().__init__(
            f"Schema {self.stage} failed with {len(errors)} error(s)",
            code=code,
            errors=errors,
            details={"stage": self.stage},
        )


class PreValidationError(SchemaValidationError):
    """The user's definitions break a rule checked before expansion."""

    stage = "pre-validation"

    def __init__(self, errors: Sequence[GraphQLError]) -> None:
        super().__init__(errors, code="PRE_VALIDATION")


class GraphQLValidationError(SchemaValidationError):
    """The expanded document is not a valid GraphQL schema."""

    stage = "GraphQL validation"

    def __init__(self, errors: Sequence[GraphQLError]) -> None:
        super().__init__(errors, code="GRAPHQL_VALIDATION")


class PostValidationError(SchemaValidationError):
    """The validated schema breaks a rule specific to the Dgraph mapping."""

    stage = "post-validation"

    def __init__(self, errors: Sequence[GraphQLError]) -> None:
        super().__init__(errors, code="POST_VALIDATION")


class InternalSchemaError(SchemaGenError):
    """An internal invariant was broken.

    These point at a validator gap or a bug, not at something the user
    can be expected to fix from the message alone.
    """


class ExpansionError(InternalSchemaError):
    """The expander produced scaffolding that does not parse."""

    def __init__(self, message: str, errors: Optional[Sequence[GraphQLError]] = None) -> None:
        super().__init__(message, code="EXPANSION_INTERNAL", errors=errors)


class GenerationError(InternalSchemaError):
    """The Dgraph schema could not be generated from a validated schema."""

    def __init__(
        self,
        message: str,
        errors: Optional[Sequence[GraphQLError]] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, code="GENERATION_INVARIANT", errors=errors, details=details)


class PredicateConflictError(GenerationError):
    """One predicate name maps to two different Dgraph types.

    Attributes:
        predicate: The shared predicate (field) name
        existing_type: Dgraph type recorded first
        new_type: Conflicting Dgraph type
        existing_owner: Type that declared the predicate first
        new_owner: Type that declared the conflicting field
    """

    def __init__(
        self,
        predicate: str,
        existing_type: str,
        new_type: str,
        existing_owner: str,
        new_owner: str,
        error: Optional[GraphQLError] = None,
    ) -> None:
        message = (
            f"Predicate '{predicate}' is stored as {existing_type} in type "
            f"{existing_owner} but as {new_type} in type {new_owner}"
        )
        super().__init__(
            message,
            errors=[error] if error is not None else None,
            details={
                "predicate": predicate,
                "existing_type": existing_type,
                "new_type": new_type,
                "existing_owner": existing_owner,
                "new_owner": new_owner,
            },
        )
        self.predicate = predicate
        self.existing_type = existing_type
        self.new_type = new_type
        self.existing_owner = existing_owner
        self.new_owner = new_owner
