"""
Printing the complete GraphQL schema.

The output is split into commented sections so the user's own definitions
come first and are easy to find:

    #######################
    # Input Schema
    #######################

    type Person { ... }

    #######################
    # Extended Definitions
    #######################
    ...

User definitions are printed in the order they were written.  Generated
types, enums and inputs are each sorted by name, so adding a type to the
input only adds lines to the output.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Sequence

from graphql import (
    GraphQLNamedType,
    GraphQLSchema,
    is_enum_type,
    is_input_object_type,
    is_interface_type,
    is_object_type,
    print_ast,
)

from ..errors import GenerationError
from .indexes import BUILT_IN_SCALARS, SCHEMA_EXTRAS, extras_names

logger = logging.getLogger(__name__)

QUERY_TYPE = "Query"
MUTATION_TYPE = "Mutation"


def _banner(title: str) -> str:
    rule = "#######################"
    return f"{rule}\n# {title}\n{rule}\n\n"


def _print(typ: GraphQLNamedType) -> str:
    if typ.ast_node is None:
        raise GenerationError(f"Type {typ.name} has no definition to print")
    return print_ast(typ.ast_node)


def _section(title: str, bodies: Iterable[str]) -> str:
    bodies = list(bodies)
    if not bodies:
        return ""
    return _banner(title) + "\n\n".join(bodies) + "\n\n"


def stringify(schema: GraphQLSchema, definitions: Sequence[str]) -> str:
    """Print the full GraphQL schema.

    Args:
        schema: Validated schema, including the generated definitions
        definitions: Names of the user's definitions, in source order

    Returns:
        The schema text, one section per kind of definition
    """
    user = set(definitions)
    skip = user | extras_names() | set(BUILT_IN_SCALARS) | {QUERY_TYPE, MUTATION_TYPE}

    generated: List[GraphQLNamedType] = [
        schema.type_map[name]
        for name in sorted(schema.type_map)
        if name not in skip and not name.startswith("__")
    ]

    parts = [
        _section("Input Schema", (_print(schema.type_map[name]) for name in definitions)),
        _banner("Extended Definitions") + SCHEMA_EXTRAS + "\n",
        _section(
            "Generated Types",
            (_print(t) for t in generated if is_object_type(t) or is_interface_type(t)),
        ),
        _section("Generated Enums", (_print(t) for t in generated if is_enum_type(t))),
        _section("Generated Inputs", (_print(t) for t in generated if is_input_object_type(t))),
    ]
    for title, name in (("Generated Query", QUERY_TYPE), ("Generated Mutations", MUTATION_TYPE)):
        typ = schema.type_map.get(name)
        if typ is not None:
            parts.append(_section(title, [_print(typ)]))

    text = "".join(parts).rstrip("\n") + "\n"
    logger.debug(f"Printed schema with {len(definitions)} user and {len(generated)} generated definition(s)")
    return text
