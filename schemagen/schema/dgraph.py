"""
Dgraph schema generation from a validated GraphQL schema.

Every field of a user type becomes a Dgraph predicate named after the
field.  Predicates are global in Dgraph, so two types with a ``title``
field share one ``title`` predicate.  The output is one ``type`` block per
user type/interface followed by the predicate declarations:

    type Person {
      name: string
      age: int
    }
    age: int .
    name: string @index(exact) .

Invariants:
    - ID fields have no predicate; they are the node's uid
    - A predicate has one Dgraph type across all types that use it; a
      mismatch raises PredicateConflictError rather than picking one
    - Index sets of a shared predicate are unioned
    - Enum fields are always indexed with exact
    - Predicates and the indexes within a declaration are sorted, so the
      same schema always generates byte-identical output
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Set

from graphql import (
    DirectiveNode,
    GraphQLError,
    GraphQLField,
    GraphQLNamedType,
    GraphQLSchema,
    get_named_type,
    get_nullable_type,
    is_enum_type,
    is_interface_type,
    is_list_type,
    is_object_type,
    is_scalar_type,
)

from ..errors import GenerationError, PredicateConflictError
from .indexes import (
    ENUM_INDEX,
    ID_TYPE,
    SEARCH_DIRECTIVE,
    SUPPORTED_SEARCHES,
    dgraph_indexes,
    dgraph_type_for,
    search_modifiers,
)

logger = logging.getLogger(__name__)

UID_TYPE = "uid"
ENUM_STORAGE_TYPE = "string"


@dataclass
class Predicate:
    """A Dgraph predicate and everything merged into it so far.

    Attributes:
        name: Predicate (field) name
        dgraph_type: Storage type, e.g. ``string`` or ``[uid]``
        indexes: Dgraph index kinds
        declared_in: Types that declare a field with this name, in order
    """

    name: str
    dgraph_type: str
    indexes: Set[str] = field(default_factory=set)
    declared_in: List[str] = field(default_factory=list)

    def declaration(self) -> str:
        """The predicate's line in the Dgraph schema."""
        index = f"@index({','.join(sorted(self.indexes))}) " if self.indexes else ""
        return f"{self.name}: {self.dgraph_type} {index}."


def _search_directive(fld: GraphQLField) -> Optional[DirectiveNode]:
    if fld.ast_node is None:
        return None
    for d in fld.ast_node.directives or ():
        if d.name.value == SEARCH_DIRECTIVE:
            return d
    return None


def _enum_indexes(directive: Optional[DirectiveNode]) -> Set[str]:
    indexes = {ENUM_INDEX}
    if directive is not None:
        for m in search_modifiers(directive) or ():
            if m in SUPPORTED_SEARCHES:
                indexes.add(SUPPORTED_SEARCHES[m].dg_index)
    return indexes


def _storage(typ: GraphQLNamedType, field_name: str, fld: GraphQLField):
    """Dgraph type and indexes for a field, or None if it has no predicate."""
    target = get_named_type(fld.type)
    if target.name == ID_TYPE:
        return None

    wrap = "[{}]" if is_list_type(get_nullable_type(fld.type)) else "{}"

    if is_object_type(target) or is_interface_type(target):
        return wrap.format(UID_TYPE), set()
    if is_enum_type(target):
        return wrap.format(ENUM_STORAGE_TYPE), _enum_indexes(_search_directive(fld))
    if is_scalar_type(target):
        dgraph_type = dgraph_type_for(target.name)
        if dgraph_type is None:
            raise GenerationError(
                f"Type {typ.name}; Field {field_name}: scalar {target.name} has no Dgraph type",
                errors=[GraphQLError(f"Scalar {target.name} has no Dgraph type", fld.ast_node)],
            )
        indexes = set(dgraph_indexes(target.name, _search_directive(fld)))
        return wrap.format(dgraph_type), indexes
    return None


def _merge(
    predicates: Dict[str, Predicate],
    typ: GraphQLNamedType,
    field_name: str,
    fld: GraphQLField,
    dgraph_type: str,
    indexes: Set[str],
) -> None:
    existing = predicates.get(field_name)
    if existing is None:
        predicates[field_name] = Predicate(field_name, dgraph_type, set(indexes), [typ.name])
        return

    if existing.dgraph_type != dgraph_type:
        owner = existing.declared_in[0]
        conflict = PredicateConflictError(
            predicate=field_name,
            existing_type=existing.dgraph_type,
            new_type=dgraph_type,
            existing_owner=owner,
            new_owner=typ.name,
            error=GraphQLError(
                f"Type {typ.name}; Field {field_name}: stored as {dgraph_type}, "
                f"but type {owner} already stores it as {existing.dgraph_type}",
                fld.ast_node,
            ),
        )
        logger.error(conflict.message)
        raise conflict

    existing.indexes |= indexes
    existing.declared_in.append(typ.name)


def generate_dgraph_schema(schema: GraphQLSchema, definitions: Sequence[str]) -> str:
    """Generate the Dgraph schema for the user's types.

    Args:
        schema: Validated (and post-validated) GraphQL schema
        definitions: Names of the user's definitions, in source order

    Returns:
        Type blocks in definition order followed by sorted predicate
        declarations

    Raises:
        PredicateConflictError: If one predicate name maps to two Dgraph types
        GenerationError: If a definition is missing from the schema
    """
    type_blocks: List[str] = []
    predicates: Dict[str, Predicate] = {}

    for name in definitions:
        typ = schema.type_map.get(name)
        if typ is None:
            raise GenerationError(f"Definition {name} is missing from the validated schema")
        if not (is_object_type(typ) or is_interface_type(typ)):
            continue

        lines = [f"type {typ.name} {{"]
        for field_name, fld in typ.fields.items():
            storage = _storage(typ, field_name, fld)
            if storage is None:
                continue
            dgraph_type, indexes = storage
            lines.append(f"  {field_name}: {dgraph_type}")
            _merge(predicates, typ, field_name, fld, dgraph_type, indexes)
        lines.append("}")
        type_blocks.append("\n".join(lines) + "\n")

    declarations = "".join(
        predicates[name].declaration() + "\n" for name in sorted(predicates)
    )
    logger.debug(
        f"Generated Dgraph schema with {len(type_blocks)} type(s) and "
        f"{len(predicates)} predicate(s)"
    )
    return "".join(type_blocks) + declarations
