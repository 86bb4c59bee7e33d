"""
Validation rules that GraphQL validation can't express.

Two passes run around GraphQL validation:
- pre_validate: on the user's document, before scaffolding is added.  Keeps
  the input to the structures we know how to expand and gives better errors
  than GraphQL validation would give once the scaffolding is in.
- post_validate: on the validated schema.  Checks that the definitions make
  sense for the Dgraph mapping (search indexes, inverse edges, ...).

Invariants:
    - Both passes are read-only
    - Both passes report every violation they find, never just the first
    - Every error points at the definition, field or directive at fault
"""

from __future__ import annotations

import logging
from difflib import get_close_matches
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Set

from graphql import (
    DefinitionNode,
    DirectiveDefinitionNode,
    DirectiveNode,
    DocumentNode,
    EnumTypeDefinitionNode,
    EnumValueNode,
    ExecutableDefinitionNode,
    FieldDefinitionNode,
    GraphQLError,
    GraphQLField,
    GraphQLInterfaceType,
    GraphQLNamedType,
    GraphQLObjectType,
    GraphQLSchema,
    InputObjectTypeDefinitionNode,
    InterfaceTypeDefinitionNode,
    ListTypeNode,
    ListValueNode,
    NamedTypeNode,
    NonNullTypeNode,
    ObjectTypeDefinitionNode,
    ScalarTypeDefinitionNode,
    SchemaDefinitionNode,
    StringValueNode,
    TypeNode,
    UnionTypeDefinitionNode,
    get_named_type,
    get_nullable_type,
    is_enum_type,
    is_interface_type,
    is_list_type,
    is_object_type,
    is_scalar_type,
)

from .expand import FILTER_OPERATORS, scaffolding_names
from .indexes import (
    BUILT_IN_SCALARS,
    COLLIDING_SEARCHES,
    DATETIME_TYPE,
    DEFAULT_SEARCHES,
    ENUM_SEARCHES,
    ID_TYPE,
    INVERSE_ARG,
    INVERSE_DIRECTIVE,
    SEARCH_ARG,
    SEARCH_DIRECTIVE,
    SUPPORTED_SEARCHES,
    extras_names,
    filter_fields,
)

logger = logging.getLogger(__name__)

ALLOWED_FIELD_DIRECTIVES = (SEARCH_DIRECTIVE, INVERSE_DIRECTIVE)
ROOT_TYPES = ("Query", "Mutation")

SUPPORTED_DEFINITIONS = (
    ObjectTypeDefinitionNode,
    InterfaceTypeDefinitionNode,
    EnumTypeDefinitionNode,
)


# =============================================================================
# Pre-expansion rules
# =============================================================================


def pre_validate(document: DocumentNode) -> List[GraphQLError]:
    """Check the user's definitions before any scaffolding is added.

    Args:
        document: The parsed user schema

    Returns:
        List of errors (empty if the document can be expanded)
    """
    errors: List[GraphQLError] = []

    user_names = [
        defn.name.value for defn in document.definitions if isinstance(defn, SUPPORTED_DEFINITIONS)
    ]
    generated = _generated_names(document.definitions)
    known_types = set(BUILT_IN_SCALARS) | {DATETIME_TYPE} | set(user_names)

    for defn in document.definitions:
        if not isinstance(defn, SUPPORTED_DEFINITIONS):
            errors.append(_kind_check(defn))
            continue

        errors.extend(_name_check(defn, generated))
        errors.extend(_type_directive_check(defn))

        if isinstance(defn, EnumTypeDefinitionNode):
            continue
        for fld in defn.fields or ():
            errors.extend(_field_argument_check(defn, fld))
            errors.extend(_field_directive_check(defn, fld))
            errors.extend(_field_type_check(defn, fld, known_types))
            errors.extend(_filter_name_check(defn, fld))

    errors.extend(_has_types_check(document))

    logger.debug(f"Pre-validation checked {len(user_names)} definition(s), {len(errors)} error(s)")
    return errors


def _describe_kind(defn: DefinitionNode) -> str:
    if isinstance(defn, ScalarTypeDefinitionNode):
        return "scalar"
    if isinstance(defn, InputObjectTypeDefinitionNode):
        return "input"
    if isinstance(defn, UnionTypeDefinitionNode):
        return "union"
    if isinstance(defn, DirectiveDefinitionNode):
        return "directive"
    if isinstance(defn, SchemaDefinitionNode):
        return "schema"
    if isinstance(defn, ExecutableDefinitionNode):
        return "operation"
    return "extension"


def _kind_check(defn: DefinitionNode) -> GraphQLError:
    return GraphQLError(
        f"You can't add {_describe_kind(defn)} definitions. "
        "Only type, interface and enum definitions are allowed in the initial schema.",
        defn,
    )


def _has_types_check(document: DocumentNode) -> List[GraphQLError]:
    """Query and Mutation are generated from types; an enum-only schema has neither."""
    if any(
        isinstance(d, (ObjectTypeDefinitionNode, InterfaceTypeDefinitionNode))
        for d in document.definitions
    ):
        return []
    return [
        GraphQLError(
            "The schema needs at least one type or interface definition.",
            document.definitions[0] if document.definitions else None,
        )
    ]


def _generated_names(definitions: Iterable[DefinitionNode]) -> Dict[str, str]:
    """Generated definition name -> user type it is generated for."""
    generated: Dict[str, str] = {}
    for defn in definitions:
        if isinstance(defn, (ObjectTypeDefinitionNode, InterfaceTypeDefinitionNode)):
            for name in scaffolding_names(defn.name.value):
                generated.setdefault(name, defn.name.value)
    return generated


def _is_combined_filter_name(name: str) -> bool:
    parts = name.split("_")
    return len(parts) > 1 and all(p in filter_fields() for p in parts)


def _name_check(defn: DefinitionNode, generated: Dict[str, str]) -> List[GraphQLError]:
    name = defn.name.value
    if name in ROOT_TYPES:
        return [
            GraphQLError(
                f"You don't need to define the GraphQL {name} type. "
                "Those are built automatically for you.",
                defn.name,
            )
        ]
    if name in BUILT_IN_SCALARS or name in extras_names() or _is_combined_filter_name(name):
        return [
            GraphQLError(
                f"{name} is a reserved word, so you can't declare a type with this name. "
                "Pick a different name for the type.",
                defn.name,
            )
        ]
    owner = generated.get(name)
    if owner is not None and owner != name:
        return [
            GraphQLError(
                f"{name} is the name of a definition generated for type {owner}, "
                "so you can't declare a type with this name. Pick a different name for the type.",
                defn.name,
            )
        ]
    return []


def _type_directive_check(defn: DefinitionNode) -> List[GraphQLError]:
    return [
        GraphQLError(
            f"Type {defn.name.value}; directive @{d.name.value} isn't supported on type definitions.",
            d,
        )
        for d in defn.directives or ()
    ]


def _field_argument_check(defn: DefinitionNode, fld: FieldDefinitionNode) -> List[GraphQLError]:
    if not fld.arguments:
        return []
    return [
        GraphQLError(
            f"Type {defn.name.value}; Field {fld.name.value}: You can't give arguments to fields.",
            fld.arguments[0],
        )
    ]


def _field_directive_check(defn: DefinitionNode, fld: FieldDefinitionNode) -> List[GraphQLError]:
    errors = []
    for d in fld.directives or ():
        name = d.name.value
        if name in ALLOWED_FIELD_DIRECTIVES:
            continue
        msg = (
            f"Type {defn.name.value}; Field {fld.name.value}: "
            f"directive @{name} isn't supported."
        )
        suggestions = get_close_matches(name, ALLOWED_FIELD_DIRECTIVES, n=1)
        if suggestions:
            msg += f" Did you mean @{suggestions[0]}?"
        errors.append(GraphQLError(msg, d))
    return errors


def _named_type_node(type_node: TypeNode) -> NamedTypeNode:
    while isinstance(type_node, (ListTypeNode, NonNullTypeNode)):
        type_node = type_node.type
    return type_node


def _field_type_check(
    defn: DefinitionNode, fld: FieldDefinitionNode, known_types: Set[str]
) -> List[GraphQLError]:
    named = _named_type_node(fld.type)
    if named.name.value in known_types:
        return []
    msg = (
        f"Type {defn.name.value}; Field {fld.name.value}: "
        f"type {named.name.value} is not defined."
    )
    suggestions = get_close_matches(named.name.value, sorted(known_types), n=1)
    if suggestions:
        msg += f" Did you mean {suggestions[0]}?"
    return [GraphQLError(msg, named)]


def _filter_name_check(defn: DefinitionNode, fld: FieldDefinitionNode) -> List[GraphQLError]:
    name = fld.name.value
    if name not in FILTER_OPERATORS:
        return []
    searched = any(d.name.value == SEARCH_DIRECTIVE for d in fld.directives or ())
    if not searched and _named_type_node(fld.type).name.value != ID_TYPE:
        return []
    return [
        GraphQLError(
            f"Type {defn.name.value}; Field {name}: {name} is used to combine filters "
            f"in the generated {defn.name.value}Filter, so a field named {name} can't be "
            "searchable or an ID.",
            fld.name,
        )
    ]


# =============================================================================
# Post-expansion rules
# =============================================================================

FieldRule = Callable[[GraphQLNamedType, str, GraphQLField], List[GraphQLError]]
DirectiveRule = Callable[
    [GraphQLSchema, GraphQLNamedType, str, GraphQLField, DirectiveNode], List[GraphQLError]
]


def post_validate(schema: GraphQLSchema, definitions: Sequence[str]) -> List[GraphQLError]:
    """Check the validated schema against the Dgraph mapping rules.

    Args:
        schema: Schema produced by GraphQL validation
        definitions: Names of the user's definitions, in source order

    Returns:
        List of errors (empty if the schema can be generated)
    """
    errors: List[GraphQLError] = []

    for name in definitions:
        typ = schema.type_map.get(name)
        if not isinstance(typ, (GraphQLObjectType, GraphQLInterfaceType)):
            continue

        errors.extend(_id_count_check(typ))

        for field_name, fld in typ.fields.items():
            for rule in FIELD_RULES:
                errors.extend(rule(typ, field_name, fld))

            for d in _field_directives(fld):
                validator = DIRECTIVE_RULES.get(d.name.value)
                if validator is not None:
                    errors.extend(validator(schema, typ, field_name, fld, d))

    logger.debug(f"Post-validation checked {len(definitions)} definition(s), {len(errors)} error(s)")
    return errors


def _field_directives(fld: GraphQLField) -> Sequence[DirectiveNode]:
    if fld.ast_node is None:
        return ()
    return fld.ast_node.directives or ()


def _prefix(typ: GraphQLNamedType, field_name: str) -> str:
    return f"Type {typ.name}; Field {field_name}:"


def _id_count_check(typ: GraphQLNamedType) -> List[GraphQLError]:
    id_fields = [n for n, f in typ.fields.items() if get_named_type(f.type).name == ID_TYPE]
    if len(id_fields) <= 1:
        return []
    listed = ", ".join(id_fields[:-1]) + f" and {id_fields[-1]}"
    return [
        GraphQLError(
            f"Fields {listed} are listed as IDs for type {typ.name}, but a type can have "
            f"only one ID field. Pick a single field as the ID for type {typ.name}.",
            typ.ast_node,
        )
    ]


def _list_check(typ: GraphQLNamedType, field_name: str, fld: GraphQLField) -> List[GraphQLError]:
    outer = get_nullable_type(fld.type)
    if is_list_type(outer) and is_list_type(get_nullable_type(outer.of_type)):
        return [GraphQLError(f"{_prefix(typ, field_name)} Nested lists are invalid.", fld.ast_node)]
    return []


def _id_list_check(typ: GraphQLNamedType, field_name: str, fld: GraphQLField) -> List[GraphQLError]:
    if get_named_type(fld.type).name != ID_TYPE:
        return []
    if is_list_type(get_nullable_type(fld.type)):
        return [
            GraphQLError(f"{_prefix(typ, field_name)} ID fields can't be lists.", fld.ast_node)
        ]
    return []


def _relationship_check(
    typ: GraphQLNamedType, field_name: str, fld: GraphQLField
) -> List[GraphQLError]:
    target = get_named_type(fld.type)
    if is_scalar_type(target) or is_enum_type(target):
        return []
    if is_object_type(target) or is_interface_type(target):
        return []
    return [
        GraphQLError(
            f"{_prefix(typ, field_name)} Field {field_name} is of type {target.name}, "
            "but fields can only refer to scalars, enums, types or interfaces.",
            fld.ast_node,
        )
    ]


FIELD_RULES: List[FieldRule] = [_list_check, _id_list_check, _relationship_check]


def _search_values(directive: DirectiveNode) -> Optional[List]:
    for arg in directive.arguments or ():
        if arg.name.value == SEARCH_ARG:
            value = arg.value
            return list(value.values) if isinstance(value, ListValueNode) else [value]
    return None


def _search_validation(
    schema: GraphQLSchema,
    typ: GraphQLNamedType,
    field_name: str,
    fld: GraphQLField,
    directive: DirectiveNode,
) -> List[GraphQLError]:
    prefix = _prefix(typ, field_name)
    target = get_named_type(fld.type)

    if target.name == ID_TYPE or not (is_scalar_type(target) or is_enum_type(target)):
        return [
            GraphQLError(
                f"{prefix} has the @search directive but fields of type {target.name} "
                "can't have the @search directive.",
                directive,
            )
        ]

    values = _search_values(directive)
    if values is None:
        if is_scalar_type(target) and target.name not in DEFAULT_SEARCHES:
            return [
                GraphQLError(
                    f"{prefix} has the @search directive but type {target.name} has no "
                    "default search index.",
                    directive,
                )
            ]
        return []
    if not values:
        return [
            GraphQLError(
                f"{prefix} the @search directive needs at least one index in its "
                f"'{SEARCH_ARG}' argument; leave the argument out to use the default.",
                directive,
            )
        ]

    errors: List[GraphQLError] = []
    seen: Set[str] = set()
    for value in values:
        if not isinstance(value, EnumValueNode):
            errors.append(
                GraphQLError(
                    f"{prefix} the @search arguments must be index names, "
                    f"e.g. @search({SEARCH_ARG}: [exact]).",
                    value,
                )
            )
            continue

        modifier = value.value
        if modifier in seen:
            errors.append(
                GraphQLError(
                    f"{prefix} the argument to @search {modifier} is listed more than once.",
                    value,
                )
            )
            continue
        seen.add(modifier)

        if modifier not in SUPPORTED_SEARCHES:
            errors.append(
                GraphQLError(f"{prefix} the argument to @search {modifier} isn't a valid index.", value)
            )
        elif is_enum_type(target):
            if modifier not in ENUM_SEARCHES:
                errors.append(
                    GraphQLError(
                        f"{prefix} has the @search directive but the argument {modifier} "
                        f"doesn't apply to enum fields. Enum fields can be searched by "
                        f"{', '.join(sorted(ENUM_SEARCHES))}.",
                        value,
                    )
                )
        elif SUPPORTED_SEARCHES[modifier].gql_type != target.name:
            applies_to = SUPPORTED_SEARCHES[modifier].gql_type
            errors.append(
                GraphQLError(
                    f"{prefix} has the @search directive but the argument {modifier} doesn't "
                    f"apply to field type {target.name}. Search by {modifier} applies to "
                    f"fields of type {applies_to}.",
                    value,
                )
            )

    for first, second in COLLIDING_SEARCHES:
        if first in seen and second in seen:
            errors.append(
                GraphQLError(
                    f"{prefix} the arguments '{first}' and '{second}' can't be used "
                    "together as arguments to @search.",
                    directive,
                )
            )

    return errors


def _inverse_field_name(directive: DirectiveNode) -> Optional[str]:
    for arg in directive.arguments or ():
        if arg.name.value == INVERSE_ARG and isinstance(arg.value, (StringValueNode, EnumValueNode)):
            return arg.value.value
    return None


def _points_to(target: GraphQLNamedType, typ: GraphQLNamedType) -> bool:
    if target.name == typ.name:
        return True
    if isinstance(typ, GraphQLObjectType) and is_interface_type(target):
        return any(i.name == target.name for i in typ.interfaces)
    return False


def _inverse_validation(
    schema: GraphQLSchema,
    typ: GraphQLNamedType,
    field_name: str,
    fld: GraphQLField,
    directive: DirectiveNode,
) -> List[GraphQLError]:
    prefix = _prefix(typ, field_name)
    target = get_named_type(fld.type)

    if not (is_object_type(target) or is_interface_type(target)):
        return [
            GraphQLError(
                f"{prefix} Field {field_name} is of type {target.name}, but @hasInverse "
                "is only valid on fields that refer to types or interfaces.",
                directive,
            )
        ]

    inverse_name = _inverse_field_name(directive)
    if inverse_name is None:
        return [
            GraphQLError(
                f"{prefix} @hasInverse needs the name of the inverse field in its "
                f"'{INVERSE_ARG}' argument.",
                directive,
            )
        ]

    inverse = target.fields.get(inverse_name)
    if inverse is None:
        return [
            GraphQLError(
                f"{prefix} inverse field {inverse_name} doesn't exist for type {target.name}.",
                directive,
            )
        ]

    inverse_target = get_named_type(inverse.type)
    if not _points_to(inverse_target, typ):
        return [
            GraphQLError(
                f"{prefix} inverse field {inverse_name} is of type {inverse_target.name}, "
                f"but should be of type {typ.name}.",
                directive,
            )
        ]

    for d in _field_directives(inverse):
        if d.name.value != INVERSE_DIRECTIVE:
            continue
        back = _inverse_field_name(d)
        if back is not None and back != field_name:
            return [
                GraphQLError(
                    f"{prefix} inverse field {target.name}.{inverse_name} has "
                    f"@hasInverse({INVERSE_ARG}: \"{back}\"), which doesn't point back to "
                    f"{field_name}.",
                    directive,
                )
            ]
    return []


DIRECTIVE_RULES: Dict[str, DirectiveRule] = {
    SEARCH_DIRECTIVE: _search_validation,
    INVERSE_DIRECTIVE: _inverse_validation,
}
