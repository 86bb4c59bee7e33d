"""
Schema expansion: from the user's types to a complete GraphQL schema.

The input schema only describes types, relationships and searchability,
e.g.

    type Post {
        id: ID!
        title: String @search(by: [term])
        author: Author
    }

That isn't a usable GraphQL API.  Expansion adds:
- SCHEMA_EXTRAS: the DateTime scalar, the DgraphIndex enum, the @search and
  @hasInverse directives and the filter inputs
- for every user type/interface T, the inputs, payloads and orderings its
  operations need (AddTInput, PatchT, TFilter, TOrder, ...)
- Query (getT, queryT) and Mutation (addT, updateT, deleteT)

Invariants:
    - Expansion only appends; user definitions keep their names and order
    - Everything generated is derived mechanically from the user's fields
    - Expanding an expanded document returns it unchanged
    - Input that passed pre-validation always expands; anything else is an
      ExpansionError (internal)

How to change safely:
    - Add any new generated name to scaffolding_names() so pre-validation
      rejects user types that would collide with it
    - Keep generated definitions free of source locations; errors in them
      must not point into text the user never wrote
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Set, Tuple

from graphql import (
    DirectiveNode,
    DocumentNode,
    EnumTypeDefinitionNode,
    FieldDefinitionNode,
    GraphQLSyntaxError,
    InterfaceTypeDefinitionNode,
    ListTypeNode,
    NonNullTypeNode,
    ObjectTypeDefinitionNode,
    Source,
    TypeNode,
    parse,
)

from ..errors import ExpansionError
from .indexes import (
    DEFAULT_SEARCHES,
    EXPANSION_MARKER,
    ID_TYPE,
    ORDERABLE,
    SCHEMA_EXTRAS,
    SEARCH_DIRECTIVE,
    filter_fields,
    filter_for,
    search_modifiers,
)

logger = logging.getLogger(__name__)

OBJECT = "object"
INTERFACE = "interface"
ENUM = "enum"

# Field names that can't be enum values, so can't be listed in TOrderable.
NON_ENUM_NAMES = frozenset({"true", "false", "null"})

# Fields the generated TFilter always has.
FILTER_OPERATORS = ("and", "or", "not")


def scaffolding_names(type_name: str) -> List[str]:
    """Every definition name expansion may generate for a user type."""
    return [
        f"{type_name}Ref",
        f"Add{type_name}Input",
        f"Patch{type_name}",
        f"Update{type_name}Input",
        f"Add{type_name}Payload",
        f"Update{type_name}Payload",
        f"Delete{type_name}Payload",
        f"{type_name}Filter",
        f"{type_name}Orderable",
        f"{type_name}Order",
    ]


def is_expanded(document: DocumentNode) -> bool:
    """Whether the document already carries the expansion scaffolding."""
    return any(
        isinstance(d, EnumTypeDefinitionNode) and d.name.value == EXPANSION_MARKER
        for d in document.definitions
    )


@dataclass(frozen=True)
class _Field:
    name: str
    type_node: TypeNode
    type_name: str
    is_list: bool
    search: Optional[DirectiveNode]


@dataclass(frozen=True)
class _Type:
    name: str
    kind: str
    fields: Tuple[_Field, ...]

    @property
    def id_field(self) -> Optional[_Field]:
        for f in self.fields:
            if f.type_name == ID_TYPE:
                return f
        return None

    @property
    def data_fields(self) -> Tuple[_Field, ...]:
        return tuple(f for f in self.fields if f.type_name != ID_TYPE)


def _unwrap(type_node: TypeNode) -> Tuple[str, bool]:
    """Named type and whether the (outer) type is a list."""
    if isinstance(type_node, NonNullTypeNode):
        type_node = type_node.type
    is_list = isinstance(type_node, ListTypeNode)
    while isinstance(type_node, (ListTypeNode, NonNullTypeNode)):
        type_node = type_node.type
    return type_node.name.value, is_list


def _read_field(node: FieldDefinitionNode) -> _Field:
    type_name, is_list = _unwrap(node.type)
    search = next(
        (d for d in node.directives or () if d.name.value == SEARCH_DIRECTIVE),
        None,
    )
    return _Field(node.name.value, node.type, type_name, is_list, search)


def _read_types(document: DocumentNode) -> Tuple[List[_Type], Dict[str, str]]:
    types: List[_Type] = []
    kinds: Dict[str, str] = {}
    for defn in document.definitions:
        if isinstance(defn, ObjectTypeDefinitionNode):
            kind = OBJECT
        elif isinstance(defn, InterfaceTypeDefinitionNode):
            kind = INTERFACE
        elif isinstance(defn, EnumTypeDefinitionNode):
            kinds[defn.name.value] = ENUM
            continue
        else:
            continue
        kinds[defn.name.value] = kind
        fields = tuple(_read_field(f) for f in defn.fields or ())
        types.append(_Type(defn.name.value, kind, fields))
    return types, kinds


def _render_type(
    type_node: TypeNode,
    rename: Optional[Callable[[str], str]] = None,
    nullable: bool = False,
) -> str:
    """Print a type reference, optionally renaming its named type and
    dropping the outer non-null marker."""
    if isinstance(type_node, NonNullTypeNode):
        inner = _render_type(type_node.type, rename)
        return inner if nullable else f"{inner}!"
    if isinstance(type_node, ListTypeNode):
        return f"[{_render_type(type_node.type, rename)}]"
    name = type_node.name.value
    return rename(name) if rename else name


def _lower_first(name: str) -> str:
    return name[:1].lower() + name[1:]


def _block(keyword: str, name: str, lines: Sequence[str]) -> str:
    body = "\n".join(f"  {line}" for line in lines)
    return f"{keyword} {name} {{\n{body}\n}}"


class _Expander:
    """Builds the scaffolding SDL for one document."""

    def __init__(self, types: List[_Type], kinds: Dict[str, str]) -> None:
        self.types = types
        self.kinds = kinds
        self.ref_types = self._ref_types()
        self.combined_filters: Dict[str, List[Tuple[str, str]]] = {}
        self.queries: List[str] = []
        self.mutations: List[str] = []

    def _is_relationship(self, f: _Field) -> bool:
        return self.kinds.get(f.type_name) in (OBJECT, INTERFACE)

    def _ref_types(self) -> Set[str]:
        """Types that get a TRef input.

        Interfaces need an ID field; objects need at least one field that can
        be written, which may depend on other types having refs, so this
        iterates to a fixpoint.
        """
        refs = {
            t.name for t in self.types if t.kind == INTERFACE and t.id_field is not None
        }
        changed = True
        while changed:
            changed = False
            for t in self.types:
                if t.kind != OBJECT or t.name in refs:
                    continue
                if any(not self._is_relationship(f) or f.type_name in refs for f in t.fields):
                    refs.add(t.name)
                    changed = True
        return refs

    def _input_fields(self, fields: Sequence[_Field], nullable: bool) -> List[str]:
        lines = []
        for f in fields:
            if self._is_relationship(f) and f.type_name not in self.ref_types:
                continue
            typ = _render_type(f.type_node, self._as_ref, nullable=nullable)
            lines.append(f"{f.name}: {typ}")
        return lines

    def _as_ref(self, name: str) -> str:
        return f"{name}Ref" if self.kinds.get(name) in (OBJECT, INTERFACE) else name

    def _filter_type(self, f: _Field) -> Optional[str]:
        if f.search is None:
            return None
        if self.kinds.get(f.type_name) == ENUM:
            return f.type_name
        if f.type_name not in DEFAULT_SEARCHES:
            return None

        modifiers = search_modifiers(f.search)
        if modifiers is None:
            modifiers = [DEFAULT_SEARCHES[f.type_name]]
        filters = sorted({filter_for(m) for m in modifiers if filter_for(m) is not None})
        if len(filters) <= 1:
            return filters[0] if filters else None

        inputs = [name for name in filters if name in filter_fields()]
        if len(inputs) <= 1:
            return inputs[0] if inputs else filters[0]
        combined = "_".join(inputs)
        if combined not in self.combined_filters:
            merged: Dict[str, str] = {}
            for name in inputs:
                for fname, ftype in filter_fields()[name]:
                    merged.setdefault(fname, ftype)
            self.combined_filters[combined] = list(merged.items())
        return combined

    def expand_type(self, t: _Type) -> List[str]:
        defs: List[str] = []
        id_field = t.id_field
        payload_field = f"{_lower_first(t.name)}: [{t.name}]"

        if t.name in self.ref_types:
            ref_lines = []
            if id_field is not None:
                ref_lines.append(f"{id_field.name}: {ID_TYPE}")
            if t.kind == OBJECT:
                ref_lines.extend(self._input_fields(t.data_fields, nullable=True))
            defs.append(_block("input", f"{t.name}Ref", ref_lines))

        add_lines = self._input_fields(t.data_fields, nullable=False) if t.kind == OBJECT else []
        if add_lines:
            defs.append(_block("input", f"Add{t.name}Input", add_lines))
            defs.append(_block("type", f"Add{t.name}Payload", [payload_field]))

        patch_lines = self._input_fields(t.data_fields, nullable=True)
        if patch_lines:
            defs.append(_block("input", f"Patch{t.name}", patch_lines))
            defs.append(
                _block(
                    "input",
                    f"Update{t.name}Input",
                    [
                        f"filter: {t.name}Filter!",
                        f"set: Patch{t.name}",
                        f"remove: Patch{t.name}",
                    ],
                )
            )
            defs.append(_block("type", f"Update{t.name}Payload", [payload_field]))

        defs.append(_block("type", f"Delete{t.name}Payload", ["msg: String"]))

        filter_lines = []
        if id_field is not None:
            filter_lines.append(f"{id_field.name}: [{ID_TYPE}!]")
        for f in t.data_fields:
            filter_type = self._filter_type(f)
            if filter_type is not None:
                filter_lines.append(f"{f.name}: {filter_type}")
        filter_lines.extend(f"{op}: {t.name}Filter" for op in FILTER_OPERATORS)
        defs.append(_block("input", f"{t.name}Filter", filter_lines))

        orderable = [
            f.name
            for f in t.data_fields
            if f.type_name in ORDERABLE and not f.is_list and f.name not in NON_ENUM_NAMES
        ]
        if orderable:
            defs.append(_block("enum", f"{t.name}Orderable", orderable))
            defs.append(
                _block(
                    "input",
                    f"{t.name}Order",
                    [
                        f"asc: {t.name}Orderable",
                        f"desc: {t.name}Orderable",
                        f"then: {t.name}Order",
                    ],
                )
            )

        if id_field is not None:
            self.queries.append(f"get{t.name}({id_field.name}: {ID_TYPE}!): {t.name}")
        query_args = [f"filter: {t.name}Filter"]
        if orderable:
            query_args.append(f"order: {t.name}Order")
        query_args.extend(["first: Int", "offset: Int"])
        self.queries.append(f"query{t.name}({', '.join(query_args)}): [{t.name}]")

        if add_lines:
            self.mutations.append(
                f"add{t.name}(input: [Add{t.name}Input!]!): Add{t.name}Payload"
            )
        if patch_lines:
            self.mutations.append(
                f"update{t.name}(input: Update{t.name}Input!): Update{t.name}Payload"
            )
        self.mutations.append(f"delete{t.name}(filter: {t.name}Filter!): Delete{t.name}Payload")

        return defs

    def generate(self) -> str:
        defs: List[str] = []
        for t in self.types:
            defs.extend(self.expand_type(t))
        for name in sorted(self.combined_filters):
            lines = [f"{fname}: {ftype}" for fname, ftype in self.combined_filters[name]]
            defs.append(_block("input", name, lines))
        if self.queries:
            defs.append(_block("type", "Query", self.queries))
        if self.mutations:
            defs.append(_block("type", "Mutation", self.mutations))
        if not defs:
            return ""
        return "\n\n".join(defs) + "\n"


def generate_scaffolding(document: DocumentNode) -> str:
    """SDL text of every definition generated for the document's types.

    Empty when the document has no types or interfaces.
    """
    types, kinds = _read_types(document)
    return _Expander(types, kinds).generate()


def _parse_generated(text: str, name: str) -> DocumentNode:
    if not text.strip():
        return DocumentNode(definitions=())
    try:
        return parse(Source(text, name), no_location=True)
    except GraphQLSyntaxError as exc:
        logger.error(f"Generated {name} doesn't parse: {exc.message}")
        raise ExpansionError(f"Generated {name} is not valid GraphQL: {exc.message}") from exc


def expand_schema(document: DocumentNode) -> DocumentNode:
    """Add the scaffolding needed to make the user's document a full schema.

    Args:
        document: A document that passed pre-validation

    Returns:
        A new document: the user's definitions followed by SCHEMA_EXTRAS and
        the generated definitions.  An already expanded document is
        returned as is.

    Raises:
        ExpansionError: If the generated definitions don't parse
    """
    if is_expanded(document):
        logger.debug("Document is already expanded")
        return document

    extras = _parse_generated(SCHEMA_EXTRAS, "schema extras")
    generated = _parse_generated(generate_scaffolding(document), "scaffolding")

    logger.debug(
        f"Expanded {len(document.definitions)} definition(s) with "
        f"{len(extras.definitions) + len(generated.definitions)} generated definition(s)"
    )
    return DocumentNode(
        definitions=tuple(document.definitions)
        + tuple(extras.definitions)
        + tuple(generated.definitions)
    )
