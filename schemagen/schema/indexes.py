"""
Index catalog for the GraphQL to Dgraph mapping.

This module holds the fixed lookup tables shared by every pipeline stage:
- Search modifiers (the values of ``@search(by: [...])``) and the Dgraph
  index each one maps to
- The default index used by a bare ``@search``
- GraphQL scalar to Dgraph storage type mapping
- Filter inputs used by the generated query API
- SCHEMA_EXTRAS, the SDL injected by the expander

Invariants:
    - Tables are module constants and are never mutated after import
    - Every modifier in SUPPORTED_SEARCHES is a value of the DgraphIndex
      enum in SCHEMA_EXTRAS
    - Every filter named in BUILT_IN_FILTERS is defined in SCHEMA_EXTRAS,
      except ``Boolean`` which is a built-in scalar

How to change safely:
    - Add a modifier to SUPPORTED_SEARCHES, the DgraphIndex enum and
      BUILT_IN_FILTERS together
    - Never change the Dgraph index an existing modifier maps to; stored
      data is indexed with it
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, List, Optional, Tuple

from graphql import (
    DirectiveNode,
    DocumentNode,
    EnumValueNode,
    InputObjectTypeDefinitionNode,
    ListValueNode,
    StringValueNode,
    ValueNode,
    parse,
    print_ast,
)

ID_TYPE = "ID"
DATETIME_TYPE = "DateTime"

SEARCH_DIRECTIVE = "search"
SEARCH_ARG = "by"
INVERSE_DIRECTIVE = "hasInverse"
INVERSE_ARG = "field"

# Marks a document that already went through expansion.
EXPANSION_MARKER = "DgraphIndex"

BUILT_IN_SCALARS = ("ID", "Boolean", "Int", "Float", "String")

SCHEMA_EXTRAS = """\
scalar DateTime

enum DgraphIndex {
  int
  float
  bool
  hash
  exact
  term
  fulltext
  trigram
  regexp
  year
  month
  day
  hour
}

directive @hasInverse(field: String!) on FIELD_DEFINITION

directive @search(by: [DgraphIndex!]) on FIELD_DEFINITION

input IntFilter {
  eq: Int
  le: Int
  lt: Int
  ge: Int
  gt: Int
}

input FloatFilter {
  eq: Float
  le: Float
  lt: Float
  ge: Float
  gt: Float
}

input DateTimeFilter {
  eq: DateTime
  le: DateTime
  lt: DateTime
  ge: DateTime
  gt: DateTime
}

input StringTermFilter {
  allofterms: String
  anyofterms: String
}

input StringRegExpFilter {
  regexp: String
}

input StringFullTextFilter {
  alloftext: String
  anyoftext: String
}

input StringExactFilter {
  eq: String
  le: String
  lt: String
  ge: String
  gt: String
}

input StringHashFilter {
  eq: String
}
"""


@dataclass(frozen=True)
class SearchTypeIndex:
    """A search modifier's applicable GraphQL type and its Dgraph index."""

    gql_type: str
    dg_index: str


SUPPORTED_SEARCHES: Dict[str, SearchTypeIndex] = {
    "int": SearchTypeIndex("Int", "int"),
    "float": SearchTypeIndex("Float", "float"),
    "bool": SearchTypeIndex("Boolean", "bool"),
    "hash": SearchTypeIndex("String", "hash"),
    "exact": SearchTypeIndex("String", "exact"),
    "term": SearchTypeIndex("String", "term"),
    "fulltext": SearchTypeIndex("String", "fulltext"),
    "trigram": SearchTypeIndex("String", "trigram"),
    "regexp": SearchTypeIndex("String", "trigram"),
    "year": SearchTypeIndex("DateTime", "year"),
    "month": SearchTypeIndex("DateTime", "month"),
    "day": SearchTypeIndex("DateTime", "day"),
    "hour": SearchTypeIndex("DateTime", "hour"),
}

# Used when a field has @search with no arguments.
DEFAULT_SEARCHES: Dict[str, str] = {
    "Boolean": "bool",
    "Int": "int",
    "Float": "float",
    "String": "term",
    "DateTime": "year",
}

SCALAR_TO_DGRAPH: Dict[str, str] = {
    "ID": "uid",
    "Boolean": "bool",
    "Int": "int",
    "Float": "float",
    "String": "string",
    "DateTime": "dateTime",
}

# Modifiers that make sense on an enum field.  Enum fields always get the
# exact index, and hash can't be combined with exact.
ENUM_SEARCHES = frozenset({"exact", "trigram", "regexp"})

# Pairs of modifiers that can't be applied to the same field.
COLLIDING_SEARCHES: Tuple[Tuple[str, str], ...] = (("hash", "exact"),)

ENUM_INDEX = "exact"

ORDERABLE = frozenset({"Int", "Float", "String", "DateTime"})

BUILT_IN_FILTERS: Dict[str, str] = {
    "bool": "Boolean",
    "int": "IntFilter",
    "float": "FloatFilter",
    "year": "DateTimeFilter",
    "month": "DateTimeFilter",
    "day": "DateTimeFilter",
    "hour": "DateTimeFilter",
    "term": "StringTermFilter",
    "trigram": "StringRegExpFilter",
    "regexp": "StringRegExpFilter",
    "fulltext": "StringFullTextFilter",
    "exact": "StringExactFilter",
    "hash": "StringHashFilter",
}


def index_kind_for(scalar: str, modifier: str) -> str:
    """Dgraph index for a search modifier on a field of type ``scalar``.

    That the modifier applies to the scalar is checked in post-validation
    and is not re-checked here.
    """
    return SUPPORTED_SEARCHES[modifier].dg_index


def default_index_for(scalar: str) -> str:
    """Dgraph index used by a bare ``@search`` on a field of type ``scalar``."""
    return DEFAULT_SEARCHES[scalar]


def dgraph_type_for(scalar: str) -> Optional[str]:
    """Dgraph storage type of a GraphQL scalar, or None if it has none."""
    return SCALAR_TO_DGRAPH.get(scalar)


def filter_for(modifier: str) -> Optional[str]:
    """Name of the filter input (or scalar) generated for a search modifier."""
    return BUILT_IN_FILTERS.get(modifier)


def search_modifiers(directive: DirectiveNode) -> Optional[List[str]]:
    """Raw ``by:`` values of a ``@search`` directive.

    Returns None when the argument is absent.  A single enum value is read
    as a one item list, following GraphQL input coercion.  Values that are
    not enum or string literals are skipped; post-validation reports them.
    """
    for arg in directive.arguments or ():
        if arg.name.value == SEARCH_ARG:
            return _value_names(arg.value)
    return None


def _value_names(value: ValueNode) -> List[str]:
    if isinstance(value, ListValueNode):
        names: List[str] = []
        for item in value.values:
            names.extend(_value_names(item))
        return names
    if isinstance(value, (EnumValueNode, StringValueNode)):
        return [value.value]
    return []


def dgraph_indexes(scalar: str, directive: Optional[DirectiveNode]) -> List[str]:
    """Dgraph indexes for a scalar field carrying ``directive`` (or None)."""
    if directive is None:
        return []
    modifiers = search_modifiers(directive)
    if modifiers is None:
        default = DEFAULT_SEARCHES.get(scalar)
        return [default] if default else []
    return [index_kind_for(scalar, m) for m in modifiers if m in SUPPORTED_SEARCHES]


@lru_cache(maxsize=1)
def extras_document() -> DocumentNode:
    """SCHEMA_EXTRAS parsed once per process; callers must not mutate it."""
    return parse(SCHEMA_EXTRAS, no_location=True)


@lru_cache(maxsize=1)
def extras_names() -> frozenset:
    """Names of every definition in SCHEMA_EXTRAS."""
    return frozenset(d.name.value for d in extras_document().definitions)


@lru_cache(maxsize=1)
def filter_fields() -> Dict[str, Tuple[Tuple[str, str], ...]]:
    """Filter input name -> ((field name, printed type), ...) from SCHEMA_EXTRAS."""
    fields: Dict[str, Tuple[Tuple[str, str], ...]] = {}
    for defn in extras_document().definitions:
        if isinstance(defn, InputObjectTypeDefinitionNode):
            fields[defn.name.value] = tuple(
                (f.name.value, print_ast(f.type)) for f in defn.fields or ()
            )
    return fields
