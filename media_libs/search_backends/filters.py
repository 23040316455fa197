"""Filter expressions for the Meilisearch primary index.

Filters are built as a small tree of nodes and serialized in one place so
caller-supplied values never leak into the query language unescaped:

- ``Condition``: ``field = value``
- ``AnyOf``: an OR-group of conditions on one field, always parenthesized
- ``Not``: negation of an OR-group
- ``FilterClauses``: the ordered clause list sent as the ``filter`` param

Values made only of letters, digits, ``_``, ``-`` and ``.`` are emitted bare,
which keeps expressions for ordinary genre/tag/format names identical to what
clients have always received. Filter keywords such as ``AND`` or ``TO`` are
always quoted. Anything else is emitted as a double-quoted
string literal with ``\\`` and ``"`` escaped.
"""

import re
from dataclasses import dataclass, field
from typing import Iterable, Optional, Tuple, Union

_BARE_VALUE = re.compile(r"^[A-Za-z0-9_.\-]+$")

# Words the filter parser reads as operators wherever they appear.
_KEYWORDS = frozenset({
    "AND", "OR", "NOT", "TO", "EXISTS", "IN", "IS", "NULL", "EMPTY",
    "CONTAINS", "STARTS", "WITH",
})


def quote_value(value: str) -> str:
    """Render a filter value, quoting it unless it is a plain token."""
    if _BARE_VALUE.match(value) and value.upper() not in _KEYWORDS:
        return value
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


@dataclass(frozen=True)
class Condition:
    """Equality between an indexed attribute and a value."""

    attribute: str
    value: str

    def to_expression(self) -> str:
        return f"{self.attribute} = {quote_value(self.value)}"


@dataclass(frozen=True)
class AnyOf:
    """Parenthesized OR-group of equality conditions."""

    conditions: Tuple[Condition, ...]

    @classmethod
    def of(cls, attribute: str, values: Iterable[str]) -> "AnyOf":
        return cls(tuple(Condition(attribute, str(value)) for value in values))

    def to_expression(self) -> str:
        return "(" + " OR ".join(c.to_expression() for c in self.conditions) + ")"


@dataclass(frozen=True)
class Not:
    """Negated OR-group."""

    operand: AnyOf

    def to_expression(self) -> str:
        return f"NOT {self.operand.to_expression()}"


FilterNode = Union[Condition, AnyOf, Not]


@dataclass(frozen=True)
class FilterClauses:
    """Ordered clause list joined with ``AND``.

    The format clause leads without a connective. Every other clause carries
    its own `` AND `` prefix, including when no format clause precedes it;
    existing consumers depend on that exact string.
    """

    leading: Optional[FilterNode] = None
    conjuncts: Tuple[FilterNode, ...] = field(default_factory=tuple)

    def is_empty(self) -> bool:
        return self.leading is None and not self.conjuncts

    def to_expression(self) -> str:
        expression = self.leading.to_expression() if self.leading is not None else ""
        for clause in self.conjuncts:
            expression += f" AND {clause.to_expression()}"
        return expression


def build_filter(
    formats: Iterable[str] = (),
    genres: Iterable[str] = (),
    genres_excluded: Iterable[str] = (),
    tags: Iterable[str] = (),
    tags_excluded: Iterable[str] = (),
) -> FilterClauses:
    """Build the filter for a media search request.

    Clause order is fixed: formats, genres, excluded genres, tags, excluded
    tags. Empty lists contribute no clause.
    """
    formats = list(formats)
    leading = AnyOf.of("format", formats) if formats else None

    conjuncts = []
    for attribute, values, negate in (
        ("genres", list(genres), False),
        ("genres", list(genres_excluded), True),
        ("tags", list(tags), False),
        ("tags", list(tags_excluded), True),
    ):
        if not values:
            continue
        group = AnyOf.of(attribute, values)
        conjuncts.append(Not(group) if negate else group)

    return FilterClauses(leading=leading, conjuncts=tuple(conjuncts))
