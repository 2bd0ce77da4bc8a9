"""Schema checks for KT-SQEP type codes and relation tokens.

The predicates are pure and never raise. The parse_* functions are the
boundary between loosely typed callers (GUI widgets, scripting bindings,
decoded files) and the closed enums used inside the core: they accept raw
strings or enum members and raise on anything outside the alphabet.
Unknown codes are never dropped or mapped to a default.
"""

from __future__ import annotations

from typing import Iterable, Union

from ..errors import InvalidRelation, InvalidSchemaCode
from ..schema.edges import Relation
from ..schema.nodes import AddonType, DistinctType

DISTINCT_TYPE_CODES = frozenset(t.value for t in DistinctType)
ADDON_CODES = frozenset(a.value for a in AddonType)
RELATION_TOKENS = frozenset(r.value for r in Relation)

AddonInput = Union[str, Iterable[Union[str, AddonType]]]


def _normalize(code: object) -> str | None:
    if isinstance(code, str):
        return code.lower()
    return None


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------

def is_valid_distinct_type(code: object) -> bool:
    """True if code is one of ka, ku, kp, kd."""
    return _normalize(code) in DISTINCT_TYPE_CODES


def is_valid_addon_code(code: object) -> bool:
    """True if code is a single addon code: k, t, e, q, p or z."""
    return _normalize(code) in ADDON_CODES


def is_valid_relation(token: object) -> bool:
    """True if token is contain or order."""
    return _normalize(token) in RELATION_TOKENS


# ---------------------------------------------------------------------------
# Boundary parsers
# ---------------------------------------------------------------------------

def parse_distinct_type(code: Union[str, DistinctType]) -> DistinctType:
    if isinstance(code, DistinctType):
        return code
    if not is_valid_distinct_type(code):
        raise InvalidSchemaCode(code, "distinct type")
    return DistinctType(_normalize(code))


def parse_addon_types(codes: AddonInput | None) -> frozenset[AddonType]:
    """Parse addon codes into a set.

    Accepts a code string ("kte") or an iterable of codes / AddonType members.
    Duplicates collapse. The whole input is rejected if any code is unknown.
    """
    if codes is None:
        return frozenset()
    if isinstance(codes, AddonType):
        return frozenset({codes})

    items = list(codes)
    parsed: set[AddonType] = set()
    for item in items:
        if isinstance(item, AddonType):
            parsed.add(item)
        elif is_valid_addon_code(item):
            parsed.add(AddonType(_normalize(item)))
        else:
            raise InvalidSchemaCode(item, "addon type")
    return frozenset(parsed)


def parse_relation(token: Union[str, Relation]) -> Relation:
    if isinstance(token, Relation):
        return token
    if not is_valid_relation(token):
        raise InvalidRelation(token)
    return Relation(_normalize(token))
