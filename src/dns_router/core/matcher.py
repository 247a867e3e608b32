"""
Request Matchers

Patterns are compiled once, at registration time, into plain predicates over a
Request. A pattern is one of:
- a callable, used as-is
- a string or compiled regex, shorthand for {"class": "IN", "name": pattern}
- a list/tuple of patterns, matching if any element matches
- a mapping of field name to value(s), matching if some question matches
  every field (values in a list are alternatives for that field)
"""

import re
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Tuple

import dns.rdataclass

from .errors import PatternError
from .message import Request
from .records import normalize_record

Matcher = Callable[[Request], bool]
ValueTest = Callable[[Any], bool]

DEFAULT_CLASS = int(dns.rdataclass.IN)


class PatternKind(Enum):
    """Variants a pattern can take"""

    PREDICATE = "predicate"
    NAME = "name"
    ANY_OF = "any_of"
    FIELDS = "fields"


def classify(pattern: Any) -> PatternKind:
    if callable(pattern):
        return PatternKind.PREDICATE
    if isinstance(pattern, (str, re.Pattern)):
        return PatternKind.NAME
    if isinstance(pattern, (list, tuple)):
        return PatternKind.ANY_OF
    if isinstance(pattern, Mapping):
        return PatternKind.FIELDS
    raise PatternError(f"Cannot build a matcher from {type(pattern).__name__}")


def suffix_pattern(suffix: str) -> "re.Pattern[str]":
    """Regex matching names that end with ``suffix`` (taken literally)"""
    return re.compile(re.escape(suffix) + "$")


def _value_test(like: Any) -> ValueTest:
    if isinstance(like, re.Pattern):
        search = like.search
        return lambda value: value is not None and search(str(value)) is not None
    return lambda value: value == like


def _field_test(alternatives: List[Any]) -> ValueTest:
    tests = [_value_test(like) for like in alternatives]
    if len(tests) == 1:
        return tests[0]
    return lambda value: any(test(value) for test in tests)


def _compile_predicate(pattern: Callable[[Request], bool]) -> Matcher:
    return pattern


def _compile_name(pattern: Any) -> Matcher:
    return _compile_fields({"class": DEFAULT_CLASS, "name": pattern})


def _compile_any_of(pattern: Any) -> Matcher:
    matchers = [compile_pattern(p) for p in pattern]

    def match_any(request: Request) -> bool:
        return any(m(request) for m in matchers)

    return match_any


def _compile_fields(pattern: Mapping[str, Any]) -> Matcher:
    tests: List[Tuple[str, ValueTest]] = [
        (key, _field_test(values))
        for key, values in normalize_record(pattern).items()
    ]

    def match_fields(request: Request) -> bool:
        return any(
            all(test(question.field(key)) for key, test in tests)
            for question in request.questions
        )

    return match_fields


_COMPILERS: Dict[PatternKind, Callable[[Any], Matcher]] = {
    PatternKind.PREDICATE: _compile_predicate,
    PatternKind.NAME: _compile_name,
    PatternKind.ANY_OF: _compile_any_of,
    PatternKind.FIELDS: _compile_fields,
}


def compile_pattern(pattern: Any) -> Matcher:
    """Compile ``pattern`` into a Matcher.

    Raises:
        PatternError: If the pattern (or a nested one) has an unsupported type
        UnknownSymbolError: If a type/class symbol has no numeric code
    """
    return _COMPILERS[classify(pattern)](pattern)
