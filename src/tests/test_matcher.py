"""Tests for pattern compilation."""

import re

import pytest

from dns_router.core.errors import PatternError, UnknownSymbolError
from dns_router.core.matcher import (
    PatternKind,
    classify,
    compile_pattern,
    suffix_pattern,
)
from dns_router.core.message import Question, Request


def request(*questions):
    return Request(questions=list(questions))


class TestClassify:
    def test_kinds(self):
        assert classify(lambda r: True) is PatternKind.PREDICATE
        assert classify("example.com") is PatternKind.NAME
        assert classify(re.compile("x")) is PatternKind.NAME
        assert classify(["a", "b"]) is PatternKind.ANY_OF
        assert classify({"name": "a"}) is PatternKind.FIELDS

    def test_unsupported(self):
        with pytest.raises(PatternError, match="int"):
            classify(42)


class TestNamePatterns:
    """Strings and regexes match names in class IN."""

    def test_exact_string(self):
        matcher = compile_pattern("example.com")
        assert matcher(request(Question("example.com")))
        assert not matcher(request(Question("www.example.com")))

    def test_string_requires_class_in(self):
        matcher = compile_pattern("version.bind")
        assert not matcher(request(Question("version.bind", 16, 3)))

    def test_regex_searches_name(self):
        matcher = compile_pattern(re.compile(r"\.example\.com$"))
        assert matcher(request(Question("www.example.com")))
        assert not matcher(request(Question("example.org")))

    def test_suffix_pattern_is_literal(self):
        matcher = compile_pattern(suffix_pattern("a.b"))
        assert matcher(request(Question("host.a.b")))
        assert not matcher(request(Question("host.axb")))


class TestCompositePatterns:
    def test_list_is_any_of(self):
        matcher = compile_pattern(["example.com", re.compile(r"\.org$")])
        assert matcher(request(Question("example.com")))
        assert matcher(request(Question("www.example.org")))
        assert not matcher(request(Question("example.net")))

    def test_fields_are_all_of(self):
        matcher = compile_pattern({"name": "example.com", "type": "AAAA"})
        assert matcher(request(Question("example.com", 28)))
        assert not matcher(request(Question("example.com", 1)))

    def test_field_values_are_alternatives(self):
        matcher = compile_pattern({"type": ["A", "AAAA"]})
        assert matcher(request(Question("x", 1)))
        assert matcher(request(Question("x", 28)))
        assert not matcher(request(Question("x", 15)))

    def test_any_question_may_match(self):
        matcher = compile_pattern({"name": "b.test"})
        assert matcher(request(Question("a.test"), Question("b.test")))
        assert not matcher(request())

    def test_fields_must_match_within_one_question(self):
        matcher = compile_pattern({"name": "a.test", "type": "MX"})
        assert not matcher(request(Question("a.test", 1), Question("b.test", 15)))

    def test_regex_on_numeric_field(self):
        matcher = compile_pattern({"type": re.compile(r"^2")})
        assert matcher(request(Question("x", 28)))
        assert not matcher(request(Question("x", 1)))

    def test_unknown_field_never_matches(self):
        matcher = compile_pattern({"ttl": 300})
        assert not matcher(request(Question("x")))


class TestCompileErrors:
    def test_callable_used_as_is(self):
        def predicate(req):
            return True

        assert compile_pattern(predicate) is predicate

    def test_nested_unsupported_pattern(self):
        with pytest.raises(PatternError):
            compile_pattern(["example.com", 3.5])

    def test_unknown_symbol_is_eager(self):
        with pytest.raises(UnknownSymbolError):
            compile_pattern({"type": "NOPE"})
