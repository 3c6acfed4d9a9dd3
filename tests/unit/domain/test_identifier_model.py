"""Tests for context identifier parsing, formatting and matching."""
from __future__ import annotations

import pytest

from solplan.package.domain import identifier_model
from solplan.package.domain.errors import ErrorKind, MalformedIdentifierError
from solplan.package.domain.identifier_model import ContextIdentifier, matches_target_type


class TestParse:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("App.Debug+BoardA", ("App", "Debug", "BoardA")),
            ("App", ("App", None, None)),
            ("App.Debug", ("App", "Debug", None)),
            ("App+BoardA", ("App", None, "BoardA")),
            (".Debug", (None, "Debug", None)),
            ("+BoardA", (None, None, "BoardA")),
            (".Release+BoardB", (None, "Release", "BoardB")),
        ],
    )
    def test_parses_every_axis_combination(self, text: str, expected: tuple) -> None:
        ident = ContextIdentifier.parse(text)
        assert (ident.project, ident.build_type, ident.target_type) == expected

    @pytest.mark.parametrize(
        "text",
        ["App.Debug+BoardA", "App", ".Debug", "+BoardA", "App+BoardA", "Blinky_2.Debug-1"],
    )
    def test_format_is_inverse_of_parse(self, text: str) -> None:
        """Round trip: format(parse(s)) == s for well-formed identifiers."""
        assert identifier_model.format(identifier_model.parse(text)) == text

    @pytest.mark.parametrize(
        "text",
        ["", ".", "+", "App..Debug", "App.Debug.Extra", "App+A+B", "App Debug", "App.+BoardA", " App"],
    )
    def test_malformed_text_is_rejected(self, text: str) -> None:
        with pytest.raises(MalformedIdentifierError) as exc:
            ContextIdentifier.parse(text)
        assert exc.value.kind == ErrorKind.MALFORMED_IDENTIFIER

    def test_non_string_is_rejected(self) -> None:
        with pytest.raises(MalformedIdentifierError):
            ContextIdentifier.parse(42)  # type: ignore[arg-type]

    def test_malformed_identifier_is_a_value_error(self) -> None:
        with pytest.raises(ValueError):
            ContextIdentifier.parse("App..Debug")


class TestValueSemantics:
    def test_empty_axes_normalize_to_none(self) -> None:
        assert ContextIdentifier("App", "") == ContextIdentifier("App")
        assert hash(ContextIdentifier("App", "", "")) == hash(ContextIdentifier("App"))

    def test_constructor_rejects_separators_in_names(self) -> None:
        with pytest.raises(MalformedIdentifierError):
            ContextIdentifier("App.Debug")

    def test_ordering_is_field_wise_and_absent_sorts_first(self) -> None:
        idents = [
            ContextIdentifier.parse("B.Debug"),
            ContextIdentifier.parse("A.Release+X"),
            ContextIdentifier.parse("A.Debug+Y"),
            ContextIdentifier.parse("A.Debug"),
        ]
        assert [str(i) for i in sorted(idents)] == ["A.Debug", "A.Debug+Y", "A.Release+X", "B.Debug"]

    def test_comparison_is_case_sensitive(self) -> None:
        assert ContextIdentifier("app") != ContextIdentifier("App")


class TestMatches:
    concrete = ContextIdentifier.parse("App.Debug+BoardA")

    @pytest.mark.parametrize("pattern", ["App", ".Debug", "+BoardA", "App.Debug", "App+BoardA", "App.Debug+BoardA"])
    def test_non_empty_fields_must_be_equal(self, pattern: str) -> None:
        assert identifier_model.matches(ContextIdentifier.parse(pattern), self.concrete)

    @pytest.mark.parametrize("pattern", ["Other", ".Release", "+BoardB", "App.Release", "App.Debug+BoardB"])
    def test_differing_field_does_not_match(self, pattern: str) -> None:
        assert not ContextIdentifier.parse(pattern).matches(self.concrete)

    def test_empty_pattern_matches_everything(self) -> None:
        assert ContextIdentifier().matches(self.concrete)


class TestMatchesTargetType:
    def test_accepts_bare_and_prefixed_patterns(self) -> None:
        assert matches_target_type("BoardA", "BoardA")
        assert matches_target_type("+BoardA", "BoardA")

    def test_other_target_type_does_not_match(self) -> None:
        assert not matches_target_type("BoardA", "BoardB")

    def test_malformed_pattern_raises(self) -> None:
        with pytest.raises(MalformedIdentifierError):
            matches_target_type("Board A", "BoardA")
