"""Tests for context selection: filters, missing filters, context set and ordering."""
from __future__ import annotations

import pytest

from helpers.builders import make_solution
from solplan.package.domain.build_index_model import ContextSet
from solplan.package.domain.errors import ErrorKind, MalformedIdentifierError, NoContextSelectedError
from solplan.package.domain.identifier_model import ContextIdentifier
from solplan.package.domain.options_model import SelectionMode
from solplan.package.domain.solution_model import Solution
from solplan.package.lifecycle.plan.selection.selection_policy import order_contexts, select_contexts


class TestSelectContexts:
    def test_no_filter_selects_everything_in_declaration_order(self, solution: Solution) -> None:
        selection = select_contexts(solution.expand())
        assert selection.names == [
            "App.Debug+BoardA",
            "App.Debug+BoardB",
            "App.Release+BoardA",
            "App.Release+BoardB",
        ]
        assert selection.missing_filters == []

    def test_partial_patterns_select_by_axis(self, solution: Solution) -> None:
        assert select_contexts(solution.expand(), ["+BoardB"]).names == ["App.Debug+BoardB", "App.Release+BoardB"]
        assert select_contexts(solution.expand(), [".Release"]).names == ["App.Release+BoardA", "App.Release+BoardB"]

    def test_pattern_order_does_not_matter(self, solution: Solution) -> None:
        forward = select_contexts(solution.expand(), ["+BoardB", ".Debug"])
        backward = select_contexts(solution.expand(), [".Debug", "+BoardB"])
        assert forward.names == backward.names == ["App.Debug+BoardA", "App.Debug+BoardB", "App.Release+BoardB"]

    def test_overlapping_patterns_select_once(self, solution: Solution) -> None:
        assert len(select_contexts(solution.expand(), ["App", "App.Debug+BoardA"])) == 4

    def test_unmatched_pattern_is_a_missing_filter(self, solution: Solution) -> None:
        selection = select_contexts(solution.expand(), ["+BoardA", "+Nope"])
        assert selection.names == ["App.Debug+BoardA", "App.Release+BoardA"]
        assert selection.missing_filters == ["+Nope"]
        assert [d.kind for d in selection.diagnostics] == [ErrorKind.UNKNOWN_CONTEXT]

    def test_malformed_pattern_next_to_a_match_is_a_missing_filter(self, solution: Solution) -> None:
        selection = select_contexts(solution.expand(), ["App..Debug", "+BoardA"])
        assert len(selection) == 2
        assert selection.missing_filters == ["App..Debug"]

    def test_nothing_matched_raises(self, solution: Solution) -> None:
        with pytest.raises(NoContextSelectedError):
            select_contexts(solution.expand(), ["+Nope", "Other"])

    def test_only_malformed_patterns_raise_malformed(self, solution: Solution) -> None:
        with pytest.raises(MalformedIdentifierError):
            select_contexts(solution.expand(), ["App..Debug", "+Nope"])


class TestContextSet:
    """The context set only steps in when requested and no explicit filter is given."""

    def test_context_set_patterns_are_used(self, solution: Solution) -> None:
        context_set = ContextSet(contexts=[ContextIdentifier.parse("App.Release+BoardB")])
        selection = select_contexts(solution.expand(), context_set=context_set, use_context_set=True)
        assert selection.names == ["App.Release+BoardB"]
        assert selection.from_context_set

    def test_explicit_patterns_win_over_the_context_set(self, solution: Solution) -> None:
        context_set = ContextSet(contexts=[ContextIdentifier.parse("App.Release+BoardB")])
        selection = select_contexts(
            solution.expand(), ["+BoardA"], context_set=context_set, use_context_set=True)
        assert selection.names == ["App.Debug+BoardA", "App.Release+BoardA"]
        assert not selection.from_context_set

    def test_missing_context_set_selects_everything_with_a_warning(self, solution: Solution) -> None:
        selection = select_contexts(solution.expand(), use_context_set=True)
        assert len(selection) == 4
        assert [d.kind for d in selection.diagnostics] == [ErrorKind.CONTEXT_SET_MISSING]

    def test_context_set_is_ignored_unless_requested(self, solution: Solution) -> None:
        context_set = ContextSet(contexts=[ContextIdentifier.parse("App.Release+BoardB")])
        assert len(select_contexts(solution.expand(), context_set=context_set)) == 4


def test_yml_order_puts_listed_contexts_first() -> None:
    sln = make_solution(context_order=("App.Release+BoardB", "App.Debug+BoardB"))
    ordered = order_contexts(sln.expand(), SelectionMode.YML_ORDER)
    assert [d.name for d in ordered] == [
        "App.Release+BoardB",
        "App.Debug+BoardB",
        "App.Debug+BoardA",
        "App.Release+BoardA",
    ]


def test_selection_applies_the_requested_order() -> None:
    sln = make_solution(context_order=("App.Release+BoardB",))
    selection = select_contexts(sln.expand(), ["+BoardB"], mode=SelectionMode.YML_ORDER)
    assert selection.names == ["App.Release+BoardB", "App.Debug+BoardB"]
