"""Tests for the per-context result record and its status transitions."""
from __future__ import annotations

import pytest

from solplan.package.domain.context_item_model import ContextItem, ContextStatus, Diagnostic, Severity
from solplan.package.domain.errors import ContextStateError, DeviceNotFoundError, ErrorKind
from solplan.package.domain.solution_model import Solution


@pytest.fixture
def item(solution: Solution) -> ContextItem:
    return ContextItem(descriptor=solution.expand()[0])


def test_new_item_is_pending(item: ContextItem) -> None:
    assert item.status is ContextStatus.PENDING
    assert item.name == "App.Debug+BoardA"
    assert item.resolved_layers == []


def test_succeed_is_terminal(item: ContextItem) -> None:
    item.succeed()
    assert item.status is ContextStatus.SUCCEEDED
    with pytest.raises(ContextStateError):
        item.fail(DeviceNotFoundError("nope"))


def test_fail_records_error_and_diagnostic(item: ContextItem) -> None:
    error = DeviceNotFoundError("missing device and/or board info", subject=item.name)
    item.fail(error)
    assert item.status is ContextStatus.FAILED
    assert item.error is error
    assert item.diagnostics[-1] == Diagnostic(
        kind=ErrorKind.DEVICE_NOT_FOUND,
        message="missing device and/or board info",
        severity=Severity.ERROR,
        subject="App.Debug+BoardA")
    with pytest.raises(ContextStateError):
        item.succeed()


def test_warnings_do_not_change_status(item: ContextItem) -> None:
    item.warn(ErrorKind.UNRESOLVED_COMPONENT_DEPENDENCY, "component 'X' not found", subject="X")
    assert item.status is ContextStatus.PENDING
    assert [w.subject for w in item.warnings] == ["X"]
    assert str(item.warnings[0]) == "warning: component 'X' not found"


def test_to_mapping_reports_status_and_directories(item: ContextItem) -> None:
    item.succeed()
    mapping = item.to_mapping()
    assert mapping["context"] == "App.Debug+BoardA"
    assert mapping["status"] == "SUCCEEDED"
    assert mapping["target"] is None
    assert mapping["directories"]["outdir"].endswith("out/App/BoardA/Debug")
