from __future__ import annotations

import concurrent.futures
import contextvars
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from solplan.helper.multiformat_serializable_mixin import MultiformatSerializableMixin
from solplan.package.domain.build_index_model import BuildIndex, ContextSet
from solplan.package.domain.context_item_model import ContextItem, ContextStatus, Diagnostic
from solplan.package.domain.errors import RunCancelledError
from solplan.package.domain.identifier_model import ContextIdentifier
from solplan.package.domain.options_model import RunOptions
from solplan.package.domain.requirements_model import ToolchainRequirement
from solplan.package.domain.solution_model import ContextDescriptor, Solution
from solplan.package.lifecycle.audit.plan_event_model import EventType, LevelType, StageType, record_event
from solplan.package.lifecycle.plan.context_builder import BuildSettings, build_context
from solplan.package.lifecycle.plan.inventory.collaborators import Collaborators
from solplan.package.lifecycle.plan.selection.selection_policy import ContextSelection, select_contexts


class RunOutcome(str, Enum):
    SUCCESS = "SUCCESS"
    SUCCESS_WITH_WARNINGS = "SUCCESS_WITH_WARNINGS"
    FAILED = "FAILED"


@dataclass(slots=True, kw_only=True)
class RunResult(MultiformatSerializableMixin):
    """
    Everything a resolution run produced.

    Attributes:
        items (list[ContextItem]): One item per selected context, in selection order,
            failed ones included.
        selection (ContextSelection): The selection the run worked on.
        layer_index (dict[str, list[str]]): Compatible layer ids per context name;
            filled only when layer index updates were requested.
        diagnostics (list[Diagnostic]): Run-level diagnostics (selection warnings).
        forced_toolchain (ToolchainRequirement | None): The toolchain every context
            was forced to use, given explicitly or taken from the context set.
    """
    items: list[ContextItem] = field(default_factory=list)
    selection: ContextSelection = field(default_factory=ContextSelection)
    layer_index: dict[str, list[str]] = field(default_factory=dict)
    diagnostics: list[Diagnostic] = field(default_factory=list)
    forced_toolchain: ToolchainRequirement | None = None

    @property
    def failed(self) -> list[ContextIdentifier]:
        return [i.identifier for i in self.items if i.status == ContextStatus.FAILED]

    @property
    def missing_filters(self) -> list[str]:
        return list(self.selection.missing_filters)

    @property
    def success(self) -> bool:
        return all(i.status == ContextStatus.SUCCEEDED for i in self.items)

    @property
    def outcome(self) -> RunOutcome:
        if not self.success:
            return RunOutcome.FAILED
        if self.diagnostics or any(i.warnings for i in self.items):
            return RunOutcome.SUCCESS_WITH_WARNINGS
        return RunOutcome.SUCCESS

    @property
    def exit_code(self) -> int:
        return 0 if self.success else 1

    def item(self, name: str) -> ContextItem:
        for item in self.items:
            if item.name == name:
                return item
        raise KeyError(name)

    def to_mapping(self, *args, **kwargs) -> dict[str, Any]:
        return {
            "outcome": self.outcome.value,
            "contexts": [i.to_mapping() for i in self.items],
            "failed": [f.format() for f in self.failed],
            "missing_filters": self.missing_filters,
            "diagnostics": [d.to_mapping() for d in self.diagnostics],
            "layer_index": {k: list(v) for k, v in self.layer_index.items()},
        }


def _check_cancel(cancel: threading.Event | None, done: int, total: int) -> None:
    if cancel is not None and cancel.is_set():
        raise RunCancelledError(f"run cancelled after {done} of {total} context(s)")


def _build_serial(
        contexts: list[ContextDescriptor],
        solution: Solution,
        collaborators: Collaborators,
        settings: BuildSettings,
        cancel: threading.Event | None) -> list[ContextItem]:
    items: list[ContextItem] = []
    for descriptor in contexts:
        _check_cancel(cancel, len(items), len(contexts))
        items.append(build_context(descriptor, solution, collaborators, settings))
    return items


def _build_parallel(
        contexts: list[ContextDescriptor],
        solution: Solution,
        collaborators: Collaborators,
        settings: BuildSettings,
        cancel: threading.Event | None,
        max_workers: int) -> list[ContextItem]:
    with concurrent.futures.ThreadPoolExecutor(max_workers=max_workers) as executor:
        # each task runs in a copy of the caller's context so audit events reach the run plan
        futures = [
            executor.submit(
                contextvars.copy_context().run,
                build_context, descriptor, solution, collaborators, settings)
            for descriptor in contexts
        ]
        items: list[ContextItem] = []
        try:
            for future in futures:
                _check_cancel(cancel, len(items), len(contexts))
                items.append(future.result())
        except RunCancelledError:
            for future in futures:
                future.cancel()
            raise
    return items


def run_resolution(
        solution: Solution,
        collaborators: Collaborators,
        options: RunOptions | None = None,
        *,
        context_set: ContextSet | None = None,
        cancel: threading.Event | None = None) -> RunResult:
    """
    Resolves every selected context of a solution.

    A failing context never stops its siblings; it is reported through its
    item. The items are returned in selection order, also when contexts are
    resolved in parallel.

    Args:
        solution (Solution): The solution to resolve.
        collaborators (Collaborators): Inventories, layer discovery and the build index.
        options (RunOptions | None): Run options; defaults when None.
        context_set (ContextSet | None): The persisted context set, if any. When
            it drives the selection, its toolchain is forced unless the options
            force one.
        cancel (threading.Event | None): When set, the remaining contexts are
            abandoned and the run raises.

    Returns:
        RunResult: Items, failures, missing filters and the layer index.

    Raises:
        MalformedIdentifierError: If no context matched and a filter was malformed.
        NoContextSelectedError: If no context matched the filters.
        RunCancelledError: If the run was cancelled.
    """
    options = options or RunOptions()
    descriptors = solution.expand(options.output_dir)
    selection = select_contexts(
        descriptors,
        options.contexts,
        context_set=context_set,
        use_context_set=options.use_context_set,
        mode=options.selection_mode)

    forced_toolchain = options.toolchain
    if forced_toolchain is None and selection.from_context_set and context_set is not None:
        forced_toolchain = context_set.toolchain

    index = collaborators.build_index.load() or BuildIndex()
    settings = BuildSettings(
        policy=options.load_policy,
        frozen_packs=options.frozen_packs,
        forced_toolchain=forced_toolchain,
        pack_lock=dict(index.packs),
        discovered_layers=tuple(collaborators.layers.list_layers(options.layer_search_paths)))
    record_event(
        StageType.RESOLVE,
        EventType.DISCOVER,
        substage="layers",
        payload={"layers": [layer.id for layer in settings.discovered_layers]})

    if options.parallel and len(selection.contexts) > 1:
        items = _build_parallel(
            selection.contexts, solution, collaborators, settings, cancel, options.max_workers)
    else:
        items = _build_serial(selection.contexts, solution, collaborators, settings, cancel)

    result = RunResult(
        items=items,
        selection=selection,
        diagnostics=list(selection.diagnostics),
        forced_toolchain=forced_toolchain)
    if options.update_index:
        result.layer_index = {
            i.name: [layer.id for layer in i.layer_report.compatible]
            for i in items if i.layer_report is not None
        }

    record_event(
        StageType.RESOLVE,
        EventType.COMPLETE if result.success else EventType.FAIL,
        LevelType.INFO if result.success else LevelType.ERROR,
        message=f"{len(items)} context(s) resolved, {len(result.failed)} failed",
        payload={"outcome": result.outcome.value, "failed": [f.format() for f in result.failed]})
    return result
