from __future__ import annotations

import sys
import threading

from solplan.package.context_vars import current_planning_context
from solplan.package.domain.build_index_model import BuildIndex, ContextSet
from solplan.package.domain.options_model import RunOptions
from solplan.package.domain.requirements_model import ToolchainRequirement
from solplan.package.domain.run_plan_model import RunPlan
from solplan.package.domain.solution_model import Solution
from solplan.package.lifecycle.audit.audit_emitter import emit_audit_log
from solplan.package.lifecycle.audit.plan_event_model import EventType, LevelType, PlanEvent, StageType, audit
from solplan.package.lifecycle.plan.inventory.collaborators import Collaborators
from solplan.package.lifecycle.plan.resolution_run import RunResult, run_resolution
from solplan.package.lifecycle.planning_context import PlanningContext


@audit(StageType.INIT, substage="validate_solution")
def validate_solution(solution: Solution) -> list[str]:
    """
    Validates the solution and records its warnings in the audit log.

    Raises:
        SolutionError: If the solution is invalid.
    """
    warnings = solution.validate()
    plan = current_planning_context.get().run_plan
    for warning in warnings:
        plan.audit_log.append(PlanEvent.make(StageType.INIT, EventType.VALIDATION, LevelType.WARN, message=warning))
    return warnings


@audit(StageType.INIT, substage="load_context_set")
def load_context_set(collaborators: Collaborators, options: RunOptions) -> ContextSet | None:
    if not options.use_context_set or collaborators.context_sets is None:
        return None
    return collaborators.context_sets.load()


@audit(StageType.RESOLVE)
def resolve(
        solution: Solution,
        collaborators: Collaborators,
        options: RunOptions,
        context_set: ContextSet | None,
        cancel: threading.Event | None) -> RunResult:
    return run_resolution(solution, collaborators, options, context_set=context_set, cancel=cancel)


def selected_toolchain(result: RunResult) -> ToolchainRequirement | None:
    """The forced toolchain, else the toolchain of the first context that resolved one, pinned."""
    if result.forced_toolchain is not None:
        return result.forced_toolchain
    for item in result.items:
        if item.resolved_toolchain is not None:
            return ToolchainRequirement(name=item.resolved_toolchain.name, version_range=item.resolved_toolchain.version)
    return None


@audit(StageType.PERSIST, substage="context_set")
def save_context_set(
        result: RunResult,
        collaborators: Collaborators,
        options: RunOptions,
        loaded: ContextSet | None) -> ContextSet | None:
    """
    Records the run's selection in the context set, when the run works with one
    and selected something. Without explicit filters a missing context set is
    not created; the run only warned about it.
    """
    if not options.use_context_set or collaborators.context_sets is None or not result.items:
        return None
    if not options.contexts and loaded is None:
        return None
    context_set = ContextSet(
        contexts=list(result.selection.identifiers),
        toolchain=selected_toolchain(result))
    collaborators.context_sets.save(context_set)
    return context_set


@audit(StageType.PERSIST, substage="build_index")
def update_build_index(result: RunResult, collaborators: Collaborators, options: RunOptions) -> BuildIndex | None:
    """
    Records the pack versions of the succeeded contexts and, in update-index
    mode, the compatible layers per context. In frozen mode the recorded pack
    versions are left as they are.
    """
    if options.frozen_packs and not options.update_index:
        return None
    index = collaborators.build_index.load() or BuildIndex()
    if not options.frozen_packs:
        for item in result.items:
            if item.error is None:
                index.record_packs(item.resolved_packs)
    if options.update_index:
        index.layers.update(result.layer_index)
    collaborators.build_index.save(index)
    return index


@audit(StageType.EMIT)
def emit(result: RunResult, collaborators: Collaborators) -> None:
    if collaborators.emitter is None:
        return
    collaborators.emitter.emit(result.items)


def run(
        solution: Solution,
        collaborators: Collaborators,
        options: RunOptions | None = None,
        *,
        cancel: threading.Event | None = None,
        run_plan: RunPlan | None = None) -> RunResult:
    """
    Lifecycle orchestration entrypoint consisting of these main tasks:
      - create and register a RunPlan in context
      - validate the solution and load the context set (INIT)
      - resolve the selected contexts (RESOLVE)
      - save the context set and update the build index (PERSIST)
      - hand the context items to the emitter (EMIT)
      - always emit the audit log

    Args:
        solution (Solution): The parsed solution.
        collaborators (Collaborators): Inventories, layer discovery, stores and emitter.
        options (RunOptions | None): Run options; defaults when None.
        cancel (threading.Event | None): Cancels the run when set.
        run_plan (RunPlan | None): Plan to record the audit log in; a new one
            is created when None.

    Returns:
        RunResult: The result of the run, failed contexts included.

    Raises:
        Exception: Run-level errors (invalid solution, no context selected,
            cancellation) are logged and re-raised.
    """
    options = options or RunOptions()
    run_plan = run_plan or RunPlan()
    run_plan.solution_dir = solution.directory
    run_plan.solution_name = solution.name
    var_token = current_planning_context.set(
        PlanningContext(run_plan=run_plan, options=options, collaborators=collaborators))
    try:
        run_plan.audit_log.append(
            PlanEvent.make(
                StageType.LIFECYCLE,
                EventType.START,
                message=f"Starting solplan run for solution '{solution.name}'"))
        run_plan.audit_log.append(
            PlanEvent.make(
                StageType.LIFECYCLE,
                EventType.INPUT,
                message="Run invoked with options",
                payload=options.to_mapping()))
        validate_solution(solution)
        context_set = load_context_set(collaborators, options)
        result = resolve(solution, collaborators, options, context_set, cancel)
        save_context_set(result, collaborators, options, context_set)
        update_build_index(result, collaborators, options)
        emit(result, collaborators)
        run_plan.metadata.update({
            "selected": result.selection.names,
            "failed": [f.format() for f in result.failed],
            "outcome": result.outcome.value,
        })
        run_plan.audit_log.append(
            PlanEvent.make(
                StageType.LIFECYCLE,
                EventType.COMPLETE if result.success else EventType.FAIL,
                LevelType.INFO if result.success else LevelType.ERROR,
                message=f"Completed solplan run: {result.outcome.value}"))
    except Exception as e:
        run_plan.audit_log.append(
            PlanEvent.make(
                StageType.LIFECYCLE,
                EventType.FAIL,
                LevelType.ERROR,
                message=str(e)))
        raise
    finally:
        current_planning_context.reset(var_token)
        emit_audit_log(run_plan, dest=options.audit_dest)
    return result


def main(
        solution: Solution,
        collaborators: Collaborators,
        options: RunOptions | None = None) -> int:
    """
    Runs the lifecycle and converts the outcome into an exit status.

    Returns:
        int: 0 when every selected context succeeded, 1 otherwise or on error.
    """
    try:
        return run(solution, collaborators, options).exit_code
    except KeyboardInterrupt:
        return 1
    except Exception as e:
        print(f"solplan: error: {e}", file=sys.stderr)
        return 1
