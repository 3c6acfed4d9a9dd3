from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from solplan.package.domain.context_item_model import ContextItem
from solplan.package.domain.errors import ContextResolutionError, ErrorKind
from solplan.package.domain.layer_model import Layer
from solplan.package.domain.options_model import LoadPacksPolicy
from solplan.package.domain.requirements_model import (
    ComponentRecord,
    ComponentRequirement,
    PackRequirement,
    ResolvedPack,
    ToolchainRequirement,
)
from solplan.package.domain.solution_model import ContextDescriptor, Solution
from solplan.package.lifecycle.audit.plan_event_model import EventType, LevelType, StageType, record_event
from solplan.package.lifecycle.plan.inventory.collaborators import Collaborators
from solplan.package.lifecycle.plan.inventory.inventory_base import PackInventory
from solplan.package.lifecycle.plan.layers.layer_resolver import resolve_layers
from solplan.package.lifecycle.plan.packs.pack_resolver import resolve_packs
from solplan.package.lifecycle.plan.target.target_resolver import resolve_target, resolve_toolchain


@dataclass(frozen=True, slots=True, kw_only=True)
class BuildSettings:
    """
    Run-wide inputs shared by every context of a run.

    Attributes:
        policy (LoadPacksPolicy): Pack version selection policy.
        frozen_packs (bool): Fail on packs that drift from the recorded snapshot.
        forced_toolchain (ToolchainRequirement | None): Toolchain forced by the caller.
        pack_lock (Mapping[str, str]): Recorded pack versions keyed by `vendor::name`.
        discovered_layers (tuple[Layer, ...]): Layers discovered once for the run.
    """
    policy: LoadPacksPolicy = LoadPacksPolicy.DEFAULT
    frozen_packs: bool = False
    forced_toolchain: ToolchainRequirement | None = None
    pack_lock: Mapping[str, str] = field(default_factory=dict)
    discovered_layers: tuple[Layer, ...] = ()


def gather_pack_requirements(
        solution: Solution,
        descriptor: ContextDescriptor,
        layers: Sequence[Layer]) -> list[PackRequirement]:
    """Solution packs, then project packs, then the packs of the selected layers."""
    requirements = list(solution.packs) + list(descriptor.project.packs)
    for layer in layers:
        requirements.extend(layer.packs)
    return requirements


def _component_index(packs: Sequence[ResolvedPack], inventory: PackInventory) -> dict[str, ComponentRecord]:
    offered: dict[str, ComponentRecord] = {}
    for pack in packs:
        if pack.is_missing or pack.version is None:
            continue
        for record in inventory.components(pack.vendor, pack.name, pack.version):
            offered.setdefault(record.component_id, record)
    return offered


def collect_components(item: ContextItem, layers: Sequence[Layer], inventory: PackInventory) -> None:
    """
    Matches declared components against the components of the resolved packs.

    Declared components nobody offers, and dependencies of found components
    that are not selected themselves, are appended to the item's unresolved
    dependencies in declaration order. Config files of found components are
    collected in order without duplicates.
    """
    declared: list[ComponentRequirement] = list(item.descriptor.project.components)
    for layer in layers:
        declared.extend(layer.components)

    offered = _component_index(item.resolved_packs, inventory)
    found: list[ComponentRecord] = []
    found_ids: set[str] = set()

    def unresolved(component_id: str) -> None:
        if component_id in item.unresolved_dependencies:
            return
        item.unresolved_dependencies.append(component_id)
        item.warn(
            ErrorKind.UNRESOLVED_COMPONENT_DEPENDENCY,
            f"component '{component_id}' is not resolved in '{item.name}'",
            subject=component_id)

    for requirement in declared:
        record = offered.get(requirement.component_id)
        if record is None:
            unresolved(requirement.component_id)
        elif record.component_id not in found_ids:
            found.append(record)
            found_ids.add(record.component_id)

    for record in found:
        for dependency in record.dependencies:
            if dependency not in found_ids:
                unresolved(dependency)

    seen: set[Path] = set()
    for record in found:
        for config in record.config_files:
            if config not in seen:
                seen.add(config)
                item.config_files.append(config)


def build_context(
        descriptor: ContextDescriptor,
        solution: Solution,
        collaborators: Collaborators,
        settings: BuildSettings) -> ContextItem:
    """
    Resolves one context into its build plan.

    Steps run strictly in order and stop at the first hard error: device or
    board, toolchain, layers, packs, components. A context-local error fails
    the returned item; what was resolved before it stays on the item.

    Args:
        descriptor (ContextDescriptor): The context to resolve.
        solution (Solution): The solution the context belongs to.
        collaborators (Collaborators): Inventories and layer discovery.
        settings (BuildSettings): Run-wide inputs.

    Returns:
        ContextItem: The item, SUCCEEDED or FAILED.
    """
    item = ContextItem(descriptor=descriptor)
    try:
        item.target = resolve_target(descriptor, collaborators.devices)
        item.resolved_toolchain = resolve_toolchain(
            descriptor, solution, collaborators.toolchains, settings.forced_toolchain)

        layers = resolve_layers(
            descriptor.identifier.target_type,
            descriptor.project.layers,
            settings.discovered_layers,
            context=descriptor.identifier)
        item.layer_report = layers.report
        item.diagnostics.extend(layers.diagnostics)
        if layers.error is not None:
            raise layers.error

        packs = resolve_packs(
            gather_pack_requirements(solution, descriptor, layers.report.selected),
            collaborators.packs,
            settings.policy,
            lock=settings.pack_lock,
            frozen=settings.frozen_packs)
        item.resolved_packs = list(packs.packs)
        item.diagnostics.extend(packs.diagnostics)
        if packs.error is not None:
            raise packs.error

        collect_components(item, layers.report.selected, collaborators.packs)
    except ContextResolutionError as e:
        item.fail(e)
        record_event(
            StageType.RESOLVE,
            EventType.FAIL,
            LevelType.ERROR,
            substage=descriptor.name,
            message=e.message,
            payload={"kind": e.kind.value})
        return item

    item.succeed()
    record_event(
        StageType.RESOLVE,
        EventType.COMPLETE,
        LevelType.WARN if item.warnings else LevelType.INFO,
        substage=descriptor.name,
        payload={"warnings": len(item.warnings)})
    return item
