from __future__ import annotations

from collections.abc import Sequence

from packaging.version import Version

from solplan.package.domain.errors import DeviceAmbiguousError, DeviceNotFoundError, ToolchainUnresolvedError
from solplan.package.domain.requirements_model import (
    ResolvedToolchain,
    TargetKind,
    TargetRecord,
    ToolchainRequirement,
    satisfies,
)
from solplan.package.domain.solution_model import ContextDescriptor, Solution
from solplan.package.lifecycle.plan.inventory.inventory_base import DeviceInventory, ToolchainInventory


def _unique(name: str, kind: TargetKind, records: Sequence[TargetRecord], context: str) -> TargetRecord:
    matches = [r for r in records if r.kind == kind]
    label = kind.value.lower()
    if not matches:
        raise DeviceNotFoundError(f"{label} '{name}' required by '{context}' was not found", subject=name)
    if len(matches) > 1:
        vendors = ", ".join(sorted({r.vendor or "?" for r in matches}))
        raise DeviceAmbiguousError(
            f"{label} '{name}' required by '{context}' is ambiguous (vendors: {vendors})", subject=name)
    return matches[0]


def resolve_target(descriptor: ContextDescriptor, devices: DeviceInventory) -> TargetRecord:
    """
    Selects the device or board of a context by exact name.

    A board named by the target-type is preferred; otherwise the device named
    by the project, or by the target-type, is used.

    Raises:
        DeviceNotFoundError: If nothing is named, or the named board/device is unknown.
        DeviceAmbiguousError: If the name matches more than one record.
    """
    target_type = descriptor.target_type
    board = target_type.board if target_type else None
    device = descriptor.project.device or (target_type.device if target_type else None)
    if board:
        return _unique(board, TargetKind.BOARD, devices.lookup(board), descriptor.name)
    if device:
        return _unique(device, TargetKind.DEVICE, devices.lookup(device), descriptor.name)
    raise DeviceNotFoundError(f"missing device and/or board info for '{descriptor.name}'", subject=descriptor.name)


def toolchain_requirement(descriptor: ContextDescriptor, solution: Solution) -> ToolchainRequirement | None:
    """The most specific requirement: target-type, then build-type, then project, then solution."""
    for requirement in (
            descriptor.target_type.toolchain if descriptor.target_type else None,
            descriptor.build_type.toolchain if descriptor.build_type else None,
            descriptor.project.toolchain,
            solution.toolchain):
        if requirement is not None:
            return requirement
    return None


def resolve_toolchain(
        descriptor: ContextDescriptor,
        solution: Solution,
        toolchains: ToolchainInventory,
        forced: ToolchainRequirement | None = None) -> ResolvedToolchain | None:
    """
    Negotiates the toolchain of a context.

    Args:
        descriptor (ContextDescriptor): The context.
        solution (Solution): The solution, for the solution-wide requirement.
        toolchains (ToolchainInventory): Installed toolchains.
        forced (ToolchainRequirement | None): Toolchain forced by the caller; it
            must name the same toolchain as the requirement, and the chosen
            version must satisfy both ranges.

    Returns:
        ResolvedToolchain | None: The highest matching installed version, the
        first registered one on ties; None when neither a requirement nor a
        forced toolchain exists.

    Raises:
        ToolchainUnresolvedError: If the forced toolchain contradicts the
            requirement or no installed version satisfies the ranges.
    """
    required = toolchain_requirement(descriptor, solution)
    if required is None and forced is None:
        return None
    if required is not None and forced is not None and required.name != forced.name:
        raise ToolchainUnresolvedError(
            f"toolchain '{forced}' conflicts with '{required}' required by '{descriptor.name}'",
            subject=forced.name)

    name = (forced or required).name
    specs = [r.specifier for r in (required, forced) if r is not None]
    best: ResolvedToolchain | None = None
    best_version: Version | None = None
    for candidate in toolchains.lookup(name):
        if not all(satisfies(candidate.version, spec) for spec in specs):
            continue
        version = Version(candidate.version)
        if best_version is None or version > best_version:
            best, best_version = candidate, version
    if best is None:
        wanted = " and ".join(str(r) for r in (required, forced) if r is not None)
        raise ToolchainUnresolvedError(
            f"no installed toolchain satisfies {wanted} for '{descriptor.name}'", subject=name)
    return best
