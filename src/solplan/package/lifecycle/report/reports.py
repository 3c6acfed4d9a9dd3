from __future__ import annotations

from collections.abc import Iterable

from solplan.package.domain.options_model import SelectionMode
from solplan.package.domain.requirements_model import PACK_ID_SEP, ResolvedToolchain, TargetKind, TargetRecord
from solplan.package.domain.solution_model import Solution
from solplan.package.lifecycle.plan.inventory.inventory_base import PackInventory
from solplan.package.lifecycle.plan.resolution_run import RunResult
from solplan.package.lifecycle.plan.selection.selection_policy import order_contexts

CONFIG_FILES_HEADER = "config files for each component:"


def apply_filter(lines: Iterable[str], filter_text: str | None = None) -> list[str]:
    """
    Keeps the lines that contain every space separated word of the filter.

    An empty filter keeps everything.
    """
    words = (filter_text or "").split()
    return [line for line in lines if all(word in line for word in words)]


def list_contexts(solution: Solution, filter_text: str | None = None, yml_order: bool = False) -> list[str]:
    """
    Names of all contexts of the solution, sorted alphabetically, or in the
    order they appear in the input files when `yml_order` is set.
    """
    descriptors = solution.expand()
    if yml_order:
        names = [d.name for d in order_contexts(descriptors, SelectionMode.YML_ORDER)]
    else:
        names = sorted(d.name for d in descriptors)
    return apply_filter(names, filter_text)


def list_packs(result: RunResult, missing_only: bool = False, filter_text: str | None = None) -> list[str]:
    """
    Packs resolved for the selected contexts, sorted and without duplicates.

    Args:
        result (RunResult): The run to report on.
        missing_only (bool): List only mandatory packs that are not installed.
        filter_text (str | None): Filter words.

    Returns:
        list[str]: `vendor::name@version` lines; missing packs show their range.
    """
    packs = {
        str(pack)
        for item in result.items
        for pack in item.resolved_packs
        if pack.is_missing or not missing_only
    }
    return apply_filter(sorted(packs), filter_text)


def list_layers(result: RunResult, filter_text: str | None = None) -> list[str]:
    lines: set[str] = set()
    for item in result.items:
        for layer in item.resolved_layers:
            lines.add(f"{layer.id} ({layer.path.as_posix()})" if layer.path else layer.id)
    return apply_filter(sorted(lines), filter_text)


def _targets(result: RunResult | None, installed: Iterable[TargetRecord]) -> list[TargetRecord]:
    if result is None:
        return list(installed)
    return [item.target for item in result.items if item.target]


def list_devices(
        result: RunResult | None = None,
        filter_text: str | None = None,
        installed: Iterable[TargetRecord] = ()) -> list[str]:
    """
    Devices of the selected contexts, or of the given inventory records when
    there is no run. A board contributes the device mounted on it.
    """
    names: set[str] = set()
    for target in _targets(result, installed):
        if target.kind is TargetKind.DEVICE:
            names.add(f"{target.vendor}{PACK_ID_SEP}{target.name}" if target.vendor else target.name)
        elif target.mounted_device:
            names.add(target.mounted_device)
    return apply_filter(sorted(names), filter_text)


def list_boards(
        result: RunResult | None = None,
        filter_text: str | None = None,
        installed: Iterable[TargetRecord] = ()) -> list[str]:
    names = {
        f"{target.vendor}{PACK_ID_SEP}{target.name}" if target.vendor else target.name
        for target in _targets(result, installed)
        if target.kind is TargetKind.BOARD
    }
    return apply_filter(sorted(names), filter_text)


def list_components(result: RunResult, packs: PackInventory, filter_text: str | None = None) -> list[str]:
    """
    Components offered by the packs resolved for the selected contexts.

    Args:
        result (RunResult): The run to report on.
        packs (PackInventory): The inventory the packs were resolved from.
        filter_text (str | None): Filter words.

    Returns:
        list[str]: Sorted unique `component (vendor::name@version)` lines.
            Missing packs offer nothing.
    """
    lines: set[str] = set()
    for item in result.items:
        for pack in item.resolved_packs:
            if pack.is_missing or pack.version is None:
                continue
            for component in packs.components(pack.vendor, pack.name, pack.version):
                lines.add(f"{component} ({pack})")
    return apply_filter(sorted(lines), filter_text)


def format_toolchain(toolchain: ResolvedToolchain, verbose: bool = False) -> str:
    """
    One toolchain entry: `NAME@version`, followed in verbose mode by its
    environment variable, root and configuration lines.
    """
    lines = [str(toolchain)]
    if verbose:
        if toolchain.root_path:
            lines.append(f"  Environment: {toolchain.environment_variable}")
            lines.append(f"  Toolchain: {toolchain.root_path.as_posix()}")
        if toolchain.config_path:
            lines.append(f"  Configuration: {toolchain.config_path.as_posix()}")
    return "\n".join(lines)


def list_toolchains(
        result: RunResult | None = None,
        verbose: bool = False,
        installed: Iterable[ResolvedToolchain] = ()) -> list[str]:
    """
    Toolchains of the selected contexts, or the given installed toolchains when
    there is no run, as sorted unique entries.
    """
    if result is None:
        toolchains = list(installed)
    else:
        toolchains = [i.resolved_toolchain for i in result.items if i.resolved_toolchain]
    return sorted({format_toolchain(t, verbose) for t in toolchains})


def list_dependencies(result: RunResult, filter_text: str | None = None) -> list[str]:
    lines = [
        f"{item.name} {dependency}"
        for item in result.items
        for dependency in item.unresolved_dependencies
    ]
    return apply_filter(lines, filter_text)


def list_configs(result: RunResult, filter_text: str | None = None) -> list[str]:
    configs = {config.as_posix() for item in result.items for config in item.config_files}
    return apply_filter(sorted(configs), filter_text)


def config_files_summary(result: RunResult) -> str | None:
    """The verbose summary of config files, or None when no component contributes one."""
    configs = list_configs(result)
    if not configs:
        return None
    return "\n  ".join([CONFIG_FILES_HEADER, *configs])


def missing_filters_summary(result: RunResult) -> str | None:
    if not result.missing_filters:
        return None
    return "\n  ".join(["unknown selected context(s):", *result.missing_filters])
