from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from typing_extensions import assert_never

from solplan.package.domain.context_item_model import Diagnostic, Severity
from solplan.package.domain.errors import ErrorKind, PackUnsatisfiedError, PackVersionDriftError, SolplanError
from solplan.package.domain.options_model import LoadPacksPolicy, parse_load_policy
from solplan.package.domain.requirements_model import PackRequirement, ResolvedPack, satisfies, sort_versions
from solplan.package.lifecycle.audit.plan_event_model import EventType, LevelType, StageType, record_event
from solplan.package.lifecycle.plan.inventory.inventory_base import PackInventory

__all__ = [
    "PackResolution",
    "check_frozen",
    "parse_load_policy",
    "resolve_pack_requirement",
    "resolve_packs",
]


@dataclass(slots=True, kw_only=True)
class PackResolution:
    """
    Outcome of resolving a list of pack requirements for one context.

    Attributes:
        packs (list[ResolvedPack]): Resolved packs, first-seen order, no duplicates.
        diagnostics (list[Diagnostic]): Warnings for missing mandatory packs.
        error (SolplanError | None): The hard error, if resolution failed.
    """
    packs: list[ResolvedPack] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)
    error: SolplanError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def missing(self) -> list[ResolvedPack]:
        return [p for p in self.packs if p.is_missing]


def _resolved(requirement: PackRequirement, version: str) -> ResolvedPack:
    return ResolvedPack(
        vendor=requirement.vendor,
        name=requirement.name,
        version=version,
        version_range=requirement.version_range)


def resolve_pack_requirement(
        requirement: PackRequirement,
        inventory: PackInventory,
        policy: LoadPacksPolicy,
        *,
        lock: Mapping[str, str] | None = None) -> list[ResolvedPack]:
    """
    Chooses installed versions for one pack requirement.

    Args:
        requirement (PackRequirement): The requirement.
        inventory (PackInventory): Installed packs.
        policy (LoadPacksPolicy): Version selection policy.
        lock (Mapping[str, str] | None): Versions recorded by a previous run,
            keyed by `vendor::name`.

    Returns:
        list[ResolvedPack]: The chosen versions. A mandatory requirement that
        nothing satisfies yields one missing pack; an optional one yields nothing.

    Raises:
        PackUnsatisfiedError: Under REQUIRED, when a mandatory requirement is unsatisfied.
    """
    spec = requirement.specifier
    candidates = sort_versions(
        v for v in inventory.lookup(requirement.vendor, requirement.name, requirement.version_range)
        if satisfies(v, spec))

    if not candidates:
        if requirement.is_optional:
            return []
        if policy == LoadPacksPolicy.REQUIRED:
            raise PackUnsatisfiedError(
                f"required pack not installed: {requirement}", subject=requirement.pack_id)
        return [ResolvedPack(
            vendor=requirement.vendor,
            name=requirement.name,
            version=None,
            is_missing=True,
            version_range=requirement.version_range)]

    match policy:
        case LoadPacksPolicy.ALL:
            return [_resolved(requirement, v) for v in candidates]
        case LoadPacksPolicy.LATEST:
            return [_resolved(requirement, candidates[-1])]
        case LoadPacksPolicy.DEFAULT | LoadPacksPolicy.REQUIRED:
            recorded = (lock or {}).get(requirement.pack_id)
            if recorded is not None and recorded in candidates:
                return [_resolved(requirement, recorded)]
            return [_resolved(requirement, candidates[-1])]
        case _:
            assert_never(policy)


def check_frozen(packs: Iterable[ResolvedPack], lock: Mapping[str, str] | None) -> None:
    """
    Verifies that resolved packs match the recorded snapshot exactly.

    Raises:
        PackVersionDriftError: On the first pack whose version differs from, or
            is absent in, the snapshot.
    """
    recorded_versions = lock or {}
    for pack in packs:
        if pack.is_missing:
            continue
        recorded = recorded_versions.get(pack.pack_id)
        if recorded is None:
            raise PackVersionDriftError(
                f"frozen packs: {pack} is not recorded in the build index", subject=pack.pack_id)
        if recorded != pack.version:
            raise PackVersionDriftError(
                f"frozen packs: {pack} differs from recorded version {recorded}", subject=pack.pack_id)


def resolve_packs(
        requirements: Iterable[PackRequirement],
        inventory: PackInventory,
        policy: LoadPacksPolicy = LoadPacksPolicy.DEFAULT,
        *,
        lock: Mapping[str, str] | None = None,
        frozen: bool = False) -> PackResolution:
    """
    Resolves pack requirements under a load policy.

    Requirements are resolved in order; the same installed pack version is
    listed once, at its first occurrence. Resolution stops at the first hard
    error, keeping what was resolved before it.

    Args:
        requirements (Iterable[PackRequirement]): Requirements in collection order.
        inventory (PackInventory): Installed packs.
        policy (LoadPacksPolicy): Version selection policy.
        lock (Mapping[str, str] | None): Recorded versions keyed by `vendor::name`.
        frozen (bool): Fail on any version that differs from the recorded one.

    Returns:
        PackResolution: The resolved packs, warnings and hard error.
    """
    result = PackResolution()
    seen: set[tuple[str, str, str | None]] = set()
    try:
        for requirement in requirements:
            for pack in resolve_pack_requirement(requirement, inventory, policy, lock=lock):
                if pack.dedup_key in seen:
                    continue
                seen.add(pack.dedup_key)
                result.packs.append(pack)
                if pack.is_missing:
                    result.diagnostics.append(
                        Diagnostic(
                            kind=ErrorKind.PACK_UNSATISFIED,
                            message=f"required pack not installed: {requirement}",
                            severity=Severity.WARNING,
                            subject=pack.pack_id))
        if frozen:
            check_frozen(result.packs, lock)
    except (PackUnsatisfiedError, PackVersionDriftError) as e:
        result.error = e

    record_event(
        StageType.RESOLVE,
        EventType.RESOLVE,
        LevelType.ERROR if result.error else LevelType.INFO,
        substage="packs",
        message=result.error.message if result.error else None,
        payload={"policy": policy.value, "packs": [str(p) for p in result.packs]})
    return result
