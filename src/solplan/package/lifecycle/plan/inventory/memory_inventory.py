from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from solplan.package.domain.build_index_model import BuildIndex, ContextSet
from solplan.package.domain.context_item_model import ContextItem
from solplan.package.domain.layer_model import Layer
from solplan.package.domain.requirements_model import (
    PACK_ID_SEP,
    ComponentRecord,
    ResolvedToolchain,
    TargetRecord,
    parse_version_range,
    satisfies,
)
from solplan.package.lifecycle.plan.inventory.inventory_base import (
    BuildIndexStore,
    ContextSetStore,
    DeviceInventory,
    Emitter,
    LayerDiscovery,
    PackInventory,
    ToolchainInventory,
)


@dataclass(kw_only=True)
class InMemoryPackInventory(PackInventory):
    """
    Pack inventory backed by a mapping:

        {"ARM::CMSIS": {"5.9.0": [ComponentRecord(...)], "6.0.0": []}}

    Attributes:
        packs (dict[str, dict[str, list[ComponentRecord]]]): `vendor::name` to
            installed versions and the components each version offers.
    """
    packs: dict[str, dict[str, list[ComponentRecord]]] = field(default_factory=dict)

    def add(self, pack_id: str, version: str, components: Iterable[ComponentRecord] = ()) -> InMemoryPackInventory:
        self.packs.setdefault(pack_id, {})[version] = list(components)
        return self

    def lookup(self, vendor: str, name: str, version_range: str = "") -> Sequence[str]:
        spec = parse_version_range(version_range)
        versions = self.packs.get(f"{vendor}{PACK_ID_SEP}{name}", {})
        return [v for v in versions if satisfies(v, spec)]

    def components(self, vendor: str, name: str, version: str) -> Sequence[ComponentRecord]:
        return list(self.packs.get(f"{vendor}{PACK_ID_SEP}{name}", {}).get(version, ()))


@dataclass(kw_only=True)
class InMemoryToolchainInventory(ToolchainInventory):
    toolchains: list[ResolvedToolchain] = field(default_factory=list)

    def lookup(self, name: str, version_range: str = "") -> Sequence[ResolvedToolchain]:
        spec = parse_version_range(version_range)
        return [t for t in self.toolchains if t.name == name and satisfies(t.version, spec)]

    def all(self) -> Sequence[ResolvedToolchain]:
        return list(self.toolchains)


@dataclass(kw_only=True)
class InMemoryDeviceInventory(DeviceInventory):
    targets: list[TargetRecord] = field(default_factory=list)

    def lookup(self, name: str) -> Sequence[TargetRecord]:
        return [t for t in self.targets if t.name == name]


@dataclass(kw_only=True)
class InMemoryLayerDiscovery(LayerDiscovery):
    """Layer discovery over a fixed list; the search paths are ignored."""
    layers: list[Layer] = field(default_factory=list)

    def list_layers(self, paths: Sequence[Path]) -> Sequence[Layer]:
        return list(self.layers)


@dataclass(kw_only=True)
class InMemoryBuildIndexStore(BuildIndexStore):
    index: BuildIndex | None = None
    saves: int = 0

    def load(self) -> BuildIndex | None:
        return self.index

    def save(self, index: BuildIndex) -> None:
        self.index = index
        self.saves += 1


@dataclass(kw_only=True)
class InMemoryContextSetStore(ContextSetStore):
    context_set: ContextSet | None = None

    def load(self) -> ContextSet | None:
        return self.context_set

    def save(self, context_set: ContextSet) -> None:
        self.context_set = context_set


@dataclass(kw_only=True)
class CollectingEmitter(Emitter):
    """Keeps the emitted items, one list per `emit` call."""
    batches: list[list[ContextItem]] = field(default_factory=list)

    def emit(self, items: Sequence[ContextItem]) -> None:
        self.batches.append(list(items))


def pack_inventory_from_mapping(mapping: Mapping[str, Mapping[str, Iterable[ComponentRecord]]]) -> InMemoryPackInventory:
    inventory = InMemoryPackInventory()
    for pack_id, versions in mapping.items():
        for version, components in versions.items():
            inventory.add(pack_id, version, components)
    return inventory
