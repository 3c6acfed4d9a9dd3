from __future__ import annotations

from dataclasses import dataclass, field

from solplan.package.lifecycle.plan.inventory.inventory_base import (
    BuildIndexStore,
    ContextSetStore,
    DeviceInventory,
    Emitter,
    LayerDiscovery,
    PackInventory,
    ToolchainInventory,
)
from solplan.package.lifecycle.plan.inventory.memory_inventory import (
    InMemoryBuildIndexStore,
    InMemoryLayerDiscovery,
)


@dataclass(kw_only=True)
class Collaborators:
    """
    The external collaborators a run reads from and writes to.

    Inventories are read-only for the duration of a run. The stores are only
    written by the lifecycle entry point, after the run finished.
    """
    packs: PackInventory
    toolchains: ToolchainInventory
    devices: DeviceInventory
    layers: LayerDiscovery = field(default_factory=InMemoryLayerDiscovery)
    build_index: BuildIndexStore = field(default_factory=InMemoryBuildIndexStore)
    context_sets: ContextSetStore | None = None
    emitter: Emitter | None = None
