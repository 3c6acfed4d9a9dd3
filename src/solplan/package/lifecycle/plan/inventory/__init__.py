from .collaborators import Collaborators
from .file_stores import FilesystemLayerDiscovery, YamlBuildIndexStore, YamlContextSetStore
from .inventory_base import (
    BuildIndexStore,
    ContextSetStore,
    DeviceInventory,
    Emitter,
    LayerDiscovery,
    PackInventory,
    ToolchainInventory,
)
from .memory_inventory import (
    CollectingEmitter,
    InMemoryBuildIndexStore,
    InMemoryContextSetStore,
    InMemoryDeviceInventory,
    InMemoryLayerDiscovery,
    InMemoryPackInventory,
    InMemoryToolchainInventory,
)
from .pack_cache import CachingPackInventory

__all__ = [
    "BuildIndexStore",
    "CachingPackInventory",
    "Collaborators",
    "CollectingEmitter",
    "ContextSetStore",
    "DeviceInventory",
    "Emitter",
    "FilesystemLayerDiscovery",
    "InMemoryBuildIndexStore",
    "InMemoryContextSetStore",
    "InMemoryDeviceInventory",
    "InMemoryLayerDiscovery",
    "InMemoryPackInventory",
    "InMemoryToolchainInventory",
    "LayerDiscovery",
    "PackInventory",
    "ToolchainInventory",
    "YamlBuildIndexStore",
    "YamlContextSetStore",
]
