"""Shared fixtures: the four-context reference solution, in-memory inventories and the Net layer set."""
from __future__ import annotations

from pathlib import Path

import pytest

from helpers.builders import BOARD_SETUP, CORE, SOCKET, make_layer, make_solution
from solplan.package.domain.build_index_model import BuildIndex
from solplan.package.domain.layer_model import Layer, LayerReference
from solplan.package.domain.requirements_model import ResolvedToolchain, TargetKind, TargetRecord
from solplan.package.domain.run_plan_model import RunPlan
from solplan.package.domain.solution_model import ProjectRecord, Solution
from solplan.package.lifecycle.plan.inventory import (
    Collaborators,
    CollectingEmitter,
    InMemoryBuildIndexStore,
    InMemoryContextSetStore,
    InMemoryDeviceInventory,
    InMemoryLayerDiscovery,
    InMemoryPackInventory,
    InMemoryToolchainInventory,
)
from solplan.package.lifecycle.plan.inventory.memory_inventory import pack_inventory_from_mapping


@pytest.fixture
def solution() -> Solution:
    """One project `App` with Debug/Release x BoardA/BoardB: four contexts."""
    return make_solution()


@pytest.fixture
def pack_inventory() -> InMemoryPackInventory:
    return pack_inventory_from_mapping({
        "ARM::CMSIS": {"5.9.0": [CORE], "6.0.0": [CORE]},
        "Keil::BoardSupport": {"1.0.0": [BOARD_SETUP], "1.1.0": [BOARD_SETUP]},
        "ARM::Network": {"7.0.0": [SOCKET]},
    })


@pytest.fixture
def toolchain_inventory() -> InMemoryToolchainInventory:
    return InMemoryToolchainInventory(toolchains=[
        ResolvedToolchain(name="AC6", version="6.18.0", root_path=Path("/opt/ac6-6.18/bin")),
        ResolvedToolchain(
            name="AC6",
            version="6.22.0",
            root_path=Path("/opt/ac6-6.22/bin"),
            config_path=Path("/opt/cmsis/AC6.6.22.0.cmake")),
        ResolvedToolchain(name="GCC", version="12.2.0", root_path=Path("/opt/gcc/bin")),
    ])


@pytest.fixture
def device_inventory() -> InMemoryDeviceInventory:
    return InMemoryDeviceInventory(targets=[
        TargetRecord(name="BoardA", kind=TargetKind.BOARD, vendor="Keil", mounted_device="DevA"),
        TargetRecord(name="BoardB", kind=TargetKind.BOARD, vendor="Keil", mounted_device="DevB"),
        TargetRecord(name="DevA", kind=TargetKind.DEVICE, vendor="ARM"),
        TargetRecord(name="DevB", kind=TargetKind.DEVICE, vendor="ARM"),
    ])


@pytest.fixture
def collaborators(
        pack_inventory: InMemoryPackInventory,
        toolchain_inventory: InMemoryToolchainInventory,
        device_inventory: InMemoryDeviceInventory) -> Collaborators:
    return Collaborators(
        packs=pack_inventory,
        toolchains=toolchain_inventory,
        devices=device_inventory,
        layers=InMemoryLayerDiscovery(),
        build_index=InMemoryBuildIndexStore(),
        context_sets=InMemoryContextSetStore(),
        emitter=CollectingEmitter())


@pytest.fixture
def net_layers() -> list[Layer]:
    """`Net` works on BoardA only and consumes ETH_MAC, which `Board_A` provides."""
    return [
        make_layer("Net", boards=("BoardA",), consumes=("ETH_MAC",), provides=("IoT_Socket",),
                   packs=("ARM::Network@>=7.0.0",), components=("ARM::Network:Socket",)),
        make_layer("Board_A", boards=("BoardA",), provides=("ETH_MAC",)),
        make_layer("Board_B", boards=("BoardB",), provides=("ETH_MAC_B",)),
    ]


@pytest.fixture
def net_solution() -> Solution:
    return make_solution(projects=(ProjectRecord(
        name="App",
        directory=Path("app"),
        layers=(LayerReference(layer_id="Net"),)),))


@pytest.fixture
def locked_index() -> BuildIndex:
    return BuildIndex(packs={"ARM::CMSIS": "5.9.0", "Keil::BoardSupport": "1.0.0"})


@pytest.fixture
def run_plan(tmp_path: Path) -> RunPlan:
    return RunPlan(cache_root=tmp_path / "cache")
