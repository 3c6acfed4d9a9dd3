"""Tests for the in-memory, caching and file-backed collaborators."""
from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace
from pathlib import Path

import pytest

from helpers.builders import CORE
from solplan.package.domain.build_index_model import BuildIndex, ContextSet
from solplan.package.domain.errors import ConfigurationError
from solplan.package.domain.identifier_model import ContextIdentifier
from solplan.package.domain.requirements_model import ComponentRecord
from solplan.package.domain.solution_model import Solution
from solplan.package.lifecycle.plan.inventory import (
    CachingPackInventory,
    FilesystemLayerDiscovery,
    InMemoryPackInventory,
    PackInventory,
    YamlBuildIndexStore,
    YamlContextSetStore,
)


class CountingPackInventory(PackInventory):
    def __init__(self, delegate: PackInventory):
        self.delegate = delegate
        self.lookups = 0
        self.component_calls = 0

    def lookup(self, vendor: str, name: str, version_range: str = "") -> Sequence[str]:
        self.lookups += 1
        return self.delegate.lookup(vendor, name, version_range)

    def components(self, vendor: str, name: str, version: str) -> Sequence[ComponentRecord]:
        self.component_calls += 1
        return self.delegate.components(vendor, name, version)


def write_layer(path: Path, layer_id: str, provides: str = "X") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        f"layer:\n  id: {layer_id}\n  connections:\n    provides: [{provides}]\n", encoding="utf-8")
    return path


class TestInMemoryPackInventory:
    def test_lookup_filters_by_range(self, pack_inventory: InMemoryPackInventory) -> None:
        assert list(pack_inventory.lookup("ARM", "CMSIS", ">=6.0.0")) == ["6.0.0"]
        assert list(pack_inventory.lookup("ARM", "Nope")) == []

    def test_components_of_one_version(self, pack_inventory: InMemoryPackInventory) -> None:
        assert list(pack_inventory.components("ARM", "CMSIS", "5.9.0")) == [CORE]
        assert list(pack_inventory.components("ARM", "CMSIS", "1.0.0")) == []


class TestCachingPackInventory:
    def test_repeated_lookups_hit_the_cache(self, pack_inventory: InMemoryPackInventory) -> None:
        counting = CountingPackInventory(pack_inventory)
        cached = CachingPackInventory(delegate=counting)
        first = cached.lookup("ARM", "CMSIS", ">=5.9.0")
        second = cached.lookup("ARM", "CMSIS", ">=5.9.0")
        assert first == second == ("5.9.0", "6.0.0")
        assert counting.lookups == 1
        cached.lookup("ARM", "CMSIS")
        assert counting.lookups == 2

    def test_components_are_cached_per_version(self, pack_inventory: InMemoryPackInventory) -> None:
        counting = CountingPackInventory(pack_inventory)
        cached = CachingPackInventory(delegate=counting)
        cached.components("ARM", "CMSIS", "5.9.0")
        cached.components("ARM", "CMSIS", "5.9.0")
        cached.components("ARM", "CMSIS", "6.0.0")
        assert counting.component_calls == 2

    def test_clear_drops_the_cache(self, pack_inventory: InMemoryPackInventory) -> None:
        counting = CountingPackInventory(pack_inventory)
        cached = CachingPackInventory(delegate=counting)
        cached.lookup("ARM", "CMSIS")
        cached.clear()
        cached.lookup("ARM", "CMSIS")
        assert counting.lookups == 2


class TestFilesystemLayerDiscovery:
    def test_walks_directories_in_sorted_order(self, tmp_path: Path) -> None:
        write_layer(tmp_path / "layers" / "b" / "Board.clayer.yml", "Board")
        write_layer(tmp_path / "layers" / "a" / "Net.clayer.yml", "Net")
        (tmp_path / "layers" / "notes.yml").write_text("layer: {id: Ignored}\n", encoding="utf-8")
        layers = FilesystemLayerDiscovery().list_layers([tmp_path / "layers"])
        assert [layer.id for layer in layers] == ["Net", "Board"]
        assert layers[0].path == tmp_path / "layers" / "a" / "Net.clayer.yml"

    def test_first_discovered_id_wins(self, tmp_path: Path) -> None:
        first = write_layer(tmp_path / "one" / "Net.clayer.yml", "Net", provides="A")
        write_layer(tmp_path / "two" / "Net.clayer.yml", "Net", provides="B")
        layers = FilesystemLayerDiscovery().list_layers([tmp_path / "one", tmp_path / "two"])
        assert [layer.path for layer in layers] == [first]

    def test_accepts_files_and_skips_missing_paths(self, tmp_path: Path) -> None:
        path = write_layer(tmp_path / "Net.clayer.yml", "Net")
        layers = FilesystemLayerDiscovery().list_layers([tmp_path / "absent", path])
        assert [layer.id for layer in layers] == ["Net"]

    def test_invalid_layer_file(self, tmp_path: Path) -> None:
        (tmp_path / "Bad.clayer.yml").write_text("layer:\n  connections: {}\n", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="invalid layer file"):
            FilesystemLayerDiscovery().list_layers([tmp_path])

    def test_malformed_target_type_pattern_fails_discovery(self, tmp_path: Path) -> None:
        (tmp_path / "Odd.clayer.yml").write_text("layer:\n  id: Odd\n  for-board: Board.X\n", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="Odd.clayer.yml"):
            FilesystemLayerDiscovery().list_layers([tmp_path])


class TestYamlStores:
    def test_build_index_store(self, tmp_path: Path) -> None:
        store = YamlBuildIndexStore(path=tmp_path / "Demo.cbuild-idx.yml")
        assert store.load() is None
        index = BuildIndex(packs={"ARM::CMSIS": "5.9.0"}, layers={"App.Debug+BoardA": ["Net", "Board_A"]})
        store.save(index)
        assert store.load() == index
        assert store.path.read_text(encoding="utf-8").startswith("build-idx:")

    def test_context_set_store(self, tmp_path: Path) -> None:
        store = YamlContextSetStore(path=tmp_path / "nested" / "Demo.cbuild-set.yml")
        assert store.load() is None
        store.save(ContextSet(contexts=[ContextIdentifier.parse("App.Debug+BoardA")]))
        assert store.load().patterns == ["App.Debug+BoardA"]

    def test_stores_live_beside_the_solution(self, solution: Solution, tmp_path: Path) -> None:
        sln = replace(solution, directory=tmp_path)
        assert YamlBuildIndexStore.for_solution(sln).path == tmp_path / "Demo.cbuild-idx.yml"
        assert YamlContextSetStore.for_solution(sln).path == tmp_path / "Demo.cbuild-set.yml"
