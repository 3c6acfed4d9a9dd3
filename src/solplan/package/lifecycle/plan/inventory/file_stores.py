from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

import yaml

from solplan.package.domain.build_index_model import BuildIndex, ContextSet
from solplan.package.domain.errors import ConfigurationError
from solplan.package.domain.layer_model import Layer
from solplan.package.domain.solution_model import Solution
from solplan.package.lifecycle.plan.inventory.inventory_base import BuildIndexStore, ContextSetStore, LayerDiscovery

LAYER_FILE_GLOB = "*.clayer.yml"


@dataclass(kw_only=True)
class FilesystemLayerDiscovery(LayerDiscovery):
    """
    Discovers layers by reading `*.clayer.yml` files below the search paths.

    Paths are walked in the given order and files below each path in sorted
    order, so discovery order is stable between runs. A file that repeats an
    already discovered layer id is skipped.
    """
    pattern: str = LAYER_FILE_GLOB

    def list_layers(self, paths: Sequence[Path]) -> Sequence[Layer]:
        found: list[Layer] = []
        seen: set[str] = set()
        for root in paths:
            root = Path(root)
            if root.is_file():
                files = [root]
            elif root.is_dir():
                files = sorted(root.rglob(self.pattern))
            else:
                continue
            for path in files:
                layer = self._read(path)
                if layer.id in seen:
                    continue
                seen.add(layer.id)
                found.append(layer)
        return found

    @staticmethod
    def _read(path: Path) -> Layer:
        try:
            return Layer.from_file(path, fmt="yaml")
        except (yaml.YAMLError, KeyError, TypeError, ValueError) as e:
            raise ConfigurationError(f"invalid layer file {path}: {e}", subject=str(path)) from e


@dataclass(kw_only=True)
class YamlBuildIndexStore(BuildIndexStore):
    """Build index persisted as a YAML file, typically `<solution>.cbuild-idx.yml`."""
    path: Path

    @classmethod
    def for_solution(cls, solution: Solution) -> YamlBuildIndexStore:
        return cls(path=solution.directory / solution.build_index_filename)

    def load(self) -> BuildIndex | None:
        if not self.path.is_file():
            return None
        return BuildIndex.from_file(self.path, fmt="yaml")

    def save(self, index: BuildIndex) -> None:
        index.to_file(self.path, fmt="yaml")


@dataclass(kw_only=True)
class YamlContextSetStore(ContextSetStore):
    """Context set persisted as a YAML file, typically `<solution>.cbuild-set.yml`."""
    path: Path

    @classmethod
    def for_solution(cls, solution: Solution) -> YamlContextSetStore:
        return cls(path=solution.directory / solution.context_set_filename)

    def load(self) -> ContextSet | None:
        if not self.path.is_file():
            return None
        return ContextSet.from_file(self.path, fmt="yaml")

    def save(self, context_set: ContextSet) -> None:
        context_set.to_file(self.path, fmt="yaml")
