from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from pathlib import Path

from solplan.package.domain.build_index_model import BuildIndex, ContextSet
from solplan.package.domain.context_item_model import ContextItem
from solplan.package.domain.layer_model import Layer
from solplan.package.domain.requirements_model import ComponentRecord, ResolvedToolchain, TargetRecord


class PackInventory(ABC):
    """
    Read-only view of the installed packs.

    Implementations must be safe to call from several threads at once.
    """

    @abstractmethod
    def lookup(self, vendor: str, name: str, version_range: str = "") -> Sequence[str]:
        """
        Lists the installed versions of a pack that satisfy a range.

        Args:
            vendor (str): Pack vendor.
            name (str): Pack name.
            version_range (str): Version range text; empty means any.

        Returns:
            Sequence[str]: Matching versions, in any order.
        """
        raise NotImplementedError

    @abstractmethod
    def components(self, vendor: str, name: str, version: str) -> Sequence[ComponentRecord]:
        """Components offered by one installed pack version."""
        raise NotImplementedError


class ToolchainInventory(ABC):

    @abstractmethod
    def lookup(self, name: str, version_range: str = "") -> Sequence[ResolvedToolchain]:
        """Installed toolchains named `name` whose version satisfies the range, in registration order."""
        raise NotImplementedError

    @abstractmethod
    def all(self) -> Sequence[ResolvedToolchain]:
        """Every installed toolchain, in registration order."""
        raise NotImplementedError


class DeviceInventory(ABC):

    @abstractmethod
    def lookup(self, name: str) -> Sequence[TargetRecord]:
        """Devices and boards whose name equals `name` exactly."""
        raise NotImplementedError


class LayerDiscovery(ABC):

    @abstractmethod
    def list_layers(self, paths: Sequence[Path]) -> Sequence[Layer]:
        """Layers found below `paths`, in discovery order."""
        raise NotImplementedError


class BuildIndexStore(ABC):

    @abstractmethod
    def load(self) -> BuildIndex | None:
        raise NotImplementedError

    @abstractmethod
    def save(self, index: BuildIndex) -> None:
        raise NotImplementedError


class ContextSetStore(ABC):

    @abstractmethod
    def load(self) -> ContextSet | None:
        raise NotImplementedError

    @abstractmethod
    def save(self, context_set: ContextSet) -> None:
        raise NotImplementedError


class Emitter(ABC):
    """Consumes the final context items, e.g. to write build description files."""

    @abstractmethod
    def emit(self, items: Sequence[ContextItem]) -> None:
        raise NotImplementedError
