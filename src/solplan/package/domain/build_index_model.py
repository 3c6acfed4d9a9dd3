from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from typing_extensions import Self

from solplan.helper.multiformat_model_mixin import MultiformatModelMixin
from solplan.package.domain.identifier_model import ContextIdentifier
from solplan.package.domain.requirements_model import ResolvedPack, ToolchainRequirement


@dataclass(slots=True, kw_only=True)
class BuildIndex(MultiformatModelMixin):
    """
    The persisted build index of a solution.

    It records the pack versions chosen by the last run (the snapshot that
    DEFAULT re-resolution and frozen mode compare against) and, when layer
    index updates are requested, the compatible layers of each context.

        build-idx:
          packs:
            ARM::CMSIS: 5.9.0
          layers:
            App.Debug+BoardA: [Net, Board_A]

    Attributes:
        packs (dict[str, str]): `vendor::name` to recorded version.
        layers (dict[str, list[str]]): Context name to compatible layer ids.
    """
    packs: dict[str, str] = field(default_factory=dict)
    layers: dict[str, list[str]] = field(default_factory=dict)

    def record_packs(self, packs: list[ResolvedPack]) -> None:
        for pack in packs:
            if pack.version is not None and not pack.is_missing:
                self.packs[pack.pack_id] = pack.version

    def to_mapping(self, *args, **kwargs) -> dict[str, Any]:
        return {"build-idx": {"packs": dict(self.packs), "layers": {k: list(v) for k, v in self.layers.items()}}}

    @classmethod
    def _preprocess_mapping(cls, mapping: Mapping[str, Any], **_: Any) -> Mapping[str, Any]:
        inner = mapping.get("build-idx")
        return inner if isinstance(inner, Mapping) else mapping

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any], **_: Any) -> Self:
        inner = cls._preprocess_mapping(mapping)
        return cls(
            packs={str(k): str(v) for k, v in (inner.get("packs") or {}).items()},
            layers={str(k): [str(i) for i in v or ()] for k, v in (inner.get("layers") or {}).items()})


@dataclass(slots=True, kw_only=True)
class ContextSet(MultiformatModelMixin):
    """
    The persisted selection of a previous run: the contexts it selected and
    the toolchain it was forced to use.

        cbuild-set:
          contexts:
            - context: App.Debug+BoardA
          compiler: AC6@6.18.0
    """
    contexts: list[ContextIdentifier] = field(default_factory=list)
    toolchain: ToolchainRequirement | None = None

    @property
    def patterns(self) -> list[str]:
        return [c.format() for c in self.contexts]

    def to_mapping(self, *args, **kwargs) -> dict[str, Any]:
        return {
            "cbuild-set": {
                "contexts": [{"context": c.format()} for c in self.contexts],
                "compiler": str(self.toolchain) if self.toolchain else None,
            }
        }

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any], **_: Any) -> Self:
        inner = mapping.get("cbuild-set")
        if not isinstance(inner, Mapping):
            inner = mapping
        contexts: list[ContextIdentifier] = []
        for entry in inner.get("contexts") or ():
            text = entry.get("context") if isinstance(entry, Mapping) else entry
            contexts.append(ContextIdentifier.parse(str(text)))
        compiler = inner.get("compiler")
        return cls(
            contexts=contexts,
            toolchain=ToolchainRequirement.parse(str(compiler)) if compiler else None)
