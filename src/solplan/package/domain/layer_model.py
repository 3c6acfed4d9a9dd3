from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from solplan.helper.multiformat_model_mixin import MultiformatModelMixin
from solplan.package.domain.errors import ConfigurationError, MalformedIdentifierError
from solplan.package.domain.identifier_model import ContextIdentifier, matches_target_type
from solplan.package.domain.requirements_model import (
    ComponentRequirement,
    PackRequirement,
    requirements_from_list,
)


class SlotRole(str, Enum):
    CONSUMES = "CONSUMES"
    PROVIDES = "PROVIDES"


@dataclass(frozen=True, slots=True, order=True)
class ConnectionSlot:
    """One interface slot of a layer: either consumed from or provided to other layers."""
    name: str
    role: SlotRole = SlotRole.CONSUMES


@dataclass(frozen=True, slots=True, kw_only=True)
class Layer(MultiformatModelMixin):
    """
    A reusable bundle of components that plugs into a context through connection slots.

    Layer files (`*.clayer.yml`) use the mapping form:

        layer:
          id: Net
          for-board: [BoardA]          # target-type compatibility patterns
          connections:
            consumes: [ETH_MAC]
            provides: [IoT_Socket]
          packs: [ARM::CMSIS-Driver@>=2.0.0]
          components: [ARM::Network:Socket]

    Attributes:
        id (str): Layer id.
        target_type_compatibility (frozenset[str]): Target-type patterns; empty
            means compatible with every target-type.
        connections (frozenset[ConnectionSlot]): Consumed and provided slots.
        packs (tuple[PackRequirement, ...]): Packs the layer needs.
        components (tuple[ComponentRequirement, ...]): Components the layer declares.
        path (Path | None): Where the layer was discovered.
    """
    id: str
    target_type_compatibility: frozenset[str] = frozenset()
    connections: frozenset[ConnectionSlot] = frozenset()
    packs: tuple[PackRequirement, ...] = ()
    components: tuple[ComponentRequirement, ...] = ()
    path: Path | None = None

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("layer id is required")
        for pattern in sorted(self.target_type_compatibility):
            try:
                matches_target_type(pattern, None)
            except MalformedIdentifierError as e:
                raise ConfigurationError(
                    f"layer '{self.id}' has a malformed target-type pattern '{pattern}'",
                    subject=self.id) from e

    @property
    def consumes(self) -> list[str]:
        return sorted(s.name for s in self.connections if s.role == SlotRole.CONSUMES)

    @property
    def provides(self) -> list[str]:
        return sorted(s.name for s in self.connections if s.role == SlotRole.PROVIDES)

    def supports_target_type(self, target_type: str | None) -> bool:
        if not self.target_type_compatibility:
            return True
        return any(matches_target_type(p, target_type) for p in sorted(self.target_type_compatibility))

    def to_mapping(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "for-board": sorted(self.target_type_compatibility),
            "connections": {
                "consumes": self.consumes,
                "provides": self.provides,
            },
            "packs": [str(p) for p in self.packs],
            "components": [str(c) for c in self.components],
            "path": str(self.path) if self.path else None,
        }

    @classmethod
    def _preprocess_mapping(cls, mapping: Mapping[str, Any], **_: Any) -> Mapping[str, Any]:
        # layer files wrap their content in a top-level "layer" table
        inner = mapping.get("layer")
        return inner if isinstance(inner, Mapping) else mapping

    @classmethod
    def _postprocess_instance(cls, inst: Layer, *, path: Path | None = None, **_: Any) -> Layer:
        if path is None or inst.path is not None:
            return inst
        return Layer(
            id=inst.id,
            target_type_compatibility=inst.target_type_compatibility,
            connections=inst.connections,
            packs=inst.packs,
            components=inst.components,
            path=path)

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any], **_: Any) -> Layer:
        connections = mapping.get("connections") or {}
        slots = (
            [ConnectionSlot(str(n), SlotRole.CONSUMES) for n in connections.get("consumes") or ()] +
            [ConnectionSlot(str(n), SlotRole.PROVIDES) for n in connections.get("provides") or ()])
        patterns = mapping.get("for-board", mapping.get("target_type_compatibility")) or ()
        if isinstance(patterns, str):
            patterns = [patterns]
        path = mapping.get("path")
        return cls(
            id=str(mapping["id"]),
            target_type_compatibility=frozenset(str(p) for p in patterns),
            connections=frozenset(slots),
            packs=requirements_from_list(mapping.get("packs")),
            components=tuple(ComponentRequirement(str(c)) for c in mapping.get("components") or ()),
            path=Path(path) if path else None)


@dataclass(frozen=True, slots=True, kw_only=True)
class LayerReference:
    """
    A project's reference to a layer by id.

    Attributes:
        layer_id (str): Referenced layer id.
        for_contexts (tuple[ContextIdentifier, ...]): Contexts the reference
            applies to; empty means every context of the project.
        is_optional (bool): An optional reference that turns out incompatible is
            reported but does not fail the context.
    """
    layer_id: str
    for_contexts: tuple[ContextIdentifier, ...] = ()
    is_optional: bool = False

    def applies_to(self, identifier: ContextIdentifier) -> bool:
        return not self.for_contexts or any(p.matches(identifier) for p in self.for_contexts)

    @classmethod
    def from_value(cls, value: Any) -> LayerReference:
        match value:
            case LayerReference():
                return value
            case str():
                return cls(layer_id=value)
            case Mapping():
                return cls(
                    layer_id=str(value["layer"]),
                    for_contexts=tuple(ContextIdentifier.parse(str(p)) for p in _as_list(value.get("for-context"))),
                    is_optional=bool(value.get("optional", False)))
            case _:
                raise TypeError(f"unsupported layer reference: {value!r}")


@dataclass(frozen=True, slots=True, kw_only=True)
class LayerConflict:
    layer_id: str
    reason: str
    slot: str | None = None
    candidates: tuple[str, ...] = ()

    def __str__(self) -> str:
        return f"{self.layer_id}: {self.reason}"


@dataclass(frozen=True, slots=True, kw_only=True)
class LayerReport:
    """
    Result of layer resolution for one context.

    `available`, `referenced` and `compatible` are computed independently;
    `selected` is what the context actually uses.
    """
    available: tuple[Layer, ...] = ()
    referenced: tuple[Layer, ...] = ()
    compatible: tuple[Layer, ...] = ()
    selected: tuple[Layer, ...] = ()
    conflicts: tuple[LayerConflict, ...] = field(default_factory=tuple)

    def to_mapping(self) -> dict[str, Any]:
        return {
            "available": [layer.id for layer in self.available],
            "referenced": [layer.id for layer in self.referenced],
            "compatible": [layer.id for layer in self.compatible],
            "selected": [layer.id for layer in self.selected],
            "conflicts": [str(c) for c in self.conflicts],
        }


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def layers_by_id(layers: Iterable[Layer]) -> dict[str, Layer]:
    """First occurrence wins, keeping discovery order."""
    out: dict[str, Layer] = {}
    for layer in layers:
        out.setdefault(layer.id, layer)
    return out
