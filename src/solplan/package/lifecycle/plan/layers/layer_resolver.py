from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from solplan.package.domain.context_item_model import Diagnostic, Severity
from solplan.package.domain.errors import ErrorKind, LayerNotFoundError, LayerWiringConflictError, SolplanError
from solplan.package.domain.identifier_model import ContextIdentifier
from solplan.package.domain.layer_model import Layer, LayerConflict, LayerReference, LayerReport, layers_by_id
from solplan.package.lifecycle.audit.plan_event_model import EventType, LevelType, StageType, record_event


@dataclass(slots=True, kw_only=True)
class LayerResolution:
    report: LayerReport = field(default_factory=LayerReport)
    diagnostics: list[Diagnostic] = field(default_factory=list)
    error: SolplanError | None = None


@dataclass(slots=True)
class SlotGraph:
    """
    Adjacency of connection slots to the candidate layers that provide them.

    Built once per context over the target-compatible candidates; every wiring
    question afterwards is a lookup.
    """
    providers: dict[str, list[str]] = field(default_factory=dict)

    @classmethod
    def build(cls, candidates: Sequence[Layer]) -> SlotGraph:
        graph = cls()
        for layer in candidates:
            for slot in layer.provides:
                graph.providers.setdefault(slot, []).append(layer.id)
        return graph

    def providers_for(self, slot: str, consumer: str) -> list[str]:
        return [p for p in self.providers.get(slot, ()) if p != consumer]


def _check_wiring(layer: Layer, graph: SlotGraph) -> list[LayerConflict]:
    conflicts: list[LayerConflict] = []
    for slot in layer.consumes:
        providers = graph.providers_for(slot, layer.id)
        if not providers:
            conflicts.append(LayerConflict(
                layer_id=layer.id, reason=f"connection '{slot}' is not provided by any layer", slot=slot))
        elif len(providers) > 1:
            conflicts.append(LayerConflict(
                layer_id=layer.id,
                reason=f"connection '{slot}' is provided by more than one layer: {', '.join(providers)}",
                slot=slot,
                candidates=tuple(providers)))
    return conflicts


def resolve_layers(
        target_type: str | None,
        references: Sequence[LayerReference],
        discovered: Sequence[Layer],
        *,
        context: ContextIdentifier) -> LayerResolution:
    """
    Determines which layers a context can use.

    A candidate layer is compatible when its target-type patterns match the
    context's target-type and each slot it consumes is provided by exactly one
    other target-matching candidate that is compatible itself. The report
    lists the available, referenced and compatible layers independently;
    `selected` holds the compatible referenced layers followed by the
    providers wired to them.

    Args:
        target_type (str | None): The context's target-type.
        references (Sequence[LayerReference]): The project's layer references.
        discovered (Sequence[Layer]): Layers found by discovery, in discovery order.
        context (ContextIdentifier): The context; selects the applicable references.

    Returns:
        LayerResolution: The report, diagnostics for optional layers that cannot
        be used, and the hard error if a referenced layer is unknown or a
        mandatory referenced layer is not compatible.
    """
    index = layers_by_id(discovered)
    available = tuple(index.values())
    applicable = [r for r in references if r.applies_to(context)]

    referenced: list[Layer] = []
    optional: dict[str, bool] = {}
    for ref in applicable:
        layer = index.get(ref.layer_id)
        if layer is None:
            error = LayerNotFoundError(
                f"layer '{ref.layer_id}' referenced by '{context}' was not found", subject=ref.layer_id)
            return LayerResolution(report=LayerReport(available=available), error=error)
        if layer.id not in optional:
            referenced.append(layer)
            optional[layer.id] = ref.is_optional
        else:
            optional[layer.id] = optional[layer.id] and ref.is_optional

    referenced_ids = {layer.id for layer in referenced}
    candidates = referenced + [layer for layer in available if layer.id not in referenced_ids]
    target_ok = [layer for layer in candidates if layer.supports_target_type(target_type)]
    graph = SlotGraph.build(target_ok)

    conflicts: list[LayerConflict] = []
    compatible: list[Layer] = []
    for layer in candidates:
        if not layer.supports_target_type(target_type):
            if layer.id in referenced_ids:
                conflicts.append(LayerConflict(
                    layer_id=layer.id, reason=f"not compatible with target-type '{target_type or ''}'"))
            continue
        wiring = _check_wiring(layer, graph)
        if wiring:
            if layer.id in referenced_ids:
                conflicts.extend(wiring)
            continue
        compatible.append(layer)

    compatible_ids = _drop_unwired(compatible, referenced_ids, graph, conflicts)
    compatible = [layer for layer in compatible if layer.id in compatible_ids]
    selected = _select(referenced, compatible_ids, graph, index, available)

    result = LayerResolution(report=LayerReport(
        available=available,
        referenced=tuple(referenced),
        compatible=tuple(compatible),
        selected=tuple(selected),
        conflicts=tuple(conflicts)))

    for layer in referenced:
        if layer.id in compatible_ids:
            continue
        reasons = "; ".join(c.reason for c in conflicts if c.layer_id == layer.id)
        message = f"layer '{layer.id}' cannot be used in '{context}': {reasons}"
        if optional[layer.id]:
            result.diagnostics.append(Diagnostic(
                kind=ErrorKind.LAYER_WIRING_CONFLICT, message=message, severity=Severity.WARNING, subject=layer.id))
        elif result.error is None:
            result.error = LayerWiringConflictError(message, subject=layer.id)

    record_event(
        StageType.RESOLVE,
        EventType.RESOLVE,
        LevelType.ERROR if result.error else LevelType.INFO,
        substage="layers",
        message=result.error.message if result.error else None,
        payload={"context": context.format(), **result.report.to_mapping()})
    return result


def _drop_unwired(
        compatible: Sequence[Layer],
        referenced_ids: set[str],
        graph: SlotGraph,
        conflicts: list[LayerConflict]) -> set[str]:
    """Removes layers whose single provider for a slot is not usable itself, until nothing changes."""
    remaining = {layer.id: layer for layer in compatible}
    changed = True
    while changed:
        changed = False
        for layer in list(remaining.values()):
            broken = [
                (slot, graph.providers_for(slot, layer.id)[0])
                for slot in layer.consumes
                if graph.providers_for(slot, layer.id)[0] not in remaining]
            if not broken:
                continue
            del remaining[layer.id]
            changed = True
            if layer.id in referenced_ids:
                conflicts.extend(
                    LayerConflict(
                        layer_id=layer.id,
                        reason=f"connection '{slot}' is provided by layer '{provider}', which cannot be used",
                        slot=slot,
                        candidates=(provider,))
                    for slot, provider in broken)
    return set(remaining)


def _select(
        referenced: Sequence[Layer],
        compatible_ids: set[str],
        graph: SlotGraph,
        index: dict[str, Layer],
        available: Sequence[Layer]) -> list[Layer]:
    chosen = [layer for layer in referenced if layer.id in compatible_ids]
    chosen_ids = {layer.id for layer in chosen}
    wired: set[str] = set()
    pending = list(chosen)
    while pending:
        layer = pending.pop()
        for slot in layer.consumes:
            providers = graph.providers_for(slot, layer.id)
            if len(providers) != 1:
                continue
            provider = providers[0]
            if provider in chosen_ids or provider in wired or provider not in compatible_ids:
                continue
            wired.add(provider)
            pending.append(index[provider])
    return chosen + [layer for layer in available if layer.id in wired]
