"""Tests for layer compatibility: target-type matching and connection wiring."""
from __future__ import annotations

from helpers.builders import make_layer
from solplan.package.domain.errors import ErrorKind, LayerNotFoundError, LayerWiringConflictError
from solplan.package.domain.identifier_model import ContextIdentifier
from solplan.package.domain.layer_model import Layer, LayerReference
from solplan.package.lifecycle.plan.layers.layer_resolver import SlotGraph, resolve_layers

BOARD_A = ContextIdentifier.parse("App.Debug+BoardA")
BOARD_B = ContextIdentifier.parse("App.Debug+BoardB")
NET = (LayerReference(layer_id="Net"),)


def ids(layers) -> list[str]:
    return [layer.id for layer in layers]


class TestResolveLayers:
    def test_compatible_layer_is_selected_with_its_provider(self, net_layers: list[Layer]) -> None:
        """Net consumes ETH_MAC; Board_A is the only BoardA layer providing it."""
        result = resolve_layers("BoardA", NET, net_layers, context=BOARD_A)
        assert result.error is None
        assert ids(result.report.available) == ["Net", "Board_A", "Board_B"]
        assert ids(result.report.referenced) == ["Net"]
        assert ids(result.report.compatible) == ["Net", "Board_A"]
        assert ids(result.report.selected) == ["Net", "Board_A"]
        assert result.report.conflicts == ()

    def test_incompatible_mandatory_layer_fails(self, net_layers: list[Layer]) -> None:
        result = resolve_layers("BoardB", NET, net_layers, context=BOARD_B)
        assert isinstance(result.error, LayerWiringConflictError)
        assert "layer 'Net' cannot be used in 'App.Debug+BoardB'" in result.error.message
        assert ids(result.report.compatible) == ["Board_B"]
        assert ids(result.report.selected) == []

    def test_incompatible_optional_layer_is_a_warning(self, net_layers: list[Layer]) -> None:
        result = resolve_layers(
            "BoardB", (LayerReference(layer_id="Net", is_optional=True),), net_layers, context=BOARD_B)
        assert result.error is None
        assert [d.kind for d in result.diagnostics] == [ErrorKind.LAYER_WIRING_CONFLICT]

    def test_unknown_reference_is_layer_not_found(self, net_layers: list[Layer]) -> None:
        result = resolve_layers("BoardA", (LayerReference(layer_id="Nope"),), net_layers, context=BOARD_A)
        assert isinstance(result.error, LayerNotFoundError)
        assert ids(result.report.available) == ["Net", "Board_A", "Board_B"]

    def test_reference_restricted_to_other_contexts_is_ignored(self, net_layers: list[Layer]) -> None:
        ref = LayerReference(layer_id="Net", for_contexts=(ContextIdentifier.parse("+BoardA"),))
        result = resolve_layers("BoardB", (ref,), net_layers, context=BOARD_B)
        assert result.error is None
        assert ids(result.report.referenced) == []

    def test_unprovided_slot_is_a_conflict(self) -> None:
        layers = [make_layer("Net", consumes=("ETH_MAC",))]
        result = resolve_layers("BoardA", NET, layers, context=BOARD_A)
        assert isinstance(result.error, LayerWiringConflictError)
        assert "connection 'ETH_MAC' is not provided by any layer" in result.error.message

    def test_ambiguous_provider_is_a_conflict(self) -> None:
        layers = [
            make_layer("Net", consumes=("ETH_MAC",)),
            make_layer("Eth1", provides=("ETH_MAC",)),
            make_layer("Eth2", provides=("ETH_MAC",)),
        ]
        result = resolve_layers("BoardA", NET, layers, context=BOARD_A)
        assert isinstance(result.error, LayerWiringConflictError)
        conflict = result.report.conflicts[0]
        assert conflict.slot == "ETH_MAC"
        assert conflict.candidates == ("Eth1", "Eth2")

    def test_providers_are_wired_transitively(self) -> None:
        layers = [
            make_layer("App", consumes=("SOCKET",)),
            make_layer("Net", consumes=("ETH_MAC",), provides=("SOCKET",)),
            make_layer("Board", provides=("ETH_MAC",)),
        ]
        result = resolve_layers("BoardA", (LayerReference(layer_id="App"),), layers, context=BOARD_A)
        assert ids(result.report.selected) == ["App", "Net", "Board"]

    def test_provider_that_cannot_be_used_breaks_its_consumer(self) -> None:
        """Net is App's only SOCKET provider, but nothing provides Net's ETH_MAC."""
        layers = [
            make_layer("App", consumes=("SOCKET",)),
            make_layer("Net", consumes=("ETH_MAC",), provides=("SOCKET",)),
        ]
        result = resolve_layers("BoardA", (LayerReference(layer_id="App"),), layers, context=BOARD_A)
        assert isinstance(result.error, LayerWiringConflictError)
        assert "connection 'SOCKET' is provided by layer 'Net', which cannot be used" in result.error.message
        assert ids(result.report.compatible) == []
        assert ids(result.report.selected) == []

    def test_unusable_provider_of_an_optional_layer_is_a_warning(self) -> None:
        layers = [make_layer("App", consumes=("SOCKET",)), make_layer("Net", consumes=("X",), provides=("SOCKET",))]
        ref = (LayerReference(layer_id="App", is_optional=True),)
        result = resolve_layers("BoardA", ref, layers, context=BOARD_A)
        assert result.error is None
        assert [d.kind for d in result.diagnostics] == [ErrorKind.LAYER_WIRING_CONFLICT]
        assert ids(result.report.selected) == []

    def test_no_references_selects_nothing(self, net_layers: list[Layer]) -> None:
        result = resolve_layers("BoardA", (), net_layers, context=BOARD_A)
        assert ids(result.report.selected) == []
        assert ids(result.report.compatible) == ["Net", "Board_A"]


def test_slot_graph_excludes_the_consumer_itself() -> None:
    layer = make_layer("Loop", consumes=("X",), provides=("X",))
    graph = SlotGraph.build([layer])
    assert graph.providers_for("X", "Loop") == []
    assert graph.providers_for("X", "Other") == ["Loop"]
