"""Tests for version ranges and pack and toolchain requirement records."""
from __future__ import annotations

from pathlib import Path

import pytest

from solplan.package.domain.errors import ConfigurationError
from solplan.package.domain.requirements_model import (
    PackRequirement,
    ResolvedPack,
    ResolvedToolchain,
    ToolchainRequirement,
    parse_version_range,
    requirements_from_list,
    satisfies,
    sort_versions,
)


class TestVersionRange:
    def test_empty_range_accepts_any_version(self) -> None:
        spec = parse_version_range("")
        assert satisfies("0.0.1", spec)
        assert satisfies("99.0.0", spec)

    def test_bare_version_is_an_exact_pin(self) -> None:
        spec = parse_version_range("1.2.0")
        assert str(spec) == "==1.2.0"
        assert satisfies("1.2.0", spec)
        assert not satisfies("1.2.1", spec)

    @pytest.mark.parametrize("text", [">=1.0.0 <2.0.0", ">=1.0.0,<2.0.0", ">=1.0.0, <2.0.0"])
    def test_whitespace_and_comma_separators(self, text: str) -> None:
        spec = parse_version_range(text)
        assert satisfies("1.5.0", spec)
        assert not satisfies("2.0.0", spec)

    def test_invalid_range_raises_configuration_error(self) -> None:
        with pytest.raises(ConfigurationError):
            parse_version_range("not-a-version")

    def test_prereleases_only_when_range_names_one(self) -> None:
        assert not satisfies("2.0.0rc1", parse_version_range(">=1.0.0"))
        assert satisfies("2.0.0rc1", parse_version_range(">=2.0.0rc1"))

    def test_invalid_version_never_satisfies(self) -> None:
        assert not satisfies("latest", parse_version_range(""))

    def test_sort_versions_is_semantic_and_drops_invalid(self) -> None:
        assert sort_versions(["1.10.0", "1.2.0", "bogus", "1.9.0"]) == ["1.2.0", "1.9.0", "1.10.0"]


class TestPackRequirement:
    def test_parse_with_range(self) -> None:
        req = PackRequirement.parse("ARM::CMSIS@>=5.9.0")
        assert (req.vendor, req.name, req.version_range) == ("ARM", "CMSIS", ">=5.9.0")
        assert req.pack_id == "ARM::CMSIS"
        assert str(req) == "ARM::CMSIS@>=5.9.0"

    def test_parse_without_range(self) -> None:
        req = PackRequirement.parse("ARM::CMSIS")
        assert req.version_range == ""
        assert str(req) == "ARM::CMSIS"

    def test_bare_version_pins_the_requirement(self) -> None:
        assert str(PackRequirement.parse("ARM::CMSIS@5.9.0").specifier) == "==5.9.0"

    def test_missing_vendor_separator_is_rejected(self) -> None:
        with pytest.raises(ConfigurationError):
            PackRequirement.parse("CMSIS@5.9.0")

    def test_invalid_range_is_rejected_eagerly(self) -> None:
        with pytest.raises(ConfigurationError):
            PackRequirement(vendor="ARM", name="CMSIS", version_range="~~1")

    def test_requirements_from_list_accepts_mixed_forms(self) -> None:
        reqs = requirements_from_list([
            "ARM::CMSIS@>=5.9.0",
            {"pack": "Keil::DFP", "is_optional": True},
            PackRequirement(vendor="ARM", name="Network"),
        ])
        assert [r.pack_id for r in reqs] == ["ARM::CMSIS", "Keil::DFP", "ARM::Network"]
        assert reqs[1].is_optional

    def test_requirements_from_list_rejects_unknown_items(self) -> None:
        with pytest.raises(TypeError):
            requirements_from_list([42])

    def test_mapping_round_trip(self) -> None:
        req = PackRequirement.parse("ARM::CMSIS@>=5.9.0", is_optional=True)
        assert PackRequirement.from_mapping(req.to_mapping()) == req


class TestResolvedRecords:
    def test_missing_pack_shows_its_range(self) -> None:
        pack = ResolvedPack(vendor="ARM", name="X", version=None, is_missing=True, version_range=">=1.0.0")
        assert str(pack) == "ARM::X@>=1.0.0"

    def test_resolved_pack_shows_its_version(self) -> None:
        pack = ResolvedPack(vendor="ARM", name="X", version="1.2.0", version_range=">=1.0.0")
        assert str(pack) == "ARM::X@1.2.0"
        assert pack.dedup_key == ("ARM", "X", "1.2.0")

    def test_toolchain_environment_variable(self) -> None:
        toolchain = ResolvedToolchain(name="AC6", version="6.22.0", root_path=Path("/opt/ac6"))
        assert toolchain.environment_variable == "AC6_TOOLCHAIN_6_22_0"
        assert str(toolchain) == "AC6@6.22.0"

    def test_toolchain_requirement_parse(self) -> None:
        req = ToolchainRequirement.parse("GCC@>=12.0.0")
        assert (req.name, req.version_range) == ("GCC", ">=12.0.0")
        assert str(ToolchainRequirement.parse("GCC")) == "GCC"

    def test_toolchain_requirement_needs_a_name(self) -> None:
        with pytest.raises(ConfigurationError):
            ToolchainRequirement.parse("@1.0.0")

    def test_toolchain_from_yaml(self) -> None:
        toolchain = ResolvedToolchain.from_yaml("name: GCC\nversion: 12.2.0\nroot_path: /opt/gcc\n")
        assert toolchain == ResolvedToolchain(name="GCC", version="12.2.0", root_path=Path("/opt/gcc"))
