from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from packaging.specifiers import InvalidSpecifier, SpecifierSet
from packaging.version import InvalidVersion, Version

from solplan.helper.multiformat_model_mixin import MultiformatModelMixin
from solplan.package.domain.errors import ConfigurationError

PACK_ID_SEP = "::"
VERSION_SEP = "@"

_SPEC_SPLIT_RE = re.compile(r"[,\s]+")
_OPERATOR_RE = re.compile(r"^(===|==|!=|~=|<=|>=|<|>)")


def parse_version_range(text: str | None) -> SpecifierSet:
    """
    Converts version range text into a SpecifierSet.

    Accepted forms:
      ""                    -> any version
      "1.2.0"               -> exact pin (==1.2.0)
      ">=1.0.0 <2.0.0"      -> whitespace separated specifiers
      ">=1.0.0,<2.0.0"      -> comma separated specifiers

    Raises:
        ConfigurationError: If a specifier or pinned version is invalid.
    """
    raw = (text or "").strip()
    if not raw:
        return SpecifierSet()
    parts = [p for p in _SPEC_SPLIT_RE.split(raw) if p]
    normalized: list[str] = []
    for part in parts:
        if _OPERATOR_RE.match(part):
            normalized.append(part)
            continue
        try:
            Version(part)
        except InvalidVersion as e:
            raise ConfigurationError(f"invalid version range: {text!r}") from e
        normalized.append(f"=={part}")
    try:
        return SpecifierSet(",".join(normalized))
    except InvalidSpecifier as e:
        raise ConfigurationError(f"invalid version range: {text!r}") from e


def satisfies(version: str | Version, spec: SpecifierSet) -> bool:
    try:
        v = version if isinstance(version, Version) else Version(str(version))
    except InvalidVersion:
        return False
    # pre-releases are only eligible when the range itself names one
    return v in spec


def sort_versions(versions: Iterable[str]) -> list[str]:
    """Ascending, dropping strings that are not valid versions."""
    parsed: list[tuple[Version, str]] = []
    for raw in versions:
        try:
            parsed.append((Version(raw), raw))
        except InvalidVersion:
            continue
    parsed.sort(key=lambda pair: pair[0])
    return [raw for _v, raw in parsed]


@dataclass(frozen=True, slots=True, kw_only=True)
class PackRequirement(MultiformatModelMixin):
    """
    A pack requirement declared by a solution, a project or a layer.

    Text form: `vendor::name[@range]`, e.g. "ARM::CMSIS@>=5.9.0".
    """
    vendor: str
    name: str
    version_range: str = ""
    is_optional: bool = False

    def __post_init__(self) -> None:
        if not self.vendor or not self.name:
            raise ValueError("pack requirement needs vendor and name")
        # validates the range eagerly
        parse_version_range(self.version_range)

    @property
    def pack_id(self) -> str:
        return f"{self.vendor}{PACK_ID_SEP}{self.name}"

    @property
    def specifier(self) -> SpecifierSet:
        return parse_version_range(self.version_range)

    @classmethod
    def parse(cls, text: str, *, is_optional: bool = False) -> PackRequirement:
        pack_id, _, version_range = text.strip().partition(VERSION_SEP)
        vendor, sep, name = pack_id.partition(PACK_ID_SEP)
        if not sep:
            raise ConfigurationError(f"pack must be given as 'vendor::name[@range]': {text!r}")
        return cls(vendor=vendor, name=name, version_range=version_range, is_optional=is_optional)

    def __str__(self) -> str:
        return self.pack_id + (f"{VERSION_SEP}{self.version_range}" if self.version_range else "")

    def to_mapping(self) -> dict[str, Any]:
        return {
            "vendor": self.vendor,
            "name": self.name,
            "version_range": self.version_range,
            "is_optional": self.is_optional,
        }

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any], **_: Any) -> PackRequirement:
        if "pack" in mapping:
            return cls.parse(str(mapping["pack"]), is_optional=bool(mapping.get("is_optional", False)))
        return cls(
            vendor=str(mapping["vendor"]),
            name=str(mapping["name"]),
            version_range=str(mapping.get("version_range") or ""),
            is_optional=bool(mapping.get("is_optional", False)))


@dataclass(frozen=True, slots=True, kw_only=True)
class ResolvedPack(MultiformatModelMixin):
    vendor: str
    name: str
    version: str | None
    is_missing: bool = False
    version_range: str = ""

    @property
    def pack_id(self) -> str:
        return f"{self.vendor}{PACK_ID_SEP}{self.name}"

    @property
    def dedup_key(self) -> tuple[str, str, str | None]:
        return self.vendor, self.name, self.version

    def __str__(self) -> str:
        if self.version is None:
            return self.pack_id + (f"{VERSION_SEP}{self.version_range}" if self.version_range else "")
        return f"{self.pack_id}{VERSION_SEP}{self.version}"

    def to_mapping(self) -> dict[str, Any]:
        return {
            "vendor": self.vendor,
            "name": self.name,
            "version": self.version,
            "is_missing": self.is_missing,
            "version_range": self.version_range,
        }

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any], **_: Any) -> ResolvedPack:
        return cls(
            vendor=str(mapping["vendor"]),
            name=str(mapping["name"]),
            version=mapping.get("version"),
            is_missing=bool(mapping.get("is_missing", False)),
            version_range=str(mapping.get("version_range") or ""))


@dataclass(frozen=True, slots=True, kw_only=True)
class ToolchainRequirement(MultiformatModelMixin):
    """
    A toolchain requirement, text form `NAME[@range]`, e.g. "AC6@>=6.18.0".
    """
    name: str
    version_range: str = ""

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("toolchain requirement needs a name")
        parse_version_range(self.version_range)

    @property
    def specifier(self) -> SpecifierSet:
        return parse_version_range(self.version_range)

    @classmethod
    def parse(cls, text: str) -> ToolchainRequirement:
        name, _, version_range = text.strip().partition(VERSION_SEP)
        if not name:
            raise ConfigurationError(f"toolchain must be given as 'NAME[@range]': {text!r}")
        return cls(name=name, version_range=version_range)

    def __str__(self) -> str:
        return self.name + (f"{VERSION_SEP}{self.version_range}" if self.version_range else "")

    def to_mapping(self) -> dict[str, Any]:
        return {"name": self.name, "version_range": self.version_range}

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any], **_: Any) -> ToolchainRequirement:
        return cls(name=str(mapping["name"]), version_range=str(mapping.get("version_range") or ""))


@dataclass(frozen=True, slots=True, kw_only=True)
class ResolvedToolchain(MultiformatModelMixin):
    name: str
    version: str
    root_path: Path | None = None
    config_path: Path | None = None

    @property
    def environment_variable(self) -> str:
        return f"{self.name}_TOOLCHAIN_{self.version.replace('.', '_')}"

    def __str__(self) -> str:
        return f"{self.name}{VERSION_SEP}{self.version}"

    def to_mapping(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "version": self.version,
            "root_path": str(self.root_path) if self.root_path else None,
            "config_path": str(self.config_path) if self.config_path else None,
        }

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any], **_: Any) -> ResolvedToolchain:
        root = mapping.get("root_path")
        config = mapping.get("config_path")
        return cls(
            name=str(mapping["name"]),
            version=str(mapping["version"]),
            root_path=Path(root) if root else None,
            config_path=Path(config) if config else None)


@dataclass(frozen=True, slots=True)
class ComponentRequirement:
    component_id: str

    def __str__(self) -> str:
        return self.component_id


@dataclass(frozen=True, slots=True, kw_only=True)
class ComponentRecord(MultiformatModelMixin):
    """
    A component offered by one installed pack version.

    Attributes:
        component_id (str): Fully qualified component id, e.g. "ARM::CMSIS:CORE".
        config_files (tuple[Path, ...]): Configuration files the component contributes.
        dependencies (tuple[str, ...]): Component ids this component requires.
    """
    component_id: str
    config_files: tuple[Path, ...] = ()
    dependencies: tuple[str, ...] = ()

    def to_mapping(self) -> dict[str, Any]:
        return {
            "component_id": self.component_id,
            "config_files": [str(p) for p in self.config_files],
            "dependencies": list(self.dependencies),
        }

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any], **_: Any) -> ComponentRecord:
        return cls(
            component_id=str(mapping["component_id"]),
            config_files=tuple(Path(p) for p in mapping.get("config_files") or ()),
            dependencies=tuple(str(d) for d in mapping.get("dependencies") or ()))


class TargetKind(str, Enum):
    DEVICE = "DEVICE"
    BOARD = "BOARD"


@dataclass(frozen=True, slots=True, kw_only=True)
class TargetRecord(MultiformatModelMixin):
    """
    A device or board known to the device/board inventory.

    Attributes:
        name (str): Exact device or board name.
        kind (TargetKind): Whether this is a device or a board.
        vendor (str): Vendor name.
        pack_id (str | None): The `vendor::name` of the pack describing it.
        mounted_device (str | None): For boards, the device mounted on it.
    """
    name: str
    kind: TargetKind = TargetKind.DEVICE
    vendor: str = ""
    pack_id: str | None = None
    mounted_device: str | None = None

    def to_mapping(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "kind": self.kind.value,
            "vendor": self.vendor,
            "pack_id": self.pack_id,
            "mounted_device": self.mounted_device,
        }

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any], **_: Any) -> TargetRecord:
        return cls(
            name=str(mapping["name"]),
            kind=TargetKind(mapping.get("kind", TargetKind.DEVICE.value)),
            vendor=str(mapping.get("vendor") or ""),
            pack_id=mapping.get("pack_id"),
            mounted_device=mapping.get("mounted_device"))


def requirements_from_list(items: Iterable[Any] | None) -> tuple[PackRequirement, ...]:
    """Accepts `PackRequirement`, "vendor::name@range" strings or mappings."""
    out: list[PackRequirement] = []
    for item in items or ():
        match item:
            case PackRequirement():
                out.append(item)
            case str():
                out.append(PackRequirement.parse(item))
            case Mapping():
                out.append(PackRequirement.from_mapping(item))
            case _:
                raise TypeError(f"unsupported pack requirement: {item!r}")
    return tuple(out)
