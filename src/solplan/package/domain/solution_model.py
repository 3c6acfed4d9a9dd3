from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from solplan.helper.multiformat_model_mixin import MultiformatModelMixin
from solplan.package.domain.errors import SolutionError
from solplan.package.domain.identifier_model import ContextIdentifier
from solplan.package.domain.layer_model import LayerReference
from solplan.package.domain.requirements_model import (
    ComponentRequirement,
    PackRequirement,
    ToolchainRequirement,
    requirements_from_list,
)

DEFAULT_OUTDIR_TEMPLATE = "out/{project}/{target_type}/{build_type}"
DEFAULT_INTDIR_TEMPLATE = "tmp/{project}/{target_type}/{build_type}"
DEFAULT_CPRJ_TEMPLATE = "{project_dir}"


def _toolchain(value: Any) -> ToolchainRequirement | None:
    match value:
        case None | "":
            return None
        case ToolchainRequirement():
            return value
        case str():
            return ToolchainRequirement.parse(value)
        case Mapping():
            return ToolchainRequirement.from_mapping(value)
        case _:
            raise TypeError(f"unsupported toolchain requirement: {value!r}")


@dataclass(frozen=True, slots=True, kw_only=True)
class BuildType:
    name: str
    toolchain: ToolchainRequirement | None = None

    @classmethod
    def from_value(cls, value: Any) -> BuildType:
        if isinstance(value, BuildType):
            return value
        if isinstance(value, str):
            return cls(name=value)
        return cls(name=str(value["type"]), toolchain=_toolchain(value.get("compiler")))


@dataclass(frozen=True, slots=True, kw_only=True)
class TargetType:
    name: str
    device: str | None = None
    board: str | None = None
    toolchain: ToolchainRequirement | None = None

    @classmethod
    def from_value(cls, value: Any) -> TargetType:
        if isinstance(value, TargetType):
            return value
        if isinstance(value, str):
            return cls(name=value)
        return cls(
            name=str(value["type"]),
            device=value.get("device"),
            board=value.get("board"),
            toolchain=_toolchain(value.get("compiler")))


@dataclass(frozen=True, slots=True, kw_only=True)
class ProjectRecord:
    """
    One parsed project declaration.

    Attributes:
        name (str): Project name; the first axis of every context identifier.
        directory (Path): Project directory, relative to the solution directory
            unless absolute.
        device (str | None): Device override for all of the project's contexts.
        packs (tuple[PackRequirement, ...]): Packs the project needs.
        toolchain (ToolchainRequirement | None): Toolchain the project needs.
        layers (tuple[LayerReference, ...]): Layers the project references.
        components (tuple[ComponentRequirement, ...]): Components the project declares.
        for_contexts (tuple[ContextIdentifier, ...]): Restricts the build/target
            combinations the project takes part in; empty means all.
    """
    name: str
    directory: Path = Path(".")
    device: str | None = None
    packs: tuple[PackRequirement, ...] = ()
    toolchain: ToolchainRequirement | None = None
    layers: tuple[LayerReference, ...] = ()
    components: tuple[ComponentRequirement, ...] = ()
    for_contexts: tuple[ContextIdentifier, ...] = ()

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> ProjectRecord:
        for_context = mapping.get("for-context") or ()
        if isinstance(for_context, str):
            for_context = [for_context]
        return cls(
            name=str(mapping["name"]),
            directory=Path(mapping.get("directory") or "."),
            device=mapping.get("device"),
            packs=requirements_from_list(mapping.get("packs")),
            toolchain=_toolchain(mapping.get("compiler")),
            layers=tuple(LayerReference.from_value(v) for v in mapping.get("layers") or ()),
            components=tuple(ComponentRequirement(str(c)) for c in mapping.get("components") or ()),
            for_contexts=tuple(ContextIdentifier.parse(str(p)) for p in for_context))


@dataclass(frozen=True, slots=True, kw_only=True)
class OutputDirectories:
    outdir: Path
    intdir: Path
    cprj: Path

    @classmethod
    def for_context(
            cls,
            solution: Solution,
            project: ProjectRecord,
            identifier: ContextIdentifier,
            output_root: Path | None = None) -> OutputDirectories:
        base = solution.directory if output_root is None else output_root
        values = {
            "project": identifier.project or "",
            "build_type": identifier.build_type or "",
            "target_type": identifier.target_type or "",
            "project_dir": str(project.directory),
        }
        project_dir = project.directory if project.directory.is_absolute() else solution.directory / project.directory
        cprj = Path(solution.cprj_template.format(**values))
        return cls(
            outdir=_clean(base / solution.outdir_template.format(**values)),
            intdir=_clean(base / solution.intdir_template.format(**values)),
            cprj=_clean(project_dir if solution.cprj_template == DEFAULT_CPRJ_TEMPLATE else base / cprj))

    def to_mapping(self) -> dict[str, Any]:
        return {"outdir": str(self.outdir), "intdir": str(self.intdir), "cprj": str(self.cprj)}


def _clean(path: Path) -> Path:
    # drop empty segments left by absent axes ("out/App//Debug")
    return Path(*[part for part in path.parts if part])


@dataclass(frozen=True, slots=True, kw_only=True)
class ContextDescriptor:
    """
    One concrete point of the project x build-type x target-type space.

    Created by `Solution.expand()` and read-only afterwards.
    """
    identifier: ContextIdentifier
    project: ProjectRecord
    build_type: BuildType | None
    target_type: TargetType | None
    directories: OutputDirectories
    declaration_index: int
    input_index: int | None = None

    @property
    def name(self) -> str:
        return self.identifier.format()


@dataclass(frozen=True, slots=True, kw_only=True)
class Solution(MultiformatModelMixin):
    """
    The parsed solution: the source of truth for the full context universe.

    The solution owns the ordered project declarations and the declared
    build-types and target-types. Contexts are the cartesian product
    project x build-type x target-type, restricted by each project's
    `for_contexts`. When a solution declares no build-types (or no
    target-types) that axis stays empty in the identifiers.

    Attributes:
        name (str): Solution name.
        directory (Path): Solution directory.
        projects (tuple[ProjectRecord, ...]): Projects in declaration order.
        build_types (tuple[BuildType, ...]): Build-types in declaration order.
        target_types (tuple[TargetType, ...]): Target-types in declaration order.
        packs (tuple[PackRequirement, ...]): Packs every context needs.
        toolchain (ToolchainRequirement | None): Solution-wide toolchain requirement.
        context_order (tuple[ContextIdentifier, ...]): Contexts in the order
            they first appeared in the input files.
    """
    name: str
    directory: Path = Path(".")
    projects: tuple[ProjectRecord, ...] = ()
    build_types: tuple[BuildType, ...] = ()
    target_types: tuple[TargetType, ...] = ()
    packs: tuple[PackRequirement, ...] = ()
    toolchain: ToolchainRequirement | None = None
    context_order: tuple[ContextIdentifier, ...] = ()
    outdir_template: str = DEFAULT_OUTDIR_TEMPLATE
    intdir_template: str = DEFAULT_INTDIR_TEMPLATE
    cprj_template: str = DEFAULT_CPRJ_TEMPLATE
    source_description: str | None = field(default=None, compare=False)

    @property
    def context_set_filename(self) -> str:
        return f"{self.name}.cbuild-set.yml"

    @property
    def build_index_filename(self) -> str:
        return f"{self.name}.cbuild-idx.yml"

    def project(self, name: str) -> ProjectRecord:
        for project in self.projects:
            if project.name == name:
                return project
        raise SolutionError(f"unknown project: {name!r}", subject=name)

    def validate(self) -> list[str]:
        """
        Checks cross-record consistency.

        Returns:
            list[str]: Non-fatal warnings (projects sharing a directory).

        Raises:
            SolutionError: If the solution has no projects or project names repeat.
        """
        if not self.projects:
            raise SolutionError("solution declares no projects", subject=self.name)
        seen: set[str] = set()
        for project in self.projects:
            if project.name in seen:
                raise SolutionError(f"project names must be unique: {project.name!r}", subject=project.name)
            seen.add(project.name)
        for kind, names in (("build-type", [b.name for b in self.build_types]),
                            ("target-type", [t.name for t in self.target_types])):
            if len(set(names)) != len(names):
                raise SolutionError(f"{kind} names must be unique", subject=self.name)

        warnings: list[str] = []
        dirs: dict[Path, str] = {}
        for project in self.projects:
            other = dirs.setdefault(project.directory, project.name)
            if other != project.name:
                warnings.append(
                    f"projects '{other}' and '{project.name}' should be placed in separate sub-directories")
        return warnings

    def expand(self, output_root: Path | None = None) -> list[ContextDescriptor]:
        """
        Expands the solution into its full, ordered context universe.

        Order is project declaration order, then build-type order, then
        target-type order.

        Args:
            output_root (Path | None): Overrides the solution directory as the
                base of output directories.

        Returns:
            list[ContextDescriptor]: One descriptor per context.
        """
        input_positions: dict[ContextIdentifier, int] = {}
        for position, identifier in enumerate(self.context_order):
            input_positions.setdefault(identifier, position)

        build_types: Sequence[BuildType | None] = self.build_types or (None,)
        target_types: Sequence[TargetType | None] = self.target_types or (None,)
        out: list[ContextDescriptor] = []
        for project in self.projects:
            for build_type in build_types:
                for target_type in target_types:
                    identifier = ContextIdentifier(
                        project.name,
                        build_type.name if build_type else None,
                        target_type.name if target_type else None)
                    if project.for_contexts and not any(
                            _matches_axes(p, identifier) for p in project.for_contexts):
                        continue
                    out.append(
                        ContextDescriptor(
                            identifier=identifier,
                            project=project,
                            build_type=build_type,
                            target_type=target_type,
                            directories=OutputDirectories.for_context(self, project, identifier, output_root),
                            declaration_index=len(out),
                            input_index=input_positions.get(identifier)))
        return out

    def to_mapping(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "directory": str(self.directory),
            "projects": [p.name for p in self.projects],
            "build-types": [b.name for b in self.build_types],
            "target-types": [t.name for t in self.target_types],
            "packs": [str(p) for p in self.packs],
            "compiler": str(self.toolchain) if self.toolchain else None,
        }

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any], **_: Any) -> Solution:
        """
        Builds a solution from an already parsed, schema-valid mapping:

            name: Demo
            directory: .
            compiler: AC6@>=6.18.0
            packs: [ARM::CMSIS@>=5.9.0]
            build-types: [{type: Debug}, {type: Release}]
            target-types: [{type: BoardA, board: BoardA}]
            projects: [{name: App, directory: app, layers: [Net]}]
        """
        return cls(
            name=str(mapping["name"]),
            directory=Path(mapping.get("directory") or "."),
            projects=tuple(ProjectRecord.from_mapping(p) for p in mapping.get("projects") or ()),
            build_types=tuple(BuildType.from_value(b) for b in mapping.get("build-types") or ()),
            target_types=tuple(TargetType.from_value(t) for t in mapping.get("target-types") or ()),
            packs=requirements_from_list(mapping.get("packs")),
            toolchain=_toolchain(mapping.get("compiler")),
            context_order=tuple(ContextIdentifier.parse(str(c)) for c in mapping.get("contexts") or ()),
            outdir_template=str(mapping.get("outdir") or DEFAULT_OUTDIR_TEMPLATE),
            intdir_template=str(mapping.get("intdir") or DEFAULT_INTDIR_TEMPLATE),
            cprj_template=str(mapping.get("cprjdir") or DEFAULT_CPRJ_TEMPLATE))

    @classmethod
    def _postprocess_instance(cls, inst: Solution, *, fmt: str, path: Path | None = None, **_: Any) -> Solution:
        if inst.source_description:
            return inst
        desc = f"{fmt}:{path}" if path is not None else f"{fmt}:<inline>"
        object.__setattr__(inst, "source_description", desc)
        return inst


def _matches_axes(pattern: ContextIdentifier, identifier: ContextIdentifier) -> bool:
    # project for-context patterns only restrict the build/target axes
    return ContextIdentifier(None, pattern.build_type, pattern.target_type).matches(identifier)
