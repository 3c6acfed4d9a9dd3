from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from typing_extensions import Self

from solplan.helper.multiformat_model_mixin import MultiformatModelMixin
from solplan.helper.toml_utils import select_tool_table
from solplan.package.domain.errors import ConfigurationError
from solplan.package.domain.requirements_model import ToolchainRequirement

DEFAULT_AUDIT_DEST = "file"
PYPROJECT_FILENAME = "pyproject.toml"
OPTIONS_FILENAME = "solplan.toml"


class LoadPacksPolicy(str, Enum):
    """
    How installed pack versions are chosen for a requirement.

    Attributes:
        DEFAULT: Newest satisfying version, keeping a previously recorded one
            while it is still installed and still satisfies the range.
        LATEST: Newest satisfying version, ignoring any recorded one.
        ALL: Every installed satisfying version.
        REQUIRED: As DEFAULT, but a missing mandatory pack fails the context.
    """
    DEFAULT = "DEFAULT"
    LATEST = "LATEST"
    ALL = "ALL"
    REQUIRED = "REQUIRED"


class SelectionMode(str, Enum):
    DECLARATION = "DECLARATION"
    YML_ORDER = "YML_ORDER"


def parse_load_policy(text: str | LoadPacksPolicy | None) -> LoadPacksPolicy:
    """
    Maps the user-facing load option onto a policy.

    Args:
        text (str | LoadPacksPolicy | None): "", None, "latest", "all" or
            "required". "default" is accepted too, since saved options write it.

    Returns:
        LoadPacksPolicy: The policy; empty input means DEFAULT.

    Raises:
        ConfigurationError: If the option is not one of the known values.
    """
    if isinstance(text, LoadPacksPolicy):
        return text
    match (text or "").strip().lower():
        case "" | "default":
            return LoadPacksPolicy.DEFAULT
        case "latest":
            return LoadPacksPolicy.LATEST
        case "all":
            return LoadPacksPolicy.ALL
        case "required":
            return LoadPacksPolicy.REQUIRED
        case _:
            raise ConfigurationError(
                f"unknown load option: '{text}', it must be 'latest', 'all' or 'required'",
                subject=str(text))


def parse_selection_mode(value: str | SelectionMode | None) -> SelectionMode:
    if isinstance(value, SelectionMode):
        return value
    raw = (value or SelectionMode.DECLARATION.value).strip().upper().replace("-", "_")
    try:
        return SelectionMode(raw)
    except ValueError as e:
        raise ConfigurationError(f"unknown selection mode: {value!r}", subject=str(value)) from e


def parse_forced_toolchain(value: str | ToolchainRequirement | None) -> ToolchainRequirement | None:
    """Parses the forced toolchain option `NAME[@RANGE]`; empty means none."""
    if value is None or isinstance(value, ToolchainRequirement):
        return value
    if not value.strip():
        return None
    return ToolchainRequirement.parse(value)


@dataclass(slots=True, kw_only=True)
class RunOptions(MultiformatModelMixin):
    """
    Options that steer one resolution run.

    Options may come from code, from `solplan.toml`, from the `[tool.solplan]`
    table of a `pyproject.toml`, or from YAML/JSON files:

        [tool.solplan]
        load_policy = "latest"
        contexts = ["App.Debug+BoardA", "+BoardB"]
        selection_mode = "yml-order"
        frozen_packs = true
        toolchain = "AC6@>=6.18.0"
        layer_search_paths = ["layers"]
        max_workers = 4

    Attributes:
        load_policy (LoadPacksPolicy): Pack version selection policy.
        contexts (list[str]): Context filter patterns; empty selects all.
        use_context_set (bool): Select the contexts recorded in the context set.
        selection_mode (SelectionMode): Order of the selected contexts.
        frozen_packs (bool): Fail contexts whose packs drift from the recorded snapshot.
        update_index (bool): Record compatible layers per context in the build index.
        toolchain (ToolchainRequirement | None): Forced toolchain.
        layer_search_paths (list[Path]): Where layer discovery looks for layer files.
        output_dir (Path | None): Base directory for output directories.
        max_workers (int): Contexts resolved in parallel; 1 resolves serially.
        audit_dest (str): Space separated audit log destinations.
    """
    load_policy: LoadPacksPolicy = LoadPacksPolicy.DEFAULT
    contexts: list[str] = field(default_factory=list)
    use_context_set: bool = False
    selection_mode: SelectionMode = SelectionMode.DECLARATION
    frozen_packs: bool = False
    update_index: bool = False
    toolchain: ToolchainRequirement | None = None
    layer_search_paths: list[Path] = field(default_factory=list)
    output_dir: Path | None = None
    max_workers: int = 1
    audit_dest: str = DEFAULT_AUDIT_DEST

    def __post_init__(self) -> None:
        self.load_policy = parse_load_policy(self.load_policy)
        self.selection_mode = parse_selection_mode(self.selection_mode)
        self.toolchain = parse_forced_toolchain(self.toolchain)
        if isinstance(self.contexts, str):
            self.contexts = [self.contexts]
        self.layer_search_paths = [Path(p) for p in self.layer_search_paths]
        if self.output_dir is not None:
            self.output_dir = Path(self.output_dir)
        if not isinstance(self.max_workers, int) or self.max_workers < 1:
            raise ConfigurationError(f"max_workers must be a positive integer: {self.max_workers!r}")

    @property
    def parallel(self) -> bool:
        return self.max_workers > 1

    def to_mapping(self, *args, **kwargs) -> dict[str, Any]:
        return {
            "load_policy": self.load_policy.value.lower(),
            "contexts": list(self.contexts),
            "use_context_set": self.use_context_set,
            "selection_mode": self.selection_mode.value,
            "frozen_packs": self.frozen_packs,
            "update_index": self.update_index,
            "toolchain": str(self.toolchain) if self.toolchain else None,
            "layer_search_paths": [str(p) for p in self.layer_search_paths],
            "output_dir": str(self.output_dir) if self.output_dir else None,
            "max_workers": self.max_workers,
            "audit_dest": self.audit_dest,
        }

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any], **_: Any) -> Self:
        known = {k.replace("-", "_"): v for k, v in mapping.items()}
        unknown = sorted(set(known) - set(cls.__dataclass_fields__))
        if unknown:
            raise ConfigurationError(f"unknown option(s): {', '.join(unknown)}")
        return cls(**{k: v for k, v in known.items() if v is not None})

    @classmethod
    def _preprocess_mapping(
            cls,
            mapping: Mapping[str, Any],
            *,
            fmt: str,
            path: Path | None,
            **_: Any) -> Mapping[str, Any]:
        # pyproject.toml keeps the options in [tool.solplan]
        if fmt == "toml" and (path is None or path.name == PYPROJECT_FILENAME):
            table = select_tool_table(mapping)
            if table is not None:
                return table
            if path is not None:
                return {}
        return mapping

    @classmethod
    def discover(cls, directory: Path) -> Self:
        """
        Loads options from `solplan.toml` or the `[tool.solplan]` table of
        `pyproject.toml` in `directory`, falling back to defaults.

        Args:
            directory (Path): The directory to look in.

        Returns:
            RunOptions: The loaded options.
        """
        options_file = directory / OPTIONS_FILENAME
        if options_file.is_file():
            return cls.from_file(options_file)
        pyproject = directory / PYPROJECT_FILENAME
        if pyproject.is_file():
            return cls.from_file(pyproject)
        return cls()
