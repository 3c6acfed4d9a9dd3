from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

import tomli
import tomli_w


def load_toml_file(path: str | Path) -> dict[str, Any]:
    """
    Loads and parses a TOML file, returning its content as a dictionary.

    Args:
        path (str | Path): The path to the TOML file to be loaded.

    Returns:
        dict[str, Any]: A dictionary representation of the TOML file.

    Raises:
        FileNotFoundError: If the specified file does not exist.
        tomli.TOMLDecodeError: If the file content is not valid TOML.
    """
    with open(path, "rb") as f:
        return tomli.load(f)


def load_toml_text(text: str) -> dict[str, Any]:
    return tomli.loads(text)


def dump_toml_to_str(data: Mapping[str, Any], indent: int = 2) -> str:
    """
    Converts a mapping into a TOML string.

    TOML has no null, so keys whose value is None are dropped (recursively)
    before serialization.

    Args:
        data (Mapping[str, Any]): The mapping of data to be serialized.
        indent (int, optional): Array indentation. Defaults to 2.

    Returns:
        str: The serialized TOML formatted string.
    """
    return tomli_w.dumps(_drop_none(data), indent=indent)


def _drop_none(value: Any) -> Any:
    match value:
        case Mapping():
            return {k: _drop_none(v) for k, v in value.items() if v is not None}
        case list() | tuple():
            return [_drop_none(v) for v in value if v is not None]
        case _:
            return value


def select_tool_table(doc: Mapping[str, Any], table: str = "tool.solplan") -> Mapping[str, Any] | None:
    """
    Walks a dotted table path (e.g. "tool.solplan") inside a parsed TOML document.

    Returns:
        Mapping[str, Any] | None: The table, or None when any segment is absent.
    """
    current: Any = doc
    for part in table.split("."):
        if not isinstance(current, Mapping) or part not in current:
            return None
        current = current[part]
    return current if isinstance(current, Mapping) else None
