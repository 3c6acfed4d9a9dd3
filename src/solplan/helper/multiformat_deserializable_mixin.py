from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from typing_extensions import Self

from solplan.helper.toml_utils import load_toml_text


class MultiformatDeserializableMixin:
    """
    A mixin class that provides deserialization from JSON, YAML and TOML.

    Subclasses implement `from_mapping`; the hook methods (`_preprocess_mapping`,
    `_postprocess_instance`) can be overridden to customize the steps.
    """

    # ---- core contract ----

    @classmethod
    def from_mapping(cls: type[Self], mapping: Mapping[str, Any], **_: Any) -> Self:
        raise NotImplementedError(
            f"{cls.__name__} must implement from_mapping(mapping, **kwargs) "
            "to use MultiformatDeserializableMixin.")

    # ---- public entrypoints ----

    @classmethod
    def deserialize(cls: type[Self], text: str, *, fmt: str = "json", **context: Any) -> Self:
        """
        Deserializes a text representation into an instance of the class.

        Args:
            text (str): The serialized text.
            fmt (str, optional): "json", "yaml" or "toml". Defaults to "json".
            **context (Any): Passed through to `from_mapping`.

        Returns:
            Self: The created instance.
        """
        raw = cls._parse_text(text, fmt=fmt, path=None, **context)
        mapping = cls._coerce_root_mapping(raw, fmt=fmt, path=None, **context)
        mapping = cls._preprocess_mapping(mapping, fmt=fmt, path=None, **context)
        inst = cls.from_mapping(mapping, **context)
        return cls._postprocess_instance(inst, fmt=fmt, path=None, **context)

    @classmethod
    def from_json(cls: type[Self], text: str, **context: Any) -> Self:
        return cls.deserialize(text, fmt="json", **context)

    @classmethod
    def from_yaml(cls: type[Self], text: str, **context: Any) -> Self:
        return cls.deserialize(text, fmt="yaml", **context)

    @classmethod
    def from_toml(cls: type[Self], text: str, **context: Any) -> Self:
        return cls.deserialize(text, fmt="toml", **context)

    @classmethod
    def from_file(cls: type[Self], path: str | Path, fmt: str | None = None, **context: Any) -> Self:
        """
        Creates an instance from a file, inferring the format from its suffix
        when `fmt` is not given.

        Args:
            path (str | Path): The file to read.
            fmt (str | None): Explicit format, or None to infer it.
            **context (Any): Passed through to `from_mapping`.

        Returns:
            Self: The created instance.
        """
        p = Path(path)
        text = cls._load_text(p, **context)
        fmt = fmt or cls._infer_format_from_suffix(p)
        raw = cls._parse_text(text, fmt=fmt, path=p, **context)
        mapping = cls._coerce_root_mapping(raw, fmt=fmt, path=p, **context)
        mapping = cls._preprocess_mapping(mapping, fmt=fmt, path=p, **context)
        inst = cls.from_mapping(mapping, **context)
        return cls._postprocess_instance(inst, fmt=fmt, path=p, **context)

    # ---- overridable hooks ----

    @classmethod
    def _load_text(cls, path: Path, **_: Any) -> str:
        return path.read_text(encoding="utf-8")

    @classmethod
    def _infer_format_from_suffix(cls, path: Path) -> str:
        suffix = path.suffix.lower()
        match suffix:
            case ".json":
                return "json"
            case ".yaml" | ".yml":
                return "yaml"
            case ".toml":
                return "toml"
            case _:
                raise ValueError(f"Cannot infer format from extension {suffix!r}")

    @classmethod
    def _parse_text(cls, text: str, *, fmt: str, path: Path | None, **_: Any) -> Any:
        """
        Parses text content into a data structure based on the specified format.

        Raises:
            ValueError: If the format is not supported.
        """
        fmt = fmt.lower()
        match fmt:
            case "json":
                return json.loads(text or "{}")
            case "yaml":
                return next(iter(yaml.safe_load_all(text)), None) or {}
            case "toml":
                return load_toml_text(text or "")
            case _:
                raise ValueError(f"unrecognized format: {fmt!r}")

    @classmethod
    def _coerce_root_mapping(
            cls,
            raw: Any,
            *,
            fmt: str,
            path: Path | None,
            **_: Any) -> Mapping[str, Any]:
        if isinstance(raw, Mapping):
            return raw
        raise TypeError(
            f"{cls.__name__} expected top-level mapping, got {type(raw)!r} "
            f"from {fmt} {str(path) if path else '<inline>'}")

    @classmethod
    def _preprocess_mapping(
            cls,
            mapping: Mapping[str, Any],
            *,
            fmt: str,
            path: Path | None,
            **_: Any) -> Mapping[str, Any]:
        # default: pass-through; override in unique cases
        return mapping

    @classmethod
    def _postprocess_instance(
            cls,
            inst: Self,
            *,
            fmt: str,
            path: Path | None,
            **_: Any) -> Self:
        return inst
