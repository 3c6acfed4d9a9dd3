from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping
from enum import Enum
from pathlib import Path
from typing import Any

import yaml

from solplan.helper.toml_utils import dump_toml_to_str


def _normalize(value: Any) -> Any:
    """
    Normalizes Python objects to consistent, JSON-compatible forms.

    Args:
        value (Any): The input value. Supports Path, Enum, mappings, sets,
            frozensets, lists and tuples, recursively.

    Returns:
        Any: A POSIX string for paths, the value of enums, a key-sorted dict for
        mappings, a sorted list for sets and a list for sequences. Anything else
        is returned unchanged.
    """
    match value:
        case Path():
            return value.as_posix()

        case Enum():
            return value.value

        case Mapping():
            return {
                str(k): _normalize(v)
                for k, v in sorted(value.items(), key=lambda kv: str(kv[0]))
            }

        case set() | frozenset():
            return sorted(_normalize(v) for v in value)

        case list() | tuple():
            return [_normalize(v) for v in value]

        case _:
            return value


class MultiformatSerializableMixin:
    """
    A mixin to add multi-format serialization support for model objects.

    Subclasses implement `to_mapping()`; the mixin turns that mapping into JSON,
    YAML or TOML text, writes it to files and computes a stable content hash.
    """

    def mapping_hash(self) -> str:
        """
        Generates a SHA-512 hash of the normalized mapping.

        The mapping is normalized and dumped as compact, key-sorted JSON before
        hashing so that equal models always produce equal digests.

        Returns:
            str: The hexadecimal representation of the SHA-512 hash.
        """
        normalized = _normalize(self.to_mapping())
        payload = (
            json.dumps(
                normalized,
                sort_keys=True,
                separators=(",", ":"))
            .encode("utf-8"))

        return hashlib.new("sha512", payload).hexdigest()

    def to_mapping(self, *args, **kwargs) -> Mapping[str, Any]:
        """
        Converts the object into a mapping.

        For container-like objects this should still return a mapping, e.g.
        `{"items": [item.to_mapping() for item in self.items]}`.

        Raises:
            NotImplementedError: When a subclass does not implement it.
        """
        raise NotImplementedError(
            f"{self.__class__.__name__} must implement to_mapping() "
            "to use MultiformatSerializableMixin serialization.")

    def to_json(self, *, indent=2) -> str:
        return json.dumps(_normalize(self.to_mapping()), ensure_ascii=False, indent=indent, sort_keys=True)

    def to_yaml(self, *, indent=2) -> str:
        return yaml.safe_dump(_normalize(self.to_mapping()), sort_keys=False, allow_unicode=True, indent=indent)

    def to_toml(self, *, indent=2) -> str:
        """
        Converts the instance's data to a TOML string.

        Dictionaries are recursively key-sorted before serialization so the
        output is stable.

        Returns:
            str: A TOML-formatted string representation of the object's data.
        """

        def sort_dict(obj):
            match obj:
                case dict():
                    return {k: sort_dict(obj[k]) for k in sorted(obj)}
                case list():
                    return [sort_dict(item) for item in obj]
                case _:
                    return obj

        sorted_mapping = sort_dict(_normalize(self.to_mapping()))
        return dump_toml_to_str(sorted_mapping, indent)

    def serialize(self, *, fmt='json', indent=2) -> str:
        """
        Serializes the object to a string in the specified format.

        Args:
            fmt (str): One of 'json', 'yaml' or 'toml'. Defaults to 'json'.
            indent (int): Indentation for JSON and YAML output. Defaults to 2.

        Returns:
            str: The serialized representation of the object.

        Raises:
            ValueError: If the specified format is not supported.
        """
        match fmt:
            case 'json':
                return self.to_json(indent=indent)
            case 'yaml':
                return self.to_yaml(indent=indent)
            case 'toml':
                return self.to_toml()
            case _:
                raise ValueError(f"unrecognized format: {fmt}")

    def to_file(self, path: str | Path, *, fmt: str | None = None, make_parents: bool = True) -> Path:
        """
        Writes the serialized object to a file, inferring the format from the suffix
        when `fmt` is not given.

        Returns:
            Path: The written path.
        """
        p = Path(path)
        if fmt is None:
            suffix = p.suffix.lower()
            fmt = {".json": "json", ".yml": "yaml", ".yaml": "yaml", ".toml": "toml"}.get(suffix)
            if fmt is None:
                raise ValueError(f"Cannot infer format from extension {suffix!r}")
        if make_parents:
            p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(self.serialize(fmt=fmt), encoding="utf-8")
        return p
