"""Flag registry file parsing.

Registries are JSON or YAML. The format is chosen by file extension; for
any other extension JSON is tried first, then YAML. Accepted shapes are
a list of flags, an object with a "flags" list, or a single flag object.
"""

import json
from typing import Any

import yaml
from pydantic import ValidationError

from src.errors import ParseError
from src.models import Flag

_JSON_SUFFIXES = (".json",)
_YAML_SUFFIXES = (".yaml", ".yml")


def _load(raw: str, path: str) -> Any:
    lowered = path.lower()
    if lowered.endswith(_JSON_SUFFIXES):
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise ParseError(path, f"invalid JSON ({e.msg} at line {e.lineno})") from e
    if lowered.endswith(_YAML_SUFFIXES):
        try:
            return yaml.safe_load(raw)
        except yaml.YAMLError as e:
            raise ParseError(path, f"invalid YAML ({e})") from e
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        pass
    try:
        return yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ParseError(path, "content is neither valid JSON nor valid YAML") from e


def _entries(data: Any, path: str) -> list[Any]:
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        if isinstance(data.get("flags"), list):
            return data["flags"]
        if "key" in data:
            return [data]
    raise ParseError(path, "unexpected structure")


def parse_flag_file(raw: str, path: str) -> list[Flag]:
    """Parse registry file content into flags.

    Args:
        raw: File content.
        path: File path, used for format detection and error messages.

    Returns:
        Flags in file order.

    Raises:
        ParseError: If the content is malformed or has an unexpected shape.
    """
    flags = []
    for index, entry in enumerate(_entries(_load(raw, path), path)):
        if isinstance(entry, str):
            entry = {"key": entry}
        if not isinstance(entry, dict):
            raise ParseError(path, f"flag #{index} is not an object")
        try:
            flags.append(Flag.model_validate(entry))
        except ValidationError as e:
            raise ParseError(path, f"flag #{index} is invalid ({e.error_count()} errors)") from e
    return flags
