from __future__ import annotations

import json
from decimal import Decimal
from fractions import Fraction
from typing import Any, Optional
import collections.abc

import yaml

from bindery.bindery_datatypes import to_model
from bindery.bindery_reflect import reflect


# --------------------------
# Helpers
# --------------------------

def _norm_text(data: bytes | bytearray | str, *, encoding: Optional[str] = None) -> str:
    if isinstance(data, (bytes, bytearray)):
        enc = encoding or 'utf-8'
        try:
            return data.decode(enc, errors='replace')
        except LookupError:
            return data.decode('utf-8', errors='replace')
    if isinstance(data, str):
        return data
    return str(data)


def _to_builtin(obj: Any, _active: Optional[set] = None) -> Any:
    # Models and Sequences down to plain dicts and lists the encoders accept
    is_mapping = isinstance(obj, collections.abc.Mapping)
    if is_mapping or (isinstance(obj, collections.abc.Sequence) and not isinstance(obj, (str, bytes, bytearray))):
        active = set() if _active is None else _active
        if id(obj) in active:
            raise ValueError("cyclic structure cannot be serialized")
        active.add(id(obj))
        try:
            if is_mapping:
                return {str(k): _to_builtin(v, active) for k, v in obj.items()}
            return [_to_builtin(x, active) for x in obj]
        finally:
            active.discard(id(obj))
    if isinstance(obj, (Decimal, Fraction)):
        return float(obj)
    if isinstance(obj, complex):
        return str(obj)
    if isinstance(obj, (bytes, bytearray)):
        return _norm_text(obj)
    return obj


def detect_format(data_hint: Optional[str] = None, filename: Optional[str] = None) -> str:
    """
    Returns a canonical format name: 'json' or 'yaml'.
    Uses the file extension first; falls back to sniffing the text.
    """
    name = (filename or "").lower()
    if name.endswith('.json'):
        return 'json'
    if name.endswith(('.yaml', '.yml')):
        return 'yaml'
    if data_hint is not None:
        s = data_hint.lstrip()
        if s.startswith('{') or s.startswith('['):
            return 'json'
    # YAML is a superset of JSON, so it is the safe default.
    return 'yaml'


# --------------------------
# Public API
# --------------------------

def deserialize(data: bytes | bytearray | str,
                fmt: Optional[str] = None,
                *,
                filename: Optional[str] = None,
                encoding: Optional[str] = None) -> Any:
    """
    Parse structured text into Model/Sequence trees.
    Supported fmt: 'json', 'yaml'. If fmt is None, uses the filename, then sniffing.
    Raises ValueError for text that is not valid in the chosen format.
    """
    text = _norm_text(data, encoding=encoding)
    f = (fmt or detect_format(text, filename)).lower()
    if f == 'json':
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError:
            # Declared JSON that is really YAML-like
            try:
                parsed = yaml.safe_load(text)
            except yaml.YAMLError as e:
                raise ValueError(f"Invalid JSON/YAML document: {e}") from e
        return to_model(parsed)
    if f == 'yaml':
        try:
            return to_model(yaml.safe_load(text))
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML document: {e}") from e
    raise ValueError(f"Unsupported serialization format: {fmt!r}")


def serialize(value: Any,
              fmt: str = 'json',
              *,
              pretty: bool = True) -> str:
    """
    Convert a Model/Sequence tree (or any object, via reflection) into text.
    - fmt: 'json' | 'yaml'
    """
    f = (fmt or '').lower()
    built = _to_builtin(reflect(value))
    if f == 'json':
        return json.dumps(built, ensure_ascii=False, indent=2 if pretty else None)
    if f == 'yaml':
        return yaml.safe_dump(built, sort_keys=False, allow_unicode=True)
    raise ValueError(f"Unsupported serialization format: {fmt!r}")


def parse_scalar(text: str) -> Any:
    """Parses a single YAML scalar or flow value, e.g. '42', 'true', '[1, 2]'."""
    try:
        return to_model(yaml.safe_load(text))
    except yaml.YAMLError:
        return text


__all__ = [
    "deserialize",
    "serialize",
    "detect_format",
    "parse_scalar",
]
