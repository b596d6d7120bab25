"""
Defines the core data types for the bindery binding engine.

This module provides the data containers that bindings read from and write
to, and the structural accessors the Selector uses to traverse them.
"""

from abc import ABC, abstractmethod
from collections import UserDict, UserList
from typing import Any, Dict, Iterator, Optional
import collections.abc
import inspect
import typing


class _Missing:
    """Marker for an absent member; distinct from a present member holding None."""
    _instance: Optional['_Missing'] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self):
        return False

    def __repr__(self) -> str:
        return "MISSING"


MISSING = _Missing()

TEXT_TYPES = (str, bytes, bytearray)


# =================================================================
# Data Containers
# =================================================================

class Model(UserDict):
    """A dynamic, string-keyed mapping used as a binding source.

    Keys are unique. A missing key reads the same as a key holding None.
    """

    def __setitem__(self, key: str, value: Any):
        if not isinstance(key, str):
            raise TypeError(f"Model key must be a str, not {type(key)}")
        self.data[key] = value

    def __repr__(self) -> str:
        from bindery.bindery_printer import Printer
        return Printer().pformat(self)


class Sequence(UserList):
    """An ordered, 0-indexed list of values used as a binding source or target."""

    def __repr__(self) -> str:
        from bindery.bindery_printer import Printer
        return Printer().pformat(self)


def is_model(value: Any) -> bool:
    return isinstance(value, collections.abc.Mapping)


def is_sequence(value: Any) -> bool:
    return isinstance(value, collections.abc.Sequence) and not isinstance(value, TEXT_TYPES)


def to_model(value: Any) -> Any:
    """Recursively convert plain dicts and lists into Models and Sequences."""
    if isinstance(value, Model):
        return Model({k: to_model(v) for k, v in value.items()})
    if isinstance(value, collections.abc.Mapping):
        return Model({str(k): to_model(v) for k, v in value.items()})
    if isinstance(value, (list, tuple, UserList)):
        return Sequence([to_model(v) for v in value])
    return value


# =================================================================
# Structural Accessors
# =================================================================

class StructuralAccessor(ABC):
    """Uniform named-member access over a mapping, a sequence, or an object."""

    def __init__(self, target: Any):
        self.target = target

    @abstractmethod
    def get(self, name: str) -> Any:
        """Returns the member value, or MISSING when there is no such readable member."""

    @abstractmethod
    def set(self, name: str, value: Any) -> bool:
        """Writes the member and reports whether the write happened."""

    def member_type(self, name: str) -> Optional[type]:
        """The declared type used to coerce values written to `name`, if any."""
        return None


class MappingAccessor(StructuralAccessor):
    def get(self, name: str) -> Any:
        try:
            return self.target.get(name)
        except Exception:
            return MISSING

    def set(self, name: str, value: Any) -> bool:
        if not isinstance(self.target, collections.abc.MutableMapping):
            return False
        try:
            self.target[name] = value
        except Exception:
            return False
        return True


def parse_index(name: str) -> Optional[int]:
    """Parses a non-negative integer segment; None when it is not one."""
    if not isinstance(name, str):
        return None
    if not (name.isascii() and name.isdigit()):
        return None
    return int(name)


class SequenceAccessor(StructuralAccessor):
    def _index(self, name: str) -> Optional[int]:
        i = parse_index(name)
        if i is None or i >= len(self.target):
            return None
        return i

    def get(self, name: str) -> Any:
        i = self._index(name)
        if i is None:
            return MISSING
        return self.target[i]

    def set(self, name: str, value: Any) -> bool:
        i = self._index(name)
        if i is None or not isinstance(self.target, collections.abc.MutableSequence):
            return False
        try:
            self.target[i] = value
        except Exception:
            return False
        return True

    def member_type(self, name: str) -> Optional[type]:
        # Elements are untyped; an existing non-null element fixes the type.
        i = self._index(name)
        if i is None or self.target[i] is None:
            return None
        return type(self.target[i])


def declared_members(cls: type) -> Dict[str, Any]:
    """Collects annotated members across the MRO, nearest class winning."""
    try:
        raw = typing.get_type_hints(cls)
    except Exception:
        # Unresolvable forward references; fall back to the raw annotations.
        raw = {}
        for klass in reversed(cls.__mro__):
            raw.update(vars(klass).get('__annotations__', {}) or {})
    hints: Dict[str, Any] = {}
    for name, hint in raw.items():
        if hint is typing.ClassVar or typing.get_origin(hint) is typing.ClassVar:
            continue
        if isinstance(hint, str):
            continue
        hints[name] = hint
    return hints


def _class_attr(cls: type, name: str) -> Any:
    for klass in cls.__mro__:
        if name in vars(klass):
            return vars(klass)[name]
    return MISSING


class ObjectAccessor(StructuralAccessor):
    """Member access over an arbitrary Python object via attribute lookup."""

    def get(self, name: str) -> Any:
        attr = _class_attr(type(self.target), name)
        if inspect.isroutine(attr) or isinstance(attr, (staticmethod, classmethod)):
            return MISSING
        try:
            value = getattr(self.target, name)
        except Exception:
            return MISSING
        if inspect.ismethod(value) or inspect.isbuiltin(value):
            return MISSING
        return value

    def _writable(self, name: str) -> bool:
        cls = type(self.target)
        attr = _class_attr(cls, name)
        if isinstance(attr, property):
            return attr.fset is not None
        if inspect.isroutine(attr):
            return False
        if name in declared_members(cls):
            return True
        instance_dict = getattr(self.target, '__dict__', None)
        if instance_dict is not None and name in instance_dict:
            return True
        # Slot descriptors and other data descriptors.
        return attr is not MISSING and hasattr(attr, '__set__')

    def set(self, name: str, value: Any) -> bool:
        if not name or not self._writable(name):
            return False
        try:
            setattr(self.target, name, value)
        except Exception:
            return False
        return True

    def member_type(self, name: str) -> Optional[type]:
        cls = type(self.target)
        attr = _class_attr(cls, name)
        if isinstance(attr, property) and attr.fget is not None:
            try:
                hint = typing.get_type_hints(attr.fget).get('return')
            except Exception:
                hint = None
            if hint is not None:
                return hint
        return declared_members(cls).get(name)


def accessor_for(value: Any) -> StructuralAccessor:
    """Picks the accessor variant for a value by its shape."""
    if is_model(value):
        return MappingAccessor(value)
    if is_sequence(value):
        return SequenceAccessor(value)
    return ObjectAccessor(value)


def readable_members(value: Any) -> Iterator[str]:
    """Yields the public readable member names of an arbitrary object."""
    seen = set()
    for name in getattr(value, '__dict__', {}) or {}:
        if not name.startswith('_') and name not in seen:
            seen.add(name)
            yield name
    for klass in type(value).__mro__:
        for name in getattr(klass, '__slots__', ()) or ():
            if isinstance(name, str) and not name.startswith('_') and name not in seen:
                seen.add(name)
                yield name
        for name, attr in vars(klass).items():
            if isinstance(attr, property) and not name.startswith('_') and name not in seen:
                seen.add(name)
                yield name
