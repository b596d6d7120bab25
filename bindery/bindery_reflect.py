"""
Structural reflection of arbitrary Python objects into Model/Sequence trees.
"""
import collections.abc
import datetime
import enum
import uuid
from decimal import Decimal
from fractions import Fraction
from pathlib import PurePath
from typing import Any, Dict, List

from bindery.bindery_datatypes import Model, Sequence, readable_members, ObjectAccessor, MISSING

PRIMITIVES = (str, bool, int, float, complex, Decimal, Fraction, bytes, type(None))


class Reflector:
    """Converts an object graph into Models, Sequences and primitives.

    A reflector remembers every container it has converted, so shared
    references map to the same Model and cycles terminate.
    """

    def __init__(self):
        self._seen: Dict[int, Any] = {}
        # Sources are held so their ids cannot be reused mid-walk.
        self._sources: List[Any] = []

    def has_seen(self, value: Any) -> bool:
        return id(value) in self._seen

    def reflect(self, value: Any) -> Any:
        if isinstance(value, PRIMITIVES):
            return value
        if isinstance(value, enum.Enum):
            return value.name
        if isinstance(value, (datetime.date, datetime.time)):
            return value.isoformat()
        if isinstance(value, (uuid.UUID, PurePath)):
            return str(value)
        if isinstance(value, (bytearray, memoryview)):
            return bytes(value)
        if id(value) in self._seen:
            return self._seen[id(value)]

        if isinstance(value, collections.abc.Mapping):
            model = self._remember(value, Model())
            for key, item in value.items():
                model[str(key)] = self.reflect(item)
            return model
        if isinstance(value, collections.abc.Iterable):
            sequence = self._remember(value, Sequence())
            sequence.extend(self.reflect(item) for item in value)
            return sequence

        model = self._remember(value, Model())
        accessor = ObjectAccessor(value)
        for name in readable_members(value):
            member = accessor.get(name)
            if member is not MISSING:
                model[name] = self.reflect(member)
        return model

    def _remember(self, source: Any, reflected: Any) -> Any:
        self._seen[id(source)] = reflected
        self._sources.append(source)
        return reflected


def reflect(value: Any) -> Any:
    """Reflects `value` with a fresh Reflector."""
    return Reflector().reflect(value)
