"""
Best-effort coercion of values into declared member types.

Coercion never raises to its caller. A value that cannot be converted
degrades to the target type's zero value (or None) and the failure is
reported on this module's logger.
"""
from __future__ import annotations

import enum
import inspect
import logging
import re
import types
import typing
import collections.abc
from collections import UserList
from dataclasses import dataclass
from decimal import Decimal
from fractions import Fraction
from typing import Any, Callable, Iterable, Iterator, List, Optional

from bindery.bindery_datatypes import (
    ObjectAccessor, declared_members, is_model, TEXT_TYPES
)

logger = logging.getLogger(__name__)

# Types with a zero value; every other type falls back to None.
VALUE_KINDS = (bool, int, float, complex, Decimal, Fraction)
NUMERIC_TYPES = (int, float, Decimal, Fraction)

_BOOL_TEXT = re.compile(r"^\s*(true|false)\s*$", re.IGNORECASE)
_INT_TEXT = re.compile(r"^\s*-?\d+\s*$")
_REAL_TEXT = re.compile(r"^\s*-?\d+(\.\d+)?\s*$")
_VECTOR_TEXT = re.compile(r"^\s*-?\d+(\.\d+)?\s*(,\s*-?\d+(\.\d+)?\s*)+$")


def _type_name(t: Any) -> str:
    return getattr(t, '__qualname__', None) or repr(t)


class TypeConversionError(Exception):
    """Reported when a value cannot be converted to a member's declared type."""
    def __init__(self, value: Any, source_type: Any, target_type: Any):
        super().__init__(
            f"Failed to convert `{value}` from {_type_name(source_type)} to {_type_name(target_type)}."
        )
        self.value = value
        self.source_type = source_type
        self.target_type = target_type


# =================================================================
# Strategy Registry
# =================================================================

@dataclass(frozen=True)
class ConversionStrategy:
    """A (can_convert, convert) pair keyed on the value and the target type."""
    can_convert: Callable[[Any, type], bool]
    convert: Callable[[Any, type], Any]
    name: str = ""

    def __repr__(self) -> str:
        return f"<ConversionStrategy {self.name or self.convert.__name__}>"


class ConverterRegistry:
    """An open, ordered list of conversion strategies; the first match wins.

    The process-wide instance is `converters`. Register application
    strategies before the first bind; the registry is not synchronised.
    """
    def __init__(self, strategies: Optional[Iterable[ConversionStrategy]] = None):
        self._strategies: List[ConversionStrategy] = list(strategies or [])

    def register(self, can_convert: Callable[[Any, type], bool], convert: Callable[[Any, type], Any],
                 *, name: str = "", first: bool = False) -> ConversionStrategy:
        """Adds a strategy at the end (or the front with `first=True`) and returns it."""
        strategy = ConversionStrategy(can_convert, convert, name or convert.__name__)
        if first:
            self._strategies.insert(0, strategy)
        else:
            self._strategies.append(strategy)
        return strategy

    def unregister(self, strategy: ConversionStrategy):
        if strategy in self._strategies:
            self._strategies.remove(strategy)

    def find(self, value: Any, target: type) -> Optional[ConversionStrategy]:
        for strategy in self._strategies:
            try:
                if strategy.can_convert(value, target):
                    return strategy
            except Exception:
                logger.debug("Strategy %r failed its applicability check", strategy, exc_info=True)
        return None

    def copy(self) -> 'ConverterRegistry':
        return ConverterRegistry(self._strategies)

    def __iter__(self) -> Iterator[ConversionStrategy]:
        return iter(list(self._strategies))

    def __len__(self) -> int:
        return len(self._strategies)

    @classmethod
    def default(cls) -> 'ConverterRegistry':
        registry = cls()
        for can_convert, convert in _DEFAULT_STRATEGIES:
            registry.register(can_convert, convert)
        return registry


# --- Default strategies ---

def _is_target(target: Any, *types_: type) -> bool:
    return isinstance(target, type) and issubclass(target, types_)


def _can_text_to_bool(value, target):
    return target is bool and isinstance(value, str) and bool(_BOOL_TEXT.match(value))

def _text_to_bool(value, target):
    return value.strip().lower() == "true"


def _can_text_to_int(value, target):
    return _is_target(target, int) and target is not bool and not _is_target(target, enum.Enum) \
        and isinstance(value, str) and bool(_INT_TEXT.match(value))

def _text_to_int(value, target):
    return target(value.strip())


def _can_text_to_real(value, target):
    return target in (float, Decimal, Fraction) and isinstance(value, str) and bool(_REAL_TEXT.match(value))

def _text_to_real(value, target):
    return target(value.strip())


def _can_number_to_number(value, target):
    return isinstance(value, NUMERIC_TYPES) and target in (bool, int, float, complex, Decimal, Fraction)

def _number_to_number(value, target):
    if target is Decimal and isinstance(value, float):
        return Decimal(str(value))
    return target(value)


def _can_to_enum(value, target):
    return _is_target(target, enum.Enum)

def _to_enum(value, target):
    if isinstance(value, str) and value in target.__members__:
        return target[value]
    return target(value)


def _can_text_to_vector(value, target):
    return target is tuple and isinstance(value, str) and bool(_VECTOR_TEXT.match(value))

def _text_to_vector(value, target):
    return tuple(float(part) for part in value.split(","))


def _can_iterable_to_collection(value, target):
    if isinstance(value, TEXT_TYPES) or is_model(value):
        return False
    if not isinstance(value, collections.abc.Iterable):
        return False
    return target in (list, tuple, set, frozenset) or _is_target(target, UserList)

def _iterable_to_collection(value, target):
    return target(value)


def _can_mapping_to_mapping(value, target):
    return is_model(value) and _is_target(target, collections.abc.Mapping)

def _mapping_to_mapping(value, target):
    return target(value)


def _can_to_str(value, target):
    return target is str

def _to_str(value, target):
    if isinstance(value, (bytes, bytearray)):
        return value.decode('utf-8', errors='replace')
    return str(value)


_DEFAULT_STRATEGIES = [
    (_can_text_to_bool, _text_to_bool),
    (_can_text_to_int, _text_to_int),
    (_can_text_to_real, _text_to_real),
    (_can_number_to_number, _number_to_number),
    (_can_to_enum, _to_enum),
    (_can_text_to_vector, _text_to_vector),
    (_can_iterable_to_collection, _iterable_to_collection),
    (_can_mapping_to_mapping, _mapping_to_mapping),
    (_can_to_str, _to_str),
]

converters = ConverterRegistry.default()


# =================================================================
# Coercion
# =================================================================

def _is_union(target: Any) -> bool:
    origin = typing.get_origin(target)
    return origin is typing.Union or origin is types.UnionType


def zero_value(target: Any) -> Any:
    """The zero value of a value-kind type; None for everything else."""
    if isinstance(target, type) and issubclass(target, VALUE_KINDS):
        try:
            return target()
        except Exception:
            return None
    return None


def satisfies(value: Any, target: Any) -> bool:
    """True when `value` can be stored under `target` without conversion."""
    if target is None or target is Any or target is object:
        return True
    if _is_union(target):
        return any(satisfies(value, arg) for arg in typing.get_args(target))
    origin = typing.get_origin(target)
    if origin is typing.Literal:
        return value in typing.get_args(target)
    if origin is not None:
        target = origin
    if isinstance(target, type):
        try:
            return isinstance(value, target)
        except TypeError:
            return False
    # TypeVars, forward references and other typing constructs.
    return True


def _concrete(target: Any) -> Any:
    """Reduces Optional[X] to X and list[X] to list; None when undecidable."""
    if _is_union(target):
        args = [a for a in typing.get_args(target) if a is not type(None)]
        return _concrete(args[0]) if len(args) == 1 else None
    origin = typing.get_origin(target)
    if origin is not None:
        return origin if isinstance(origin, type) else None
    return target if isinstance(target, type) else None


def _has_parameterless_constructor(cls: type) -> bool:
    if inspect.isabstract(cls) or issubclass(cls, VALUE_KINDS + TEXT_TYPES):
        return False
    if issubclass(cls, (collections.abc.Mapping, collections.abc.Iterable)):
        return False
    try:
        signature = inspect.signature(cls)
    except (TypeError, ValueError):
        return False
    for param in signature.parameters.values():
        if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
            continue
        if param.default is param.empty:
            return False
    return True


def _member_names(cls: type, instance: Any) -> List[str]:
    names = list(declared_members(cls))
    for name in getattr(instance, '__dict__', {}) or {}:
        if name not in names:
            names.append(name)
    for klass in cls.__mro__:
        for name, attr in vars(klass).items():
            if isinstance(attr, property) and attr.fset is not None and name not in names:
                names.append(name)
    return names


def map_model(model: Any, cls: type, registry: Optional[ConverterRegistry] = None) -> Any:
    """Builds a fresh `cls` and copies matching Model entries onto its members."""
    try:
        instance = cls()
    except Exception as ex:
        error = TypeConversionError(model, type(model), cls)
        logger.warning("%s", error, exc_info=ex)
        return zero_value(cls)
    accessor = ObjectAccessor(instance)
    for name in _member_names(cls, instance):
        if name not in model:
            continue
        value = coerce(model[name], accessor.member_type(name), registry)
        accessor.set(name, value)
    return instance


def coerce(value: Any, target: Any, registry: Optional[ConverterRegistry] = None) -> Any:
    """Converts `value` toward `target` by cast, Model mapping, or a registered strategy.

    Steps, in order:
      1. None becomes the target's zero value (or None).
      2. A value already satisfying the target is returned unchanged.
      3. A Model mapped onto a target with a parameterless constructor.
      4. The first registered strategy that reports it can convert.
      5. The target's zero value (or None).
    A target of None means "no declared type" and stores the value as-is.
    """
    if target is None:
        return value
    if value is None:
        return zero_value(target)
    if satisfies(value, target):
        return value
    registry = registry if registry is not None else converters
    concrete = _concrete(target)
    if concrete is None:
        return zero_value(target)
    if is_model(value) and _has_parameterless_constructor(concrete):
        return map_model(value, concrete, registry)
    strategy = registry.find(value, concrete)
    if strategy is None:
        logger.warning("%s", TypeConversionError(value, type(value), concrete))
        return zero_value(target)
    try:
        return strategy.convert(value, concrete)
    except Exception as ex:
        error = TypeConversionError(value, type(value), concrete)
        logger.warning("%s", error, exc_info=ex)
    return zero_value(target)
