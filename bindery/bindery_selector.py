"""
The Selector: a dotted path that reads and writes values through Models,
Sequences and arbitrary objects.
"""
import logging
from typing import Any, Iterable, Iterator, Optional, Tuple, Union

from bindery.bindery_datatypes import MISSING, accessor_for
from bindery.bindery_coerce import coerce as coerce_value, ConverterRegistry

logger = logging.getLogger(__name__)

DEFAULT_DELIMITER = "."


class Selector:
    """An immutable, ordered list of path segments.

    Built with `Selector.from_string("a.b.1")` or `Selector.from_segments(["a", "b", "1"])`.
    An empty segment selects the current value unchanged, so the empty
    string is the identity selector.
    """
    __slots__ = ("_segments", "_delimiter")

    def __init__(self, segments: Iterable[str] = (), delimiter: str = DEFAULT_DELIMITER):
        if not delimiter:
            raise ValueError("Selector delimiter must be a non-empty string.")
        self._segments: Tuple[str, ...] = tuple("" if s is None else str(s) for s in segments)
        self._delimiter = delimiter

    # --- Construction and conversion ---

    @classmethod
    def from_string(cls, path: Optional[str], delimiter: str = DEFAULT_DELIMITER) -> 'Selector':
        return cls((path or "").split(delimiter), delimiter)

    @classmethod
    def from_segments(cls, segments: Optional[Iterable[str]], delimiter: str = DEFAULT_DELIMITER) -> 'Selector':
        return cls(segments or (), delimiter)

    @classmethod
    def coerce(cls, value: Union['Selector', str, Iterable[str], None]) -> Optional['Selector']:
        """Accepts a Selector, a delimited string or a list of segments; None stays None."""
        if value is None or isinstance(value, Selector):
            return value
        if isinstance(value, str):
            return cls.from_string(value)
        return cls.from_segments(value)

    def to_string(self) -> str:
        return self._delimiter.join(self._segments)

    def to_segments(self) -> Tuple[str, ...]:
        return self._segments

    @property
    def delimiter(self) -> str:
        return self._delimiter

    @property
    def model(self) -> 'Selector':
        """All segments but the last: the path to the container."""
        return Selector(self._segments[:-1], self._delimiter)

    @property
    def index(self) -> 'Selector':
        """The last segment alone: the member within the container."""
        return Selector(self._segments[-1:], self._delimiter)

    def child(self, *segments: str) -> 'Selector':
        return Selector(self._segments + tuple(segments), self._delimiter)

    def __str__(self) -> str:
        return self.to_string()

    def __repr__(self) -> str:
        from bindery.bindery_printer import Printer
        return f"Selector({Printer().pformat(self)})"

    def __iter__(self) -> Iterator[str]:
        return iter(self._segments)

    def __len__(self) -> int:
        return len(self._segments)

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, Selector):
            return NotImplemented
        return self._segments == other._segments

    def __hash__(self) -> int:
        return hash(self._segments)

    # --- Resolution ---

    def resolve(self, model: Any) -> Any:
        """Walks the segments from `model`; None when any step finds nothing."""
        current = model
        for segment in self._segments:
            if current is None:
                return None
            if not segment:
                continue
            try:
                current = accessor_for(current).get(segment)
            except Exception:
                logger.debug("Resolve of %r failed at segment %r", self.to_string(), segment, exc_info=True)
                return None
            if current is MISSING:
                return None
        return current

    def resolve_as(self, model: Any, target_type: Any, registry: Optional[ConverterRegistry] = None) -> Any:
        """Resolves, then coerces the result to `target_type`."""
        return coerce_value(self.resolve(model), target_type, registry)

    def assign(self, model: Any, value: Any, registry: Optional[ConverterRegistry] = None) -> bool:
        """Writes `value` at this path. Returns False when the container or member is missing or read-only."""
        container = self.model.resolve(model)
        if container is None:
            return False
        index = self.index.to_string()
        if not index:
            return False
        try:
            accessor = accessor_for(container)
            return accessor.set(index, coerce_value(value, accessor.member_type(index), registry))
        except Exception:
            logger.debug("Assign to %r failed", self.to_string(), exc_info=True)
            return False


SelectorLike = Union[Selector, str, Iterable[str]]
