"""
The Binding contract and the value-assignment bindings.
"""
import collections.abc
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional

import pystache

from bindery.bindery_selector import Selector, SelectorLike

logger = logging.getLogger(__name__)


class Binding(ABC):
    """A node-attached unit that consumes a model.

    `node` is the host node, set by `Node.add_binding`. Bindings that own a
    scope (Views, Templates) carry a `ViewScope` in `scope`; plain bindings
    leave it as None.
    """
    scope = None

    def __init__(self):
        self.node = None

    @abstractmethod
    def apply(self, model: Any) -> None:
        ...

    def __repr__(self) -> str:
        host = self.node.name if self.node is not None else None
        return f"<{type(self).__name__} on {host!r}>"


# =================================================================
# Value Bindings
# =================================================================

@dataclass
class Assignment:
    """Copies the value at `source` in the model to `target` on `obj`.

    `obj` defaults to the host node of the binding that runs the assignment.
    """
    source: SelectorLike
    target: SelectorLike
    obj: Any = None

    def __post_init__(self):
        self.source = Selector.coerce(self.source)
        self.target = Selector.coerce(self.target)

    def run(self, model: Any, default_obj: Any) -> bool:
        value = self.source.resolve(model)
        obj = self.obj if self.obj is not None else default_obj
        return self.target.assign(obj, value)


class DataBinding(Binding):
    """Runs a list of Assignments against every model it is applied with."""

    def __init__(self, assignments: Optional[Iterable[Assignment]] = None):
        super().__init__()
        self.assignments: List[Assignment] = list(assignments or [])

    def apply(self, model: Any) -> None:
        for assignment in self.assignments:
            if not assignment.run(model, self.node):
                logger.debug("Assignment %s -> %s had no effect", assignment.source, assignment.target)


def _tmpl_normalize_value(v):
    """Convert Models and Sequences into plain Python types for Mustache."""
    if isinstance(v, collections.abc.Mapping):
        return {k: _tmpl_normalize_value(v[k]) for k in v.keys()}
    if isinstance(v, collections.abc.Sequence) and not isinstance(v, (str, bytes, bytearray)):
        return [_tmpl_normalize_value(x) for x in v]
    return v


class TextBinding(Binding):
    """Renders a Mustache template against the model and assigns the text to `target`."""

    def __init__(self, template: str, target: SelectorLike, obj: Any = None):
        super().__init__()
        self.template = template
        self.target = Selector.coerce(target)
        self.obj = obj
        self._renderer = pystache.Renderer(escape=lambda u: u)

    def render(self, model: Any) -> str:
        context = _tmpl_normalize_value(model)
        if context is None:
            context = {}
        return self._renderer.render(self.template, context)

    def apply(self, model: Any) -> None:
        text = self.render(model)
        obj = self.obj if self.obj is not None else self.node
        if not self.target.assign(obj, text):
            logger.debug("Text for %s had no target", self.target)
