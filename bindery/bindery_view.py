"""
Views and scope partitioning.

Every binding in a node tree is owned by exactly one View: the nearest one
on its own node or an ancestor. A View's scope holds the plain bindings it
owns plus the nested Views directly beneath it, each nested View standing
in for its whole sub-tree.

Scopes are computed by walking the tree once, when a View is attached to
its node. After that they are only patched, one unit at a time, by the
structural messages the host tree delivers (`on_attach` / `on_detach`,
`adopt` / `release`).
"""
import logging
from typing import Any, Dict, Iterator, List, Optional

from bindery.bindery_binding import Binding
from bindery.bindery_selector import Selector, SelectorLike

logger = logging.getLogger(__name__)


class ViewScope:
    """The scope capability embedded in Views and Templates.

    `owner` is the binding that embeds this scope, `selector` optionally
    narrows the model before the scope is applied, and `parent` is the
    enclosing View (non-owning back-reference).
    """

    def __init__(self, owner: Binding, selector: Optional[SelectorLike] = None):
        self.owner = owner
        self.selector: Optional[Selector] = Selector.coerce(selector)
        # Insertion-ordered set.
        self.entries: Dict[Binding, None] = {}
        self.parent: Optional[Binding] = None

    def __contains__(self, binding: Binding) -> bool:
        return binding in self.entries

    def __iter__(self) -> Iterator[Binding]:
        return iter(list(self.entries))

    def __len__(self) -> int:
        return len(self.entries)

    def compute(self) -> None:
        """Rebuilds the scope from the owner's node by a full walk."""
        self.entries = {}
        node = self.owner.node
        if node is None:
            return
        for binding in node.bindings:
            if binding is not self.owner and not is_view(binding):
                self.adopt(binding)
        for child in node.children:
            for unit in frontier(child):
                self.adopt(unit)

    def adopt(self, binding: Binding) -> None:
        self.entries.pop(binding, None)
        self.entries[binding] = None
        if is_view(binding):
            binding.scope.parent = self.owner

    def release(self, binding: Binding) -> None:
        self.entries.pop(binding, None)
        if is_view(binding) and binding.scope.parent is self.owner:
            binding.scope.parent = None

    def narrow(self, model: Any) -> Any:
        if self.selector is None:
            return model
        return self.selector.resolve(model)

    def apply(self, model: Any, skip: Any = ()) -> None:
        """Applies every entry with `model`; a failing entry does not stop the rest."""
        for binding in self:
            if binding in skip:
                continue
            try:
                binding.apply(model)
            except Exception:
                logger.exception("Binding %r failed to apply", binding)


class View(Binding):
    """A Binding that owns a scope and re-applies it with the (narrowed) model."""

    def __init__(self, selector: Optional[SelectorLike] = None):
        super().__init__()
        self.scope = ViewScope(self, selector)

    @property
    def selector(self) -> Optional[Selector]:
        return self.scope.selector

    @property
    def parent(self) -> Optional[Binding]:
        return self.scope.parent

    def on_attach(self, parent: Binding) -> None:
        parent.scope.adopt(self)

    def on_detach(self, parent: Binding) -> None:
        parent.scope.release(self)

    def apply(self, model: Any) -> None:
        self.scope.apply(self.scope.narrow(model))


def is_view(binding: Any) -> bool:
    return isinstance(getattr(binding, 'scope', None), ViewScope)


def view_of(node) -> Optional[Binding]:
    """The View hosted on `node`, if any."""
    if node is None:
        return None
    for binding in node.bindings:
        if is_view(binding):
            return binding
    return None


def nearest_view(node) -> Optional[Binding]:
    """The View on `node` or its nearest ancestor."""
    while node is not None:
        view = view_of(node)
        if view is not None:
            return view
        node = node.parent
    return None


def frontier(node) -> List[Binding]:
    """The units a sub-tree contributes to an enclosing scope.

    A node hosting a View contributes that View alone; any other node
    contributes its bindings and the frontier of each child.
    """
    view = view_of(node)
    if view is not None:
        return [view]
    units: List[Binding] = list(node.bindings)
    for child in node.children:
        units.extend(frontier(child))
    return units
