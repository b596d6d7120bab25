"""
A minimal host tree for bindings.

`Node` owns its children and its bindings. Every structural change
(attaching a binding, reparenting, destroying) is reported synchronously
to the Views it affects, so scopes stay partitioned without re-walking
the tree.
"""
import logging
from typing import Iterator, List, Optional, Type, TypeVar

from bindery.bindery_binding import Binding
from bindery.bindery_view import is_view, nearest_view, frontier

logger = logging.getLogger(__name__)

B = TypeVar('B', bound=Binding)


def _attach_unit(owner: Optional[Binding], unit: Binding) -> None:
    if owner is None:
        return
    if is_view(unit):
        unit.on_attach(owner)
    else:
        owner.scope.adopt(unit)


def _detach_unit(owner: Optional[Binding], unit: Binding) -> None:
    if owner is None:
        return
    if is_view(unit):
        unit.on_detach(owner)
    else:
        owner.scope.release(unit)


class Node:
    """A named node in the host tree."""
    name: str
    active: bool

    def __init__(self, name: str = "node", parent: Optional['Node'] = None, active: bool = True):
        self.name = name
        self.active = active
        self.parent: Optional[Node] = None
        self.children: List[Node] = []
        self.bindings: List[Binding] = []
        self.destroyed = False
        if parent is not None:
            self.set_parent(parent)

    def __repr__(self) -> str:
        return f"<Node {self.path()!r}>"

    # --- Bindings ---

    def add_binding(self, binding: B) -> B:
        """Attaches `binding` to this node and hands it to its owning View."""
        if binding.node is self:
            return binding
        if binding.node is not None:
            raise ValueError(f"{binding!r} is already attached to {binding.node!r}")
        if self.destroyed:
            raise ValueError(f"Cannot attach a binding to destroyed node {self!r}")
        binding.node = self
        self.bindings.append(binding)
        if is_view(binding):
            binding.scope.compute()
            owner = nearest_view(self.parent)
            if owner is not None:
                for entry in binding.scope:
                    owner.scope.release(entry)
                binding.on_attach(owner)
        else:
            _attach_unit(nearest_view(self), binding)
        return binding

    def remove_binding(self, binding: Binding) -> None:
        """Detaches `binding`; a removed View returns its scope to the enclosing View."""
        if binding.node is not self:
            return
        if is_view(binding):
            owner = nearest_view(self.parent)
            self.bindings.remove(binding)
            entries = list(binding.scope)
            binding.scope.entries.clear()
            if owner is not None:
                binding.on_detach(owner)
            for entry in entries:
                if is_view(entry):
                    entry.scope.parent = None
                _attach_unit(owner, entry)
        else:
            _detach_unit(nearest_view(self), binding)
            self.bindings.remove(binding)
        binding.node = None

    def get_binding(self, cls: Type[B]) -> Optional[B]:
        for binding in self.bindings:
            if isinstance(binding, cls):
                return binding
        return None

    # --- Structure ---

    def set_parent(self, parent: Optional['Node']) -> None:
        """Moves this sub-tree under `parent` and patches the affected scopes."""
        if parent is self.parent:
            return
        ancestor = parent
        while ancestor is not None:
            if ancestor is self:
                raise ValueError(f"Cannot parent {self!r} under its own descendant {parent!r}")
            ancestor = ancestor.parent

        old_owner = nearest_view(self.parent)
        units = frontier(self)
        if self.parent is not None:
            self.parent.children.remove(self)
        self.parent = parent
        if parent is not None:
            parent.children.append(self)
        new_owner = nearest_view(parent)
        if old_owner is new_owner:
            return
        for unit in units:
            _detach_unit(old_owner, unit)
            _attach_unit(new_owner, unit)

    def destroy(self) -> None:
        if self.destroyed:
            return
        self.set_parent(None)
        for node in list(self.iter_subtree()):
            node.destroyed = True
            for binding in node.bindings:
                if is_view(binding):
                    binding.scope.entries.clear()
                    binding.scope.parent = None
                binding.node = None
            node.bindings = []
        logger.debug("Destroyed %s", self.name)

    def iter_subtree(self, include_inactive: bool = True) -> Iterator['Node']:
        """Pre-order traversal of this node and its descendants."""
        if not include_inactive and not self.active:
            return
        yield self
        for child in list(self.children):
            yield from child.iter_subtree(include_inactive)

    def find(self, path: str) -> Optional['Node']:
        """Looks up a descendant by a '/'-joined list of names."""
        node = self
        for name in (p for p in path.split('/') if p):
            node = next((c for c in node.children if c.name == name), None)
            if node is None:
                return None
        return node

    def path(self) -> str:
        names = []
        node = self
        while node is not None:
            names.append(node.name)
            node = node.parent
        return '/'.join(reversed(names))
