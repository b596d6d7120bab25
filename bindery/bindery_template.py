"""
Templates: Views that reconcile a model sequence against a pool of child Views.

Reconciliation is positional. The child at index i is reused when its kind
key matches the kind wanted by items[i]; otherwise it is destroyed and a
fresh child of the wanted kind is created in its place. Extra items append
children, missing items truncate the pool. An item whose kind resolves to
nothing leaves a hole at its index.
"""
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from bindery.bindery_binding import Binding
from bindery.bindery_datatypes import is_sequence
from bindery.bindery_node import Node
from bindery.bindery_selector import Selector, SelectorLike
from bindery.bindery_view import View, ViewScope, view_of

logger = logging.getLogger(__name__)

NodeFactory = Callable[[], Node]


class PrefabRegistry:
    """Maps kind keys to zero-argument factories that build a fresh child Node."""

    def __init__(self, factories: Optional[Mapping[str, NodeFactory]] = None):
        self._factories: Dict[str, NodeFactory] = dict(factories or {})

    def register(self, kind: str, factory: NodeFactory) -> NodeFactory:
        self._factories[str(kind)] = factory
        return factory

    def unregister(self, kind: str) -> None:
        self._factories.pop(str(kind), None)

    def __contains__(self, kind: str) -> bool:
        return str(kind) in self._factories

    def create(self, kind: str) -> Optional[Node]:
        factory = self._factories.get(kind)
        if factory is None:
            logger.warning("No prefab registered for kind %r", kind)
            return None
        node = factory()
        if node.name == "node":
            node.name = kind
        return node


@dataclass
class TemplateChild:
    """A pooled child: the kind key it was created for, its root node and its View."""
    kind: str
    node: Node
    view: Binding


@dataclass
class ReconcileStats:
    created: int = 0
    reused: int = 0
    replaced: int = 0
    destroyed: int = 0
    holes: int = 0


class Reconciler:
    """Owns the child pool of a Template and keeps it index-aligned with the items."""

    def __init__(self, prefabs: PrefabRegistry):
        self.prefabs = prefabs
        self.pool: List[Optional[TemplateChild]] = []

    def __len__(self) -> int:
        return len(self.pool)

    def __iter__(self):
        return iter(list(self.pool))

    def views(self) -> List[Binding]:
        return [child.view for child in self.pool if child is not None]

    def _spawn(self, kind: Optional[str], host: Node, stats: ReconcileStats) -> Optional[TemplateChild]:
        if kind is None:
            stats.holes += 1
            return None
        try:
            node = self.prefabs.create(kind)
        except Exception:
            logger.exception("Prefab for kind %r failed to build", kind)
            node = None
        if node is None:
            stats.holes += 1
            return None
        view = view_of(node)
        if view is None:
            view = node.add_binding(View())
        node.set_parent(host)
        return TemplateChild(kind, node, view)

    def _discard(self, child: Optional[TemplateChild], stats: ReconcileStats) -> None:
        if child is None:
            return
        child.node.destroy()
        stats.destroyed += 1

    def reconcile(self, kinds: List[Optional[str]], host: Node) -> ReconcileStats:
        """Matches the pool to `kinds`, one wanted kind per item."""
        stats = ReconcileStats()
        wanted = len(kinds)
        for i in range(min(wanted, len(self.pool))):
            existing = self.pool[i]
            current = existing.kind if existing is not None else None
            if current == kinds[i]:
                if existing is None:
                    stats.holes += 1
                else:
                    stats.reused += 1
                continue
            self._discard(existing, stats)
            self.pool[i] = None
            self.pool[i] = self._spawn(kinds[i], host, stats)
            if self.pool[i] is not None:
                stats.replaced += 1
        for i in range(len(self.pool), wanted):
            child = self._spawn(kinds[i], host, stats)
            if child is not None:
                stats.created += 1
            self.pool.append(child)
        for child in self.pool[wanted:]:
            self._discard(child, stats)
        del self.pool[wanted:]
        return stats


class Template(Binding):
    """A View whose children are instantiated per item of a model sequence.

    `source` narrows the model the way a View's selector does, `items`
    selects the sequence out of the narrowed model, and `kind` selects the
    kind key out of each item. `default_kind` is used when `kind` is None
    or resolves to nothing for a non-null item.
    """

    def __init__(self, prefabs: Union[PrefabRegistry, Mapping[str, NodeFactory]],
                 kind: Optional[SelectorLike] = None,
                 source: Optional[SelectorLike] = None,
                 items: Optional[SelectorLike] = None,
                 default_kind: Optional[str] = None):
        super().__init__()
        if not isinstance(prefabs, PrefabRegistry):
            prefabs = PrefabRegistry(prefabs)
        self.scope = ViewScope(self, source)
        self.reconciler = Reconciler(prefabs)
        self.kind: Optional[Selector] = Selector.coerce(kind)
        self.items: Optional[Selector] = Selector.coerce(items)
        self.default_kind = default_kind

    @property
    def selector(self) -> Optional[Selector]:
        return self.scope.selector

    @property
    def parent(self) -> Optional[Binding]:
        return self.scope.parent

    @property
    def children(self) -> List[Optional[TemplateChild]]:
        return list(self.reconciler.pool)

    def on_attach(self, parent: Binding) -> None:
        parent.scope.adopt(self)

    def on_detach(self, parent: Binding) -> None:
        parent.scope.release(self)

    def select_items(self, narrowed: Any) -> List[Any]:
        value = self.items.resolve(narrowed) if self.items is not None else narrowed
        if is_sequence(value):
            return list(value)
        return [value]

    def kind_of(self, item: Any) -> Optional[str]:
        kind = self.kind.resolve(item) if self.kind is not None else None
        if kind is None and item is not None:
            kind = self.default_kind
        if kind is None:
            return None
        kind = str(kind)
        return kind or None

    def reconcile(self, items: List[Any]) -> ReconcileStats:
        if self.node is None:
            raise ValueError(f"{self!r} is not attached to a node")
        stats = self.reconciler.reconcile([self.kind_of(item) for item in items], self.node)
        logger.debug("Reconciled %s: %s", self.node.name, stats)
        return stats

    def apply(self, model: Any) -> None:
        narrowed = self.scope.narrow(model)
        items = self.select_items(narrowed)
        self.reconcile(items)
        for child, item in zip(self.reconciler.pool, items):
            if child is None:
                continue
            try:
                child.view.apply(item)
            except Exception:
                logger.exception("Template child %r failed to apply", child.node)
        self.scope.apply(narrowed, skip=set(self.reconciler.views()))
