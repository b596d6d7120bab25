import logging
import pytest

from bindery.bindery_binding import Binding, DataBinding, Assignment
from bindery.bindery_datatypes import to_model, Model
from bindery.bindery_node import Node
from bindery.bindery_template import Template, PrefabRegistry, Reconciler, TemplateChild
from bindery.bindery_view import View


class Recorder(Binding):
    def __init__(self):
        super().__init__()
        self.seen = []

    def apply(self, model):
        self.seen.append(model)


def make_row():
    node = Node()
    node.add_binding(Recorder())
    return node


def make_card():
    node = Node("card")
    node.add_binding(View("payload"))
    Node("body", node).add_binding(Recorder())
    return node


@pytest.fixture
def prefabs():
    return PrefabRegistry({"row": make_row, "card": make_card})


@pytest.fixture
def host():
    root = Node("root")
    root.add_binding(View())
    return Node("list", root)


def rows(n, kind="row"):
    return to_model([{"kind": kind, "i": i} for i in range(n)])


def recorder_of(child):
    return child.node.get_binding(Recorder)


def test_scenario_pool_lengths_follow_items(host, prefabs):
    template = host.add_binding(Template(prefabs, kind="kind"))

    template.apply(rows(0))
    assert template.children == []

    template.apply(rows(3))
    first = template.children
    assert len(first) == 3
    assert all(c.kind == "row" for c in first)

    template.apply(rows(1))
    second = template.children
    assert len(second) == 1
    assert second[0] is first[0]
    assert first[1].node.destroyed and first[2].node.destroyed

    items = rows(4)
    template.apply(items)
    third = template.children
    assert len(third) == 4
    assert third[0] is first[0]
    for i, child in enumerate(third):
        assert recorder_of(child).seen[-1] == items[i]
    assert [c.node for c in third] == host.children

def test_kind_change_replaces_child(host, prefabs):
    template = host.add_binding(Template(prefabs, kind="kind"))
    template.apply(rows(2))
    before = template.children
    template.apply(to_model([{"kind": "row"}, {"kind": "card", "payload": 1}]))
    after = template.children
    assert after[0] is before[0]
    assert after[1] is not before[1]
    assert after[1].kind == "card"
    assert before[1].node.destroyed

def test_child_view_narrows_item(host, prefabs):
    template = host.add_binding(Template(prefabs, kind="kind"))
    template.apply(to_model([{"kind": "card", "payload": {"x": 1}}]))
    child = template.children[0]
    body = child.node.find("body").get_binding(Recorder)
    assert body.seen == [{"x": 1}]
    assert child.view.selector.to_string() == "payload"

def test_missing_kind_leaves_hole(host, prefabs):
    template = host.add_binding(Template(prefabs, kind="kind"))
    template.apply(rows(3))
    items = to_model([{"kind": "row"}, {"i": 1}, {"kind": ""}])
    template.apply(items)
    pool = template.children
    assert len(pool) == 3
    assert pool[0] is not None
    assert pool[1] is None and pool[2] is None
    assert len(host.children) == 1

def test_hole_filled_later(host, prefabs):
    template = host.add_binding(Template(prefabs, kind="kind"))
    template.apply(to_model([{"i": 0}]))
    assert template.children == [None]
    template.apply(rows(1))
    assert template.children[0].kind == "row"

def test_unknown_kind_is_a_hole_and_warns(host, prefabs, caplog):
    template = host.add_binding(Template(prefabs, kind="kind"))
    with caplog.at_level(logging.WARNING, logger="bindery.bindery_template"):
        template.apply(rows(1, kind="nope"))
    assert template.children == [None]
    assert "No prefab registered for kind 'nope'" in caplog.text

def test_scalar_is_promoted_to_single_item(host, prefabs):
    template = host.add_binding(Template(prefabs, default_kind="row"))
    template.apply("hello")
    assert len(template.children) == 1
    assert recorder_of(template.children[0]).seen == ["hello"]

def test_default_kind_with_source_and_items_selectors(host, prefabs):
    template = host.add_binding(Template(prefabs, source="page", items="entries", default_kind="row"))
    model = to_model({"page": {"entries": [1, 2]}})
    template.apply(model)
    assert [recorder_of(c).seen for c in template.children] == [[1], [2]]

def test_none_item_is_a_hole_even_with_default_kind(host, prefabs):
    template = host.add_binding(Template(prefabs, default_kind="row"))
    template.apply(to_model([None, 3]))
    assert template.children[0] is None
    assert recorder_of(template.children[1]).seen == [3]

def test_pool_views_belong_to_template_scope(host, prefabs):
    template = host.add_binding(Template(prefabs, kind="kind"))
    template.apply(rows(2))
    for child in template.children:
        assert child.view in template.scope
        assert child.view.parent is template
    assert template.parent is host.parent.get_binding(View)

def test_non_pool_bindings_get_narrowed_model(host, prefabs):
    template = host.add_binding(Template(prefabs, kind="kind", source="list"))
    header = host.add_binding(Recorder())
    model = Model({"list": rows(1)})
    template.apply(model)
    assert header.seen == [model["list"]]
    assert recorder_of(template.children[0]).seen == [model["list"][0]]

def test_failing_child_does_not_stop_siblings(host, caplog):
    class Exploding(Binding):
        def apply(self, model):
            if model == "bad":
                raise RuntimeError("boom")

    def make_exploding():
        node = Node()
        node.add_binding(Exploding())
        node.add_binding(Recorder())
        return node

    template = host.add_binding(Template({"x": make_exploding}, default_kind="x"))
    with caplog.at_level(logging.ERROR):
        template.apply(to_model(["bad", "good"]))
    assert recorder_of(template.children[1]).seen == ["good"]
    assert recorder_of(template.children[0]).seen == ["bad"]
    assert "boom" in caplog.text

def test_failing_prefab_becomes_hole_and_siblings_still_apply(host, caplog):
    def make_broken():
        raise RuntimeError("prefab exploded")

    template = host.add_binding(Template({"ok": make_row, "bad": make_broken}, kind="k"))
    template.apply(to_model([{"k": "ok"}, {"k": "ok"}]))
    first = template.children

    items = to_model([{"k": "bad"}, {"k": "ok", "v": 2}])
    with caplog.at_level(logging.ERROR):
        template.apply(items)
    assert "prefab exploded" in caplog.text
    assert first[0].node.destroyed
    assert template.children[0] is None
    assert template.children[1] is first[1]
    assert recorder_of(first[1]).seen[-1] == items[1]

    again = to_model([{"k": "ok"}, {"k": "ok", "v": 3}])
    template.apply(again)
    fresh = template.children[0]
    assert fresh is not None and not fresh.node.destroyed
    assert recorder_of(fresh).seen == [again[0]]
    assert all(not c.node.destroyed for c in template.children)

def test_data_bindings_inside_prefabs():
    class Label:
        text: str = ""

    labels = []

    def make_label():
        label = Label()
        labels.append(label)
        node = Node()
        node.add_binding(DataBinding([Assignment("name", "text", label)]))
        return node

    host = Node("host")
    template = host.add_binding(Template({"label": make_label}, default_kind="label"))
    template.apply(to_model([{"name": "a"}, {"name": "b"}]))
    assert [l.text for l in labels] == ["a", "b"]

def test_template_requires_a_node(prefabs):
    with pytest.raises(ValueError):
        Template(prefabs, default_kind="row").reconcile([1])


# --- Reconciler ---

def test_reconciler_stats(prefabs):
    host = Node("host")
    reconciler = Reconciler(prefabs)
    stats = reconciler.reconcile(["row", "row", "card"], host)
    assert (stats.created, stats.reused, stats.destroyed) == (3, 0, 0)
    stats = reconciler.reconcile(["row", "card"], host)
    assert (stats.reused, stats.replaced, stats.destroyed) == (1, 1, 2)
    stats = reconciler.reconcile([None, "card", "row"], host)
    assert (stats.holes, stats.reused, stats.created, stats.destroyed) == (1, 1, 1, 1)
    assert len(reconciler) == 3
    assert reconciler.pool[0] is None

def test_registry_names_nodes_after_kind(prefabs):
    assert prefabs.create("row").name == "row"
    assert prefabs.create("card").name == "card"
    assert "row" in prefabs
    prefabs.unregister("row")
    assert "row" not in prefabs
    assert prefabs.create("row") is None

def test_plain_prefab_gets_a_view(prefabs):
    reconciler = Reconciler(prefabs)
    reconciler.reconcile(["row"], Node("host"))
    child = reconciler.pool[0]
    assert isinstance(child, TemplateChild)
    assert isinstance(child.view, View)
    assert child.node.get_binding(View) is child.view
