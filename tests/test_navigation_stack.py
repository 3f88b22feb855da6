from __future__ import annotations

import random

import pytest

from pulsartui.models.navigation_state import (
    EmptyStackError,
    LevelKind,
    NavigationStack,
    ResourceLevel,
    StackDepthError,
    LEVEL_COUNT,
)

from helpers import items, names


def loaded_stack(*tenants: str) -> NavigationStack:
    stack = NavigationStack()
    stack.root().load_generation = 1
    assert stack.replace_items(ResourceLevel.root(), items(*tenants), 1)
    return stack


def test_root_frame_is_empty_and_not_loaded():
    stack = NavigationStack()
    root = stack.current()
    assert stack.depth == 0
    assert root.level.kind is LevelKind.TENANTS
    assert root.items == [] and root.cursor is None and not root.loaded
    root.check()


def test_level_paths_and_labels():
    root = ResourceLevel.root()
    ns = root.child("t1")
    topics = ns.child("ns1")
    subs = topics.child("orders")

    assert ns == ResourceLevel(LevelKind.NAMESPACES, "t1")
    assert subs.path == ("t1", "ns1", "orders")
    assert subs.is_terminal
    assert subs.parent == topics
    assert root.parent is None
    assert root.label == "Tenants"
    assert ns.label == "Namespaces - t1"
    assert subs.label == "Subscriptions - t1 > ns1 > orders"
    with pytest.raises(StackDepthError):
        subs.child("s1")


def test_replace_items_puts_cursor_on_first_item():
    stack = loaded_stack("t1", "t2")
    root = stack.current()
    assert root.loaded
    assert names(root.items) == ["t1", "t2"]
    assert root.cursor == 0
    root.check()


def test_replace_items_rejects_mismatched_generation():
    stack = loaded_stack("t1", "t2")
    assert not stack.replace_items(ResourceLevel.root(), items("x"), 99)
    assert names(stack.current().items) == ["t1", "t2"]


def test_cursor_stays_on_same_item_after_refresh():
    stack = loaded_stack("a", "b", "c")
    stack.select_next()
    stack.root().load_generation = 2
    stack.replace_items(ResourceLevel.root(), items("a", "b", "d"), 2)
    assert stack.current().selected.name == "b"


def test_cursor_clamps_when_selected_item_disappears():
    stack = loaded_stack("a", "b", "c")
    stack.select_next()
    stack.select_next()
    stack.root().load_generation = 2
    stack.replace_items(ResourceLevel.root(), items("a", "d"), 2)
    root = stack.current()
    assert root.cursor == 1
    root.check()


def test_cursor_becomes_none_when_list_empties():
    stack = loaded_stack("a", "b")
    stack.root().load_generation = 2
    stack.replace_items(ResourceLevel.root(), [], 2)
    assert stack.current().cursor is None
    stack.current().check()


def test_select_clamps_at_both_ends():
    stack = loaded_stack("a", "b")
    stack.select_previous()
    assert stack.current().cursor == 0
    stack.select_next()
    stack.select_next()
    assert stack.current().cursor == 1


def test_select_on_empty_frame_is_noop():
    stack = NavigationStack()
    stack.select_next()
    stack.select_previous()
    assert stack.current().cursor is None


def test_push_requires_selected_child():
    stack = loaded_stack("t1", "t2")
    with pytest.raises(StackDepthError):
        stack.push(ResourceLevel.root().child("t2"))
    frame = stack.push(ResourceLevel.root().child("t1"), generation=5)
    assert stack.depth == 1
    assert frame.load_generation == 5
    assert frame.cursor is None and not frame.loaded


def test_push_on_empty_frame_is_rejected():
    stack = NavigationStack()
    with pytest.raises(StackDepthError):
        stack.push(ResourceLevel.root().child("t1"))


def test_pop_root_raises():
    with pytest.raises(EmptyStackError):
        NavigationStack().pop()


def test_popped_loaded_frame_is_recalled_with_cursor():
    stack = loaded_stack("t1")
    ns = ResourceLevel.root().child("t1")
    stack.push(ns, generation=2)
    stack.replace_items(ns, items("a", "b", "c"), 2)
    stack.select_next()
    stack.select_next()
    stack.pop()

    cached = stack.recall(ns)
    assert cached is not None
    assert names(cached.items) == ["a", "b", "c"]
    assert cached.cursor == 2


def test_unloaded_frame_is_not_cached():
    stack = loaded_stack("t1")
    ns = ResourceLevel.root().child("t1")
    stack.push(ns)
    stack.pop()
    assert stack.recall(ns) is None


def test_forget_children_drops_descendants_only():
    stack = loaded_stack("t1", "t2")
    for tenant in ("t1", "t2"):
        stack.select_name(tenant)
        ns = ResourceLevel.root().child(tenant)
        stack.push(ns, generation=3)
        stack.replace_items(ns, items("ns"), 3)
        stack.pop()

    stack.forget_children(ResourceLevel(LevelKind.NAMESPACES, "t1"))
    assert stack.recall(ResourceLevel.root().child("t1")) is not None

    stack.forget_children(ResourceLevel.root())
    assert stack.recall(ResourceLevel.root().child("t1")) is None
    assert stack.recall(ResourceLevel.root().child("t2")) is None


def test_random_drill_and_back_keeps_depth_in_bounds():
    rng = random.Random(7)
    stack = loaded_stack("t1", "t2")
    generation = 1
    for _ in range(500):
        if rng.random() < 0.55:
            top = stack.current()
            if top.level.is_terminal:
                with pytest.raises(StackDepthError):
                    stack.push(top.level)
                continue
            generation += 1
            child = top.level.child(top.selected.name)
            stack.push(child, generation=generation)
            stack.replace_items(child, items("x", "y"), generation)
        elif stack.depth > 0:
            stack.pop()
        else:
            with pytest.raises(EmptyStackError):
                stack.pop()
        assert 0 <= stack.depth < LEVEL_COUNT
        for frame in stack.frames:
            frame.check()
