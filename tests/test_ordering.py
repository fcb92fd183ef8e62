import pytest

from nexus.models import QuickLink, WidgetLayout, WidgetSlot
from nexus.ordering import (
    LayoutError,
    dense_reindex,
    insert_item,
    move_item,
    ordered,
    remove_item,
    sorted_widgets,
    swap_widgets,
    toggle_widget,
)


def link(link_id, order=0):
    return QuickLink(id=link_id, title=link_id.upper(), url=f"https://{link_id}.example", order=order)


def ids(items):
    return [item.id for item in items]


def assert_dense(items):
    assert [item.order for item in items] == list(range(len(items)))


# ── Dense reindex ─────────────────────────────────────

def test_ordered_sorts_and_renumbers():
    items = ordered([link("c", 7), link("a", 2), link("b", 5)])
    assert ids(items) == ["a", "b", "c"]
    assert_dense(items)


def test_dense_after_mixed_operations():
    items = dense_reindex([link("a"), link("b"), link("c"), link("d")])
    items = insert_item(items, link("e", order=99))
    assert_dense(items)
    items = remove_item(items, "b")
    assert ids(items) == ["a", "c", "d", "e"]
    assert_dense(items)
    items = move_item(items, "e", "a")
    assert ids(items) == ["e", "a", "c", "d"]
    assert_dense(items)
    items = insert_item(items, link("f"), index=1)
    assert ids(items) == ["e", "f", "a", "c", "d"]
    assert_dense(items)
    items = remove_item(items, "d")
    assert_dense(items)


def test_move_forward_places_at_target_index():
    items = dense_reindex([link("a"), link("b"), link("c"), link("d")])
    assert ids(move_item(items, "a", "c")) == ["b", "c", "a", "d"]


def test_move_onto_self_or_unknown_is_noop():
    items = dense_reindex([link("a"), link("b")])
    assert move_item(items, "a", "a") == items
    assert move_item(items, "a", "zzz") == items
    assert move_item(items, "zzz", "a") == items


def test_remove_unknown_keeps_everything():
    items = dense_reindex([link("a"), link("b")])
    assert ids(remove_item(items, "x")) == ["a", "b"]


def test_source_list_is_not_mutated():
    items = dense_reindex([link("a"), link("b"), link("c")])
    move_item(items, "c", "a")
    assert ids(items) == ["a", "b", "c"]


# ── Swap reindex ──────────────────────────────────────

def spread_layout():
    return WidgetLayout(
        clock=WidgetSlot(order=3),
        weather=WidgetSlot(order=7),
        todos=WidgetSlot(order=1),
        pomodoro=WidgetSlot(order=10),
        notes=WidgetSlot(order=4),
        quick_links=WidgetSlot(order=0),
    )


def test_swap_exchanges_only_the_pair():
    layout = swap_widgets(spread_layout(), "clock", "weather")
    assert layout.clock.order == 7
    assert layout.weather.order == 3
    assert layout.todos.order == 1
    assert layout.pomodoro.order == 10
    assert layout.notes.order == 4
    assert layout.quick_links.order == 0


def test_swap_accepts_camel_case_key():
    layout = swap_widgets(WidgetLayout(), "quickLinks", "clock")
    assert layout.quick_links.order == 0
    assert layout.clock.order == 5


def test_swap_keeps_orders_distinct():
    layout = WidgetLayout()
    for a, b in [("clock", "notes"), ("weather", "todos"), ("notes", "quickLinks")]:
        layout = swap_widgets(layout, a, b)
    orders = [slot.order for slot in layout.slots().values()]
    assert sorted(orders) == [0, 1, 2, 3, 4, 5]


def test_swap_with_itself_rejected():
    with pytest.raises(LayoutError):
        swap_widgets(WidgetLayout(), "clock", "clock")


def test_swap_unknown_widget_rejected():
    with pytest.raises(LayoutError):
        swap_widgets(WidgetLayout(), "clock", "calendar")


def test_duplicate_orders_rejected_by_schema():
    with pytest.raises(ValueError):
        WidgetLayout(clock=WidgetSlot(order=1), weather=WidgetSlot(order=1))


def test_toggle_visibility():
    layout = toggle_widget(WidgetLayout(), "notes")
    assert layout.notes.visible is False
    assert toggle_widget(layout, "notes").notes.visible is True


def test_sorted_widgets_in_display_order():
    layout = toggle_widget(spread_layout(), "pomodoro")
    assert [key for key, _ in sorted_widgets(layout)] == [
        "quickLinks", "todos", "clock", "notes", "weather", "pomodoro",
    ]
    assert [key for key, _ in sorted_widgets(layout, visible_only=True)] == [
        "quickLinks", "todos", "clock", "notes", "weather",
    ]
