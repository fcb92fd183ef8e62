"""
Ordering rules for quick links and the widget grid.

Quick links use a dense reindex: after any insert, delete or move every
surviving item is renumbered 0..n-1 in positional order. The widget grid uses
a swap reindex: a reorder exchanges the two widgets' order values and leaves
every other widget untouched.
"""

from typing import List, Sequence, Tuple, TypeVar

from nexus.models import QuickLink, WidgetKey, WidgetLayout, WidgetSlot

T = TypeVar("T", bound=QuickLink)


class LayoutError(ValueError):
    """Rejected widget reorder (self-swap or unknown widget key)."""


# ── Dense reindex ─────────────────────────────────────

def dense_reindex(items: Sequence[T]) -> List[T]:
    """Renumber items 0..n-1 in their current positional order."""
    return [item.model_copy(update={"order": index}) for index, item in enumerate(items)]


def ordered(items: Sequence[T]) -> List[T]:
    """Items sorted by their stored order, renumbered densely."""
    indexed = sorted(enumerate(items), key=lambda pair: (pair[1].order, pair[0]))
    return dense_reindex([item for _, item in indexed])


def insert_item(items: Sequence[T], item: T, index: int | None = None) -> List[T]:
    result = list(items)
    if index is None:
        result.append(item)
    else:
        result.insert(index, item)
    return dense_reindex(result)


def remove_item(items: Sequence[T], item_id: str) -> List[T]:
    return dense_reindex([item for item in items if item.id != item_id])


def move_item(items: Sequence[T], dragged_id: str, target_id: str) -> List[T]:
    """
    Drag-and-drop: take the dragged item out and reinsert it at the target's
    index, then renumber. Dropping on itself or on an unknown id is a no-op.
    """
    ids = [item.id for item in items]
    if dragged_id == target_id or dragged_id not in ids or target_id not in ids:
        return list(items)

    result = list(items)
    dragged_index = ids.index(dragged_id)
    target_index = ids.index(target_id)
    moved = result.pop(dragged_index)
    result.insert(target_index, moved)
    return dense_reindex(result)


# ── Swap reindex ──────────────────────────────────────

def _field_name(layout: WidgetLayout, key: str) -> str:
    try:
        widget = WidgetKey(key)
    except ValueError:
        raise LayoutError(f"unknown widget: {key!r}") from None
    for name, field in type(layout).model_fields.items():
        if (field.alias or name) == widget.value:
            return name
    raise LayoutError(f"widget not in layout: {key!r}")


def swap_widgets(layout: WidgetLayout, a: str, b: str) -> WidgetLayout:
    """Exchange the order values of widgets a and b only."""
    if a == b:
        raise LayoutError(f"cannot swap widget {a!r} with itself")
    name_a = _field_name(layout, a)
    name_b = _field_name(layout, b)
    slot_a: WidgetSlot = getattr(layout, name_a)
    slot_b: WidgetSlot = getattr(layout, name_b)
    return layout.model_copy(update={
        name_a: slot_a.model_copy(update={"order": slot_b.order}),
        name_b: slot_b.model_copy(update={"order": slot_a.order}),
    })


def toggle_widget(layout: WidgetLayout, key: str) -> WidgetLayout:
    name = _field_name(layout, key)
    slot: WidgetSlot = getattr(layout, name)
    return layout.model_copy(update={name: slot.model_copy(update={"visible": not slot.visible})})


def sorted_widgets(layout: WidgetLayout, visible_only: bool = False) -> List[Tuple[str, WidgetSlot]]:
    """(widget key, slot) pairs in display order; orders are distinct by schema."""
    pairs = [
        (key, slot) for key, slot in layout.slots().items()
        if slot.visible or not visible_only
    ]
    return sorted(pairs, key=lambda pair: pair[1].order)
