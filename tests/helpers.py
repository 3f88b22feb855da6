from __future__ import annotations

from typing import Iterable

from pulsartui.models.navigation_state import ResourceItem


def items(*names: str) -> list:
    return [ResourceItem(n) for n in names]


def names(frame_items: Iterable[ResourceItem]) -> list:
    return [i.name for i in frame_items]
