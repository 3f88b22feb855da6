"""Navigation state management for TUI.

The navigation stack is the single source of truth for where the operator is in
the tenant > namespace > topic > subscription hierarchy. Every level keeps its
own item list and cursor, so backing out of a level always lands on the exact
row the operator left.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import IntEnum
from typing import Dict, Iterable, List, Optional, Sequence, Tuple


class NavigationError(Exception):
    """Base class for navigation stack contract violations."""


class EmptyStackError(NavigationError):
    """Raised when popping would remove the root frame."""


class StackDepthError(NavigationError):
    """Raised when pushing beyond the deepest level or out of order."""


class LevelKind(IntEnum):
    """Resource levels ordered by depth (tenants is shallowest)."""

    TENANTS = 0
    NAMESPACES = 1
    TOPICS = 2
    SUBSCRIPTIONS = 3

    @property
    def title(self) -> str:
        return self.name.capitalize()


DEEPEST_LEVEL = LevelKind.SUBSCRIPTIONS
LEVEL_COUNT = len(LevelKind)


@dataclass(frozen=True)
class ResourceLevel:
    """A resource level plus the parent path segments needed to address it."""

    kind: LevelKind
    tenant: Optional[str] = None
    namespace: Optional[str] = None
    topic: Optional[str] = None

    @classmethod
    def root(cls) -> "ResourceLevel":
        return cls(LevelKind.TENANTS)

    @property
    def depth(self) -> int:
        return int(self.kind)

    @property
    def is_terminal(self) -> bool:
        return self.kind == DEEPEST_LEVEL

    @property
    def path(self) -> Tuple[str, ...]:
        parts = (self.tenant, self.namespace, self.topic)
        return tuple(p for p in parts[: self.depth] if p is not None)

    @property
    def parent(self) -> Optional["ResourceLevel"]:
        if self.kind == LevelKind.TENANTS:
            return None
        path = self.path[:-1]
        return ResourceLevel(LevelKind(self.depth - 1), *path)

    def child(self, name: str) -> "ResourceLevel":
        """Level reached by drilling into the item called ``name``."""
        if self.is_terminal:
            raise StackDepthError(f"{self.kind.title} is the deepest level")
        return ResourceLevel(LevelKind(self.depth + 1), *self.path, name)

    @property
    def label(self) -> str:
        """Breadcrumb text for this level."""
        if not self.path:
            return self.kind.title
        return f"{self.kind.title} - {' > '.join(self.path)}"


@dataclass(frozen=True)
class ResourceItem:
    """A named entity at some level, with optional summary metadata."""

    name: str
    summary: Tuple[Tuple[str, str], ...] = ()

    def summary_value(self, key: str, default: str = "—") -> str:
        for k, v in self.summary:
            if k == key:
                return v
        return default


@dataclass
class LevelFrame:
    """One entry in the navigation stack."""

    level: ResourceLevel
    items: List[ResourceItem] = field(default_factory=list)
    cursor: Optional[int] = None
    loaded: bool = False
    load_generation: int = 0

    @property
    def selected(self) -> Optional[ResourceItem]:
        if self.cursor is None:
            return None
        return self.items[self.cursor]

    def index_of(self, name: str) -> Optional[int]:
        for i, item in enumerate(self.items):
            if item.name == name:
                return i
        return None

    def check(self) -> None:
        """Assert the cursor invariant."""
        if not self.items:
            assert self.cursor is None, f"cursor {self.cursor} on empty frame"
        else:
            assert self.cursor is not None and 0 <= self.cursor < len(self.items), (
                f"cursor {self.cursor} out of range for {len(self.items)} items"
            )

    def copy(self) -> "LevelFrame":
        return replace(self, items=list(self.items))


def _clamped_cursor(items: Sequence[ResourceItem], cursor: Optional[int]) -> Optional[int]:
    if not items:
        return None
    if cursor is None:
        return 0
    return max(0, min(cursor, len(items) - 1))


class NavigationStack:
    """Ordered, root-first sequence of level frames.

    The stack is never empty: the tenants frame is created on construction and
    can't be popped. Frames that are popped after loading are remembered for the
    rest of the session so re-entering them re-displays cached items and cursor
    immediately.
    """

    def __init__(self, root: Optional[ResourceLevel] = None):
        root = root or ResourceLevel.root()
        self._frames: List[LevelFrame] = [LevelFrame(level=root)]
        self._cache: Dict[ResourceLevel, LevelFrame] = {}

    @property
    def frames(self) -> Tuple[LevelFrame, ...]:
        return tuple(self._frames)

    @property
    def depth(self) -> int:
        """Number of frames above the root."""
        return len(self._frames) - 1

    def current(self) -> LevelFrame:
        return self._frames[-1]

    def root(self) -> LevelFrame:
        return self._frames[0]

    def find(self, level: ResourceLevel) -> Optional[LevelFrame]:
        """Return the frame on the stack addressing ``level``, if any."""
        if level.depth >= len(self._frames):
            return None
        frame = self._frames[level.depth]
        if frame.level != level:
            return None
        return frame

    def push(
        self,
        level: ResourceLevel,
        initial_items: Iterable[ResourceItem] = (),
        generation: int = 0,
        cursor: Optional[int] = None,
    ) -> LevelFrame:
        """Append a frame for ``level``, which must be the child of the current selection."""
        top = self.current()
        if top.level.is_terminal or level.depth > DEEPEST_LEVEL:
            raise StackDepthError(
                f"Cannot push {level.kind.title}: {top.level.kind.title} is the deepest level"
            )
        selected = top.selected
        if selected is None or level != top.level.child(selected.name):
            raise StackDepthError(
                f"Cannot push {level.label}: it is not the selected child of {top.level.label}"
            )

        items = list(initial_items)
        frame = LevelFrame(
            level=level,
            items=items,
            cursor=_clamped_cursor(items, cursor) if items else None,
            loaded=False,
            load_generation=generation,
        )
        self._frames.append(frame)
        return frame

    def pop(self) -> LevelFrame:
        """Remove and return the top frame; the root frame can't be popped."""
        if len(self._frames) == 1:
            raise EmptyStackError("Cannot pop the root frame")
        frame = self._frames.pop()
        if frame.loaded:
            self._cache[frame.level] = frame.copy()
        return frame

    def recall(self, level: ResourceLevel) -> Optional[LevelFrame]:
        """Cached copy of a previously visited, loaded frame."""
        cached = self._cache.get(level)
        return cached.copy() if cached else None

    def forget_children(self, level: ResourceLevel) -> None:
        """Drop cached frames addressed below ``level``."""
        stale = [
            cached
            for cached in self._cache
            if cached.depth > level.depth and cached.path[: len(level.path)] == level.path
        ]
        for cached in stale:
            del self._cache[cached]

    def select_next(self) -> None:
        frame = self.current()
        if frame.items:
            frame.cursor = min(frame.cursor + 1, len(frame.items) - 1)

    def select_previous(self) -> None:
        frame = self.current()
        if frame.items:
            frame.cursor = max(frame.cursor - 1, 0)

    def select_name(self, name: str) -> bool:
        """Move the current frame's cursor onto ``name``; False if it isn't listed."""
        frame = self.current()
        index = frame.index_of(name)
        if index is None:
            return False
        frame.cursor = index
        return True

    def replace_items(
        self,
        level: ResourceLevel,
        items: Iterable[ResourceItem],
        generation: int,
    ) -> bool:
        """Install freshly fetched items into the frame addressing ``level``.

        Returns False (and changes nothing) when the frame is gone or the
        generation is not the frame's current one. The previously selected
        item keeps the cursor when it is still listed; otherwise the old index
        is clamped to the new bounds.
        """
        frame = self.find(level)
        if frame is None or frame.load_generation != generation:
            return False

        previous = frame.selected
        new_items = list(items)
        cursor = _clamped_cursor(new_items, frame.cursor)
        if previous is not None:
            for i, item in enumerate(new_items):
                if item.name == previous.name:
                    cursor = i
                    break

        frame.items = new_items
        frame.cursor = cursor
        frame.loaded = True
        return True
