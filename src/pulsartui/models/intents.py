"""Requests the core hands to the resource client adapter, and their results."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union

from .navigation_state import ResourceItem, ResourceLevel
from .session_mode import ResourceAction


@dataclass(frozen=True)
class FetchIntent:
    """List the items of ``level``; the response must echo ``generation``."""

    level: ResourceLevel
    generation: int


@dataclass(frozen=True)
class DetailIntent:
    """Fetch detail for one subscription listed at ``level``."""

    level: ResourceLevel
    name: str
    generation: int


@dataclass(frozen=True)
class ActionIntent:
    """Invoke a lifecycle action on a subscription listed at ``level``."""

    action: ResourceAction
    level: ResourceLevel
    name: str
    hours: Optional[int] = None


@dataclass(frozen=True)
class QuitIntent:
    pass


Intent = Union[FetchIntent, DetailIntent, ActionIntent, QuitIntent]


@dataclass
class FetchResult:
    """Outcome of an adapter call: ``error`` is set on failure."""

    items: List[ResourceItem] = field(default_factory=list)
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failure(cls, error: BaseException) -> "FetchResult":
        return cls(error=error)


@dataclass
class DetailResult:
    properties: Tuple[Tuple[str, str], ...] = ()
    consumers: Tuple[Tuple[Tuple[str, str], ...], ...] = ()
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class ActionResult:
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None
