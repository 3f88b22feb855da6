"""Generation-tagged fetches: only the newest response for a frame is applied."""

from __future__ import annotations

import itertools
import logging
import time
from collections import deque
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Deque, Dict, Optional

from pulsarlib.errors import format_error_message

from .intents import DetailIntent, DetailResult, FetchIntent, FetchResult
from .navigation_state import LevelKind, NavigationError, NavigationStack, ResourceLevel
from .session_mode import Detail, MessageKind, ModeStateMachine

logger = logging.getLogger(__name__)


LIST_OPERATIONS = {
    LevelKind.TENANTS: "list tenants",
    LevelKind.NAMESPACES: "list namespaces",
    LevelKind.TOPICS: "list topics",
    LevelKind.SUBSCRIPTIONS: "list subscriptions",
}


class FetchOutcome(Enum):
    APPLIED = "applied"
    FAILED = "failed"
    STALE = "stale"


@dataclass(frozen=True)
class PendingFetch:
    level: ResourceLevel
    generation: int
    started_at: float


@dataclass(frozen=True)
class StaleResultDiscarded:
    """Diagnostic record of a response dropped because it no longer matched."""

    level: ResourceLevel
    generation: int
    current_generation: Optional[int]


def error_context(level: ResourceLevel) -> Dict[str, str]:
    keys = ("tenant", "namespace", "topic")
    return {k: v for k, v in zip(keys, level.path)}


class FetchCoordinator:
    """Issues list/detail fetches and validates their responses.

    A new request for a frame bumps its ``load_generation``; a response is
    applied only while its generation still equals the frame's. Generations
    come from one session-wide counter so a frame that is popped and pushed
    again never matches a response addressed to its predecessor.
    """

    def __init__(
        self,
        stack: NavigationStack,
        modes: ModeStateMachine,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.stack = stack
        self.modes = modes
        self._clock = clock
        self._generations = itertools.count(1)
        self._pending: Dict[ResourceLevel, PendingFetch] = {}
        self.discarded: Deque[StaleResultDiscarded] = deque(maxlen=100)

    def next_generation(self) -> int:
        return next(self._generations)

    def is_pending(self, level: ResourceLevel) -> bool:
        return level in self._pending

    def request_fetch(self, level: ResourceLevel) -> FetchIntent:
        """Supersede any outstanding fetch for ``level`` and return the new request."""
        frame = self.stack.find(level)
        if frame is None:
            raise NavigationError(f"No frame on the stack for {level.label}")

        generation = self.next_generation()
        frame.load_generation = generation
        superseded = self._pending.get(level)
        self._pending[level] = PendingFetch(level, generation, self._clock())
        if superseded:
            logger.debug(
                "Fetch %d for %s supersedes %d", generation, level.label, superseded.generation
            )
        else:
            logger.debug("Fetch %d requested for %s", generation, level.label)
        return FetchIntent(level=level, generation=generation)

    def forget(self, level: ResourceLevel) -> None:
        """Drop the pending record of a frame that left the stack."""
        self._pending.pop(level, None)

    def _discard(self, level: ResourceLevel, generation: int, current: Optional[int]) -> None:
        record = StaleResultDiscarded(level, generation, current)
        self.discarded.append(record)
        logger.debug(
            "Discarded stale result for %s (generation %d, current %s)",
            level.label,
            generation,
            current,
        )

    def on_fetch_resolved(
        self, level: ResourceLevel, generation: int, result: FetchResult
    ) -> FetchOutcome:
        frame = self.stack.find(level)
        current = frame.load_generation if frame is not None else None
        if current != generation:
            self._discard(level, generation, current)
            return FetchOutcome.STALE

        pending = self._pending.get(level)
        if pending and pending.generation == generation:
            del self._pending[level]
            elapsed = self._clock() - pending.started_at
        else:
            elapsed = 0.0

        if not result.ok:
            text = format_error_message(
                LIST_OPERATIONS[level.kind], result.error, error_context(level)
            )
            logger.error("Fetch %d for %s failed: %s", generation, level.label, result.error)
            self.modes.show_message(text, MessageKind.ERROR)
            return FetchOutcome.FAILED

        self.stack.replace_items(level, result.items, generation)
        logger.info(
            "Loaded %d items for %s in %.2fs", len(result.items), level.label, elapsed
        )
        return FetchOutcome.APPLIED

    def request_detail(self, level: ResourceLevel, name: str) -> DetailIntent:
        return DetailIntent(level=level, name=name, generation=self.next_generation())

    def on_detail_resolved(self, intent: DetailIntent, result: DetailResult) -> FetchOutcome:
        base = self.modes.base
        if (
            not isinstance(base, Detail)
            or base.generation != intent.generation
            or base.item.name != intent.name
        ):
            self._discard(intent.level, intent.generation, getattr(base, "generation", None))
            return FetchOutcome.STALE

        if not result.ok:
            context = error_context(intent.level)
            context["subscription"] = intent.name
            text = format_error_message("get subscription detail", result.error, context)
            logger.error("Detail fetch for %s failed: %s", intent.name, result.error)
            self.modes.show_message(text, MessageKind.ERROR)
            return FetchOutcome.FAILED

        self.modes.update_base(
            replace(base, properties=result.properties, consumers=result.consumers, loaded=True)
        )
        return FetchOutcome.APPLIED
