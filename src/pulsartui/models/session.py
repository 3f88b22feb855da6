"""Browsing session: applies key events and adapter results to the state engine.

The session never performs I/O. Handling a key returns the intents the
surrounding application must hand to the resource client; completions come
back through ``on_fetch_resolved``, ``on_detail_resolved`` and
``on_action_resolved``. All mutation happens synchronously inside one of these
calls, so the owning event loop serializes everything.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, replace
from typing import Callable, List, Optional, Tuple

from pulsarlib.errors import format_error_message

from ..command_parser import CommandParser, CommandType, ParsedCommand
from ..input_dispatcher import (
    Action,
    Cancel,
    Confirm,
    Dismiss,
    DrillIn,
    GoBack,
    KeyEvent,
    MoveCursor,
    Noop,
    OpenPrompt,
    PromptEdit,
    PromptSubmit,
    Quit,
    Refresh,
    RequestAction,
    dispatch,
)
from .fetch_coordinator import FetchCoordinator, FetchOutcome, error_context
from .intents import (
    ActionIntent,
    ActionResult,
    DetailIntent,
    DetailResult,
    FetchResult,
    Intent,
    QuitIntent,
)
from .navigation_state import NavigationStack, ResourceItem, ResourceLevel
from .session_mode import (
    ConfirmDialog,
    Detail,
    InputPrompt,
    Listing,
    MessageKind,
    ModeStateMachine,
    PromptPurpose,
    ResourceAction,
    SessionMode,
)

logger = logging.getLogger(__name__)


DEFAULT_SEEK_HOURS = "24"

ACTION_OPERATIONS = {
    ResourceAction.DELETE_SUBSCRIPTION: "delete subscription",
    ResourceAction.SKIP_ALL_MESSAGES: "skip all messages",
    ResourceAction.SEEK_SUBSCRIPTION: "seek subscription",
}


@dataclass(frozen=True)
class FrameView:
    """Read-only copy of a level frame."""

    level: ResourceLevel
    items: Tuple[ResourceItem, ...]
    cursor: Optional[int]
    loaded: bool
    load_generation: int
    pending: bool

    @property
    def selected(self) -> Optional[ResourceItem]:
        return None if self.cursor is None else self.items[self.cursor]


@dataclass(frozen=True)
class SessionSnapshot:
    """Everything a renderer needs, detached from the live session."""

    navigation: Tuple[FrameView, ...]
    mode: SessionMode
    base: SessionMode

    @property
    def current(self) -> FrameView:
        return self.navigation[-1]

    @property
    def breadcrumb(self) -> str:
        return self.current.level.label


def success_text(intent: ActionIntent) -> str:
    if intent.action is ResourceAction.DELETE_SUBSCRIPTION:
        return "Subscription deleted."
    if intent.action is ResourceAction.SKIP_ALL_MESSAGES:
        return "All messages skipped."
    return f"Seeked {intent.hours} hours."


class Session:
    """One operator's browsing session over the admin resource hierarchy."""

    def __init__(
        self,
        initial_tenant: Optional[str] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.stack = NavigationStack()
        self.modes = ModeStateMachine(Listing(self.stack.current().level))
        self.coordinator = FetchCoordinator(self.stack, self.modes, clock=clock)
        self.parser = CommandParser()
        self.initial_tenant = initial_tenant
        self._initial_applied = initial_tenant is None
        self._handlers = {
            Noop: lambda action: [],
            MoveCursor: self._move_cursor,
            DrillIn: self._drill_in,
            GoBack: self._go_back,
            Refresh: self._refresh,
            RequestAction: self._request_action,
            OpenPrompt: self._open_prompt,
            Confirm: self._confirm,
            Cancel: self._cancel,
            PromptEdit: self._prompt_edit,
            PromptSubmit: self._prompt_submit,
            Dismiss: self._dismiss,
            Quit: lambda action: [QuitIntent()],
        }

    @property
    def mode(self) -> SessionMode:
        return self.modes.active

    def start(self) -> List[Intent]:
        """Initial fetch of the tenants list."""
        return [self.coordinator.request_fetch(self.stack.root().level)]

    def handle_key(self, event: KeyEvent) -> List[Intent]:
        action = dispatch(event, self.modes.active)
        if not isinstance(action, Noop):
            logger.debug("Key %s -> %s", event.key.name, action)
        return self._apply(action)

    def _apply(self, action: Action) -> List[Intent]:
        return self._handlers[type(action)](action)

    # Navigation

    def _move_cursor(self, action: MoveCursor) -> List[Intent]:
        if action.step > 0:
            self.stack.select_next()
        else:
            self.stack.select_previous()
        return []

    def _drill_in(self, action: DrillIn) -> List[Intent]:
        frame = self.stack.current()
        item = frame.selected
        if item is None:
            return []

        if frame.level.is_terminal:
            intent = self.coordinator.request_detail(frame.level, item.name)
            self.modes.show_detail(
                Detail(level=frame.level, item=item, generation=intent.generation)
            )
            return [intent]

        child = frame.level.child(item.name)
        cached = self.stack.recall(child)
        if cached is not None:
            pushed = self.stack.push(child, cached.items, cursor=cached.cursor)
            pushed.loaded = True
        else:
            self.stack.push(child)
        self.modes.show_listing(child)
        logger.info("Entered %s", child.label)
        return [self.coordinator.request_fetch(child)]

    def _go_back(self, action: GoBack) -> List[Intent]:
        base = self.modes.base
        if isinstance(base, Detail):
            self.modes.show_listing(base.level)
            return []

        if self.stack.depth == 0:
            logger.debug("Back at the root frame ignored")
            return []

        popped = self.stack.pop()
        self.coordinator.forget(popped.level)
        self.modes.show_listing(self.stack.current().level)
        return []

    def _go_top(self) -> None:
        while self.stack.depth > 0:
            popped = self.stack.pop()
            self.coordinator.forget(popped.level)
        self.modes.show_listing(self.stack.current().level)

    def _refresh(self, action: Refresh) -> List[Intent]:
        base = self.modes.base
        if isinstance(base, Detail):
            intent = self.coordinator.request_detail(base.level, base.item.name)
            self.modes.update_base(replace(base, generation=intent.generation))
            return [intent]

        level = self.stack.current().level
        self.stack.forget_children(level)
        return [self.coordinator.request_fetch(level)]

    # Actions and dialogs

    def _target(self) -> Tuple[Optional[ResourceLevel], Optional[ResourceItem]]:
        base = self.modes.base
        if isinstance(base, Detail):
            return base.level, base.item
        frame = self.stack.current()
        return frame.level, frame.selected

    def _request_action(self, action: RequestAction) -> List[Intent]:
        level, target = self._target()
        if target is None:
            return []
        self.modes.open_overlay(
            ConfirmDialog(
                action=action.action,
                level=level,
                target=target,
                question=action.action.question(target.name),
            )
        )
        return []

    def _open_prompt(self, action: OpenPrompt) -> List[Intent]:
        if action.purpose is PromptPurpose.COMMAND:
            self.modes.open_overlay(InputPrompt(PromptPurpose.COMMAND, label=":"))
            return []

        level, target = self._target()
        if target is None:
            return []
        self.modes.open_overlay(
            InputPrompt(
                PromptPurpose.SEEK_HOURS,
                buffer=DEFAULT_SEEK_HOURS,
                label=f"Seek {target.name} subscription for:",
                suffix=" hours",
                level=level,
                target=target,
            )
        )
        return []

    def _confirm(self, action: Confirm) -> List[Intent]:
        dialog = self.modes.close_overlay()
        if not isinstance(dialog, ConfirmDialog):
            return []
        if isinstance(self.modes.base, Detail):
            self.modes.show_listing(dialog.level)
        logger.info("Confirmed %s on %s", dialog.action.value, dialog.target.name)
        return [
            ActionIntent(
                action=dialog.action,
                level=dialog.level,
                name=dialog.target.name,
                hours=dialog.hours,
            )
        ]

    def _cancel(self, action: Cancel) -> List[Intent]:
        self.modes.close_overlay()
        return []

    def _dismiss(self, action: Dismiss) -> List[Intent]:
        self.modes.close_overlay()
        return []

    def _prompt_edit(self, action: PromptEdit) -> List[Intent]:
        prompt = self.modes.active
        if not isinstance(prompt, InputPrompt):
            return []
        edited = prompt.erased() if action.char is None else prompt.typed(action.char)
        self.modes.replace_overlay(edited)
        return []

    def _prompt_submit(self, action: PromptSubmit) -> List[Intent]:
        prompt = self.modes.close_overlay()
        if not isinstance(prompt, InputPrompt):
            return []

        if prompt.purpose is PromptPurpose.COMMAND:
            return self._run_command(self.parser.parse(":" + prompt.buffer))

        hours = int(prompt.buffer) if prompt.buffer else 0
        if hours <= 0:
            self.modes.show_message("Enter a number of hours greater than zero", MessageKind.ERROR)
            return []
        action_kind = ResourceAction.SEEK_SUBSCRIPTION
        self.modes.open_overlay(
            ConfirmDialog(
                action=action_kind,
                level=prompt.level,
                target=prompt.target,
                question=action_kind.question(prompt.target.name, hours),
                hours=hours,
            )
        )
        return []

    def _run_command(self, command: ParsedCommand) -> List[Intent]:
        if command.error:
            self.modes.show_message(command.error, MessageKind.ERROR)
            return []

        kind = command.command_type
        if kind is CommandType.QUIT:
            return [QuitIntent()]
        if kind is CommandType.HELP:
            self.modes.show_message(self.parser.get_help_text(), MessageKind.HELP)
            return []
        if kind is CommandType.REFRESH:
            return self._refresh(Refresh())
        if kind is CommandType.TOP:
            self._go_top()
            return []
        if kind is CommandType.TENANT:
            name = command.args[0]
            self._go_top()
            if not self.stack.select_name(name):
                self.modes.show_message(f"Tenant not found: {name}", MessageKind.ERROR)
                return []
            return self._drill_in(DrillIn())
        return []

    # Adapter completions

    def on_fetch_resolved(
        self, level: ResourceLevel, generation: int, result: FetchResult
    ) -> FetchOutcome:
        outcome = self.coordinator.on_fetch_resolved(level, generation, result)
        if outcome is FetchOutcome.APPLIED and not self._initial_applied and level.depth == 0:
            self._initial_applied = True
            root = self.stack.root()
            index = root.index_of(self.initial_tenant)
            if index is not None:
                root.cursor = index
        return outcome

    def on_detail_resolved(self, intent: DetailIntent, result: DetailResult) -> FetchOutcome:
        return self.coordinator.on_detail_resolved(intent, result)

    def on_action_resolved(self, intent: ActionIntent, result: ActionResult) -> List[Intent]:
        """Report the action's outcome; on success re-fetch the frame it targeted."""
        if not result.ok:
            context = error_context(intent.level)
            context["subscription"] = intent.name
            text = format_error_message(ACTION_OPERATIONS[intent.action], result.error, context)
            logger.error("%s on %s failed: %s", intent.action.value, intent.name, result.error)
            self.modes.show_message(text, MessageKind.ERROR)
            return []

        logger.info("%s on %s succeeded", intent.action.value, intent.name)
        self.modes.show_message(success_text(intent), MessageKind.INFO)
        if self.stack.find(intent.level) is None:
            return []
        self.stack.forget_children(intent.level)
        return [self.coordinator.request_fetch(intent.level)]

    def expire_message(self, message_id: int) -> bool:
        return self.modes.expire_message(message_id)

    def snapshot(self) -> SessionSnapshot:
        frames = tuple(
            FrameView(
                level=frame.level,
                items=tuple(frame.items),
                cursor=frame.cursor,
                loaded=frame.loaded,
                load_generation=frame.load_generation,
                pending=self.coordinator.is_pending(frame.level),
            )
            for frame in self.stack.frames
        )
        return SessionSnapshot(navigation=frames, mode=self.modes.active, base=self.modes.base)
