"""Map key events to actions for the active mode.

``dispatch`` is pure: it looks at the key and the mode and returns exactly one
action. Executing the action (mutating state, calling the admin API) is the
session's job.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Optional, Union

from .models.navigation_state import LevelKind
from .models.session_mode import (
    ConfirmDialog,
    Detail,
    InputPrompt,
    Listing,
    Message,
    PromptPurpose,
    ResourceAction,
    SessionMode,
)


class Key(Enum):
    UP = "up"
    DOWN = "down"
    ENTER = "enter"
    BACK = "back"
    BACKSPACE = "backspace"
    CONFIRM = "confirm"
    CANCEL = "cancel"
    CHAR = "char"
    QUIT = "quit"
    DELETE = "delete"
    SKIP = "skip"
    SEEK = "seek"
    REFRESH = "refresh"
    COMMAND = "command"


@dataclass(frozen=True)
class KeyEvent:
    """A key plus the character it produced, if it was printable."""

    key: Key
    char: Optional[str] = None


# Actions


@dataclass(frozen=True)
class Noop:
    pass


@dataclass(frozen=True)
class MoveCursor:
    step: int


@dataclass(frozen=True)
class DrillIn:
    pass


@dataclass(frozen=True)
class GoBack:
    pass


@dataclass(frozen=True)
class Refresh:
    pass


@dataclass(frozen=True)
class RequestAction:
    action: ResourceAction


@dataclass(frozen=True)
class OpenPrompt:
    purpose: PromptPurpose


@dataclass(frozen=True)
class Confirm:
    pass


@dataclass(frozen=True)
class Cancel:
    pass


@dataclass(frozen=True)
class PromptEdit:
    """Append ``char`` to the prompt buffer, or erase the last character when None."""

    char: Optional[str] = None


@dataclass(frozen=True)
class PromptSubmit:
    pass


@dataclass(frozen=True)
class Dismiss:
    pass


@dataclass(frozen=True)
class Quit:
    pass


Action = Union[
    Noop,
    MoveCursor,
    DrillIn,
    GoBack,
    Refresh,
    RequestAction,
    OpenPrompt,
    Confirm,
    Cancel,
    PromptEdit,
    PromptSubmit,
    Dismiss,
    Quit,
]


# Which lifecycle actions are valid at each level.
CAPABILITIES: Dict[LevelKind, FrozenSet[ResourceAction]] = {
    LevelKind.TENANTS: frozenset(),
    LevelKind.NAMESPACES: frozenset(),
    LevelKind.TOPICS: frozenset(),
    LevelKind.SUBSCRIPTIONS: frozenset(
        {
            ResourceAction.DELETE_SUBSCRIPTION,
            ResourceAction.SKIP_ALL_MESSAGES,
            ResourceAction.SEEK_SUBSCRIPTION,
        }
    ),
}

ACTION_KEYS = {
    Key.DELETE: ResourceAction.DELETE_SUBSCRIPTION,
    Key.SKIP: ResourceAction.SKIP_ALL_MESSAGES,
    Key.SEEK: ResourceAction.SEEK_SUBSCRIPTION,
}


def allowed(kind: LevelKind, action: ResourceAction) -> bool:
    return action in CAPABILITIES[kind]


def _resource_action(event: KeyEvent, kind: LevelKind) -> Action:
    action = ACTION_KEYS[event.key]
    if not allowed(kind, action):
        return Noop()
    if action is ResourceAction.SEEK_SUBSCRIPTION:
        return OpenPrompt(PromptPurpose.SEEK_HOURS)
    return RequestAction(action)


def _dispatch_listing(event: KeyEvent, mode: Listing) -> Action:
    key = event.key
    if key is Key.UP:
        return MoveCursor(-1)
    if key is Key.DOWN:
        return MoveCursor(1)
    if key is Key.ENTER:
        return DrillIn()
    if key in (Key.BACK, Key.BACKSPACE):
        return GoBack()
    if key is Key.REFRESH:
        return Refresh()
    if key in ACTION_KEYS:
        return _resource_action(event, mode.level.kind)
    if key is Key.COMMAND:
        return OpenPrompt(PromptPurpose.COMMAND)
    if key is Key.QUIT:
        return Quit()
    return Noop()


def _dispatch_detail(event: KeyEvent, mode: Detail) -> Action:
    key = event.key
    if key in (Key.BACK, Key.BACKSPACE):
        return GoBack()
    if key is Key.REFRESH:
        return Refresh()
    if key in ACTION_KEYS:
        return _resource_action(event, mode.level.kind)
    if key is Key.COMMAND:
        return OpenPrompt(PromptPurpose.COMMAND)
    if key is Key.QUIT:
        return Quit()
    return Noop()


def _dispatch_confirm(event: KeyEvent) -> Action:
    if event.key in (Key.CONFIRM, Key.ENTER):
        return Confirm()
    if event.key in (Key.CANCEL, Key.BACK, Key.BACKSPACE):
        return Cancel()
    return Noop()


def _dispatch_prompt(event: KeyEvent) -> Action:
    key = event.key
    if key is Key.ENTER:
        return PromptSubmit()
    if key is Key.BACKSPACE:
        return PromptEdit(None)
    # Printable keys type into the buffer even when they are bound elsewhere.
    if event.char and event.char.isprintable():
        return PromptEdit(event.char)
    if key in (Key.BACK, Key.CANCEL):
        return Cancel()
    return Noop()


def dispatch(event: KeyEvent, mode: SessionMode) -> Action:
    """Return the single action ``event`` triggers in ``mode``."""
    if isinstance(mode, Message):
        return Dismiss()
    if isinstance(mode, ConfirmDialog):
        return _dispatch_confirm(event)
    if isinstance(mode, InputPrompt):
        return _dispatch_prompt(event)
    if isinstance(mode, Detail):
        return _dispatch_detail(event, mode)
    if isinstance(mode, Listing):
        return _dispatch_listing(event, mode)
    return Noop()


# UI-layer key bindings (Textual key names).
KEY_BINDINGS: Dict[str, Key] = {
    "up": Key.UP,
    "k": Key.UP,
    "down": Key.DOWN,
    "j": Key.DOWN,
    "enter": Key.ENTER,
    "escape": Key.BACK,
    "left": Key.BACK,
    "h": Key.BACK,
    "backspace": Key.BACKSPACE,
    "y": Key.CONFIRM,
    "n": Key.CANCEL,
    "d": Key.DELETE,
    "delete": Key.DELETE,
    "s": Key.SKIP,
    "e": Key.SEEK,
    "r": Key.REFRESH,
    "colon": Key.COMMAND,
    "q": Key.QUIT,
    "ctrl+c": Key.QUIT,
}


def key_event_from_textual(key: str, character: Optional[str]) -> Optional[KeyEvent]:
    """Translate a Textual key press; None for keys the core doesn't know."""
    char = character if character and character.isprintable() else None
    bound = KEY_BINDINGS.get(key)
    if bound is not None:
        return KeyEvent(bound, char)
    if char is not None:
        return KeyEvent(Key.CHAR, char)
    return None
