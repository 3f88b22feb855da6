"""Interaction modes and the state machine that composes them."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import List, Optional, Tuple, Union

from .navigation_state import ResourceItem, ResourceLevel


class MessageKind(Enum):
    INFO = "info"
    ERROR = "error"
    HELP = "help"


class ResourceAction(Enum):
    """Lifecycle actions that can be invoked against a resource."""

    DELETE_SUBSCRIPTION = "delete_subscription"
    SKIP_ALL_MESSAGES = "skip_all_messages"
    SEEK_SUBSCRIPTION = "seek_subscription"

    def question(self, target: str, hours: Optional[int] = None) -> str:
        if self is ResourceAction.DELETE_SUBSCRIPTION:
            return f"Delete '{target}' subscription?"
        if self is ResourceAction.SKIP_ALL_MESSAGES:
            return f"Skip all '{target}' messages?"
        return f"Seek '{target}' subscription back {hours} hours?"


class PromptPurpose(Enum):
    SEEK_HOURS = "seek_hours"
    COMMAND = "command"


@dataclass(frozen=True)
class Listing:
    level: ResourceLevel


@dataclass(frozen=True)
class Detail:
    """Detail view of one subscription."""

    level: ResourceLevel
    item: ResourceItem
    properties: Tuple[Tuple[str, str], ...] = ()
    consumers: Tuple[Tuple[Tuple[str, str], ...], ...] = ()
    loaded: bool = False
    generation: int = 0


@dataclass(frozen=True)
class ConfirmDialog:
    action: ResourceAction
    level: ResourceLevel
    target: ResourceItem
    question: str
    hours: Optional[int] = None


@dataclass(frozen=True)
class InputPrompt:
    purpose: PromptPurpose
    buffer: str = ""
    label: str = ""
    suffix: str = ""
    level: Optional[ResourceLevel] = None
    target: Optional[ResourceItem] = None

    def typed(self, char: str) -> "InputPrompt":
        if self.purpose is PromptPurpose.SEEK_HOURS and not char.isdigit():
            return self
        return replace(self, buffer=self.buffer + char)

    def erased(self) -> "InputPrompt":
        return replace(self, buffer=self.buffer[:-1])


@dataclass(frozen=True)
class Message:
    text: str
    kind: MessageKind
    message_id: int = 0


BaseMode = Union[Listing, Detail]
OverlayMode = Union[ConfirmDialog, InputPrompt, Message]
SessionMode = Union[Listing, Detail, ConfirmDialog, InputPrompt, Message]


class ModeStateMachine:
    """Exactly one active mode: a base view with zero or more overlays on top.

    Overlays (dialog, prompt, message) never touch the base view, so cancelling
    or dismissing one always returns to the exact view underneath.
    """

    def __init__(self, base: BaseMode):
        self._base: BaseMode = base
        self._overlays: List[OverlayMode] = []
        self._message_ids = 0

    @property
    def active(self) -> SessionMode:
        if self._overlays:
            return self._overlays[-1]
        return self._base

    @property
    def base(self) -> BaseMode:
        return self._base

    @property
    def overlays(self) -> Tuple[OverlayMode, ...]:
        return tuple(self._overlays)

    def show_listing(self, level: ResourceLevel) -> None:
        """Replace the base view with a listing and drop any overlays."""
        self._base = Listing(level)
        self._overlays.clear()

    def show_detail(self, detail: Detail) -> None:
        self._base = detail
        self._overlays.clear()

    def update_base(self, base: BaseMode) -> None:
        """Swap the base view in place, keeping overlays."""
        self._base = base

    def open_overlay(self, overlay: Union[ConfirmDialog, InputPrompt]) -> None:
        self._overlays.append(overlay)

    def replace_overlay(self, overlay: OverlayMode) -> None:
        if not self._overlays:
            raise ValueError("No overlay to replace")
        self._overlays[-1] = overlay

    def close_overlay(self) -> Optional[OverlayMode]:
        if not self._overlays:
            return None
        return self._overlays.pop()

    def show_message(self, text: str, kind: MessageKind) -> Message:
        """Show a message on top of the current mode; a newer message replaces an older one."""
        self._message_ids += 1
        message = Message(text=text, kind=kind, message_id=self._message_ids)
        if self._overlays and isinstance(self._overlays[-1], Message):
            self._overlays[-1] = message
        else:
            self._overlays.append(message)
        return message

    def expire_message(self, message_id: int) -> bool:
        """Dismiss the active message only if it is still ``message_id``."""
        active = self.active
        if isinstance(active, Message) and active.message_id == message_id:
            self._overlays.pop()
            return True
        return False
