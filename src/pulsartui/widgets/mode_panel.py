"""Panel showing the active dialog, prompt or message."""

from textual.widgets import Static

from ..models.session_mode import ConfirmDialog, InputPrompt, Message, MessageKind, SessionMode


class ModePanel(Static):
    """Hidden unless an overlay mode is active."""

    def __init__(self, **kwargs):
        # Messages carry raw API error text, so no markup parsing.
        super().__init__("", markup=False, **kwargs)

    def show_mode(self, mode: SessionMode) -> None:
        self.remove_class("error", "info", "dialog", "prompt")

        if isinstance(mode, ConfirmDialog):
            self.add_class("dialog")
            self.update(f"{mode.question}  [y] confirm  [n] cancel")
        elif isinstance(mode, InputPrompt):
            self.add_class("prompt")
            self.update(f"{mode.label} {mode.buffer}█{mode.suffix}")
        elif isinstance(mode, Message):
            self.add_class("error" if mode.kind is MessageKind.ERROR else "info")
            self.update(mode.text)
        else:
            self.display = False
            return
        self.display = True
