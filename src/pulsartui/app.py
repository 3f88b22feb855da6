"""Main TUI application with global exception handling."""

import logging
import os
import tempfile
from functools import partial
from typing import Dict, Iterable, Optional

from textual import events
from textual.app import App
from textual.worker import Worker, WorkerState

from pulsarlib.config import load_config
from pulsarlib.errors import NetworkError

from .adapter import ClusterResourceClient, ResourceClient, run_intent
from .input_dispatcher import key_event_from_textual
from .models.intents import (
    ActionIntent,
    ActionResult,
    DetailIntent,
    DetailResult,
    FetchIntent,
    FetchResult,
    Intent,
    QuitIntent,
)
from .models.session import Session
from .models.session_mode import Message, MessageKind
from .screens.browser_screen import BrowserScreen


logger = logging.getLogger(__name__)

MESSAGE_TIMEOUTS = {
    MessageKind.INFO: 2.0,
    MessageKind.ERROR: 5.0,
}


class TUIApp(App):
    """Main TUI application for Pulsar admin resource browsing.

    The app owns the event loop: key presses and adapter completions are both
    handled here, one at a time, and every change is followed by a redraw from
    a fresh session snapshot.
    """

    TITLE = "pulsarctl TUI"
    SUB_TITLE = "Pulsar Admin Navigator"

    CSS = """
    Screen {
        layout: vertical;
    }

    Header {
        dock: top;
    }

    #screen-title {
        padding: 0 1;
        text-style: bold;
    }

    #mode-panel {
        padding: 0 1;
        height: auto;
    }

    #mode-panel.error {
        border: thick red;
        background: $panel;
        color: $text;
    }

    #mode-panel.info {
        border: round green;
    }

    #mode-panel.dialog, #mode-panel.prompt {
        border: thick $accent;
        background: $panel;
    }

    #hints {
        dock: bottom;
        color: $text-muted;
        padding: 0 1;
    }
    """

    def __init__(self, client: ResourceClient, initial_tenant: Optional[str] = None):
        super().__init__()
        self.client = client
        self.session = Session(initial_tenant=initial_tenant)
        self.browser: Optional[BrowserScreen] = None
        self._intents: Dict[Worker, Intent] = {}
        self._timed_messages = set()

    def on_mount(self) -> None:
        """Show the browser and fetch the tenants list."""
        self.browser = BrowserScreen()
        self.push_screen(self.browser)
        logger.info("TUI app initialized")
        self.execute(self.session.start())
        self.call_after_refresh(self.guarded, self.redraw)

    def show_error_dialog(self, title: str, message: str) -> None:
        self.bell()
        logger.error(f"{title}: {message}")
        self.session.modes.show_message(f"{title}: {message}", MessageKind.ERROR)
        try:
            self.redraw()
        except Exception:
            logger.exception("Redraw after error failed")

    def guarded(self, handler, *args) -> None:
        """Run an event handler; an unexpected failure becomes an error message instead of exiting."""
        try:
            handler(*args)
        except Exception as e:
            logger.exception("Unhandled error in %s", getattr(handler, "__name__", handler))
            self.show_error_dialog("Unexpected Error", f"An error occurred: {e}")

    def on_key(self, event: events.Key) -> None:
        key_event = key_event_from_textual(event.key, event.character)
        if key_event is None:
            return
        event.prevent_default()
        event.stop()
        self.guarded(self.handle_key, key_event)

    def handle_key(self, key_event) -> None:
        self.execute(self.session.handle_key(key_event))
        self.redraw()

    def execute(self, intents: Iterable[Intent]) -> None:
        """Hand intents to the resource client without blocking the event loop."""
        for intent in intents:
            if isinstance(intent, QuitIntent):
                self.exit()
                return
            worker = self.run_worker(
                partial(run_intent, self.client, intent),
                name=type(intent).__name__,
                group="admin-api",
                thread=True,
                exit_on_error=False,
            )
            self._intents[worker] = intent

    def on_worker_state_changed(self, event: Worker.StateChanged) -> None:
        """Feed adapter completions back into the session."""
        if event.state not in (WorkerState.SUCCESS, WorkerState.ERROR):
            return
        intent = self._intents.pop(event.worker, None)
        if intent is None:
            return

        if event.state == WorkerState.SUCCESS:
            result = event.worker.result
        else:
            error = NetworkError(f"Worker failed: {event.worker.error}")
            if isinstance(intent, FetchIntent):
                result = FetchResult.failure(error)
            elif isinstance(intent, DetailIntent):
                result = DetailResult(error=error)
            else:
                result = ActionResult(error=error)

        self.guarded(self.resolve, intent, result)

    def resolve(self, intent: Intent, result) -> None:
        if isinstance(intent, FetchIntent):
            self.session.on_fetch_resolved(intent.level, intent.generation, result)
        elif isinstance(intent, DetailIntent):
            self.session.on_detail_resolved(intent, result)
        elif isinstance(intent, ActionIntent):
            self.execute(self.session.on_action_resolved(intent, result))
        self.redraw()

    def redraw(self) -> None:
        snapshot = self.session.snapshot()
        if self.browser is not None:
            self.browser.render_snapshot(snapshot)
        self._schedule_expiry(snapshot.mode)

    def _schedule_expiry(self, mode) -> None:
        if not isinstance(mode, Message) or mode.message_id in self._timed_messages:
            return
        timeout = MESSAGE_TIMEOUTS.get(mode.kind)
        if timeout is None:
            return
        self._timed_messages.add(mode.message_id)
        self.set_timer(timeout, partial(self.guarded, self._expire_message, mode.message_id))

    def _expire_message(self, message_id: int) -> None:
        self._timed_messages.discard(message_id)
        if self.session.expire_message(message_id):
            self.redraw()


def run_tui(cluster_name: Optional[str] = None) -> None:
    """Entry point for running the TUI."""
    # Configure logging to file only; the terminal belongs to the TUI
    log_file = os.environ.get(
        "PULSARTUI_LOG", os.path.join(tempfile.gettempdir(), "pulsartui_debug.log")
    )
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        handlers=[
            logging.FileHandler(log_file, mode='w')
        ]
    )
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logger.info(f"Starting TUI, debug log at: {log_file}")

    config = load_config()
    cluster = config.get_cluster(cluster_name)
    logger.info(f"Using cluster '{cluster.name}' at {cluster.admin_url}")

    app = TUIApp(ClusterResourceClient(cluster), initial_tenant=cluster.default_tenant)
    app.run()
