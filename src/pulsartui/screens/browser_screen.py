"""Screen that projects a session snapshot onto widgets."""

from typing import Optional

from textual.containers import Vertical
from textual.screen import Screen
from textual.widgets import Header, Static

from ..models.session import SessionSnapshot
from ..models.session_mode import Detail
from ..widgets.mode_panel import ModePanel
from ..widgets.resource_table import ResourceTable

HINTS = (
    "j/k move  enter open  esc back  r refresh  d delete  s skip  e seek  : command  q quit"
)


class BrowserScreen(Screen):
    """List view of the current frame, or the detail view of a subscription."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.data_table: Optional[ResourceTable] = None
        self.detail_view: Optional[Vertical] = None
        self.mode_panel: Optional[ModePanel] = None

    def compose(self):
        """Compose the screen layout."""
        with Vertical():
            yield Header()
            yield Static("", id="screen-title", markup=False)
            yield ResourceTable(id="data-table")
            with Vertical(id="detail-view"):
                yield Static("Subscription", id="detail-title", markup=False)
                yield ResourceTable(id="detail-properties")
                yield Static("Consumers", classes="section")
                yield ResourceTable(id="detail-consumers")
            yield ModePanel(id="mode-panel")
            yield Static(HINTS, id="hints", markup=False)

    def on_mount(self) -> None:
        """Initialize screen components after mount."""
        self.data_table = self.query_one("#data-table", ResourceTable)
        self.detail_view = self.query_one("#detail-view", Vertical)
        self.mode_panel = self.query_one("#mode-panel", ModePanel)
        self.detail_view.display = False
        self.mode_panel.display = False

    def render_snapshot(self, snapshot: SessionSnapshot) -> None:
        if self.data_table is None:
            return

        # Mode panel first: it must render even when a table draw raises
        self.mode_panel.show_mode(snapshot.mode)
        title = self.query_one("#screen-title", Static)
        base = snapshot.base
        if isinstance(base, Detail):
            title.update(f"{base.level.label} > {base.item.name}")
            self.data_table.display = False
            self.detail_view.display = True
            self._render_detail(base)
        else:
            frame = snapshot.current
            suffix = " (loading)" if frame.pending else ""
            title.update(f"{snapshot.breadcrumb}{suffix}")
            self.detail_view.display = False
            self.data_table.display = True
            self.data_table.show_frame(frame)

    def _render_detail(self, detail: Detail) -> None:
        self.query_one("#detail-title", Static).update(f"Subscription: {detail.item.name}")
        properties = self.query_one("#detail-properties", ResourceTable)
        consumers = self.query_one("#detail-consumers", ResourceTable)
        if not detail.loaded:
            properties.show_pairs(("PROPERTY", "VALUE"), [("status", "Loading...")])
            consumers.show_records((), "Loading...")
            return
        properties.show_pairs(("PROPERTY", "VALUE"), detail.properties)
        consumers.show_records(detail.consumers, "No consumers connected")
