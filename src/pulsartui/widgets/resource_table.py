"""Data table that draws one navigation frame."""

from typing import Dict, List, Tuple

from textual.widgets import DataTable

from ..models.navigation_state import LevelKind, ResourceItem
from ..models.session import FrameView


# Column header -> summary key ("" is the item name)
COLUMNS: Dict[LevelKind, List[Tuple[str, str]]] = {
    LevelKind.TENANTS: [("TENANT", "")],
    LevelKind.NAMESPACES: [("NAMESPACE", "")],
    LevelKind.TOPICS: [("TOPIC", ""), ("PERSISTENT", "persistent"), ("FQN", "fqn")],
    LevelKind.SUBSCRIPTIONS: [
        ("SUBSCRIPTION", ""),
        ("TYPE", "type"),
        ("BACKLOG", "backlog"),
        ("CONSUMERS", "consumers"),
    ],
}


def row_values(kind: LevelKind, item: ResourceItem) -> List[str]:
    return [item.name if key == "" else item.summary_value(key) for _, key in COLUMNS[kind]]


class ResourceTable(DataTable):
    """Read-only view of a frame; the session owns the cursor."""

    can_focus = False

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.cursor_type = "row"

    def show_frame(self, frame: FrameView) -> None:
        """Redraw from a frame snapshot."""
        self.clear(columns=True)
        columns = COLUMNS[frame.level.kind]

        if not frame.items:
            self.add_column("INFO", key="INFO")
            if not frame.loaded:
                self.add_row("Loading..." if frame.pending else "Not loaded")
            else:
                self.add_row(f"No {frame.level.kind.title.lower()} found")
            return

        for header, _ in columns:
            self.add_column(header, key=header)
        for item in frame.items:
            self.add_row(*row_values(frame.level.kind, item))

        if frame.cursor is not None:
            self.move_cursor(row=frame.cursor)

    def show_pairs(self, headers: Tuple[str, str], pairs) -> None:
        """Draw key/value rows (used by the detail view)."""
        self.clear(columns=True)
        for header in headers:
            self.add_column(header, key=header)
        for key, value in pairs:
            self.add_row(key, value)

    def show_records(self, records, empty_text: str) -> None:
        """Draw a list of records, each a tuple of (column, value) pairs."""
        self.clear(columns=True)
        if not records:
            self.add_column("INFO", key="INFO")
            self.add_row(empty_text)
            return
        for column, _ in records[0]:
            self.add_column(column.upper(), key=column)
        for record in records:
            self.add_row(*(value for _, value in record))
