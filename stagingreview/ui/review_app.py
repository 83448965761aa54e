"""Textual-based review UI for the staging queue."""

from __future__ import annotations

import asyncio

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, DataTable, Footer, Header, Input, Label, Static

from stagingreview.config import get_config
from stagingreview.errors import GatewayError
from stagingreview.integration.record_gateway import RecordGateway
from stagingreview.models import StagingRecord
from stagingreview.review import (
    ActionOutcome,
    ControllerState,
    ReviewController,
    ReviewSnapshot,
    StatsAggregator,
)

# Fields offered in the edit form, in display order
FORM_FIELDS = [
    ("product_name", "Product Name"),
    ("category", "Category"),
    ("description", "Description"),
    ("islamic_structure", "Islamic Structure"),
    ("annual_rate", "Annual Rate (%)"),
]


class ConfirmScreen(ModalScreen[bool]):
    """Yes/no prompt used before destructive actions."""

    def __init__(self, message: str) -> None:
        super().__init__()
        self.message = message

    def compose(self) -> ComposeResult:
        with Vertical(id="dialog"):
            yield Label(self.message)
            with Horizontal():
                yield Button("Delete", id="confirm-yes", variant="error")
                yield Button("Cancel", id="confirm-no")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        self.dismiss(event.button.id == "confirm-yes")


class EditScreen(ModalScreen[bool]):
    """Edit form bound to the controller's edit session.

    Stays open when saving fails so the operator can retry or cancel.
    """

    def __init__(self, controller: ReviewController) -> None:
        super().__init__()
        self.controller = controller

    def compose(self) -> ComposeResult:
        working = self.controller.edit_session.working_copy
        with Vertical(id="dialog"):
            yield Label(f"[b]Edit Product #{self.controller.edit_session.record_id}[/b]")
            for name, label in FORM_FIELDS:
                value = working.get(name)
                yield Label(label)
                yield Input(value="" if value is None else str(value), id=f"field-{name}")
            yield Static("", id="edit-status")
            with Horizontal():
                yield Button("Save Changes", id="edit-save", variant="primary")
                yield Button("Cancel", id="edit-cancel")

    async def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "edit-cancel":
            self.controller.close_edit()
            self.dismiss(False)
            return

        for name, _ in FORM_FIELDS:
            value = self.query_one(f"#field-{name}", Input).value.strip()
            self.controller.set_edit_field(name, value or None)

        outcome = await self.controller.save_edit()
        if outcome.ok:
            self.dismiss(True)
        else:
            self.query_one("#edit-status", Static).update(f"[red]{outcome.message}[/]")


class ReviewUIApp(App[None]):
    """Interactive staging review queue built with Textual."""

    CSS = """
    Screen {
        layout: vertical;
    }

    #toolbar {
        padding: 0 1;
        height: auto;
    }

    #content {
        height: 1fr;
    }

    #review-table {
        width: 2fr;
    }

    #detail-panel {
        width: 1fr;
        border: solid $panel 1;
        padding: 1;
    }

    #status {
        margin-top: 1;
        color: $text-muted;
    }

    #dialog {
        width: 70;
        height: auto;
        padding: 1 2;
        border: thick $primary;
        background: $surface;
    }

    ModalScreen {
        align: center middle;
    }
    """

    BINDINGS = [
        Binding("r", "refresh", "Refresh"),
        Binding("space", "toggle", "Select"),
        Binding("s", "select_all", "Select all"),
        Binding("a", "approve", "Approve"),
        Binding("b", "bulk_approve", "Approve selected"),
        Binding("x", "reject", "Reject"),
        Binding("d", "delete", "Delete"),
        Binding("e", "edit", "Edit"),
        Binding("q", "quit", "Quit"),
    ]

    def __init__(self, controller: ReviewController, stats: StatsAggregator) -> None:
        super().__init__()
        self.controller = controller
        self.stats = stats
        self.records: list[StagingRecord] = []
        self._unsubscribe = controller.subscribe(self._render_snapshot)

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)

        with Horizontal(id="toolbar"):
            yield Static("Loading stats…", id="stats")

        with Horizontal(id="content"):
            yield DataTable(id="review-table", cursor_type="row")
            with Vertical(id="detail-panel"):
                yield Static("Select a product to inspect details", id="details")
                yield Static("Ready", id="status")

        yield Footer()

    async def on_mount(self) -> None:  # type: ignore[override]
        table = self.query_one(DataTable)
        table.zebra_stripes = True
        table.add_columns("✓", "Product", "Category", "AI Suggestion", "Quality", "Source")
        await self._load_stats()
        await self.controller.refresh()

    async def on_unmount(self) -> None:  # type: ignore[override]
        self._unsubscribe()
        await self.controller.gateway.close()

    async def action_refresh(self) -> None:
        await self.controller.refresh()
        await self._load_stats()

    def action_toggle(self) -> None:
        record = self._current_record
        if record is not None:
            self.controller.toggle(record.id)

    def action_select_all(self) -> None:
        if self.controller.is_all_selected:
            self.controller.clear_selection()
        else:
            self.controller.select_all()

    async def action_approve(self) -> None:
        record = self._current_record
        if record is None:
            self._set_status("Select a product first", error=True)
            return
        await self._after_action(await self.controller.approve_one(record.id))

    async def action_reject(self) -> None:
        record = self._current_record
        if record is None:
            self._set_status("Select a product first", error=True)
            return
        await self._after_action(await self.controller.reject_one(record.id))

    def action_delete(self) -> None:
        record = self._current_record
        if record is None:
            self._set_status("Select a product first", error=True)
            return

        async def _confirmed(confirmed: bool | None) -> None:
            if confirmed:
                await self._after_action(await self.controller.delete_one(record.id))

        self.push_screen(ConfirmScreen("Are you sure you want to delete this product?"), _confirmed)

    async def action_bulk_approve(self) -> None:
        await self._after_action(await self.controller.bulk_approve())

    async def action_edit(self) -> None:
        record = self._current_record
        if record is None:
            self._set_status("Select a product first", error=True)
            return
        outcome = await self.controller.open_edit(record.id)
        if not outcome.ok:
            return

        async def _closed(saved: bool | None) -> None:
            if saved:
                await self._load_stats()

        self.push_screen(EditScreen(self.controller), _closed)

    async def _after_action(self, outcome: ActionOutcome) -> None:
        if outcome.ok:
            await self._load_stats()

    async def _load_stats(self) -> None:
        widget = self.query_one("#stats", Static)
        try:
            stats = await self.stats.load()
        except GatewayError as exc:
            widget.update(f"[red]Stats unavailable: {exc.message}[/]")
            return
        shares = StatsAggregator.format_percentages(stats)
        widget.update(
            f"Pending: [yellow]{stats.pending}[/] ({shares['pending']}) · "
            f"Approved: [green]{stats.approved}[/] ({shares['approved']}) · "
            f"Rejected: [red]{stats.rejected}[/] ({shares['rejected']}) · "
            f"Total in staging: {stats.total}"
        )

    def _render_snapshot(self, snapshot: ReviewSnapshot) -> None:
        if not self.is_mounted:
            return
        if snapshot.state == ControllerState.LOADING:
            self._set_status("Loading review queue…", error=False)
            return

        self.records = list(snapshot.records)
        self._populate_table(snapshot)

        if snapshot.message:
            self._set_status(snapshot.message, error=snapshot.error is not None)
        elif not self.records:
            self._set_status("No pending products to review", error=False)
        else:
            self._set_status(f"{len(snapshot.selected)} selected", error=False)

    def _populate_table(self, snapshot: ReviewSnapshot) -> None:
        table = self.query_one(DataTable)
        cursor = table.cursor_row
        table.clear(rows=True, columns=False)
        for record in snapshot.records:
            table.add_row(
                "■" if record.id in snapshot.selected else "□",
                record.display_name,
                record.category or "N/A",
                _format_suggestion(record),
                _format_score(record.data_quality_score),
                record.source_website_id or "",
                key=str(record.id),
            )

        if self.records:
            table.move_cursor(row=min(cursor, len(self.records) - 1))
            self._show_detail(self._current_record)
        else:
            self.query_one("#details", Static).update("No pending products.")

    def _show_detail(self, record: StagingRecord | None) -> None:
        if record is None:
            return
        lines = [
            f"[b]Product[/b]: {record.display_name}",
            f"[b]Code[/b]: {record.product_code or '—'}",
            f"[b]Category[/b]: {record.category or '—'} / {record.sub_category or '—'}",
            f"[b]Structure[/b]: {record.islamic_structure or '—'}",
            f"[b]Annual Rate[/b]: {record.annual_rate if record.annual_rate is not None else '—'}",
            "",
            f"[b]AI Suggestion[/b]: {_format_suggestion(record)}",
            f"[b]Quality Score[/b]: {_format_score(record.data_quality_score)}",
            f"[b]Source[/b]: {record.source_website_id or '—'} {record.source_url or ''}",
        ]
        if record.description:
            lines.extend(["", record.description])
        self.query_one("#details", Static).update("\n".join(lines))

    @property
    def _current_record(self) -> StagingRecord | None:
        if not self.records:
            return None
        row = self.query_one(DataTable).cursor_row
        if 0 <= row < len(self.records):
            return self.records[row]
        return None

    def _set_status(self, message: str, *, error: bool) -> None:
        status = self.query_one("#status", Static)
        status.update(("[red]" if error else "") + message + ("[/]" if error else ""))

    def on_data_table_row_highlighted(self, event: DataTable.RowHighlighted) -> None:  # type: ignore[override]
        if 0 <= event.cursor_row < len(self.records):
            self._show_detail(self.records[event.cursor_row])


def _format_suggestion(record: StagingRecord) -> str:
    if not record.ai_suggested_category:
        return "N/A"
    if record.ai_confidence is None:
        return record.ai_suggested_category
    return f"{record.ai_suggested_category} ({record.ai_confidence * 100:.0f}%)"


def _format_score(score: float | None) -> str:
    return "N/A" if score is None else f"{score * 100:.0f}%"


def run_review_ui(reviewer: str | None = None) -> None:
    config = get_config()
    if reviewer:
        config.review.reviewer = reviewer

    gateway = RecordGateway()
    controller = ReviewController(gateway, review_config=config.review)
    app = ReviewUIApp(controller, StatsAggregator(gateway))
    asyncio.run(app.run_async())
