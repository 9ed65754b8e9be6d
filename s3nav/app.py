from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
import threading
from pathlib import Path
from typing import Iterable, Optional

from rich.text import Text
from textual import events
from textual.app import App, ComposeResult
from textual.containers import Container
from textual.widgets import DataTable, Static

from .actions import run_action
from .config import QUIT_GRACE_SECONDS, EndpointConfig
from .formatting import size_style
from .logging_config import configure_logging
from .machine import (
    CMD_ACTIVATE,
    CMD_BACK,
    CMD_CANCEL,
    CMD_DETAIL,
    CMD_DOWN,
    CMD_DOWNLOAD,
    CMD_EDIT,
    CMD_MENU,
    CMD_OPEN,
    CMD_QUIT,
    CMD_RELOAD,
    CMD_UP,
    MODE_DETAIL,
    MODE_LIST,
    MODE_MENU,
    Effect,
    LoadDetail,
    LoadListing,
    Quit,
    RunAction,
    Session,
    complete_detail,
    complete_listing,
    dispatch,
    with_status,
)
from .models import ENTRY_PARENT, ENTRY_PREFIX, Entry
from .s3 import S3Service, TransportCanceled, TransportError
from .view import DetailView, MenuView, RowView, build_view

logger = logging.getLogger(__name__)

DOWN_KEYS = ("j", "down", "ctrl+n")
UP_KEYS = ("k", "up", "ctrl+p")

LIST_KEYS = {
    **dict.fromkeys(DOWN_KEYS, CMD_DOWN),
    **dict.fromkeys(UP_KEYS, CMD_UP),
    **dict.fromkeys(("l", "right", "enter"), CMD_ACTIVATE),
    **dict.fromkeys(("h", "left", "backspace"), CMD_BACK),
    "r": CMD_RELOAD,
    "m": CMD_MENU,
    "d": CMD_DETAIL,
    "w": CMD_DOWNLOAD,
    "o": CMD_OPEN,
    "e": CMD_EDIT,
    "q": CMD_QUIT,
    "escape": CMD_QUIT,
}
MENU_KEYS = {
    **dict.fromkeys(DOWN_KEYS, CMD_DOWN),
    **dict.fromkeys(UP_KEYS, CMD_UP),
    **dict.fromkeys(("enter", "l", "right"), CMD_ACTIVATE),
    **dict.fromkeys(("q", "escape"), CMD_CANCEL),
}
DETAIL_KEYS = {
    **dict.fromkeys(DOWN_KEYS, CMD_DOWN),
    **dict.fromkeys(UP_KEYS, CMD_UP),
    **dict.fromkeys(("q", "escape", "h", "left"), CMD_CANCEL),
}
KEYMAPS = {MODE_LIST: LIST_KEYS, MODE_MENU: MENU_KEYS, MODE_DETAIL: DETAIL_KEYS}


def command_for_key(mode: str, key: str) -> Optional[str]:
    return KEYMAPS.get(mode, {}).get(key)


def failure_status(what: str, exc: TransportError) -> str:
    if isinstance(exc, TransportCanceled):
        return f"{what} canceled due to timeout."
    return f"{what} failed: {exc}"


class EntryTable(DataTable, can_focus=False):
    """Listing table; keys are routed by the app, not the table."""


class S3Navigator(App):
    CSS = """
    #path-bar {
        height: 1;
        padding: 0 1;
        background: $panel;
        color: $text;
    }

    #body {
        height: 1fr;
        layers: base overlay;
    }

    #s3-table {
        height: 1fr;
        width: 1fr;
    }

    #detail {
        layer: overlay;
        dock: right;
        width: 50%;
        height: 100%;
        padding: 0 1;
        border: round $accent;
        background: $surface;
        display: none;
    }

    #menu {
        layer: overlay;
        dock: bottom;
        width: 100%;
        height: 50%;
        padding: 0 1;
        border: round $accent;
        background: $surface;
        display: none;
    }

    #status {
        height: 1;
        padding: 0 1;
        background: $panel;
        color: $text-muted;
    }
    """

    def __init__(
        self,
        service,
        root_entries: Iterable[Entry],
        hard_exit_grace: Optional[float] = None,
        download_dir: Optional[Path] = None,
    ) -> None:
        super().__init__()
        self.service = service
        self.download_dir = download_dir
        self.session = Session.start(root_entries)
        self._hard_exit_grace = hard_exit_grace
        self._rendered_node = None
        self._rendered_rows: Optional[tuple[RowView, ...]] = None

    def compose(self) -> ComposeResult:
        yield Static("", id="path-bar")
        with Container(id="body"):
            yield EntryTable(id="s3-table")
            yield Static("", id="detail")
            yield Static("", id="menu")
        yield Static("", id="status")

    def on_mount(self) -> None:
        self.path_bar = self.query_one("#path-bar", Static)
        self.s3_table = self.query_one("#s3-table", DataTable)
        self.detail_panel = self.query_one("#detail", Static)
        self.menu_panel = self.query_one("#menu", Static)
        self.status_line = self.query_one("#status", Static)
        self.s3_table.cursor_type = "row"
        self.s3_table.zebra_stripes = True
        self.s3_table.add_column("", width=2)
        self.s3_table.add_columns("Name", "Size", "Modified")
        self.render_view()

    async def on_key(self, event: events.Key) -> None:
        command = command_for_key(self.session.mode, event.key)
        if command is None:
            return
        event.stop()
        event.prevent_default()
        await self.handle_command(command)

    async def handle_command(self, command: str) -> None:
        self.session, effects = dispatch(self.session, command)
        for effect in effects:
            await self._run_effect(effect)
        self.render_view()

    async def _run_effect(self, effect: Effect) -> None:
        if isinstance(effect, LoadListing):
            await self._load_listing(effect)
            return
        if isinstance(effect, LoadDetail):
            await self._load_detail(effect)
            return
        if isinstance(effect, RunAction):
            message = await run_action(
                effect.action,
                self.service,
                effect.bucket,
                effect.entry,
                suspend=self.suspend,
                workdir=self.download_dir,
            )
            self.session = with_status(self.session, message)
            return
        if isinstance(effect, Quit):
            self._quit()
            return
        raise TypeError(f"Unknown effect {effect!r}")

    async def _load_listing(self, effect: LoadListing) -> None:
        try:
            if effect.bucket is None:
                entries = await self.service.list_buckets()
            else:
                entries = await self.service.list_entries(effect.bucket, effect.prefix)
        except TransportError as exc:
            logger.warning("Listing %r/%r failed: %s", effect.bucket, effect.prefix, exc)
            self.session = with_status(self.session, failure_status("list", exc))
            return
        self.session = complete_listing(self.session, effect, entries)

    async def _load_detail(self, effect: LoadDetail) -> None:
        try:
            metadata = await self.service.get_metadata(effect.bucket, effect.key)
        except TransportError as exc:
            logger.warning("Detail for %r/%r failed: %s", effect.bucket, effect.key, exc)
            self.session = with_status(self.session, failure_status("detail", exc))
            return
        self.session = complete_detail(self.session, metadata)

    def _quit(self) -> None:
        logger.info("Quit requested")
        if self._hard_exit_grace is not None:
            # Forced exit if the event loop has not unwound within the grace period.
            timer = threading.Timer(self._hard_exit_grace, os._exit, args=(0,))
            timer.daemon = True
            timer.start()
        self.exit(return_code=0)

    def render_view(self) -> None:
        view = build_view(self.session)
        self.path_bar.update(view.breadcrumb)
        self.status_line.update(view.status)
        node_changed = self.session.node is not self._rendered_node
        if node_changed or view.rows != self._rendered_rows:
            self._fill_table(view.rows)
            self._rendered_node = self.session.node
            self._rendered_rows = view.rows
        if view.rows:
            self.s3_table.move_cursor(row=view.cursor, animate=False)
        self._render_menu(view.menu)
        self._render_detail(view.detail)

    def _fill_table(self, rows: tuple[RowView, ...]) -> None:
        self.s3_table.clear()
        for index, row in enumerate(rows):
            if row.kind in (ENTRY_PREFIX, ENTRY_PARENT):
                name = Text(row.name, style="bold")
            else:
                name = Text(row.name)
            if row.size is None:
                size = Text(row.size_label)
            else:
                style = size_style(row.size)
                size = Text(row.size_label, style=style, justify="right")
            self.s3_table.add_row(
                row.icon, name, size, row.modified_label, key=str(index)
            )

    def _render_menu(self, menu: Optional[MenuView]) -> None:
        if menu is None:
            self.menu_panel.display = False
            return
        text = Text()
        for index, item in enumerate(menu.items):
            style = "reverse" if index == menu.index else ""
            line = f" [{item.hotkey}] {item.label:<10} {item.description} "
            text.append(line, style=style)
            text.append("\n")
        self.menu_panel.update(text)
        self.menu_panel.display = True

    def _render_detail(self, detail: Optional[DetailView]) -> None:
        if detail is None:
            self.detail_panel.display = False
            return
        text = Text(detail.title, style="bold")
        text.append("\n\n")
        for label, value in detail.visible_lines:
            text.append(f"{label}: ", style="bold")
            text.append(f"{value}\n")
        self.detail_panel.update(text)
        self.detail_panel.display = True


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="s3nav", description="Terminal S3 browser")
    parser.add_argument(
        "--mock",
        action="store_true",
        help="Use the local mock endpoint (http://localhost:9000) instead of AWS",
    )
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    log_path = configure_logging()
    endpoint = EndpointConfig.mock() if args.mock else EndpointConfig.aws()
    logger.info("Starting (mock=%s, log=%s)", endpoint.is_mock, log_path)
    service = S3Service(endpoint)
    try:
        root_entries = asyncio.run(service.list_buckets())
    except TransportError as exc:
        logger.error("Initial bucket listing failed: %s", exc)
        print(f"s3nav: {failure_status('list buckets', exc)}", file=sys.stderr)
        return 1
    app = S3Navigator(service, root_entries, hard_exit_grace=QUIT_GRACE_SECONDS)
    app.run()
    return app.return_code or 0


if __name__ == "__main__":
    sys.exit(main())
