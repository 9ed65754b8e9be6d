"""What the screen shows, derived from a session.

The app renders a :class:`ScreenView` and makes no decisions of its own.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .formatting import detail_lines, display_segment, format_size, format_time
from .machine import MENU_ITEMS, MODE_DETAIL, MODE_MENU, MenuItem, Session
from .models import ENTRY_BUCKET, ENTRY_PARENT, ENTRY_PREFIX, Entry, s3_uri


@dataclass(frozen=True)
class RowView:
    kind: str
    icon: str
    name: str
    size: Optional[int]
    size_label: str
    modified_label: str


@dataclass(frozen=True)
class MenuView:
    items: tuple[MenuItem, ...]
    index: int


@dataclass(frozen=True)
class DetailView:
    title: str
    lines: tuple[tuple[str, str], ...]
    offset: int

    @property
    def visible_lines(self) -> tuple[tuple[str, str], ...]:
        return self.lines[self.offset :]


@dataclass(frozen=True)
class ScreenView:
    breadcrumb: str
    rows: tuple[RowView, ...]
    cursor: int
    mode: str
    status: str
    menu: Optional[MenuView] = None
    detail: Optional[DetailView] = None


def row_icon(entry: Entry) -> str:
    if entry.kind == ENTRY_BUCKET:
        return "🪣"
    if entry.kind == ENTRY_PREFIX:
        return "📁"
    if entry.kind == ENTRY_PARENT:
        return "↩"
    return ""


def row_view(entry: Entry, parent_key: str) -> RowView:
    if entry.kind == ENTRY_PREFIX:
        name = f"{display_segment(entry.name, parent_key)}/"
    elif entry.kind == ENTRY_BUCKET or entry.kind == ENTRY_PARENT:
        name = entry.name
    else:
        name = display_segment(entry.name, parent_key)
    return RowView(
        kind=entry.kind,
        icon=row_icon(entry),
        name=name,
        size=entry.size,
        size_label=format_size(entry.size),
        modified_label=format_time(entry.modified_at),
    )


def breadcrumb(session: Session) -> str:
    bucket, prefix = session.node.location()
    if bucket is None:
        return s3_uri(None)
    if not prefix:
        return f"{s3_uri(bucket)}/"
    return s3_uri(bucket, prefix)


def build_view(session: Session) -> ScreenView:
    node = session.node
    _, parent_key = node.location()
    rows = tuple(row_view(entry, parent_key) for entry in node.entries)
    menu = None
    detail = None
    if session.mode == MODE_MENU:
        menu = MenuView(items=MENU_ITEMS, index=session.menu_index)
    if session.mode == MODE_DETAIL and session.detail is not None:
        detail = DetailView(
            title=session.detail.uri,
            lines=tuple(detail_lines(session.detail)),
            offset=session.detail_offset,
        )
    return ScreenView(
        breadcrumb=breadcrumb(session),
        rows=rows,
        cursor=node.cursor,
        mode=session.mode,
        status=session.status,
        menu=menu,
        detail=detail,
    )
