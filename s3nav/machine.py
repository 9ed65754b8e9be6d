"""Interaction state machine.

``dispatch`` routes one command to the handler of the current mode and
returns the next session together with the effects the caller must run
(remote listings, metadata lookups, actions, quitting). Results of those
effects come back through ``complete_listing``, ``complete_detail`` and
``with_status``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Iterable, Optional, Union

from .formatting import detail_lines
from .models import (
    ENTRY_BUCKET,
    ENTRY_OBJECT,
    ENTRY_PARENT,
    Entry,
    ObjectMetadata,
    describe_entry,
    s3_uri,
)
from .tree import Node

logger = logging.getLogger(__name__)

MODE_LIST = "list"
MODE_MENU = "menu"
MODE_DETAIL = "detail"

CMD_DOWN = "down"
CMD_UP = "up"
CMD_ACTIVATE = "activate"
CMD_BACK = "back"
CMD_RELOAD = "reload"
CMD_MENU = "menu"
CMD_DETAIL = "detail"
CMD_DOWNLOAD = "download"
CMD_OPEN = "open"
CMD_EDIT = "edit"
CMD_CANCEL = "cancel"
CMD_QUIT = "quit"

ACTION_COMMANDS = (CMD_DOWNLOAD, CMD_OPEN, CMD_EDIT)

INVALID_ENTRY_STATUS = "Invalid entry type"


@dataclass(frozen=True)
class MenuItem:
    command: str
    hotkey: str
    label: str
    description: str


MENU_ITEMS = (
    MenuItem(CMD_DOWNLOAD, "w", "download", "download file."),
    MenuItem(CMD_OPEN, "o", "open", "open file."),
    MenuItem(CMD_EDIT, "e", "edit", "open editor by file."),
)


@dataclass(frozen=True)
class LoadListing:
    """Fetch a listing; ``bucket=None`` lists buckets.

    With ``descend_key`` set the listing becomes a new child of the current
    node, otherwise it refreshes the current node.
    """

    bucket: Optional[str]
    prefix: str = ""
    descend_key: Optional[str] = None


@dataclass(frozen=True)
class LoadDetail:
    bucket: str
    key: str


@dataclass(frozen=True)
class RunAction:
    action: str
    bucket: str
    entry: Entry


@dataclass(frozen=True)
class Quit:
    pass


Effect = Union[LoadListing, LoadDetail, RunAction, Quit]


@dataclass(frozen=True)
class Session:
    root: Node
    node: Node
    mode: str = MODE_LIST
    bucket: Optional[str] = None
    menu_index: int = 0
    menu_target: Optional[Entry] = None
    detail: Optional[ObjectMetadata] = None
    detail_offset: int = 0
    status: str = ""

    @classmethod
    def start(cls, root_entries: Iterable[Entry]) -> Session:
        root = Node("", root_entries)
        return cls(root=root, node=root)


def dispatch(session: Session, command: str) -> tuple[Session, list[Effect]]:
    if session.mode == MODE_LIST:
        return _list_command(session, command)
    if session.mode == MODE_MENU:
        return _menu_command(session, command)
    if session.mode == MODE_DETAIL:
        return _detail_command(session, command)
    raise ValueError(f"Unknown mode {session.mode!r}")


def complete_listing(
    session: Session, effect: LoadListing, entries: Iterable[Entry]
) -> Session:
    node = session.node
    if effect.descend_key is None:
        node.refresh(entries)
        logger.debug("Reloaded %r (%d entries)", node.key, len(node.entries))
        return session
    child = node.descend(effect.descend_key, entries)
    logger.debug("Load next. path:%s", s3_uri(*child.location()))
    return replace(session, node=child, bucket=effect.bucket)


def complete_detail(session: Session, metadata: ObjectMetadata) -> Session:
    return replace(session, mode=MODE_DETAIL, detail=metadata, detail_offset=0)


def with_status(session: Session, message: str) -> Session:
    return replace(session, status=message)


def detail_line_count(metadata: Optional[ObjectMetadata]) -> int:
    if metadata is None:
        return 0
    return len(detail_lines(metadata))


def _list_command(session: Session, command: str) -> tuple[Session, list[Effect]]:
    node = session.node
    if command == CMD_DOWN:
        node.move_cursor(1)
        return session, []
    if command == CMD_UP:
        node.move_cursor(-1)
        return session, []
    if command == CMD_ACTIVATE:
        return _activate(session, node.cursor_entry)
    if command == CMD_BACK:
        return _ascend(session), []
    if command == CMD_RELOAD:
        return session, [_reload_effect(session)]
    if command == CMD_MENU:
        return replace(
            session, mode=MODE_MENU, menu_index=0, menu_target=node.cursor_entry
        ), []
    if command == CMD_DETAIL:
        return _open_detail(session, node.cursor_entry)
    if command in ACTION_COMMANDS:
        return _action(session, command, node.cursor_entry)
    if command == CMD_QUIT:
        return session, [Quit()]
    return session, []


def _menu_command(session: Session, command: str) -> tuple[Session, list[Effect]]:
    if command == CMD_DOWN:
        index = (session.menu_index + 1) % len(MENU_ITEMS)
        return replace(session, menu_index=index), []
    if command == CMD_UP:
        index = (session.menu_index - 1) % len(MENU_ITEMS)
        return replace(session, menu_index=index), []
    if command == CMD_CANCEL:
        return _back_to_list(session), []
    if command == CMD_ACTIVATE:
        item = MENU_ITEMS[session.menu_index]
        target = session.menu_target
        return _action(_back_to_list(session), item.command, target)
    return session, []


def _detail_command(session: Session, command: str) -> tuple[Session, list[Effect]]:
    if command in (CMD_DOWN, CMD_UP):
        delta = 1 if command == CMD_DOWN else -1
        last = max(0, detail_line_count(session.detail) - 1)
        offset = max(0, min(session.detail_offset + delta, last))
        return replace(session, detail_offset=offset), []
    if command == CMD_CANCEL:
        return _back_to_list(session), []
    return session, []


def _back_to_list(session: Session) -> Session:
    return replace(
        session,
        mode=MODE_LIST,
        menu_index=0,
        menu_target=None,
        detail=None,
        detail_offset=0,
    )


def _activate(
    session: Session, entry: Optional[Entry]
) -> tuple[Session, list[Effect]]:
    if entry is None:
        return session, []
    if entry.is_descendable:
        if entry.kind == ENTRY_BUCKET:
            bucket, prefix = entry.name, ""
        else:
            bucket, prefix = session.bucket, entry.name
        cached = session.node.child(entry.name)
        if cached is None:
            return session, [LoadListing(bucket, prefix, descend_key=entry.name)]
        logger.debug("Move next. path:%s", s3_uri(*cached.location()))
        return replace(session, node=cached, bucket=bucket), []
    if entry.kind == ENTRY_PARENT:
        return _ascend(session), []
    if entry.kind == ENTRY_OBJECT:
        return session, []
    raise ValueError(f"Unknown entry kind {entry.kind!r}")


def _ascend(session: Session) -> Session:
    if session.node.is_root:
        return session
    parent = session.node.ascend()
    logger.debug("Load prev. path:%s", s3_uri(*parent.location()))
    return replace(session, node=parent)


def _reload_effect(session: Session) -> LoadListing:
    bucket, prefix = session.node.location()
    return LoadListing(bucket, prefix)


def _open_detail(
    session: Session, entry: Optional[Entry]
) -> tuple[Session, list[Effect]]:
    if entry is None:
        return with_status(session, "Nothing to inspect"), []
    if entry.kind == ENTRY_OBJECT and session.bucket:
        return session, [LoadDetail(session.bucket, entry.name)]
    _, prefix = session.node.location()
    metadata = describe_entry(session.bucket, entry, prefix)
    return complete_detail(session, metadata), []


def _action(
    session: Session, command: str, entry: Optional[Entry]
) -> tuple[Session, list[Effect]]:
    if entry is None or not entry.is_object or not session.bucket:
        logger.info("Rejected %s on %r: invalid entry type", command, entry)
        return with_status(session, INVALID_ENTRY_STATUS), []
    return session, [RunAction(command, session.bucket, entry)]
