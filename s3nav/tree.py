"""Navigation tree: a lazily expanded cache of visited listing levels.

Each :class:`Node` holds the entries last fetched for one level and the
row highlighted in it. Nodes own their children; the parent link is a weak
reference used only for ascent and scope decisions. The tree never talks
to the store: callers fetch listings and hand them in.
"""

from __future__ import annotations

import weakref
from typing import Iterable, Optional

from .models import Entry


class NoParent(Exception):
    """Raised when ascending from the root node."""


class CacheMiss(KeyError):
    """Raised when descending into an unseen key without a listing."""


class Node:
    def __init__(
        self,
        key: str,
        entries: Iterable[Entry] = (),
        parent: Optional[Node] = None,
    ) -> None:
        self.key = key
        self._parent = weakref.ref(parent) if parent is not None else None
        self._children: dict[str, Node] = {}
        self._entries: tuple[Entry, ...] = tuple(entries)
        self._cursor = 0

    def __repr__(self) -> str:
        return f"Node(key={self.key!r}, entries={len(self._entries)})"

    @property
    def parent(self) -> Optional[Node]:
        if self._parent is None:
            return None
        return self._parent()

    @property
    def entries(self) -> tuple[Entry, ...]:
        return self._entries

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def cursor_entry(self) -> Optional[Entry]:
        if not self._entries:
            return None
        return self._entries[self._cursor]

    @property
    def children(self) -> dict[str, Node]:
        return dict(self._children)

    @property
    def is_root(self) -> bool:
        return self._parent is None

    @property
    def is_container_root(self) -> bool:
        parent = self.parent
        return parent is not None and parent.is_root

    def child(self, key: str) -> Optional[Node]:
        return self._children.get(key)

    def descend(self, key: str, entries: Optional[Iterable[Entry]] = None) -> Node:
        """Return the child for *key*, attaching a new one on first visit.

        A cached child is returned as-is and *entries* is ignored. For an
        unseen key the caller must supply the freshly fetched *entries*.
        """
        cached = self._children.get(key)
        if cached is not None:
            return cached
        if entries is None:
            raise CacheMiss(key)
        child = Node(key, entries, parent=self)
        self._children[key] = child
        return child

    def ascend(self) -> Node:
        parent = self.parent
        if parent is None:
            raise NoParent(f"node {self.key!r} is the root")
        return parent

    def refresh(self, entries: Iterable[Entry]) -> None:
        self._entries = tuple(entries)
        self._cursor = self._clamp(self._cursor)

    def move_cursor(self, delta: int) -> int:
        self._cursor = self._clamp(self._cursor + delta)
        return self._cursor

    def path(self) -> list[str]:
        keys: list[str] = []
        node: Optional[Node] = self
        while node is not None and not node.is_root:
            keys.append(node.key)
            node = node.parent
        keys.reverse()
        return keys

    def location(self) -> tuple[Optional[str], str]:
        """Return the bucket and prefix this node lists; the root has neither."""
        keys = self.path()
        if not keys:
            return None, ""
        return keys[0], keys[-1] if len(keys) > 1 else ""

    def _clamp(self, index: int) -> int:
        if not self._entries:
            return 0
        return max(0, min(index, len(self._entries) - 1))
