from __future__ import annotations

from datetime import datetime
from typing import Optional

from .models import (
    ENTRY_BUCKET,
    ENTRY_OBJECT,
    ENTRY_PARENT,
    ENTRY_PREFIX,
    ObjectMetadata,
)

KIB = 1024
SIZE_UNITS = ("KB", "MB", "GB", "TB", "PB")

# Upper bounds, smallest first; anything larger is "bold red".
SIZE_STYLES = (
    (KIB**2, "green"),
    (100 * KIB**2, "#ffd700"),
    (KIB**3, "#ff8c00"),
    (10 * KIB**3, "red"),
)

KIND_LABELS = {
    ENTRY_BUCKET: "bucket",
    ENTRY_PARENT: "parent",
    ENTRY_PREFIX: "directory",
    ENTRY_OBJECT: "object",
}


def format_size(size: Optional[int]) -> str:
    if size is None:
        return ""
    if size < KIB:
        return f"{size} B"
    value = size / KIB
    for unit in SIZE_UNITS[:-1]:
        if value < KIB:
            return f"{value:.1f} {unit}"
        value /= KIB
    return f"{value:.1f} {SIZE_UNITS[-1]}"


def size_style(size: int) -> str:
    for limit, style in SIZE_STYLES:
        if size < limit:
            return style
    return "bold red"


def format_time(value: Optional[datetime]) -> str:
    if value is None:
        return ""
    return value.strftime("%Y-%m-%d %H:%M")


def display_segment(name: str, parent_key: str) -> str:
    if parent_key and name.startswith(parent_key):
        name = name[len(parent_key) :]
    return name.strip("/")


def detail_lines(metadata: ObjectMetadata) -> list[tuple[str, str]]:
    lines = [
        ("Kind", KIND_LABELS.get(metadata.kind, metadata.kind)),
        ("Bucket", metadata.bucket or "-"),
        ("Key", metadata.key or "-"),
        ("URI", metadata.uri),
    ]
    if metadata.size is not None:
        lines.append(("Size", f"{format_size(metadata.size)} ({metadata.size} bytes)"))
    lines.append(("Last modified", format_time(metadata.last_modified) or "-"))
    if metadata.kind == ENTRY_OBJECT:
        lines.append(("Content type", metadata.content_type or "-"))
        lines.append(("ETag", metadata.etag or "-"))
        lines.append(("Storage class", metadata.storage_class or "-"))
    for name, value in sorted(metadata.metadata.items()):
        lines.append((f"x-amz-meta-{name}", value))
    return lines
