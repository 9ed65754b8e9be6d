from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

ENTRY_BUCKET = "bucket"
ENTRY_PARENT = "parent"
ENTRY_PREFIX = "prefix"
ENTRY_OBJECT = "object"
ENTRY_KINDS = (ENTRY_BUCKET, ENTRY_PARENT, ENTRY_PREFIX, ENTRY_OBJECT)

PARENT_NAME = ".."


@dataclass(frozen=True)
class Entry:
    """One row of a listing.

    ``name`` is the full bucket name, key or key prefix; display trimming
    happens in the view. ``size`` is set exactly when the entry is an object.
    """

    kind: str
    name: str
    modified_at: Optional[datetime] = None
    size: Optional[int] = None

    def __post_init__(self) -> None:
        if self.kind not in ENTRY_KINDS:
            raise ValueError(
                f"Invalid entry kind {self.kind!r}; expected one of {ENTRY_KINDS}"
            )
        if self.kind == ENTRY_OBJECT and self.size is None:
            raise ValueError(f"Object entry {self.name!r} requires a size")
        if self.kind != ENTRY_OBJECT and self.size is not None:
            raise ValueError(f"Only object entries carry a size, got {self.kind!r}")

    @property
    def is_object(self) -> bool:
        return self.kind == ENTRY_OBJECT

    @property
    def is_descendable(self) -> bool:
        return self.kind in (ENTRY_BUCKET, ENTRY_PREFIX)


def bucket_entry(name: str, created: Optional[datetime] = None) -> Entry:
    return Entry(kind=ENTRY_BUCKET, name=name, modified_at=created)


def parent_entry() -> Entry:
    return Entry(kind=ENTRY_PARENT, name=PARENT_NAME)


def prefix_entry(prefix: str) -> Entry:
    return Entry(kind=ENTRY_PREFIX, name=prefix)


def object_entry(
    key: str, size: int, modified_at: Optional[datetime] = None
) -> Entry:
    return Entry(kind=ENTRY_OBJECT, name=key, modified_at=modified_at, size=size)


@dataclass(frozen=True)
class ObjectMetadata:
    """Snapshot shown in the detail panel."""

    bucket: str
    key: str
    kind: str = ENTRY_OBJECT
    size: Optional[int] = None
    last_modified: Optional[datetime] = None
    content_type: Optional[str] = None
    etag: Optional[str] = None
    storage_class: Optional[str] = None
    metadata: dict[str, str] = field(default_factory=dict)

    @property
    def uri(self) -> str:
        return s3_uri(self.bucket, self.key)


def describe_entry(
    bucket: Optional[str], entry: Entry, prefix: str = ""
) -> ObjectMetadata:
    """Build detail metadata from the listing alone, without a remote call.

    *prefix* is the listing the entry was taken from; the parent entry is
    described as the location it leads back to.
    """
    if entry.kind == ENTRY_BUCKET:
        return ObjectMetadata(
            bucket=entry.name,
            key="",
            kind=entry.kind,
            last_modified=entry.modified_at,
        )
    if entry.kind == ENTRY_PARENT:
        if not prefix:
            return ObjectMetadata(bucket="", key="", kind=entry.kind)
        return ObjectMetadata(
            bucket=bucket or "", key=parent_prefix(prefix), kind=entry.kind
        )
    return ObjectMetadata(
        bucket=bucket or "",
        key=entry.name,
        kind=entry.kind,
        size=entry.size,
        last_modified=entry.modified_at,
    )


def s3_uri(bucket: Optional[str], key: str = "") -> str:
    if not bucket:
        return "s3://"
    if not key:
        return f"s3://{bucket}"
    return f"s3://{bucket}/{key}"


def parent_prefix(prefix: str) -> str:
    head = prefix.rstrip("/").rpartition("/")[0]
    return f"{head}/" if head else ""


def basename(key: str) -> str:
    return key.rstrip("/").rsplit("/", 1)[-1]
