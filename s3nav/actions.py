"""Download, open and edit for the object under the cursor.

Every action first copies the object to a local file. Failures are turned
into status-line text here; navigation state is never touched.
"""

from __future__ import annotations

import logging
import os
import platform
import shlex
import shutil
import subprocess
import tempfile
from contextlib import nullcontext
from pathlib import Path
from typing import Callable, ContextManager, Optional

from .machine import CMD_DOWNLOAD, CMD_EDIT, CMD_OPEN, INVALID_ENTRY_STATUS
from .models import Entry, basename, s3_uri
from .s3 import TransportCanceled, TransportFailed

logger = logging.getLogger(__name__)

DEFAULT_EDITOR = "vi"

SuspendFactory = Callable[[], ContextManager]


class LocalIOFailed(Exception):
    """Raised when the destination file cannot be created or written."""


class LauncherFailed(Exception):
    """Raised when the viewer or editor cannot be started."""


def resolve_destination(
    action: str, key: str, workdir: Optional[Path] = None
) -> Path:
    name = basename(key) or "download"
    if action == CMD_DOWNLOAD:
        base = Path(workdir) if workdir is not None else Path.cwd()
        return base / name
    try:
        base = Path(tempfile.mkdtemp(prefix="s3nav-"))
    except OSError as exc:
        raise LocalIOFailed(f"failed to create temporary directory, {exc}") from exc
    return base / name


async def fetch_to_path(service, bucket: str, key: str, destination: Path) -> int:
    """Stream ``s3://bucket/key`` into *destination*.

    The file is left in place when the transfer fails part way.
    """
    try:
        handle = open(destination, "wb")
    except OSError as exc:
        raise LocalIOFailed(f"failed to create {destination}, {exc}") from exc
    with handle:
        try:
            return await service.fetch_object(bucket, key, handle)
        except OSError as exc:
            raise LocalIOFailed(f"failed to write {destination}, {exc}") from exc


def open_with_viewer(path: Path) -> None:
    system = platform.system()
    try:
        if system == "Windows":
            os.startfile(str(path))  # type: ignore[attr-defined]
            return
        opener = "open" if system == "Darwin" else "xdg-open"
        subprocess.run(
            [opener, str(path)],
            check=True,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
    except (OSError, subprocess.CalledProcessError) as exc:
        raise LauncherFailed(f"failed to open {path}, {exc}") from exc


def editor_command() -> list[str]:
    raw = os.environ.get("VISUAL") or os.environ.get("EDITOR") or DEFAULT_EDITOR
    command = shlex.split(raw)
    return command or [DEFAULT_EDITOR]


def open_in_editor(path: Path, suspend: SuspendFactory = nullcontext) -> int:
    """Run the editor on *path* with the terminal UI released."""
    command = [*editor_command(), str(path)]
    with suspend():
        try:
            completed = subprocess.run(command, check=False)
        except OSError as exc:
            raise LauncherFailed(f"failed to launch {command[0]}, {exc}") from exc
    return completed.returncode


async def run_action(
    action: str,
    service,
    bucket: str,
    entry: Entry,
    suspend: SuspendFactory = nullcontext,
    workdir: Optional[Path] = None,
    viewer: Callable[[Path], None] = open_with_viewer,
    editor: Callable[[Path, SuspendFactory], int] = open_in_editor,
) -> str:
    """Run *action* on *entry* and return the status line to show."""
    if action not in (CMD_DOWNLOAD, CMD_OPEN, CMD_EDIT):
        raise ValueError(f"Unknown action {action!r}")
    if not entry.is_object:
        return INVALID_ENTRY_STATUS
    uri = s3_uri(bucket, entry.name)
    destination: Optional[Path] = None
    try:
        destination = resolve_destination(action, entry.name, workdir)
        written = await fetch_to_path(service, bucket, entry.name, destination)
    except (TransportCanceled, TransportFailed, LocalIOFailed) as exc:
        if action != CMD_DOWNLOAD and destination is not None:
            _discard_scratch(destination.parent)
        return _failure_status(action, uri, exc)
    logger.info("Fetched %s to %s (%d bytes)", uri, destination, written)

    if action == CMD_DOWNLOAD:
        return f"download complete. {uri}"
    try:
        if action == CMD_OPEN:
            viewer(destination)
        else:
            editor(destination, suspend)
    except LauncherFailed as exc:
        logger.error("%s of %s failed: %s", action, uri, exc)
        return f"{action} failed. {exc}"
    return f"{action}. {uri}"


def _failure_status(action: str, uri: str, exc: Exception) -> str:
    if isinstance(exc, TransportCanceled):
        logger.warning("%s of %s canceled: %s", action, uri, exc)
        return f"{action} canceled due to timeout. {uri}"
    if isinstance(exc, TransportFailed):
        logger.warning("%s of %s failed: %s", action, uri, exc)
        return f"{action} failed. {uri}: {exc}"
    logger.error("%s of %s failed: %s", action, uri, exc)
    return f"{action} failed. {exc}"


def _discard_scratch(directory: Path) -> None:
    try:
        shutil.rmtree(directory)
    except OSError as exc:
        logger.warning("Could not remove %s: %s", directory, exc)
