"""Enumeration of manifest files, optionally watching them for changes."""

from __future__ import annotations

import logging
import os
import queue
import stat
from collections.abc import Iterator
from dataclasses import dataclass, field

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

_log = logging.getLogger(__name__)

_MANIFEST_EXTENSIONS = frozenset({".json", ".yaml"})
_WATCHED_EVENTS = frozenset({"created", "modified", "moved", "deleted"})
_WATCH_DEPRECATION = """NOTICE!
-----------------------------------------------------------------
Watch mode is deprecated and unsupported, and will be removed in
a future release.
-----------------------------------------------------------------
"""


@dataclass
class FilenameOptions:
    """Which files or directories to read manifests from."""

    filenames: list[str] = field(default_factory=list)
    recursive: bool = False
    watch: bool = False


@dataclass
class SelectorOptions:
    """A label query used to filter manifest documents."""

    selector: str = ""


def _ext(path: str) -> str:
    name = path.rsplit(os.sep, 1)[-1]
    dot = name.rfind(".")
    return name[dot:] if dot >= 0 else ""


class _Watcher(FileSystemEventHandler):
    def __init__(self) -> None:
        super().__init__()
        self._events: queue.Queue[str] = queue.Queue()
        self._dirs: set[str] = set()
        self._files: set[str] = set()
        self._scheduled: set[str] = set()
        self._observer = Observer()
        self._observer.start()

    def add_dir(self, path: str) -> None:
        absolute = os.path.abspath(path)
        self._dirs.add(absolute)
        self._schedule(absolute)

    def add_file(self, path: str) -> None:
        absolute = os.path.abspath(path)
        self._files.add(absolute)
        self._schedule(os.path.dirname(absolute))

    def _schedule(self, directory: str) -> None:
        if directory not in self._scheduled:
            self._observer.schedule(self, directory, recursive=False)
            self._scheduled.add(directory)

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory or event.event_type not in _WATCHED_EVENTS:
            return
        for raw in (event.src_path, getattr(event, "dest_path", "")):
            if not raw:
                continue
            path = os.fsdecode(raw)
            absolute = os.path.abspath(path)
            if absolute in self._files or os.path.dirname(absolute) in self._dirs:
                self._events.put(path)

    def changes(self) -> Iterator[str]:
        while True:
            path = self._events.get()
            if _ext(path) in _MANIFEST_EXTENSIONS:
                yield path

    def close(self) -> None:
        self._observer.stop()
        self._observer.join()


def _visit(path: str, root: str, recursive: bool, watcher: _Watcher | None) -> Iterator[str]:
    info = os.lstat(path)
    if stat.S_ISDIR(info.st_mode):
        if path != root and not recursive:
            return
        if watcher is not None:
            watcher.add_dir(path)
        for name in sorted(os.listdir(path)):
            child = os.path.normpath(os.path.join(path, name))
            yield from _visit(child, root, recursive, watcher)
        return
    if path != root:
        if _ext(path) not in _MANIFEST_EXTENSIONS:
            return
    elif watcher is not None:
        watcher.add_file(path)
    yield path


def _walk(root: str, recursive: bool, watcher: _Watcher | None) -> Iterator[str]:
    if root == "-":
        yield root
        return
    yield from _visit(root, root, recursive, watcher)


def enumerate_files(fo: FilenameOptions) -> Iterator[str]:
    """Yield the manifest files named by ``fo``.

    Explicit files are yielded whatever their extension; files found in
    directories only when they end in ``.json`` or ``.yaml``. ``-`` stands
    for standard input and is passed through. In watch mode the generator
    keeps yielding files as they change, until it is closed.
    """
    if not fo.watch:
        for root in fo.filenames:
            yield from _walk(root, fo.recursive, None)
        return

    _log.warning(_WATCH_DEPRECATION)
    watcher = _Watcher()
    try:
        for root in fo.filenames:
            yield from _walk(root, fo.recursive, watcher)
        yield from watcher.changes()
    finally:
        watcher.close()