"""
Watch mode for ``gqlschemagen generate --watch``.

A watchdog observer reports file system events from its own thread. Events
for Go sources are collected by a ChangeDebouncer, and the schema is
regenerated once the sources have been quiet for the debounce delay, so an
editor saving several files triggers a single run.
"""

import os
import threading
import time
from typing import Callable, List, Optional, Sequence, Set

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .core.config import GeneratorConfig
from .core.generator import GenerationResult, GeneratorError
from .golang.scanner import SKIPPED_DIRS, has_wildcard, split_pattern
from .logging_config import get_logger
from .pipeline import generate_schema

logger = get_logger(__name__)

DEFAULT_DELAY = 0.3

ResultCallback = Callable[[GenerationResult, List[str]], None]


class WatchError(GeneratorError):
    """Raised when watch mode has nothing to watch."""

    pass


def is_watched_source(path: str, root: str) -> bool:
    """
    Whether a changed path can affect the generated schema.

    Only ``.go`` files that are not tests or hidden files count, and only
    when no directory between ``root`` and the file is hidden, starts with
    an underscore or is one of the directories the scanner skips.
    """
    name = os.path.basename(path)
    if not name.endswith(".go") or name.endswith("_test.go") or name.startswith("."):
        return False

    directory = os.path.dirname(os.path.abspath(path))
    rel = os.path.relpath(directory, os.path.abspath(root))
    if rel == os.pardir or rel.startswith(os.pardir + os.sep):
        rel = directory
    parts = [p for p in rel.replace(os.sep, "/").split("/") if p and p != os.curdir]
    return not any(p.startswith((".", "_")) or p in SKIPPED_DIRS for p in parts)


def watch_roots(packages: Sequence[str]) -> List[str]:
    """
    Directories to observe for a list of package specifiers.

    Patterns are watched from their literal base directory, files from
    their directory. Missing directories and directories nested under
    another root are dropped.
    """
    roots: List[str] = []
    for spec in packages:
        if has_wildcard(spec):
            root = split_pattern(spec)[0]
        elif os.path.isfile(spec):
            root = os.path.dirname(spec) or os.curdir
        else:
            root = spec
        root = os.path.abspath(root)
        if not os.path.isdir(root):
            logger.warning("Not watching %s: directory does not exist", root)
            continue
        if root not in roots:
            roots.append(root)

    def nested(root: str) -> bool:
        return any(other != root and root.startswith(other.rstrip(os.sep) + os.sep) for other in roots)

    return [root for root in roots if not nested(root)]


class ChangeDebouncer:
    """Collects changed paths until no change arrived for ``delay`` seconds."""

    def __init__(self, delay: float = DEFAULT_DELAY, clock: Callable[[], float] = time.monotonic):
        self.delay = delay
        self.clock = clock
        self._lock = threading.Lock()
        self._pending: Set[str] = set()
        self._last_change = 0.0

    def push(self, path: str) -> None:
        with self._lock:
            self._pending.add(path)
            self._last_change = self.clock()

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    def take(self) -> List[str]:
        """
        Return and clear the pending paths once they have settled.

        Returns:
            Sorted changed paths, or an empty list while changes are still
            arriving or nothing changed
        """
        with self._lock:
            if not self._pending or self.clock() - self._last_change < self.delay:
                return []
            paths = sorted(self._pending)
            self._pending.clear()
            return paths


class SourceChangeHandler(FileSystemEventHandler):
    """Forwards writes to Go sources below one root to a debouncer."""

    def __init__(self, root: str, debouncer: ChangeDebouncer):
        super().__init__()
        self.root = root
        self.debouncer = debouncer

    def _push(self, path) -> None:
        path = os.fsdecode(path)
        if path and is_watched_source(path, self.root):
            self.debouncer.push(path)

    # opened and closed events are not forwarded; generation reads the sources

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._push(event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._push(event.src_path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._push(event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._push(event.src_path)
            self._push(event.dest_path)


class SchemaWatcher:
    """
    Regenerates the schema whenever watched Go sources change.

    Example:
        watcher = SchemaWatcher(config, on_result=report)
        watcher.run()  # blocks until stop() or KeyboardInterrupt
    """

    def __init__(
        self,
        config: GeneratorConfig,
        delay: float = DEFAULT_DELAY,
        on_result: Optional[ResultCallback] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config
        self.debouncer = ChangeDebouncer(delay, clock)
        self.on_result = on_result
        self.roots = watch_roots(config.packages)
        self._observer: Optional[Observer] = None
        self._stopped = threading.Event()

    def start(self) -> None:
        """
        Start observing the package directories.

        Raises:
            WatchError: If none of the configured package directories exist
        """
        if not self.roots:
            raise WatchError("Nothing to watch: no configured package directory exists")

        observer = Observer()
        for root in self.roots:
            observer.schedule(SourceChangeHandler(root, self.debouncer), root, recursive=True)
        observer.start()
        self._observer = observer
        self._stopped.clear()
        logger.info("Watching %s", ", ".join(self.roots))

    def stop(self) -> None:
        self._stopped.set()
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5.0)
            self._observer = None
            logger.info("Stopped watching")

    def poll(self) -> Optional[GenerationResult]:
        """
        Regenerate if pending changes have settled.

        Returns:
            Result of the regeneration, or None when nothing was due
        """
        changed = self.debouncer.take()
        if not changed:
            return None

        logger.info("Regenerating after %d changed file(s)", len(changed))
        result = generate_schema(self.config)
        if self.on_result is not None:
            self.on_result(result, changed)
        return result

    def run(self, interval: float = 0.1) -> None:
        """Block and regenerate on changes until stop() is called."""
        self.start()
        try:
            while not self._stopped.wait(interval):
                self.poll()
        finally:
            self.stop()
