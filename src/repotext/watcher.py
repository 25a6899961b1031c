"""
Watch mode: regenerate the artifact whenever a watched file changes.

Filesystem events are consumed as a stream (``poll``) on the calling
thread. A burst of events collapses into one regeneration fired
``debounceMs`` after the last event, and regenerations never overlap.
"""

from __future__ import annotations

import logging
import os
import queue
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Sequence

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .config import Options
from .core import GlobSpec, WatchError, artifact_patterns, build_spec, normalize_path
from .dumper import TextDumper

logger = logging.getLogger(__name__)

ADD = "add"
CHANGE = "change"
UNLINK = "unlink"
ERROR = "error"

# Never watched, whatever the configuration says.
WATCH_EXCLUDES = ("**/node_modules/**", "**/.git/**")

_VERBS = {ADD: "added", CHANGE: "changed", UNLINK: "removed"}


@dataclass(frozen=True)
class ChangeEvent:
    kind: str
    path: str = ""
    error: Optional[BaseException] = None


class Debouncer:
    """Idle/Pending timer: every trigger pushes the deadline out again."""

    def __init__(self, wait: float) -> None:
        self.wait = wait
        self.deadline: Optional[float] = None

    @property
    def pending(self) -> bool:
        return self.deadline is not None

    def trigger(self, now: float) -> None:
        self.deadline = now + self.wait

    def remaining(self, now: float) -> Optional[float]:
        deadline = self.deadline
        if deadline is None:
            return None
        return max(0.0, deadline - now)

    def fire(self, now: float) -> bool:
        """True exactly once per burst, when the deadline has passed."""
        deadline = self.deadline
        if deadline is None or now < deadline:
            return False
        self.deadline = None
        return True

    def cancel(self) -> None:
        self.deadline = None


class ScopedEventHandler(FileSystemEventHandler):
    """Translates watchdog events under ``root`` into in-scope ChangeEvents."""

    def __init__(
        self,
        root: Path,
        include: Sequence[str],
        exclude: Sequence[str],
        emit: Callable[[ChangeEvent], None],
    ) -> None:
        super().__init__()
        self.root = root
        self._include = GlobSpec(include)
        self._exclude = build_spec(exclude)
        self._emit = emit

    def in_scope(self, rel: str) -> bool:
        if not rel or rel.startswith("../"):
            return False
        return self._include.match_file(rel) and not self._exclude.match_file(rel)

    def _send(self, kind: str, path: str) -> None:
        rel = normalize_path(os.path.relpath(os.fsdecode(path), self.root))
        if self.in_scope(rel):
            self._emit(ChangeEvent(kind, rel))

    def dispatch(self, event: FileSystemEvent) -> None:
        try:
            super().dispatch(event)
        except Exception as e:
            self._emit(ChangeEvent(ERROR, error=e))

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._send(ADD, event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._send(CHANGE, event.src_path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._send(UNLINK, event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._send(UNLINK, event.src_path)
            self._send(ADD, event.dest_path)


_CLOSED = object()


class WatchdogEventSource:
    """A watchdog ``Observer`` exposed as a pollable stream of ChangeEvents."""

    def __init__(
        self,
        root: Path,
        include: Sequence[str],
        exclude: Sequence[str],
        observer_factory: Callable[[], Observer] = Observer,
    ) -> None:
        self.root = Path(root).absolute()
        self._queue: "queue.Queue[object]" = queue.Queue()
        self.handler = ScopedEventHandler(self.root, include, exclude, self._queue.put)
        self._observer_factory = observer_factory
        self._observer = None

    def start(self) -> None:
        observer = self._observer_factory()
        try:
            observer.schedule(self.handler, str(self.root), recursive=True)
            observer.start()
        except OSError as e:
            raise WatchError(f"Could not watch '{self.root}': {e}") from e
        self._observer = observer

    def poll(self, timeout: Optional[float] = None) -> Optional[ChangeEvent]:
        """Next event, or None on timeout or once the source is closed."""
        try:
            item = self._queue.get(timeout=timeout)
        except queue.Empty:
            return None
        if item is _CLOSED:
            self._queue.put(_CLOSED)
            return None
        return item  # type: ignore[return-value]

    def close(self) -> None:
        if self._observer is not None:
            self._observer.stop()
            self._observer.join()
            self._observer = None
        self._queue.put(_CLOSED)


class Watcher:
    def __init__(
        self,
        text_dumper: TextDumper,
        event_source_factory: Callable[..., WatchdogEventSource] = WatchdogEventSource,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.text_dumper = text_dumper
        self.event_source_factory = event_source_factory
        self.clock = clock
        self._source = None
        self._debouncer: Optional[Debouncer] = None
        self._stopped = False

    def watch(self, options: Options) -> None:
        """
        Dump once, then keep the artifact in sync until ``stop()``.

        Errors from the initial dump or from starting the event source
        propagate; errors from later regenerations are logged and ignored.
        """
        config = self.text_dumper.load_config(options)
        output_path = self.text_dumper.output_path(options, config)

        self.text_dumper.generate_text_dump(options, config=config)
        logger.info("Initial content dumped to %s", output_path)
        logger.debug("Debounce set to %dms", config.debounce_ms)

        exclude = [
            *config.exclude_patterns,
            *artifact_patterns(self.text_dumper.relative_output(output_path)),
            *WATCH_EXCLUDES,
        ]
        source = self.event_source_factory(
            self.text_dumper.file_handler.root, config.include_patterns, exclude
        )
        self._debouncer = Debouncer(config.debounce_ms / 1000.0)
        self._source = source
        self._stopped = False
        source.start()
        try:
            self._loop(options, output_path, source, self._debouncer)
        finally:
            source.close()

    def stop(self) -> None:
        self._stopped = True
        if self._debouncer is not None:
            self._debouncer.cancel()
        if self._source is not None:
            self._source.close()

    def _loop(self, options: Options, output_path: str, source, debouncer: Debouncer) -> None:
        while not self._stopped:
            event = source.poll(debouncer.remaining(self.clock()))
            if self._stopped:
                break
            if event is None:
                if debouncer.fire(self.clock()):
                    self._regenerate(options, output_path)
                continue
            if event.kind == ERROR:
                logger.error("Watcher error: %s", event.error)
                continue
            logger.info("File %s: %s", _VERBS.get(event.kind, event.kind), event.path)
            debouncer.trigger(self.clock())

    def _regenerate(self, options: Options, output_path: str) -> None:
        try:
            self.text_dumper.generate_text_dump(options)
        except Exception as e:
            logger.error("Error updating on change: %s", e)
            return
        logger.info("Updated %s", output_path)
