"""Background save reminder.

Polls the editor's unsaved-work marker on a fixed interval and raises an
:class:`UnsavedEvent` once per unsaved period after the threshold. It only
reads editor state; prompting or saving is left to the caller's handler.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from tile_mosaic.editor import Editor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UnsavedEvent:
    unsaved_since: float
    unsaved_for: float


class SaveReminder:
    def __init__(
        self,
        editor: Editor,
        on_due: Callable[[UnsavedEvent], object],
        threshold: float | None = None,
        interval: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.editor = editor
        self.on_due = on_due
        self.threshold = editor.config.reminder_threshold if threshold is None else threshold
        self.interval = editor.config.reminder_interval if interval is None else interval
        self._clock = clock
        self._notified_for: float | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def check(self) -> UnsavedEvent | None:
        """One poll: fire ``on_due`` if the current unsaved period is overdue."""
        since = self.editor.unsaved_since
        if since is None or since == self._notified_for:
            return None
        unsaved_for = self._clock() - since
        if unsaved_for < self.threshold:
            return None
        self._notified_for = since
        event = UnsavedEvent(unsaved_since=since, unsaved_for=unsaved_for)
        logger.info("Work unsaved for %.0f s", unsaved_for)
        self.on_due(event)
        return event

    def start(self) -> asyncio.Task[None]:
        """Schedule polling on the running event loop."""
        if not self.running:
            self._task = asyncio.get_running_loop().create_task(self._run())
        return self._task  # type: ignore[return-value]

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            self.check()
