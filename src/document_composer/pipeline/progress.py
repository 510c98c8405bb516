# SPDX-License-Identifier: Apache-2.0
"""Progress reporting for the processing pipeline."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import AsyncIterator, Optional, Protocol, runtime_checkable


class ProgressStage(str, Enum):
    """Pipeline states, in order on the success path."""

    PREPARING = "preparing"
    RENDERING = "rendering"
    GENERATING = "generating"
    COMPLETE = "complete"
    ERROR = "error"

    @property
    def progress(self) -> int:
        """Progress percentage reported on entering the stage."""
        return STAGE_PROGRESS[self]

    @property
    def is_terminal(self) -> bool:
        return self in (ProgressStage.COMPLETE, ProgressStage.ERROR)


STAGE_PROGRESS: dict[ProgressStage, int] = {
    ProgressStage.PREPARING: 10,
    ProgressStage.RENDERING: 30,
    ProgressStage.GENERATING: 80,
    ProgressStage.COMPLETE: 100,
    ProgressStage.ERROR: 0,
}


@dataclass(frozen=True)
class ProgressEvent:
    """One stage transition."""

    stage: ProgressStage
    progress: int
    message: str
    error: Optional[str] = None


@runtime_checkable
class ProgressCallback(Protocol):
    """Progress callback protocol."""

    def __call__(self, event: ProgressEvent) -> None: ...


class ProgressChannel:
    """Queue-backed progress observer.

    Pass the channel as the pipeline's progress callback and consume the
    events from another task with ``async for``. Iteration ends after the
    terminal (``complete`` or ``error``) event.
    """

    def __init__(self, maxsize: int = 0) -> None:
        self._queue: asyncio.Queue[ProgressEvent] = asyncio.Queue(maxsize=maxsize)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def __call__(self, event: ProgressEvent) -> None:
        if self._closed:
            raise RuntimeError("Progress channel is closed")
        self._queue.put_nowait(event)
        if event.stage.is_terminal:
            self._closed = True

    async def get(self) -> ProgressEvent:
        return await self._queue.get()

    async def __aiter__(self) -> AsyncIterator[ProgressEvent]:
        while True:
            event = await self._queue.get()
            yield event
            if event.stage.is_terminal:
                return
