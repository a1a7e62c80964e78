"""
Periodic refresh of the image cache.

Every tick refreshes the full listing and each known folder as independent
background tasks. Lazy folder population from request handlers goes through
the same dispatch so a slot never has two refreshes in flight.
"""

from __future__ import annotations

import asyncio
from typing import Dict, Optional

from loguru import logger

from .cache_service import ImageCache


class RefreshScheduler:
    """Run cache refreshes on a fixed interval and on demand."""

    def __init__(self, cache: ImageCache, interval: float) -> None:
        if interval <= 0:
            raise ValueError("Refresh interval must be positive")
        self._cache = cache
        self._interval = interval
        self._loop_task: Optional[asyncio.Task] = None
        self._full_task: Optional[asyncio.Task] = None
        self._folder_tasks: Dict[str, asyncio.Task] = {}

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    def start(self) -> None:
        """Refresh the full listing now and begin ticking."""
        if self.running:
            return
        self.dispatch_full()
        self._loop_task = asyncio.create_task(self._run(), name="image-cache-refresh")
        logger.info(f"Cache refresh scheduled every {self._interval:g} seconds")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            self.tick()

    def tick(self) -> None:
        """Dispatch the full refresh and one refresh per folder known right now."""
        self.dispatch_full()
        for name in self._cache.folder_names():
            self.dispatch_folder(name)

    def dispatch_full(self) -> asyncio.Task:
        if self._full_task is not None and not self._full_task.done():
            return self._full_task
        task = asyncio.create_task(self._cache.refresh_full(), name="refresh-full")
        task.add_done_callback(self._on_full_done)
        self._full_task = task
        return task

    def dispatch_folder(self, name: str) -> asyncio.Task:
        """Schedule a folder refresh without waiting for it."""
        task = self._folder_tasks.get(name)
        if task is not None and not task.done():
            return task
        task = asyncio.create_task(
            self._cache.refresh_folder(name), name=f"refresh-folder:{name}"
        )
        task.add_done_callback(lambda done, folder=name: self._on_folder_done(folder, done))
        self._folder_tasks[name] = task
        return task

    def _on_full_done(self, task: asyncio.Task) -> None:
        if self._full_task is task:
            self._full_task = None
        _log_task_failure(task)

    def _on_folder_done(self, name: str, task: asyncio.Task) -> None:
        if self._folder_tasks.get(name) is task:
            del self._folder_tasks[name]
        _log_task_failure(task)

    def pending(self) -> int:
        """Number of refreshes currently in flight."""
        count = len(self._folder_tasks)
        if self._full_task is not None:
            count += 1
        return count

    async def wait_idle(self) -> None:
        """Wait until every in-flight refresh has finished."""
        while True:
            tasks = list(self._folder_tasks.values())
            if self._full_task is not None:
                tasks.append(self._full_task)
            if not tasks:
                return
            await asyncio.gather(*tasks, return_exceptions=True)

    async def stop(self) -> None:
        """Stop ticking and cancel outstanding refreshes."""
        tasks = list(self._folder_tasks.values())
        if self._full_task is not None:
            tasks.append(self._full_task)
        if self._loop_task is not None:
            tasks.append(self._loop_task)
            self._loop_task = None
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._folder_tasks.clear()
        self._full_task = None
        logger.info("Cache refresh stopped")


def _log_task_failure(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.opt(exception=exc).error(f"Background refresh {task.get_name()} failed")
