"""In-process job spawner.

Jobs are registered under a reference string and spawned as asyncio tasks.
``spawn`` returns as soon as the task is scheduled; callers await the handle
when they want the result.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass

from tagbuild.core.result import Err, Ok, Result

__all__ = ["JobFn", "LocalJob", "LocalJobSpawner"]

JobFn = Callable[[str, Mapping[str, str | None]], Awaitable[object]]


@dataclass(frozen=True, slots=True)
class LocalJob:
    alias: str
    task: asyncio.Task[object]

    async def wait(self) -> object:
        return await self.task


class LocalJobSpawner:
    """Schedules registered jobs on the running event loop.

    ``max_concurrency`` bounds how many jobs run at once; extra jobs are
    accepted immediately and wait for a slot.
    """

    def __init__(self, jobs: Mapping[str, JobFn] | None = None, *, max_concurrency: int | None = None) -> None:
        self._jobs: dict[str, JobFn] = dict(jobs or {})
        self._sem = asyncio.Semaphore(max_concurrency) if max_concurrency else None
        self._tasks: list[asyncio.Task[object]] = []
        self._closed = False

    def spawn(self, job_ref: str, *, alias: str, args: Mapping[str, str | None]) -> Result[LocalJob, str]:
        if self._closed:
            return Err("spawner is closed")
        fn = self._jobs.get(job_ref)
        if fn is None:
            return Err(f"unknown job reference: {job_ref}")
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return Err("no running event loop")

        task = loop.create_task(self._run(fn, alias, dict(args)), name=alias)
        self._tasks.append(task)
        return Ok(LocalJob(alias=alias, task=task))

    async def _run(self, fn: JobFn, alias: str, args: dict[str, str | None]) -> object:
        if self._sem is None:
            return await fn(alias, args)
        async with self._sem:
            return await fn(alias, args)

    def close(self) -> None:
        """Reject further spawns; already spawned jobs keep running."""
        self._closed = True

    async def cancel_all(self) -> None:
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
