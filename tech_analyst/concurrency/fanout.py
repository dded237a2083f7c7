"""Bounded-concurrency map-then-aggregate executor shared by the I/O stages."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Generic, Iterable, TypeVar

from tech_analyst.context import RunContext
from tech_analyst.errors import ConfigurationError, PipelineCancelled

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

# Errors that abort the whole stage instead of degrading one item
FATAL_ERRORS: tuple[type[BaseException], ...] = (ConfigurationError, PipelineCancelled)


class FanOutFailure:
    def __init__(self, label: str, error: str):
        self.label = label
        self.error = error

    def __repr__(self) -> str:
        return f"FanOutFailure({self.label!r}, {self.error!r})"


class FanOutOutcome(Generic[R]):
    """Aggregate of one fan-out: concatenated results plus bookkeeping."""

    def __init__(
        self,
        results: list[R],
        failures: list[FanOutFailure],
        skipped: int,
        dispatched: int,
        completed: int,
    ):
        self.results = results
        self.failures = failures
        self.skipped = skipped
        self.dispatched = dispatched
        self.completed = completed


class FanOutStage:
    """Run one async handler per item under a semaphore, then concatenate.

    - ``skip(item)`` filters items out before dispatch; they are only counted.
    - A handler failure is logged and turned into ``on_error(item, exc)``
      (default: no results). Siblings keep running.
    - ConfigurationError and cancellation cancel every sibling and propagate.
    - One progress event is emitted per settled item with
      ``progress=settled`` and ``total=dispatched``.
    - Aggregation happens once, after every dispatched item has settled.
    """

    def __init__(
        self,
        ctx: RunContext,
        stage: str,
        substage: str,
        concurrency: int,
    ):
        self.ctx = ctx
        self.stage = stage
        self.substage = substage
        self.concurrency = max(1, concurrency)

    async def run(
        self,
        items: Iterable[T],
        handler: Callable[[T], Awaitable[list[R]]],
        on_error: Callable[[T, Exception], list[R]] | None = None,
        skip: Callable[[T], bool] | None = None,
        describe: Callable[[T], str] | None = None,
        company: Callable[[T], str] | None = None,
    ) -> FanOutOutcome[R]:
        describe = describe or _default_label
        dispatch: list[T] = []
        skipped = 0
        for item in items:
            if skip is not None and skip(item):
                skipped += 1
                logger.debug("Skipping %s", describe(item))
                continue
            dispatch.append(item)

        total = len(dispatch)
        if total == 0:
            return FanOutOutcome([], [], skipped, 0, 0)

        self.ctx.check_cancelled()
        gate = asyncio.Semaphore(self.concurrency)

        async def worker(item: T) -> tuple[list[R], FanOutFailure | None]:
            async with gate:
                self.ctx.check_cancelled()
                try:
                    return list(await handler(item)), None
                except FATAL_ERRORS:
                    raise
                except Exception as e:
                    label = describe(item)
                    logger.warning("%s/%s failed for %s: %s", self.stage, self.substage, label, e)
                    fragment = on_error(item, e) if on_error is not None else []
                    return list(fragment), FanOutFailure(label, str(e) or type(e).__name__)

        task_items: dict[asyncio.Task, T] = {
            asyncio.create_task(worker(item)): item for item in dispatch
        }
        pending: set[asyncio.Task] = set(task_items)
        cancel_waiter = asyncio.create_task(self.ctx.cancel_event.wait())
        fragments: list[list[R]] = []
        failures: list[FanOutFailure] = []
        settled = 0

        try:
            while pending:
                done, _ = await asyncio.wait(
                    pending | {cancel_waiter}, return_when=asyncio.FIRST_COMPLETED,
                )
                if cancel_waiter in done:
                    raise PipelineCancelled("Analysis cancelled")
                for task in done:
                    pending.discard(task)
                    fragment, failure = task.result()
                    fragments.append(fragment)
                    if failure is not None:
                        failures.append(failure)
                    settled += 1
                    item = task_items[task]
                    label = describe(item)
                    self.ctx.progress.report(
                        self.stage,
                        self.substage,
                        label if failure is None else f"{label} (failed)",
                        progress=settled,
                        total=total,
                        company=company(item) if company is not None else None,
                    )
        finally:
            cancel_waiter.cancel()
            for task in pending:
                task.cancel()
            await asyncio.gather(cancel_waiter, *pending, return_exceptions=True)

        results = [result for fragment in fragments for result in fragment]
        return FanOutOutcome(results, failures, skipped, total, settled)


def _default_label(item: Any) -> str:
    return str(item)[:80]
