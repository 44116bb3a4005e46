"""Cancellation Tokens — cooperative, per-turn cancellation observed at wire reads.

Invariants:
    - cancel() is idempotent; once cancelled a token never resets
    - guard_lines() raises InferenceCancelledError at the next read after cancel(),
      even while that read is still waiting on the network
    - The wrapped line iterator is always closed (in-flight connection released)

Design Decisions:
    - asyncio.Event backs the token so a pending read can be raced against it
    - Tokens are owned by the orchestrator instance, keyed by turn id (no module globals)
"""

import asyncio
from collections.abc import AsyncIterator

from notecritic.core.errors import ErrorContext, InferenceCancelledError


class CancellationToken:
    """Per-turn cancellation flag."""

    def __init__(self, turn_id: str | None = None):
        self.turn_id = turn_id
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise InferenceCancelledError(
                context=ErrorContext(turn_id=self.turn_id),
            )


_EXHAUSTED = object()


async def _next_line(iterator: AsyncIterator[str]):
    try:
        return await iterator.__anext__()
    except StopAsyncIteration:
        return _EXHAUSTED


async def guard_lines(
    lines: AsyncIterator[str], token: CancellationToken,
) -> AsyncIterator[str]:
    """Yield lines until exhausted; abandon the pending read when token is cancelled."""
    iterator = lines.__aiter__()
    try:
        while True:
            token.raise_if_cancelled()
            read = asyncio.ensure_future(_next_line(iterator))
            watcher = asyncio.ensure_future(token.wait())
            try:
                await asyncio.wait(
                    {read, watcher}, return_when=asyncio.FIRST_COMPLETED,
                )
            except asyncio.CancelledError:
                read.cancel()
                await asyncio.wait({read})
                raise
            finally:
                watcher.cancel()
            if not read.done():
                read.cancel()
                await asyncio.wait({read})
                token.raise_if_cancelled()
            line = read.result()
            if line is _EXHAUSTED:
                return
            yield line
    finally:
        aclose = getattr(iterator, "aclose", None)
        if aclose is not None:
            await aclose()
