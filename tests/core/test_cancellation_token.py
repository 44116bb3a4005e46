"""Cancellation Tokens — tests for cooperative cancellation at wire reads.

Invariants:
    - cancel() is idempotent and sticky
    - guard_lines passes lines through untouched until cancelled
    - A read blocked on the network is abandoned as soon as the token fires
    - The wrapped iterator is closed on every exit path
"""

import asyncio

import pytest

from notecritic.core.cancellation import CancellationToken, guard_lines
from notecritic.core.errors import InferenceCancelledError


# -- Helpers -------------------------------------------------------------------

class _Lines:
    def __init__(self, lines, hang=False):
        self.lines = lines
        self.hang = hang
        self.closed = False

    async def run(self):
        try:
            for line in self.lines:
                yield line
            if self.hang:
                await asyncio.Event().wait()
        finally:
            self.closed = True


# -- Token ---------------------------------------------------------------------

def test_token_starts_uncancelled():
    token = CancellationToken("t1")
    assert token.cancelled is False
    token.raise_if_cancelled()


def test_cancel_is_idempotent():
    token = CancellationToken("t1")
    token.cancel()
    token.cancel()
    assert token.cancelled is True


def test_raise_if_cancelled_carries_turn_id():
    token = CancellationToken("t1")
    token.cancel()
    with pytest.raises(InferenceCancelledError) as exc_info:
        token.raise_if_cancelled()
    assert exc_info.value.context.turn_id == "t1"
    assert exc_info.value.message == "Inference was cancelled"


# -- guard_lines ---------------------------------------------------------------

async def test_guard_passes_all_lines_through():
    source = _Lines(["a", "b", "c"])
    out = [line async for line in guard_lines(source.run(), CancellationToken())]
    assert out == ["a", "b", "c"]
    assert source.closed is True


async def test_guard_raises_before_first_read_when_already_cancelled():
    source = _Lines(["a"])
    token = CancellationToken()
    token.cancel()
    with pytest.raises(InferenceCancelledError):
        async for _ in guard_lines(source.run(), token):
            pass


async def test_guard_abandons_blocked_read_on_cancel():
    source = _Lines(["first"], hang=True)
    token = CancellationToken()
    received = []

    async def consume():
        async for line in guard_lines(source.run(), token):
            received.append(line)

    task = asyncio.create_task(consume())
    await asyncio.sleep(0.01)
    token.cancel()

    with pytest.raises(InferenceCancelledError):
        await asyncio.wait_for(task, timeout=1.0)
    assert received == ["first"]
    assert source.closed is True


async def test_guard_closes_source_when_consumer_stops_early():
    source = _Lines(["a", "b", "c"], hang=True)
    lines = guard_lines(source.run(), CancellationToken())
    assert await lines.__anext__() == "a"
    await lines.aclose()
    assert source.closed is True
