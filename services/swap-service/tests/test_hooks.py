from unittest.mock import AsyncMock

from app.hooks import PostCommitHooks, SWAP_ACCEPTED, SWAP_REJECTED
from app.models import SwapRequest


async def test_fire_runs_every_hook_and_counts_failures():
    request = SwapRequest(id="req-1")
    ok = AsyncMock()
    broken = AsyncMock(side_effect=RuntimeError("boom"))
    after = AsyncMock()
    other = AsyncMock()

    hooks = PostCommitHooks().on(SWAP_ACCEPTED, ok).on(SWAP_ACCEPTED, broken).on(SWAP_ACCEPTED, after)
    hooks.on(SWAP_REJECTED, other)

    assert await hooks.fire(SWAP_ACCEPTED, request) == 1
    ok.assert_awaited_once_with(request)
    after.assert_awaited_once_with(request)
    other.assert_not_awaited()


async def test_fire_without_hooks_is_noop():
    assert await PostCommitHooks().fire(SWAP_ACCEPTED, SwapRequest(id="req-1")) == 0
