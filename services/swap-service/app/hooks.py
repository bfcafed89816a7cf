import logging
from collections import defaultdict
from typing import Awaitable, Callable

from .models import SwapRequest

logger = logging.getLogger("swap-service.hooks")

Hook = Callable[[SwapRequest], Awaitable[None]]

SWAP_REQUESTED = "swap.requested"
SWAP_ACCEPTED = "swap.accepted"
SWAP_REJECTED = "swap.rejected"


class PostCommitHooks:
    """
    Side effects that run after a swap transaction has committed.
    A failing hook is logged and skipped; it never reaches the caller.
    """

    def __init__(self):
        self._hooks: dict[str, list[Hook]] = defaultdict(list)

    def on(self, event: str, hook: Hook) -> "PostCommitHooks":
        self._hooks[event].append(hook)
        return self

    async def fire(self, event: str, request: SwapRequest) -> int:
        failures = 0
        for hook in self._hooks.get(event, []):
            try:
                await hook(request)
            except Exception:
                failures += 1
                logger.exception(
                    "post-commit hook %s failed for %s request_id=%s",
                    getattr(hook, "__name__", repr(hook)), event, request.id,
                )
        return failures
