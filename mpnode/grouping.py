"""Issuing one request per peer concurrently."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Sequence, TypeVar

P = TypeVar("P")


async def group_request(
    peers: Sequence[P], func: Callable[[P], Awaitable[Any]]
) -> list[tuple[P, Any]]:
    """Await ``func(peer)`` for every peer at once and pair each peer with its outcome.

    A call that raises yields its exception as the outcome, so one failing peer
    does not hide the answers of the others.
    """
    peers = list(peers)
    results = await asyncio.gather(*(func(p) for p in peers), return_exceptions=True)
    return list(zip(peers, results))