"""Cooperative cancellation helpers built around ``asyncio.Event``."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Optional, TypeVar

from .errors import TranslationCancelled

T = TypeVar("T")

CancelSignal = asyncio.Event


def raise_if_cancelled(signal: Optional[CancelSignal]) -> None:
    if signal is not None and signal.is_set():
        raise TranslationCancelled("Translation cancelled.")


async def run_cancellable(awaitable: Awaitable[T], signal: Optional[CancelSignal]) -> T:
    """Await ``awaitable`` unless ``signal`` is set first.

    The pending call is cancelled as soon as the signal fires and
    :class:`TranslationCancelled` is raised in its place.
    """

    if signal is not None and signal.is_set():
        if asyncio.iscoroutine(awaitable):
            awaitable.close()
        raise TranslationCancelled("Translation cancelled.")
    if signal is None:
        return await awaitable

    call = asyncio.ensure_future(awaitable)
    waiter = asyncio.ensure_future(signal.wait())
    try:
        done, _ = await asyncio.wait(
            {call, waiter}, return_when=asyncio.FIRST_COMPLETED
        )
    finally:
        for pending in (call, waiter):
            if not pending.done():
                pending.cancel()

    if call in done:
        return call.result()
    raise TranslationCancelled("Translation cancelled.")
