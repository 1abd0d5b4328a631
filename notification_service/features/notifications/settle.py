"""Settle-all: run independent awaitables and keep every outcome."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Iterable
from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass
class Settled(Generic[T]):
    """Outcome of one awaitable passed to ``settle_all``."""

    value: T | None = None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def settle_all(awaitables: Iterable[Awaitable[T]]) -> list[Settled[T]]:
    """Run ``awaitables`` concurrently and wait for every one of them.

    A failure is captured in its slot and does not cancel the others.
    Results keep the input order.
    """
    results = await asyncio.gather(*awaitables, return_exceptions=True)
    return [
        Settled(error=result) if isinstance(result, BaseException) else Settled(value=result)
        for result in results
    ]


__all__ = ["Settled", "settle_all"]
