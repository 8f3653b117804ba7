"""Bounded retry with capped exponential backoff and jitter."""

from __future__ import annotations

import random
import time
from collections.abc import Callable
from typing import TypeVar

from pydantic import BaseModel, Field

from .shell import warn

T = TypeVar("T")


class RetryPolicy(BaseModel):
    """Retry a call a fixed number of times before giving up.

    The delay before retry n (counting from 0) is
    min(base_delay * 2**n, max_delay) plus a uniform jitter in [0, jitter).
    sleep and rand are injectable so tests can run without waiting.
    """

    max_attempts: int = Field(default=5, ge=1)
    base_delay: float = 1.0
    max_delay: float = 8.0
    jitter: float = 1.0
    sleep: Callable[[float], None] = Field(default=time.sleep, repr=False, exclude=True)
    rand: Callable[[], float] = Field(default=random.random, repr=False, exclude=True)

    def delay(self, attempt: int) -> float:
        return min(self.base_delay * (2**attempt), self.max_delay) + self.rand() * self.jitter

    def call(
        self,
        func: Callable[[], T],
        *,
        retry_on: tuple[type[BaseException], ...] = (Exception,),
        describe: str = "call",
    ) -> T:
        """Run func, retrying on the given exceptions.

        The exception from the last attempt propagates unchanged.
        """
        for attempt in range(self.max_attempts):
            try:
                return func()
            except retry_on as exc:
                if attempt == self.max_attempts - 1:
                    raise
                delay = self.delay(attempt)
                warn(
                    f"{describe} failed on attempt {attempt + 1}/{self.max_attempts}"
                    f" ({exc}), retrying in {delay:.1f}s"
                )
                self.sleep(delay)
        raise AssertionError("unreachable")
