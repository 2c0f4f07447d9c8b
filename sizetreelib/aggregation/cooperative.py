"""Cooperative yielding for long aggregation passes."""

import asyncio


class Cooperative:
    """Hands control back to the event loop every ``every_n`` ticks.

    Aggregating a deep tree is pure CPU work; without an occasional
    ``await asyncio.sleep(0)`` it would starve every other task on the
    loop (a transport, a progress reporter, a cancellation request).
    """

    def __init__(self, every_n: int = 32):
        if every_n <= 0:
            raise ValueError("every_n must be positive")
        self.every_n = every_n
        self.ticks = 0
        self.yields = 0

    async def tick(self, count: int = 1) -> None:
        """Count processed items and yield once a batch is complete."""
        self.ticks += count
        if self.ticks >= self.every_n:
            self.ticks = 0
            self.yields += 1
            await asyncio.sleep(0)
