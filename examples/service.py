"""
Sample service module for the awaitless demo.
"""

import asyncio
from typing import Dict, List


class InventoryService:
    def __init__(self):
        self._stock: Dict[str, int] = {}
        self._lock = asyncio.Lock()

    async def load(self, sku: str) -> int:
        await asyncio.sleep(0.01)
        return self._stock.get(sku, 0)

    async def count(self, sku: str) -> int:
        return await self.load(sku)

    async def count_locked(self, sku: str) -> int:
        async with self._lock:
            return await self.load(sku)

    async def refresh(self) -> None:
        await asyncio.sleep(0.1)

    async def refresh_if(self, stale: bool) -> None:
        if stale:
            await self.refresh()
            return
        await asyncio.sleep(0)

    async def total(self, skus: List[str]) -> int:
        counts = [await self.load(sku) for sku in skus]
        return sum(counts)


async def warm_up(service: InventoryService) -> None:
    try:
        await service.refresh()
    except ConnectionError:
        pass


async def main() -> None:
    await warm_up(InventoryService())


if __name__ == "__main__":
    asyncio.run(main())
