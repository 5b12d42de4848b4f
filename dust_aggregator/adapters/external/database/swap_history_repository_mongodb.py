from typing import List

from motor.motor_asyncio import AsyncIOMotorDatabase

from ....core.domain.entities.swap_entity import SwapHistoryEntry
from ....core.repositories.swap_history_repository import SwapHistoryRepository


class SwapHistoryRepositoryMongoDB(SwapHistoryRepository):
    """
    Mongo implementation of the capped swap history.
    The cap is applied on write: anything older than the newest `limit` entries is deleted.
    """

    COLLECTION = "swap_history"

    def __init__(self, db: AsyncIOMotorDatabase, limit: int = 20):
        self._col = db[self.COLLECTION]
        self._limit = max(1, int(limit))

    async def ensure_indexes(self) -> None:
        await self._col.create_index("id", unique=True, name="ux_id")
        await self._col.create_index([("timestamp", -1)], name="ix_timestamp")
        await self._col.create_index([("wallet", 1), ("timestamp", -1)], name="ix_wallet_timestamp")

    async def append(self, entry: SwapHistoryEntry) -> None:
        doc = entry.model_dump(mode="json")
        await self._col.update_one({"id": entry.id}, {"$set": doc}, upsert=True)

        cursor = self._col.find({}, projection={"_id": False, "id": True}, sort=[("timestamp", -1)])
        stale = await cursor.skip(self._limit).to_list(length=None)
        if stale:
            await self._col.delete_many({"id": {"$in": [d["id"] for d in stale]}})

    async def read_all(self) -> List[SwapHistoryEntry]:
        cursor = self._col.find({}, projection={"_id": False}, sort=[("timestamp", -1)], limit=self._limit)
        docs = await cursor.to_list(length=self._limit)
        return [SwapHistoryEntry.model_validate(d) for d in docs]

    async def clear(self) -> None:
        await self._col.delete_many({})
