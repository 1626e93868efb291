import asyncio
from dataclasses import dataclass, field
from typing import List, Optional

from pymongo.errors import PyMongoError

from ixstats.core.config import settings
from ixstats.core.logging import logger
from ixstats.core.tasks import gather_or_cancel
from ixstats.db.indexes import create_index, index_keys, index_options
from ixstats.services.models import Collection, Index, IndexSnapshot


@dataclass
class RecreateResult:
    created: int = 0
    skipped: int = 0
    failed: int = 0
    failures: List[str] = field(default_factory=list)

    def merge(self, other: "RecreateResult"):
        self.created += other.created
        self.skipped += other.skipped
        self.failed += other.failed
        self.failures.extend(other.failures)


class RecreateService:
    def __init__(self, concurrency: Optional[int] = None):
        self.concurrency = max(1, concurrency or settings.RECREATE_CONCURRENCY)

    async def recreate(self, snapshot: IndexSnapshot, client) -> RecreateResult:
        """
        Replay every index of the snapshot onto ``client``.

        Collections are replayed concurrently, indexes of one collection in
        order. A failed index is logged and counted; the replay goes on.
        """
        semaphore = asyncio.Semaphore(self.concurrency)

        async def _bounded(db_name: str, coll: Collection) -> RecreateResult:
            async with semaphore:
                return await self.recreate_collection(client[db_name][coll.name], coll)

        results = await gather_or_cancel(
            _bounded(db.name, coll) for db, coll in snapshot.collections()
        )

        total = RecreateResult()
        for result in results:
            total.merge(result)
        logger.info(
            "Recreate finished created=%s skipped=%s failed=%s",
            total.created,
            total.skipped,
            total.failed,
        )
        return total

    async def recreate_collection(self, collection, coll: Collection) -> RecreateResult:
        result = RecreateResult()
        existing = await self._existing_indexes(collection)

        for index in coll.indexes:
            if index.is_shard_key:
                logger.warning(
                    "%s %s is the shard key, shard the collection separately",
                    coll.ns,
                    index.key_string,
                )
            current = existing.get(index.name)
            if current is not None and list(current["key"].items()) == index_keys(index):
                if _comparable_options(index) == _comparable_options(Index.model_validate(dict(current))):
                    logger.debug("%s %s already exists", coll.ns, index.name)
                    result.skipped += 1
                    continue
                logger.warning(
                    "%s %s exists on the target with different options, not recreated",
                    coll.ns,
                    index.name,
                )
                result.failed += 1
                result.failures.append(f"{coll.ns}.{index.name}")
                continue
            try:
                await create_index(collection, index)
                result.created += 1
            except PyMongoError as e:
                logger.warning("Failed to create %s on %s: %s", index.name, coll.ns, e)
                result.failed += 1
                result.failures.append(f"{coll.ns}.{index.name}")
        return result

    @staticmethod
    async def _existing_indexes(collection) -> dict:
        """Index name -> index document already on the target; empty when unknown."""
        try:
            infos = await collection.list_indexes().to_list(length=None)
        except PyMongoError as e:
            logger.info("Cannot list indexes of %s: %s", collection.full_name, e)
            return {}
        return {info["name"]: info for info in infos}


def _comparable_options(index: Index) -> dict:
    """Options that make two same-named indexes conflict; build flags and version do not."""
    options = index_options(index)
    for name in ("v", "background"):
        options.pop(name, None)
    return options
