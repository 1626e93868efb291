from typing import List, Tuple

from pymongo.errors import PyMongoError

from ixstats.core.logging import logger
from ixstats.services.models import IndexUsage

INDEX_STATS_PIPELINE = [{"$indexStats": {}}]


class UsageService:
    async def fetch(self, collection, advisories=None) -> Tuple[List[dict], List[IndexUsage]]:
        """
        Fetch the raw index definitions and per-shard usage rows of a collection.

        Usage is best effort: an $indexStats failure is logged (and recorded in
        ``advisories`` when given) and an empty list is returned. A listIndexes
        failure propagates, an inventory without index definitions is useless.
        """
        usage = await self.fetch_usage(collection, advisories)
        raw_indexes = await collection.list_indexes().to_list(length=None)
        return raw_indexes, usage

    async def fetch_usage(self, collection, advisories=None) -> List[IndexUsage]:
        try:
            rows = await collection.aggregate(INDEX_STATS_PIPELINE).to_list(length=None)
        except PyMongoError as e:
            message = f"$indexStats failed on {collection.full_name}: {e}"
            logger.warning(message)
            if advisories is not None:
                advisories.append(message)
            return []

        usage = []
        for row in rows:
            usage.append(
                IndexUsage(
                    name=row.get("name", ""),
                    host=row.get("host", ""),
                    shard=row.get("shard"),
                    accesses=row.get("accesses") or {},
                )
            )
        return usage
