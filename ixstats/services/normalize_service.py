from typing import Any, Iterable, List, Optional

from pymongo.errors import PyMongoError

from ixstats.core.logging import logger
from ixstats.services.models import Index, IndexUsage

SHARD_CATALOG_DB = "config"


def format_direction(value: Any) -> str:
    """Render a key direction the way the shell prints it (1.0 -> 1)."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def key_string_of(key: dict) -> str:
    parts = [f"{field}: {format_direction(value)}" for field, value in key.items()]
    return "{ " + ", ".join(parts) + " }"


def effective_key_of(key_string: str) -> str:
    """Key string without braces and with every descending direction made ascending."""
    return key_string[2:-2].replace(": -1", ": 1")


class NormalizeService:
    def __init__(self, client=None):
        self.client = client

    def normalize(self, raw: dict, usage: Iterable[IndexUsage] = ()) -> Index:
        """Build an Index from a listIndexes document and merge its usage rows."""
        index = Index.model_validate(dict(raw))
        index.fields = list(index.key.keys())
        index.key_string = key_string_of(index.key)
        index.effective_key = effective_key_of(index.key_string)

        index.total_ops = 0
        index.usage = []
        for row in usage:
            if row.name == index.name:
                index.total_ops += row.ops
                index.usage.append(row)
        return index

    async def is_shard_key(self, ns: str, key: dict, advisories: Optional[List[str]] = None) -> bool:
        """True only when config.collections registers exactly this key for ``ns``."""
        if self.client is None:
            return False
        try:
            doc = await self.client[SHARD_CATALOG_DB].collections.find_one({"_id": ns, "key": key})
        except PyMongoError as e:
            message = f"shard key lookup failed for {ns}: {e}"
            logger.warning(message)
            if advisories is not None:
                advisories.append(message)
            return False
        return doc is not None

    async def shard_count(self, advisories: Optional[List[str]] = None) -> int:
        if self.client is None:
            return 0
        try:
            return await self.client[SHARD_CATALOG_DB].shards.count_documents({})
        except PyMongoError as e:
            message = f"cannot count shards: {e}"
            logger.warning(message)
            if advisories is not None:
                advisories.append(message)
            return 0

    async def normalize_all(
        self, ns: str, raw_indexes: List[dict], usage: List[IndexUsage], advisories=None
    ) -> List[Index]:
        indexes = []
        for raw in raw_indexes:
            index = self.normalize(raw, usage)
            index.is_shard_key = await self.is_shard_key(ns, raw["key"], advisories)
            logger.debug("normalized %s %s", ns, index.key_string)
            indexes.append(index)
        return indexes
