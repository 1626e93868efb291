import asyncio
from datetime import datetime, timezone
from typing import List, Optional

from pymongo.errors import PyMongoError

from ixstats.core.config import settings
from ixstats.core.errors import CollectionError
from ixstats.core.logging import logger
from ixstats.core.tasks import gather_or_cancel
from ixstats.db.mongo import hostname_of
from ixstats.services.models import Collection, Database, IndexSnapshot, Provenance
from ixstats.services.normalize_service import NormalizeService
from ixstats.services.redundancy_service import RedundancyService
from ixstats.services.usage_service import UsageService


def utcnow_ms() -> datetime:
    """Current UTC time truncated to the millisecond precision BSON stores."""
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


ADMIN_DATABASES = ("admin", "config", "local")
SYSTEM_PREFIX = "system."


class InventoryService:
    def __init__(
        self,
        client,
        db_name: Optional[str] = None,
        concurrency: Optional[int] = None,
        verbose: Optional[bool] = None,
    ):
        self.client = client
        self.db_name = db_name if db_name is not None else settings.DB_NAME
        self.concurrency = max(1, concurrency or settings.COLLECT_CONCURRENCY)
        self.verbose = settings.VERBOSE if verbose is None else verbose
        self.usage_service = UsageService()
        self.normalize_service = NormalizeService(client)
        self.redundancy_service = RedundancyService()

    def _progress(self, message: str, *args):
        if self.verbose:
            logger.info(message, *args)
        else:
            logger.debug(message, *args)

    async def collect(self) -> IndexSnapshot:
        """
        Inventory every index of every regular collection in the cluster.

        Any enumeration or listIndexes failure aborts the run with
        CollectionError; a partial inventory is never returned.
        """
        provenance = Provenance(
            version=settings.TOOL_VERSION,
            params={
                "db": self.db_name or "",
                "concurrency": self.concurrency,
                "verbose": self.verbose,
            },
            started_at=utcnow_ms(),
        )

        try:
            names = await self.client.list_database_names()
        except PyMongoError as e:
            raise CollectionError("<cluster>", str(e)) from e
        provenance.hostname = hostname_of(self.client)

        shard_count = await self.normalize_service.shard_count(provenance.logs)
        semaphore = asyncio.Semaphore(self.concurrency)

        databases = []
        for name in sorted(names):
            if name in ADMIN_DATABASES:
                self._progress("Skip %s", name)
                continue
            if self.db_name and name != self.db_name:
                continue
            self._progress("checking %s", name)
            collections = await self.collect_database(name, shard_count, semaphore, provenance.logs)
            databases.append(Database(name=name, collections=collections))

        if not databases:
            logger.info("No database is available")

        provenance.ended_at = utcnow_ms()
        return IndexSnapshot(databases=databases, provenance=provenance)

    async def list_collection_names(self, db_name: str) -> List[str]:
        try:
            cursor = await self.client[db_name].list_collections()
            infos = await cursor.to_list(length=None)
        except PyMongoError as e:
            raise CollectionError(db_name, str(e)) from e

        names = []
        for info in infos:
            name = info.get("name", "")
            if name.startswith(SYSTEM_PREFIX) or info.get("type") != "collection":
                self._progress("skip %s.%s", db_name, name)
                continue
            names.append(name)
        return sorted(names)

    async def collect_database(
        self, db_name: str, shard_count: int, semaphore: asyncio.Semaphore, advisories: List[str]
    ) -> List[Collection]:
        names = await self.list_collection_names(db_name)

        async def _bounded(name: str) -> Collection:
            async with semaphore:
                return await self.collect_collection(db_name, name, shard_count, advisories)

        results = await gather_or_cancel(_bounded(name) for name in names)
        return sorted(results, key=lambda c: c.name)

    async def collect_collection(
        self, db_name: str, name: str, shard_count: int = 0, advisories: Optional[List[str]] = None
    ) -> Collection:
        ns = f"{db_name}.{name}"
        collection = self.client[db_name][name]
        try:
            raw_indexes, usage = await self.usage_service.fetch(collection, advisories)
        except PyMongoError as e:
            raise CollectionError(ns, str(e)) from e

        indexes = await self.normalize_service.normalize_all(ns, raw_indexes, usage, advisories)
        indexes = self.redundancy_service.analyze(indexes, shard_count, ns, advisories)
        self._progress("%s: %s indexes", ns, len(indexes))
        return Collection(ns=ns, name=name, indexes=indexes)
