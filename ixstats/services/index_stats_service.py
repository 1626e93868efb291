from typing import Optional

from ixstats.core.config import settings
from ixstats.core.logging import logger
from ixstats.db.mongo import get_client, mongo
from ixstats.services.inventory_service import InventoryService
from ixstats.services.models import IndexSnapshot
from ixstats.services.recreate_service import RecreateResult, RecreateService
from ixstats.services.report_service import ReportService
from ixstats.services.snapshot_service import SnapshotService


class IndexStatsService:
    """Collect, print, save, load and replay index inventories."""

    def __init__(
        self,
        client=None,
        db_name: Optional[str] = None,
        output_dir: Optional[str] = None,
        use_color: Optional[bool] = None,
        verbose: Optional[bool] = None,
    ):
        self.client = client
        self.db_name = db_name
        self.verbose = settings.VERBOSE if verbose is None else verbose
        self.snapshot_service = SnapshotService(output_dir)
        self.report_service = ReportService(use_color)
        self.recreate_service = RecreateService()

    async def _client(self, client=None):
        if client is not None:
            return client
        if self.client is None:
            self.client = await get_client()
        return self.client

    async def collect(self, client=None) -> IndexSnapshot:
        inventory = InventoryService(await self._client(client), db_name=self.db_name, verbose=self.verbose)
        return await inventory.collect()

    def print(self, snapshot: IndexSnapshot):
        self.report_service.print(snapshot)

    def save(self, snapshot: IndexSnapshot, as_json: bool = False) -> str:
        if as_json:
            return self.snapshot_service.save_json(snapshot)
        return self.snapshot_service.save(snapshot)

    def load(self, filename: str) -> IndexSnapshot:
        return self.snapshot_service.load(filename)

    async def recreate(self, snapshot: IndexSnapshot, client=None) -> RecreateResult:
        return await self.recreate_service.recreate(snapshot, await self._client(client))

    async def restore(self, filename: str, client=None) -> IndexSnapshot:
        """Replay a snapshot file onto a cluster and return the cluster's new inventory."""
        snapshot = self.load(filename)
        target = await self._client(client)
        result = await self.recreate(snapshot, target)
        if result.failed:
            logger.warning("%s indexes were not recreated: %s", result.failed, ", ".join(result.failures))
        return await self.collect(target)

    def close(self):
        mongo.close()
