from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient

from ixstats.core.config import settings
from ixstats.core.logging import logger


class MongoDB:
    client: Optional[AsyncIOMotorClient] = None

    def connect(self, uri: Optional[str] = None) -> AsyncIOMotorClient:
        """Connect to a cluster. Every operation inherits the configured deadline."""
        self.client = AsyncIOMotorClient(
            uri or settings.MONGO_URI,
            tz_aware=True,
            timeoutMS=settings.MONGO_TIMEOUT_MS,
            serverSelectionTimeoutMS=settings.MONGO_TIMEOUT_MS,
        )
        logger.info("Connected to MongoDB: %s", hostname_of(self.client))
        return self.client

    def close(self):
        if self.client:
            self.client.close()
            self.client = None
            logger.info("MongoDB connection closed.")


def hostname_of(client) -> str:
    """First known cluster node as host:port, used to name snapshot files."""
    nodes = sorted(getattr(client, "nodes", None) or ())
    if nodes:
        host, port = nodes[0]
        return f"{host}:{port}"
    return "localhost"


# Singleton instance
mongo = MongoDB()


async def get_client() -> AsyncIOMotorClient:
    if mongo.client is None:
        mongo.connect()
    return mongo.client

