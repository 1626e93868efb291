from datetime import datetime, timezone

import pytest
import pytest_asyncio
from pymongo.errors import OperationFailure


class FakeCursor:
    def __init__(self, docs, error=None):
        self.docs = list(docs)
        self.error = error

    async def to_list(self, length=None):
        if self.error:
            raise self.error
        return list(self.docs)


class FakeCollection:
    def __init__(self, database, name):
        self.database = database
        self.name = name
        self.indexes = []
        self.stats = []
        self.docs = []
        self.list_error = None
        self.stats_error = None
        self.create_errors = {}
        self.created = []

    @property
    def full_name(self):
        return f"{self.database.name}.{self.name}"

    def add_index(self, key, name=None, **options):
        name = name or "_".join(f"{k}_{v}" for k, v in key)
        self.indexes.append({"v": 2, "key": dict(key), "name": name, **options})
        return name

    def list_indexes(self):
        return FakeCursor(self.indexes, self.list_error)

    def aggregate(self, pipeline):
        assert pipeline == [{"$indexStats": {}}]
        return FakeCursor(self.stats, self.stats_error)

    async def create_indexes(self, models):
        names = []
        for model in models:
            document = dict(model.document)
            if document["name"] in self.create_errors:
                raise self.create_errors[document["name"]]
            self.created.append(document)
            self.indexes.append(document)
            names.append(document["name"])
        return names

    async def find_one(self, query):
        for doc in self.docs:
            if all(_matches(doc.get(k), v) for k, v in query.items()):
                return doc
        return None

    async def count_documents(self, query):
        return len(self.docs)


def _matches(actual, expected):
    if isinstance(expected, dict):
        return isinstance(actual, dict) and list(actual.items()) == list(expected.items())
    return actual == expected


class FakeDatabase:
    def __init__(self, client, name):
        self.client = client
        self.name = name
        self._collections = {}
        self.types = {}
        self.list_error = None

    def __getitem__(self, name):
        if name not in self._collections:
            self._collections[name] = FakeCollection(self, name)
        return self._collections[name]

    def __getattr__(self, name):
        if name.startswith("_"):
            raise AttributeError(name)
        return self[name]

    async def list_collections(self):
        infos = [
            {"name": name, "type": self.types.get(name, "collection")}
            for name in self._collections
        ]
        return FakeCursor(infos, self.list_error)


class FakeClient:
    def __init__(self, host="db0.example.net", port=27017):
        self.nodes = frozenset({(host, port)})
        self._databases = {}
        self.list_error = None

    def __getitem__(self, name):
        if name not in self._databases:
            self._databases[name] = FakeDatabase(self, name)
        return self._databases[name]

    async def list_database_names(self):
        if self.list_error:
            raise self.list_error
        return list(self._databases)

    def shard(self, ns, key, shards=("shard01", "shard02")):
        config = self["config"]
        config["collections"].docs.append({"_id": ns, "key": dict(key)})
        if not config["shards"].docs:
            config["shards"].docs.extend({"_id": s} for s in shards)


def usage_row(name, host, ops, shard=None):
    row = {
        "name": name,
        "host": host,
        "accesses": {"ops": ops, "since": datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)},
    }
    if shard:
        row["shard"] = shard
    return row


@pytest.fixture
def client():
    return FakeClient()


@pytest.fixture
def command_error():
    return OperationFailure("not authorized", code=13)


@pytest_asyncio.fixture
async def populated(client):
    """A small cluster: one sharded and one unsharded collection plus admin noise."""
    orders = client["shop"]["orders"]
    orders.add_index([("_id", 1)], name="_id_")
    orders.add_index([("customer", 1)])
    orders.add_index([("customer", 1), ("created", -1)])
    orders.add_index([("region", 1), ("customer", 1)])
    orders.stats = [
        usage_row("_id_", "rs1:27018", 12, "shard01"),
        usage_row("customer_1_created_-1", "rs1:27018", 5, "shard01"),
        usage_row("customer_1_created_-1", "rs2:27018", 7, "shard02"),
        usage_row("region_1_customer_1", "rs1:27018", 3, "shard01"),
        usage_row("region_1_customer_1", "rs2:27018", 4, "shard02"),
    ]
    client.shard("shop.orders", [("region", 1), ("customer", 1)])

    users = client["shop"]["users"]
    users.add_index([("_id", 1)], name="_id_")
    users.add_index([("email", 1)], unique=True)

    client["shop"]["system.profile"].add_index([("_id", 1)], name="_id_")
    client["shop"].types["recent"] = "view"
    client["shop"]["recent"]
    client["admin"]["system.users"].add_index([("_id", 1)], name="_id_")
    client["local"]["oplog.rs"]
    return client


@pytest.fixture
def make_usage():
    return usage_row


@pytest.fixture
def client_factory():
    return FakeClient
