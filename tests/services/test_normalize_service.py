import pytest

from ixstats.services.models import IndexUsage
from ixstats.services.normalize_service import (
    NormalizeService,
    effective_key_of,
    key_string_of,
)


def test_key_string_keeps_declared_order_and_directions():
    assert key_string_of({"b": 1, "a": -1}) == "{ b: 1, a: -1 }"
    assert key_string_of({"loc": "2dsphere"}) == "{ loc: 2dsphere }"
    assert key_string_of({"a": 1.0, "b": -1.0}) == "{ a: 1, b: -1 }"


def test_effective_key_strips_braces_and_descending():
    assert effective_key_of("{ a: 1, b: -1 }") == "a: 1, b: 1"
    assert effective_key_of("{ _id: 1 }") == "_id: 1"


def test_normalize_builds_derived_fields_and_merges_usage(make_usage):
    raw = {"v": 2, "key": {"status": 1, "created": -1}, "name": "status_1_created_-1", "sparse": True}
    usage = [
        IndexUsage.model_validate(make_usage("status_1_created_-1", "rs1:27018", 5)),
        IndexUsage.model_validate(make_usage("other", "rs1:27018", 100)),
        IndexUsage.model_validate(make_usage("status_1_created_-1", "rs2:27018", 7)),
    ]

    index = NormalizeService().normalize(raw, usage)

    assert index.fields == ["status", "created"]
    assert index.key_string == "{ status: 1, created: -1 }"
    assert index.effective_key == "status: 1, created: 1"
    assert index.total_ops == 12
    assert [u.host for u in index.usage] == ["rs1:27018", "rs2:27018"]
    assert index.sparse is True
    assert index.unique is None
    assert index.version == 2


@pytest.mark.asyncio
async def test_shard_key_requires_exact_key_match(client):
    client.shard("shop.orders", [("region", 1), ("customer", 1)])
    service = NormalizeService(client)

    assert await service.is_shard_key("shop.orders", {"region": 1, "customer": 1})
    assert not await service.is_shard_key("shop.orders", {"customer": 1, "region": 1})
    assert not await service.is_shard_key("shop.orders", {"region": 1})
    assert not await service.is_shard_key("shop.users", {"region": 1, "customer": 1})
    assert await service.shard_count() == 2


@pytest.mark.asyncio
async def test_shard_lookup_failure_is_advisory(client, command_error):
    client["config"]["collections"]

    async def _fail(query):
        raise command_error

    client["config"]["collections"].find_one = _fail
    advisories = []

    assert not await NormalizeService(client).is_shard_key("shop.orders", {"a": 1}, advisories)
    assert len(advisories) == 1
    assert "shop.orders" in advisories[0]
