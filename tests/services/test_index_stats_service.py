import pytest

from ixstats.services.index_stats_service import IndexStatsService


@pytest.mark.asyncio
async def test_collect_save_restore(populated, client_factory, tmp_path, capsys):
    service = IndexStatsService(populated, db_name="", output_dir=str(tmp_path), use_color=False)

    snapshot = await service.collect()
    path = service.save(snapshot)
    json_path = service.save(snapshot, as_json=True)
    assert path.endswith("-index.bson.gz")
    assert json_path.endswith("-index.json")

    target = client_factory("dr0.example.net")
    restored = await service.restore(path, target)

    assert restored.provenance.hostname == "dr0.example.net:27017"
    assert [o.key_string for o in restored.databases[0].collections[0].indexes] == [
        o.key_string for o in snapshot.databases[0].collections[0].indexes
    ]
    service.print(restored)
    assert "shop.orders:" in capsys.readouterr().out


def test_close_without_connection_is_noop():
    IndexStatsService(use_color=False).close()
