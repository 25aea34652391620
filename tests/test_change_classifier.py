from types import SimpleNamespace

from app.services.change_classifier import classify


def rec(record_id, server_created_at, last_modified, is_deleted=False):
    return SimpleNamespace(
        id=record_id,
        server_created_at=server_created_at,
        last_modified=last_modified,
        is_deleted=is_deleted,
    )


class TestClassify:

    def test_record_created_before_checkpoint_is_updated(self):
        result = classify([rec("upd_1", 500, 1500)], checkpoint=1000, is_first_sync=False)

        assert result.created == []
        assert [r.id for r in result.updated] == ["upd_1"]
        assert result.deleted == []

    def test_record_created_after_checkpoint_is_created(self):
        result = classify([rec("new_1", 1200, 1200)], checkpoint=1000, is_first_sync=False)

        assert [r.id for r in result.created] == ["new_1"]
        assert result.updated == []

    def test_created_at_checkpoint_counts_as_known(self):
        result = classify([rec("edge_1", 1000, 1100)], checkpoint=1000, is_first_sync=False)

        assert result.created == []
        assert [r.id for r in result.updated] == ["edge_1"]

    def test_deleted_wins_regardless_of_creation_time(self):
        records = [
            rec("old_del", 100, 2000, is_deleted=True),
            rec("new_del", 1500, 2000, is_deleted=True),
        ]

        result = classify(records, checkpoint=1000, is_first_sync=False)

        assert result.deleted == ["old_del", "new_del"]
        assert result.created == [] and result.updated == []

    def test_first_sync_puts_every_live_record_in_created(self):
        records = [rec("a", 100, 100), rec("b", 100, 5000), rec("c", 1, 1, is_deleted=True)]

        result = classify(records, checkpoint=0, is_first_sync=True)

        assert [r.id for r in result.created] == ["a", "b"]
        assert result.updated == []
        assert result.deleted == ["c"]

    def test_order_is_preserved_within_buckets(self):
        records = [rec("u2", 10, 50), rec("c1", 40, 40), rec("u1", 5, 60), rec("c2", 45, 45)]

        result = classify(records, checkpoint=20, is_first_sync=False)

        assert [r.id for r in result.created] == ["c1", "c2"]
        assert [r.id for r in result.updated] == ["u2", "u1"]

    def test_empty_input(self):
        result = classify([], checkpoint=1000, is_first_sync=False)

        assert result == ([], [], [])
